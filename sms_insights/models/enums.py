"""
Enumeration definitions for the SMS Insights backend.

All enums inherit from both `str` and `Enum` to ensure JSON serialization compatibility
with Pydantic models, enabling automatic serialization in API responses.
"""

from enum import Enum


class SourceKind(str, Enum):
    """
    The three independently maintained table feeds reconciled on every load.

    - events: page-view log written by the landing pages (one row per view)
    - directory: user directory keyed by phone number
    - campaigns: SMS send log (one row per contact batch)
    """
    EVENTS = "events"
    DIRECTORY = "directory"
    CAMPAIGNS = "campaigns"


class DayOfWeek(str, Enum):
    """
    Day-of-week buckets for the weekly viewing histogram.

    Values are the short Russian labels shown by the dashboard. Declaration order
    is Monday first, matching `datetime.weekday()` (Monday == 0).
    """
    MONDAY = "Пн"
    TUESDAY = "Вт"
    WEDNESDAY = "Ср"
    THURSDAY = "Чт"
    FRIDAY = "Пт"
    SATURDAY = "Сб"
    SUNDAY = "Вс"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayOfWeek":
        """Map `datetime.weekday()` (0 = Monday) to a bucket."""
        return list(cls)[weekday]
