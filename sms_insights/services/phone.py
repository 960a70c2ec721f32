"""
Phone number normalization for directory matching.

Subjects are identified by phone number, written differently in each feed:
"+375 29 111-22-33" in the event log, "375291112233" or "291112233" in the
directory. Matching works on a canonical digit string plus its national
prefix variant.
"""

import re
from typing import List, Mapping, Optional, TypeVar

DEFAULT_NATIONAL_PREFIX = '375'

_NON_DIGITS = re.compile(r'\D+')

T = TypeVar('T')


def normalize_phone(phone_raw: Optional[str]) -> str:
    """
    Canonicalize a phone number to its digits.

    Whitespace, hyphens, parentheses, a leading "+" and any other separators
    are removed.

    Example:
        >>> normalize_phone("+375 (29) 111-22-33")
        '375291112233'
    """
    if not phone_raw:
        return ''
    return _NON_DIGITS.sub('', str(phone_raw))


def opposite_prefix_variant(normalized: str, prefix: str = DEFAULT_NATIONAL_PREFIX) -> str:
    """The number with the national prefix stripped if present, added if absent."""
    if not normalized:
        return ''
    if normalized.startswith(prefix):
        return normalized[len(prefix):]
    return prefix + normalized


def phone_variants(normalized: str, prefix: str = DEFAULT_NATIONAL_PREFIX) -> List[str]:
    """
    Lookup keys for a normalized phone, in lookup order.

    The exact string comes first, then the opposite-prefix variant. A bare
    prefix has no meaningful stripped form and yields only itself.
    """
    if not normalized:
        return []
    variant = opposite_prefix_variant(normalized, prefix)
    if not variant or variant == normalized:
        return [normalized]
    return [normalized, variant]


def lookup_by_phone(
    index: Mapping[str, T],
    normalized: str,
    prefix: str = DEFAULT_NATIONAL_PREFIX,
) -> Optional[T]:
    """Resolve a normalized phone against an index: exact match, then opposite prefix."""
    for key in phone_variants(normalized, prefix):
        found = index.get(key)
        if found is not None:
            return found
    return None
