"""
Pytest Configuration and Shared Fixtures for SMS Insights Tests.

Provides:
- Record builders (events, profiles, campaigns, enriched events) with
  production-like defaults
- CSV builders producing sheet exports with the real Russian headers
- A reconciliation config using the "Allowed" campaign source label
- A small reconciled snapshot spanning two categories, also as raw feed rows
"""

from typing import Dict, List, Sequence

import pytest

from sms_insights.models.schemas import (
    CampaignRecord,
    EnrichedViewEvent,
    UserProfile,
    ViewEvent,
)
from sms_insights.services.aggregation import EstimatorConfig
from sms_insights.services.reconciliation import ReconciliationConfig, reconcile_sources
from sms_insights.services.sources import SourceSnapshot
from sms_insights.services.tabular import CAMPAIGN_COLUMNS, DIRECTORY_COLUMNS, EVENT_COLUMNS


# ============================================================
# RECORD BUILDERS
# ============================================================

def make_event(**overrides) -> ViewEvent:
    """Build a ViewEvent with sensible defaults."""
    values = {
        'timestamp': '05.03.2024 14:30:00',
        'phoneRaw': '+375 29 111-22-33',
        'contentCategory': 'Донормил',
        'videoName': 'Сон без таблеток',
        'viewDurationSeconds': 60,
        'viewPercent': 50,
        'sessionId': 's-1',
        'distributionId': 'D1',
        'abGroupTag': '',
    }
    values.update(overrides)
    return ViewEvent(**values)


def make_profile(**overrides) -> UserProfile:
    """Build a UserProfile with sensible defaults."""
    values = {
        'phoneRaw': '375291112233',
        'fullName': 'Иванов Иван Иванович',
        'specialty': 'Кардиолог',
        'workplace': 'Городская поликлиника №1',
        'district': 'Центральный',
    }
    values.update(overrides)
    return UserProfile(**values)


def make_campaign(**overrides) -> CampaignRecord:
    """Build a CampaignRecord with sensible defaults."""
    values = {
        'sourceLabel': 'Allowed',
        'distributionId': 'D1',
        'abGroupTag': '',
        'campaignName': 'X',
        'smsText': 'Новый ролик о здоровом сне',
        'contactsSent': 100,
        'timestamp': '01.03.2024 10:00:00',
    }
    values.update(overrides)
    return CampaignRecord(**values)


def make_enriched(row_id: int = 1, **overrides) -> EnrichedViewEvent:
    """Build an EnrichedViewEvent as reconciliation would emit it."""
    values = {
        'rowId': row_id,
        'timestamp': '05.03.2024 14:30:00',
        'phoneRaw': '+375 29 111-22-33',
        'normalizedPhone': '375291112233',
        'contentCategory': 'Донормил',
        'videoName': 'Сон без таблеток',
        'viewDurationSeconds': 60,
        'viewPercent': 50,
        'sessionId': f's-{row_id}',
        'distributionId': 'D1',
        'abGroupTag': '',
        'fullName': 'Иванов Иван Иванович',
        'specialty': 'Кардиолог',
        'workplace': 'Городская поликлиника №1',
        'district': 'Центральный',
        'campaignName': 'X',
        'smsText': 'Новый ролик о здоровом сне',
        'hasUserMatch': True,
        'hasCampaignMatch': True,
    }
    values.update(overrides)
    return EnrichedViewEvent(**values)


# ============================================================
# CSV BUILDERS
# ============================================================

def create_csv_text(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render rows as a sheet CSV export, quoting every cell."""
    def _line(cells: Sequence[str]) -> str:
        return ','.join('"' + str(cell).replace('"', '""') + '"' for cell in cells)

    lines = [_line(headers)] + [_line(row) for row in rows]
    return '\n'.join(lines) + '\n'


# ============================================================
# CONFIGURATION FIXTURES
# ============================================================

@pytest.fixture
def recon_config() -> ReconciliationConfig:
    """Reconciliation rules allowing only the "Allowed" campaign source."""
    return ReconciliationConfig(allowed_sources=('Allowed',))


@pytest.fixture
def estimator() -> EstimatorConfig:
    return EstimatorConfig(ratios={'Донормил': 4.6, 'Пимафуцин': 1.44}, default_ratio=1.0)


# ============================================================
# SNAPSHOT FIXTURES
# ============================================================

@pytest.fixture
def sample_events() -> List[ViewEvent]:
    """Six events over two categories; one unmatched and one excluded user."""
    return [
        make_event(timestamp='05.03.2024 14:30:00', distributionId='D1', sessionId='s-1'),
        make_event(timestamp='06.03.2024 09:15:00', distributionId='D1', sessionId='s-2',
                   phoneRaw='+375 (33) 444-55-66', viewPercent=0),
        make_event(timestamp='2024-03-07 20:00:00', distributionId='D2', sessionId='s-3',
                   phoneRaw='+375291112233', viewPercent=100),
        make_event(timestamp='not a date', distributionId='D3', sessionId='s-4',
                   phoneRaw='+375 44 777-88-99'),
        make_event(timestamp='08.03.2024 11:00:00', distributionId='P1', sessionId='s-5',
                   contentCategory='Пимафуцин', phoneRaw='+375 25 000-00-01'),
        make_event(timestamp='09.03.2024 12:00:00', distributionId='UNKNOWN', sessionId='s-6'),
    ]


@pytest.fixture
def sample_profiles() -> List[UserProfile]:
    return [
        make_profile(),
        make_profile(phoneRaw='375447778899', fullName='Петров Пётр', specialty='Не врач'),
        make_profile(phoneRaw='25 000-00-01', fullName='Сидорова Анна', specialty='Гинеколог'),
    ]


@pytest.fixture
def sample_campaigns() -> List[CampaignRecord]:
    return [
        make_campaign(distributionId='D1', campaignName='X', contactsSent=100,
                      timestamp='01.03.2024 10:00:00'),
        make_campaign(distributionId='D2', campaignName='Y', contactsSent=50,
                      timestamp='02.03.2024 10:00:00'),
        make_campaign(distributionId='D2', campaignName='Y', contactsSent=50,
                      timestamp='03.03.2024 10:00:00'),
        make_campaign(distributionId='D3', campaignName='Z', contactsSent=40,
                      timestamp=''),
        make_campaign(distributionId='P1', campaignName='P', contactsSent=200,
                      timestamp='04.03.2024 10:00:00'),
        make_campaign(distributionId='UNKNOWN', campaignName='Hidden', contactsSent=10,
                      sourceLabel='Other Pharma'),
    ]


@pytest.fixture
def sample_result(sample_events, sample_profiles, sample_campaigns, recon_config):
    """Reconciled sample snapshot."""
    return reconcile_sources(sample_events, sample_profiles, sample_campaigns, recon_config)


# ============================================================
# RAW SNAPSHOT FIXTURES
# ============================================================

def raw_rows(columns: Dict[str, str], records: Sequence) -> List[Dict[str, str]]:
    """Turn typed records back into RawRows keyed by the sheet headers."""
    return [
        {header: str(getattr(record, field)) for field, header in columns.items()}
        for record in records
    ]


@pytest.fixture
def sample_snapshot(sample_events, sample_profiles, sample_campaigns) -> SourceSnapshot:
    """The sample records as the three feeds would deliver them."""
    return SourceSnapshot(
        events=raw_rows(EVENT_COLUMNS, sample_events),
        profiles=raw_rows(DIRECTORY_COLUMNS, sample_profiles),
        campaigns=raw_rows(CAMPAIGN_COLUMNS, sample_campaigns),
    )
