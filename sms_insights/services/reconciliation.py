"""
Reconciliation Engine

This module joins the page-view event log against the user directory and the
SMS campaign log, producing one EnrichedViewEvent per surviving event.

Join rules:
- Profiles are indexed by every normalized-phone variant (exact and opposite
  national prefix); on key collision the later directory row wins.
- Campaigns are indexed by distributionId and, when an A/B tag is present, by
  "distributionId|abGroupTag". Only allow-listed campaign sources are indexed;
  on key collision the later campaign row wins.
- An event resolves its campaign by the compound key first (when it carries
  an A/B tag), then by the plain distributionId. A compound hit is final.

Inclusion rules, applied in order:
1. Events without a resolved campaign are dropped, whatever their user match.
2. Events whose matched user has an excluded specialty are dropped. Events
   without a user match are kept (anonymous viewing).

The engine is synchronous and pure: the same three snapshots always produce
the same events in the same (event-log) order.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from sms_insights.core.config import Settings
from sms_insights.models.schemas import (
    ViewEvent,
    UserProfile,
    CampaignRecord,
    EnrichedViewEvent,
    ReconciliationStats,
    ReconciliationResult,
)
from sms_insights.services.phone import (
    DEFAULT_NATIONAL_PREFIX,
    normalize_phone,
    phone_variants,
    lookup_by_phone,
)

# Configure module logger
logger = logging.getLogger(__name__)

COMPOUND_KEY_SEPARATOR = '|'


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class ReconciliationConfig:
    """
    Join and filter rules consumed by the engine.

    Attributes:
        allowed_sources: Campaign log source labels that participate in joins.
        source_filter_enabled: When False every source label is allowed.
        excluded_specialty_keywords: A specialty containing any of these
            (case-insensitive) marks a non-clinician user.
        exclude_users_enabled: When False no user is excluded.
        national_phone_prefix: Country code digits for phone variants.
    """
    allowed_sources: Tuple[str, ...] = ('Delta Medical',)
    source_filter_enabled: bool = True
    excluded_specialty_keywords: Tuple[str, ...] = ('не врач', 'неврач', 'не врач.', 'не врач!')
    exclude_users_enabled: bool = True
    national_phone_prefix: str = DEFAULT_NATIONAL_PREFIX

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReconciliationConfig":
        return cls(
            allowed_sources=tuple(settings.allowed_campaign_sources),
            source_filter_enabled=settings.campaign_source_filter_enabled,
            excluded_specialty_keywords=tuple(settings.excluded_specialty_keywords),
            exclude_users_enabled=settings.exclude_users_enabled,
            national_phone_prefix=settings.national_phone_prefix,
        )


@dataclass
class _Counters:
    dropped_no_campaign: int = 0
    dropped_excluded_specialty: int = 0
    matched_users: int = 0


# =============================================================================
# Filter Rules
# =============================================================================


def is_allowed_campaign_source(label: str, config: ReconciliationConfig) -> bool:
    """Whether a campaign log source label is on the allow-list (trimmed, exact)."""
    if not config.source_filter_enabled:
        return True
    allowed = {source.strip() for source in config.allowed_sources}
    return (label or '').strip() in allowed


def is_excluded_specialty(specialty: str, config: ReconciliationConfig) -> bool:
    """
    Whether a specialty marks a user whose views are excluded.

    The lower-cased, trimmed specialty is searched for every keyword, so
    "Не врач (студент)" is excluded as well as "не врач".
    """
    if not config.exclude_users_enabled:
        return False
    text = (specialty or '').strip().lower()
    if not text:
        return False
    return any(
        keyword.strip().lower() in text
        for keyword in config.excluded_specialty_keywords
        if keyword.strip()
    )


# =============================================================================
# Lookup Indexes
# =============================================================================


def campaign_key(distribution_id: str, ab_group_tag: str = '') -> str:
    """Lookup key for a distribution, compound when an A/B tag is present."""
    if ab_group_tag:
        return f"{distribution_id}{COMPOUND_KEY_SEPARATOR}{ab_group_tag}"
    return distribution_id


def build_profile_index(
    profiles: Sequence[UserProfile],
    national_prefix: str = DEFAULT_NATIONAL_PREFIX,
) -> Dict[str, UserProfile]:
    """Index directory entries by every normalized-phone variant; last write wins."""
    index: Dict[str, UserProfile] = {}
    for profile in profiles:
        normalized = normalize_phone(profile.phoneRaw)
        for key in phone_variants(normalized, national_prefix):
            index[key] = profile
    return index


def build_campaign_index(
    campaigns: Sequence[CampaignRecord],
    config: ReconciliationConfig,
) -> Dict[str, CampaignRecord]:
    """
    Index allow-listed campaign records by plain and compound distribution key.

    Records with an empty distributionId cannot be joined and are skipped.
    """
    index: Dict[str, CampaignRecord] = {}
    for record in campaigns:
        if not record.distributionId:
            continue
        if not is_allowed_campaign_source(record.sourceLabel, config):
            continue
        index[campaign_key(record.distributionId)] = record
        if record.abGroupTag:
            index[campaign_key(record.distributionId, record.abGroupTag)] = record
    return index


def resolve_campaign(
    index: Dict[str, CampaignRecord],
    event: ViewEvent,
) -> Optional[CampaignRecord]:
    """Compound key first when the event has an A/B tag, then the plain key."""
    if not event.distributionId:
        return None
    if event.abGroupTag:
        compound = index.get(campaign_key(event.distributionId, event.abGroupTag))
        if compound is not None:
            return compound
    return index.get(campaign_key(event.distributionId))


# =============================================================================
# Reconciliation
# =============================================================================


def _reconcile(
    events: Sequence[ViewEvent],
    profiles: Sequence[UserProfile],
    campaigns: Sequence[CampaignRecord],
    config: ReconciliationConfig,
) -> Tuple[List[EnrichedViewEvent], _Counters]:
    profile_index = build_profile_index(profiles, config.national_phone_prefix)
    campaign_index = build_campaign_index(campaigns, config)
    counters = _Counters()
    enriched: List[EnrichedViewEvent] = []

    for position, event in enumerate(events, start=1):
        campaign = resolve_campaign(campaign_index, event)
        if campaign is None:
            counters.dropped_no_campaign += 1
            continue

        normalized = normalize_phone(event.phoneRaw)
        profile = lookup_by_phone(profile_index, normalized, config.national_phone_prefix)

        if profile is not None and is_excluded_specialty(profile.specialty, config):
            counters.dropped_excluded_specialty += 1
            continue

        if profile is not None:
            counters.matched_users += 1

        enriched.append(EnrichedViewEvent(
            **event.model_dump(),
            rowId=position,
            normalizedPhone=normalized,
            fullName=profile.fullName if profile else '',
            specialty=profile.specialty if profile else '',
            workplace=profile.workplace if profile else '',
            district=profile.district if profile else '',
            campaignName=campaign.campaignName,
            smsText=campaign.smsText,
            hasUserMatch=profile is not None,
            hasCampaignMatch=True,
        ))

    logger.info(
        f"Reconciled {len(events)} events against {len(profiles)} profiles and "
        f"{len(campaigns)} campaign records: dropped {counters.dropped_no_campaign} "
        f"without campaign, {counters.dropped_excluded_specialty} excluded specialty, "
        f"kept {len(enriched)}"
    )
    return enriched, counters


def reconcile(
    events: Sequence[ViewEvent],
    profiles: Sequence[UserProfile],
    campaigns: Sequence[CampaignRecord],
    config: Optional[ReconciliationConfig] = None,
) -> List[EnrichedViewEvent]:
    """
    Join events against the directory and the campaign log.

    Args:
        events: Event log records in source order.
        profiles: User directory records.
        campaigns: Campaign log records (all sources; the allow-list is applied here).
        config: Join and filter rules; defaults reproduce the production setup.

    Returns:
        Surviving EnrichedViewEvents in event-log order. Every one has
        hasCampaignMatch == True.

    Example:
        >>> enriched = reconcile(events, profiles, campaigns)
        >>> all(e.hasCampaignMatch for e in enriched)
        True
    """
    enriched, _ = _reconcile(events, profiles, campaigns, config or ReconciliationConfig())
    return enriched


def category_distribution_ids(events: Sequence[ViewEvent]) -> Dict[str, List[str]]:
    """Distinct non-empty distribution ids per content category, first-seen order."""
    ids: Dict[str, List[str]] = {}
    seen: Dict[str, set] = {}
    for event in events:
        if not event.distributionId:
            continue
        category_seen = seen.setdefault(event.contentCategory, set())
        if event.distributionId in category_seen:
            continue
        category_seen.add(event.distributionId)
        ids.setdefault(event.contentCategory, []).append(event.distributionId)
    return ids


def reconcile_sources(
    events: Sequence[ViewEvent],
    profiles: Sequence[UserProfile],
    campaigns: Sequence[CampaignRecord],
    config: Optional[ReconciliationConfig] = None,
    loaded_at: Optional[datetime] = None,
) -> ReconciliationResult:
    """
    Reconcile one snapshot and bundle everything its consumers need.

    The result carries the typed campaign log and the raw per-category
    distribution ids alongside the enriched events, so the rollups never
    reach for shared state.

    Args:
        events: Event log records in source order.
        profiles: User directory records.
        campaigns: Campaign log records.
        config: Join and filter rules.
        loaded_at: Timestamp stamped on the result (default: now).

    Returns:
        ReconciliationResult for the snapshot.
    """
    config = config or ReconciliationConfig()
    enriched, counters = _reconcile(events, profiles, campaigns, config)

    eligible = sum(
        1 for record in campaigns
        if is_allowed_campaign_source(record.sourceLabel, config)
    )

    stats = ReconciliationStats(
        totalEvents=len(events),
        totalProfiles=len(profiles),
        totalCampaigns=len(campaigns),
        eligibleCampaigns=eligible,
        droppedNoCampaign=counters.dropped_no_campaign,
        droppedExcludedSpecialty=counters.dropped_excluded_specialty,
        matchedUsers=counters.matched_users,
        keptEvents=len(enriched),
    )

    return ReconciliationResult(
        events=enriched,
        campaigns=list(campaigns),
        categoryDistributionIds=category_distribution_ids(events),
        stats=stats,
        loadedAt=loaded_at or datetime.now(),
    )
