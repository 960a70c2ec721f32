"""
Test Module for the Aggregation Engine.

Validates:
- Proportional rounding (allocate_rounded) and the estimator total
- Campaign statistics: smsSent over every row, first-claim view attribution,
  campaigns whose views were all filtered out
- Client rollups, time series and histograms
- Summary, coverage and A/B text analysis
"""

from datetime import date, datetime
import math

import pytest

from sms_insights.models.enums import DayOfWeek
from sms_insights.services.aggregation import (
    EstimatorConfig,
    allocate_rounded,
    average_view_percent,
    compute_ab_test_analysis,
    compute_campaign_statistics,
    compute_client_statistics,
    compute_daily_series,
    compute_day_of_week_histogram,
    compute_hour_histogram,
    compute_summary_statistics,
    compute_user_coverage,
    conversion_rate,
    date_range,
    format_duration,
    round_half_up,
    round_to,
    sort_campaigns_by_latest,
    specialty_distribution,
    top_clients,
)
from sms_insights.tests.conftest import make_campaign, make_enriched


# =============================================================================
# Rounding
# =============================================================================


class TestRounding:
    """Tests for the rounding helpers."""

    @pytest.mark.parametrize('value,expected', [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (0.0, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_round_to(self):
        assert round_to(66.666, 2) == 66.67
        assert round_to(1.25, 1) == 1.3

    def test_allocate_rounded_examples(self):
        assert allocate_rounded([0.4, 0.4, 0.4]) == [0, 0, 1]
        assert allocate_rounded([1.4, 1.4, 1.4]) == [1, 1, 2]
        assert allocate_rounded([9.2, 4.6, 0.0]) == [9, 5, 0]

    def test_allocate_rounded_empty(self):
        assert allocate_rounded([]) == []

    @pytest.mark.parametrize('values', [
        [4.6, 4.6, 4.6],
        [1.44, 2.88, 0.0, 5.76],
        [0.3] * 10,
        [100.5],
        [0.0, 0.0],
    ])
    def test_allocation_sums_to_rounded_total(self, values):
        allocated = allocate_rounded(values)

        assert len(allocated) == len(values)
        assert sum(allocated) == round_half_up(math.fsum(values))
        assert all(a == round_half_up(v) for a, v in zip(allocated[:-1], values[:-1]))


# =============================================================================
# Campaign statistics
# =============================================================================


class TestCampaignStatistics:
    """Tests for compute_campaign_statistics."""

    def test_rows_of_one_campaign_sum_sms_and_count_views_once(self, recon_config, estimator):
        campaigns = [
            make_campaign(distributionId='D2', campaignName='Y', contactsSent=50),
            make_campaign(distributionId='D2', campaignName='Y', contactsSent=50),
        ]
        events = [make_enriched(i, distributionId='D2', campaignName='Y') for i in (1, 2, 3)]

        [stat] = compute_campaign_statistics(events, campaigns, estimator, recon_config)

        assert stat.smsSent == 100
        assert stat.pageViews == 3
        assert stat.distributionIds == ['D2']
        assert stat.conversionRate == 3.0
        assert stat.smsViewedEstimate == 14

    def test_campaign_with_all_views_filtered_still_reports_sms(self, recon_config, estimator):
        campaigns = [make_campaign(distributionId='D1', contactsSent=100)]

        [stat] = compute_campaign_statistics([], campaigns, estimator, recon_config,
                                             distribution_ids=['D1'])

        assert stat.smsSent == 100
        assert stat.pageViews == 0
        assert stat.smsViewedEstimate == 0
        assert stat.conversionRate == 0.0

    def test_without_explicit_ids_only_slice_ids_are_eligible(self, recon_config, estimator):
        campaigns = [make_campaign(distributionId='D1'), make_campaign(distributionId='D9', campaignName='W')]

        statistics = compute_campaign_statistics([make_enriched(1)], campaigns, estimator, recon_config)

        assert [s.campaignName for s in statistics] == ['X']

    def test_distribution_id_claimed_by_first_campaign(self, recon_config, estimator):
        campaigns = [
            make_campaign(distributionId='D1', campaignName='A', contactsSent=10),
            make_campaign(distributionId='D1', campaignName='B', contactsSent=20),
        ]
        events = [make_enriched(1), make_enriched(2)]

        first, second = compute_campaign_statistics(events, campaigns, estimator, recon_config)

        assert (first.campaignName, first.pageViews, first.distributionIds) == ('A', 2, ['D1'])
        assert (second.campaignName, second.pageViews, second.distributionIds) == ('B', 0, [])
        assert second.smsSent == 20

    def test_disallowed_source_rows_ignored(self, recon_config, estimator):
        campaigns = [
            make_campaign(contactsSent=100),
            make_campaign(contactsSent=999, sourceLabel='Other Pharma'),
        ]

        [stat] = compute_campaign_statistics([make_enriched(1)], campaigns, estimator, recon_config)

        assert stat.smsSent == 100

    def test_latest_timestamp_is_max_parsable(self, recon_config, estimator):
        campaigns = [
            make_campaign(timestamp='02.03.2024 10:00'),
            make_campaign(timestamp='garbage'),
            make_campaign(timestamp='2024-03-04 08:00'),
            make_campaign(timestamp='01.03.2024'),
        ]

        [stat] = compute_campaign_statistics([make_enriched(1)], campaigns, estimator, recon_config)

        assert stat.latestTimestamp == datetime(2024, 3, 4, 8, 0)

    def test_estimate_uses_category_ratio(self, recon_config, estimator):
        campaigns = [make_campaign(distributionId='P1', campaignName='P', contactsSent=200)]
        events = [make_enriched(i, distributionId='P1', contentCategory='Пимафуцин') for i in (1, 2, 3)]

        [stat] = compute_campaign_statistics(events, campaigns, estimator, recon_config)

        # 3 * 1.44 = 4.32
        assert stat.smsViewedEstimate == 4

    def test_unknown_category_uses_default_ratio(self, recon_config):
        estimator = EstimatorConfig(ratios={}, default_ratio=2.0)
        events = [make_enriched(1, contentCategory='Новинка')]

        [stat] = compute_campaign_statistics(events, [make_campaign()], estimator, recon_config)

        assert stat.smsViewedEstimate == 2

    def test_estimates_sum_to_rounded_total(self, recon_config, estimator):
        campaigns = [make_campaign(distributionId=f'D{i}', campaignName=f'C{i}') for i in range(1, 4)]
        events = [make_enriched(i, distributionId=f'D{i}', contentCategory='Пимафуцин') for i in range(1, 4)]

        statistics = compute_campaign_statistics(events, campaigns, estimator, recon_config)

        # Each 1.44 rounds to 1, the total 4.32 rounds to 4
        assert [s.smsViewedEstimate for s in statistics] == [1, 1, 2]

    def test_conversion_rate(self):
        assert conversion_rate(1, 3) == 33.33
        assert conversion_rate(0, 40) == 0.0
        assert conversion_rate(5, 0) is None

    def test_sort_campaigns_by_latest(self, sample_result, estimator, recon_config):
        statistics = compute_campaign_statistics(
            sample_result.events, sample_result.campaigns, estimator, recon_config,
            distribution_ids=['D1', 'D2', 'D3'],
        )

        assert [s.campaignName for s in statistics] == ['X', 'Y', 'Z']
        assert [s.campaignName for s in sort_campaigns_by_latest(statistics)] == ['Y', 'X', 'Z']


# =============================================================================
# Client statistics
# =============================================================================


class TestClientStatistics:
    """Tests for per-user rollups."""

    def test_groups_by_phone_and_sorts_by_views(self):
        events = [
            make_enriched(1, normalizedPhone='111', fullName='Один', viewDurationSeconds=10),
            make_enriched(2, normalizedPhone='222', fullName='Два', viewDurationSeconds=5),
            make_enriched(3, normalizedPhone='222', fullName='Два', viewDurationSeconds=7),
        ]

        clients = compute_client_statistics(events)

        assert [(c.fullName, c.pageViews, c.totalViewSeconds) for c in clients] == [
            ('Два', 2, 12),
            ('Один', 1, 10),
        ]

    def test_anonymous_events_are_not_clients(self):
        events = [make_enriched(1, fullName='', hasUserMatch=False), make_enriched(2, normalizedPhone='')]

        assert compute_client_statistics(events) == []

    def test_ties_keep_first_seen_order(self):
        events = [
            make_enriched(1, normalizedPhone='111', fullName='Первый'),
            make_enriched(2, normalizedPhone='222', fullName='Второй'),
        ]

        assert [c.fullName for c in compute_client_statistics(events)] == ['Первый', 'Второй']

    def test_specialty_distribution_names_blank_specialty(self):
        events = [
            make_enriched(1, normalizedPhone='111', fullName='A', specialty='Кардиолог'),
            make_enriched(2, normalizedPhone='222', fullName='B', specialty='Кардиолог'),
            make_enriched(3, normalizedPhone='333', fullName='C', specialty=' '),
        ]

        distribution = specialty_distribution(compute_client_statistics(events))

        assert distribution == {'Кардиолог': 2, 'Не указано': 1}

    def test_top_clients(self):
        events = [make_enriched(i, normalizedPhone=str(i), fullName=f'Клиент {i}') for i in range(1, 9)]
        clients = compute_client_statistics(events)

        assert len(top_clients(clients)) == 5
        assert len(top_clients(clients, limit=2)) == 2
        assert top_clients(clients, limit=-1) == []


# =============================================================================
# Time series
# =============================================================================


class TestTimeSeries:
    """Tests for daily series and histograms."""

    def test_daily_series_ascending_and_skips_unparsable(self):
        events = [
            make_enriched(1, timestamp='07.03.2024 10:00'),
            make_enriched(2, timestamp='05.03.2024 10:00'),
            make_enriched(3, timestamp='05.03.2024 23:00'),
            make_enriched(4, timestamp='не указано'),
        ]

        series = compute_daily_series(events)

        assert [(p.date, p.count) for p in series] == [
            (date(2024, 3, 5), 2),
            (date(2024, 3, 7), 1),
        ]

    def test_date_range_counts_dated_days(self):
        events = [make_enriched(1, timestamp='07.03.2024'), make_enriched(2, timestamp='05.03.2024')]

        span = date_range(compute_daily_series(events))

        assert (span.first, span.last, span.totalDays) == (date(2024, 3, 5), date(2024, 3, 7), 2)

    def test_date_range_of_nothing(self):
        span = date_range([])

        assert (span.first, span.last, span.totalDays) == (None, None, 0)

    def test_day_of_week_histogram_is_monday_first_and_zero_filled(self):
        # 2024-03-04 is a Monday, 2024-03-10 a Sunday
        events = [
            make_enriched(1, timestamp='04.03.2024 10:00'),
            make_enriched(2, timestamp='10.03.2024 10:00'),
            make_enriched(3, timestamp='10.03.2024 11:00'),
        ]

        histogram = compute_day_of_week_histogram(events)

        assert [bucket.day for bucket in histogram] == list(DayOfWeek)
        assert [bucket.count for bucket in histogram] == [1, 0, 0, 0, 0, 0, 2]

    def test_hour_histogram(self):
        events = [make_enriched(1, timestamp='04.03.2024 00:15'), make_enriched(2, timestamp='04.03.2024 23:59')]

        histogram = compute_hour_histogram(events)

        assert len(histogram) == 24
        assert histogram[0].count == 1
        assert histogram[23].count == 1
        assert sum(bucket.count for bucket in histogram) == 2

    def test_histograms_of_empty_slice(self):
        assert sum(b.count for b in compute_day_of_week_histogram([])) == 0
        assert len(compute_hour_histogram([])) == 24


# =============================================================================
# Summary figures
# =============================================================================


class TestSummaryFigures:
    """Tests for summary, coverage and A/B analysis."""

    def test_average_view_percent_ignores_zero(self):
        events = [make_enriched(1, viewPercent=0), make_enriched(2, viewPercent=40),
                  make_enriched(3, viewPercent=80)]

        assert average_view_percent(events) == 60.0

    def test_average_view_percent_of_nothing(self):
        assert average_view_percent([make_enriched(1, viewPercent=0)]) == 0.0

    def test_coverage(self):
        events = [make_enriched(1), make_enriched(2, hasUserMatch=False, fullName=''),
                  make_enriched(3, hasUserMatch=False, fullName='')]

        coverage = compute_user_coverage(events)

        assert (coverage.total, coverage.withUserData, coverage.withoutUserData) == (3, 1, 2)
        assert coverage.coveragePercent == 33

    def test_coverage_of_empty_slice(self):
        assert compute_user_coverage([]).coveragePercent == 0

    def test_summary(self, recon_config, estimator):
        events = [make_enriched(1, viewDurationSeconds=10), make_enriched(2, viewDurationSeconds=21)]
        campaigns = compute_campaign_statistics(events, [make_campaign(contactsSent=100)],
                                                estimator, recon_config)

        summary = compute_summary_statistics(events, campaigns)

        assert summary.pageViews == 2
        assert summary.totalViewSeconds == 31
        assert summary.averageViewSeconds == 15.5
        assert summary.smsSent == 100
        assert summary.smsViewedEstimate == 9
        assert summary.averageViewPercent == 50.0

    def test_summary_of_empty_slice(self):
        summary = compute_summary_statistics([], [])

        assert summary.pageViews == 0
        assert summary.averageViewSeconds == 0.0

    def test_ab_analysis_groups_by_campaign_and_text(self):
        events = [
            make_enriched(1, smsText='Вариант A', abGroupTag='A', viewDurationSeconds=10, viewPercent=30),
            make_enriched(2, smsText='Вариант B', abGroupTag='B', viewDurationSeconds=10, viewPercent=0),
            make_enriched(3, smsText='Вариант B', abGroupTag='B', viewDurationSeconds=15, viewPercent=45),
        ]

        results = compute_ab_test_analysis(events)

        assert [(r.smsText, r.abGroupTag, r.views) for r in results] == [
            ('Вариант B', 'B', 2),
            ('Вариант A', 'A', 1),
        ]
        # Floored seconds; zero percentages ignored
        assert results[0].averageViewSeconds == 12
        assert results[0].averageViewPercent == 45.0

    @pytest.mark.parametrize('seconds,expected', [
        (0, '00:00:00'),
        (59, '00:00:59'),
        (3725, '01:02:05'),
        (90061, '25:01:01'),
        (-5, '00:00:00'),
    ])
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected
