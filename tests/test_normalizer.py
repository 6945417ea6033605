"""Tests for the provider → canonical field normalizer."""

import pytest

from strata.aggregation.normalizer import normalize
from strata.core.metric_registry import MetricFamily
from strata.exceptions import UnknownMetricFamilyError
from strata.models.aggregation_models import ProviderTag


@pytest.fixture
def historical_pages() -> list:
    return [
        {"page_path": "/home", "page_title": "Home", "views": 120, "visits": 80},
        {"page_path": "/about", "views": 30, "visits": 25, "bounce_rate": 0.6},
    ]


class TestNormalize:
    """Tests for normalize()."""

    def test_renames_historical_fields(self, historical_pages: list) -> None:
        result = normalize(historical_pages, ProviderTag.HISTORICAL, MetricFamily.PAGE_VIEWS)
        assert result[0] == {"path": "/home", "title": "Home", "pageViews": 120, "sessions": 80}
        assert result[1]["bounceRate"] == 0.6

    def test_renames_live_fields(self) -> None:
        rows = [{"pagePath": "/home", "pageTitle": "Home", "screenPageViews": "50", "sessions": "20"}]
        result = normalize(rows, ProviderTag.LIVE, MetricFamily.PAGE_VIEWS)
        assert result == [{"path": "/home", "title": "Home", "pageViews": "50", "sessions": "20"}]

    def test_preserves_length_and_order(self, historical_pages: list) -> None:
        result = normalize(historical_pages, ProviderTag.HISTORICAL, MetricFamily.PAGE_VIEWS)
        assert len(result) == len(historical_pages)
        assert [r["path"] for r in result] == ["/home", "/about"]

    def test_is_idempotent(self, historical_pages: list) -> None:
        first = normalize(historical_pages, ProviderTag.HISTORICAL, MetricFamily.PAGE_VIEWS)
        second = normalize(historical_pages, ProviderTag.HISTORICAL, MetricFamily.PAGE_VIEWS)
        assert first == second

    def test_does_not_mutate_input(self, historical_pages: list) -> None:
        normalize(historical_pages, ProviderTag.HISTORICAL, MetricFamily.PAGE_VIEWS)
        assert historical_pages[0]["page_path"] == "/home"

    def test_unmapped_fields_pass_through(self) -> None:
        rows = [{"device_type": "mobile", "visits": 3, "screen_width": 390}]
        result = normalize(rows, ProviderTag.HISTORICAL, MetricFamily.DEVICES)
        assert result == [{"deviceCategory": "mobile", "sessions": 3, "screen_width": 390}]

    def test_no_defaulting(self) -> None:
        """Missing fields stay missing; filling them is the validator's job."""
        result = normalize([{"page_path": "/x"}], ProviderTag.HISTORICAL, MetricFamily.PAGE_VIEWS)
        assert result == [{"path": "/x"}]

    def test_summary_uses_window_total_names(self) -> None:
        rows = [{"total_page_views": 10, "total_sessions": 5, "avg_session_duration": 42.0}]
        result = normalize(rows, ProviderTag.HISTORICAL, MetricFamily.SUMMARY)
        assert result == [
            {"totalPageViews": 10, "totalSessions": 5, "averageSessionDuration": 42.0}
        ]

    def test_daily_uses_per_day_names(self) -> None:
        rows = [{"date": "2024-05-01", "total_page_views": 10, "total_users": 4}]
        result = normalize(rows, ProviderTag.HISTORICAL, MetricFamily.DAILY)
        assert result == [{"date": "2024-05-01", "pageViews": 10, "users": 4}]

    def test_live_summary_sessions(self) -> None:
        rows = [{"screenPageViews": "9", "sessions": "3"}]
        result = normalize(rows, ProviderTag.LIVE, MetricFamily.SUMMARY)
        assert result == [{"totalPageViews": "9", "totalSessions": "3"}]

    def test_accepts_string_tags(self) -> None:
        result = normalize([{"sessionSource": "google"}], "live", "traffic_sources")
        assert result == [{"source": "google"}]

    def test_rejects_unknown_provider(self) -> None:
        with pytest.raises(ValueError):
            normalize([], "legacy", MetricFamily.DAILY)

    def test_rejects_unknown_family(self) -> None:
        with pytest.raises(UnknownMetricFamilyError):
            normalize([], ProviderTag.LIVE, "conversions")
