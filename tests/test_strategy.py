"""Tests for the date-range strategy resolver."""

from datetime import date

import pytest

from strata.aggregation.strategy import parse_iso_date, resolve, resolve_date_token
from strata.exceptions import InvalidDateError
from strata.models.aggregation_models import StrategyLabel

CUTOVER = "2024-06-01"
TODAY = date(2024, 6, 20)


def _has_data(start: str, end: str) -> bool:
    return True


def _no_data(start: str, end: str) -> bool:
    return False


# =============================================================================
# TOKEN RESOLUTION
# =============================================================================


class TestResolveDateToken:
    """Tests for resolve_date_token()."""

    def test_today(self) -> None:
        assert resolve_date_token("today", TODAY) == "2024-06-20"

    def test_yesterday(self) -> None:
        assert resolve_date_token("yesterday", TODAY) == "2024-06-19"

    def test_days_ago(self) -> None:
        assert resolve_date_token("30daysAgo", TODAY) == "2024-05-21"

    def test_zero_days_ago_is_today(self) -> None:
        assert resolve_date_token("0daysAgo", TODAY) == "2024-06-20"

    def test_absolute_date_passes_through(self) -> None:
        assert resolve_date_token("2023-12-31", TODAY) == "2023-12-31"

    @pytest.mark.parametrize("value", ["", "tomorrow", "2024-13-01", "20240601", "-3daysAgo"])
    def test_rejects_unknown_values(self, value: str) -> None:
        with pytest.raises(InvalidDateError):
            resolve_date_token(value, TODAY)

    def test_invalid_date_is_a_value_error(self) -> None:
        """Callers catching ValueError still see date problems."""
        with pytest.raises(ValueError):
            parse_iso_date("not-a-date")


# =============================================================================
# RESOLVE
# =============================================================================


class TestResolve:
    """Tests for resolve()."""

    def test_window_before_cutover_with_data(self) -> None:
        decision = resolve("2024-05-01", "2024-05-31", CUTOVER, _has_data, TODAY)
        assert decision.label == StrategyLabel.HISTORICAL_ONLY
        assert decision.use_historical and not decision.use_live
        assert decision.historical_range == ("2024-05-01", "2024-05-31")
        assert decision.live_range is None

    def test_window_before_cutover_without_data(self) -> None:
        """An empty store yields no-data, never a silent empty success."""
        decision = resolve("2024-05-01", "2024-05-31", CUTOVER, _no_data, TODAY)
        assert decision.label == StrategyLabel.NO_DATA
        assert not decision.use_historical and not decision.use_live

    def test_window_from_cutover_is_live_only(self) -> None:
        decision = resolve(CUTOVER, "2024-06-15", CUTOVER, _has_data, TODAY)
        assert decision.label == StrategyLabel.LIVE_ONLY
        assert decision.live_range == (CUTOVER, "2024-06-15")
        assert not decision.use_historical

    def test_future_window_is_live_only(self) -> None:
        decision = resolve("2030-01-01", "2030-01-31", CUTOVER, _has_data, TODAY)
        assert decision.label == StrategyLabel.LIVE_ONLY

    def test_straddling_window_is_hybrid(self) -> None:
        decision = resolve("2024-05-20", "2024-06-15", CUTOVER, _has_data, TODAY)
        assert decision.label == StrategyLabel.HYBRID
        assert decision.historical_range == ("2024-05-20", "2024-05-31")
        assert decision.live_range == ("2024-06-01", "2024-06-15")

    def test_hybrid_checks_store_only_before_cutover(self) -> None:
        checked = []

        def has_data(start: str, end: str) -> bool:
            checked.append((start, end))
            return True

        resolve("2024-05-20", "2024-06-15", CUTOVER, has_data, TODAY)
        assert checked == [("2024-05-20", "2024-05-31")]

    def test_hybrid_without_historical_data(self) -> None:
        decision = resolve("2024-05-20", "2024-06-15", CUTOVER, _no_data, TODAY)
        assert decision.label == StrategyLabel.HYBRID
        assert not decision.use_historical
        assert decision.historical_range is None
        assert decision.use_live

    def test_relative_tokens(self) -> None:
        decision = resolve("30daysAgo", "today", CUTOVER, _has_data, TODAY)
        assert decision.label == StrategyLabel.HYBRID
        assert decision.historical_range == ("2024-05-21", "2024-05-31")
        assert decision.live_range == (CUTOVER, "2024-06-20")

    def test_end_on_day_before_cutover(self) -> None:
        decision = resolve("2024-05-01", "2024-05-31", CUTOVER, _has_data, TODAY)
        assert decision.label != StrategyLabel.HYBRID
