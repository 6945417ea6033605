"""STRATA — Provider Source Interfaces.

The aggregation core depends only on the two source contracts below; the
capability protocols at the bottom are optional extras. Tests and
alternative backends can supply any object with matching methods.
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from strata.core.metric_registry import MetricFamily


class HistoricalSource(Protocol):
    """Warehoused export of the discontinued provider. Local latency."""

    def fetch_historical(
        self, family: MetricFamily, start_date: str, end_date: str
    ) -> List[Dict[str, Any]]:
        """Return rows with the historical provider's native field names."""
        ...

    def has_historical_data(self, start_date: str, end_date: str) -> bool:
        """True when the store holds any day within [start, end]."""
        ...


class LiveSource(Protocol):
    """Remote analytics API. May raise LiveProviderError."""

    async def fetch_live(
        self, family: MetricFamily, start_date: str, end_date: str
    ) -> List[Dict[str, Any]]:
        """Return rows with the live provider's native field names."""
        ...


# ── Optional capabilities, reported by the data-source info call ──


@runtime_checkable
class HistoricalInventory(Protocol):
    def get_data_range(self) -> Optional[Dict[str, str]]: ...

    def table_counts(self) -> Dict[str, int]: ...


@runtime_checkable
class LiveConnectionCheck(Protocol):
    async def test_connection(self) -> Dict[str, Any]: ...


@runtime_checkable
class LiveRealtime(Protocol):
    async def get_realtime(self) -> Dict[str, Any]: ...
