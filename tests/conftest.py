"""Shared fixtures: in-memory historical store and scripted provider fakes."""

from typing import Any, Dict, List, Optional

import pytest
from sqlmodel import Session

from strata.aggregation.router import HybridQueryRouter
from strata.connectors.historical.store import HistoricalStore
from strata.core.metric_registry import MetricFamily
from strata.database import build_engine, init_db

CUTOVER = "2024-06-01"


# =============================================================================
# PROVIDER FAKES
# =============================================================================


class FakeHistoricalSource:
    """Historical source returning canned native rows per metric family."""

    def __init__(self) -> None:
        self.rows: Dict[MetricFamily, List[Dict[str, Any]]] = {}
        self.has_data = True
        self.error: Optional[Exception] = None
        self.existence_error: Optional[Exception] = None
        self.calls: List[tuple] = []

    def fetch_historical(
        self, family: MetricFamily, start_date: str, end_date: str
    ) -> List[Dict[str, Any]]:
        self.calls.append((family, start_date, end_date))
        if self.error is not None:
            raise self.error
        return [dict(r) for r in self.rows.get(family, [])]

    def has_historical_data(self, start_date: str, end_date: str) -> bool:
        if self.existence_error is not None:
            raise self.existence_error
        return self.has_data


class FakeLiveSource:
    """Live source returning canned GA4-native rows, or raising."""

    def __init__(self) -> None:
        self.rows: Dict[MetricFamily, List[Dict[str, Any]]] = {}
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []

    async def fetch_live(
        self, family: MetricFamily, start_date: str, end_date: str
    ) -> List[Dict[str, Any]]:
        self.calls.append((family, start_date, end_date))
        if self.error is not None:
            raise self.error
        return [dict(r) for r in self.rows.get(family, [])]


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def historical() -> FakeHistoricalSource:
    return FakeHistoricalSource()


@pytest.fixture
def live() -> FakeLiveSource:
    return FakeLiveSource()


@pytest.fixture
def hybrid(historical: FakeHistoricalSource, live: FakeLiveSource) -> HybridQueryRouter:
    """Router over the fakes with a fixed cutover date."""
    return HybridQueryRouter(historical, live, cutover_date=CUTOVER)


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with the historical tables."""
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(engine) -> HistoricalStore:
    return HistoricalStore(engine)
