"""STRATA — Historical Store Reader.

Aggregates the warehoused export over a date window. Rows are returned
keyed by the historical provider's native column names; mapping them onto
the canonical schema is the normalizer's job.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from strata.core.logging import get_logger
from strata.core.metric_registry import MetricFamily, get_family
from strata.models.historical_models import (
    HistoricalDailySummary,
    HistoricalDeviceData,
    HistoricalGeographicData,
    HistoricalPageView,
    HistoricalTrafficSource,
)

logger = get_logger("historical.store")

HISTORICAL_TABLES = {
    MetricFamily.PAGE_VIEWS: HistoricalPageView,
    MetricFamily.TRAFFIC_SOURCES: HistoricalTrafficSource,
    MetricFamily.DEVICES: HistoricalDeviceData,
    MetricFamily.GEOGRAPHIC: HistoricalGeographicData,
    MetricFamily.DAILY: HistoricalDailySummary,
}


def _page_views_query(start_date: str, end_date: str):
    t = HistoricalPageView
    views = func.sum(t.views)
    return (
        select(
            t.page_path,
            func.max(t.page_title).label("page_title"),
            views.label("views"),
            func.sum(t.visits).label("visits"),
            func.avg(t.bounce_rate).label("bounce_rate"),
        )
        .where(t.date >= start_date, t.date <= end_date)
        .group_by(t.page_path)
        .order_by(views.desc())
    )


def _traffic_sources_query(start_date: str, end_date: str):
    t = HistoricalTrafficSource
    visits = func.sum(t.visits)
    return (
        select(
            t.referrer,
            t.medium,
            visits.label("visits"),
            func.sum(t.visitors).label("visitors"),
            func.sum(t.new_visitors).label("new_visitors"),
        )
        .where(t.date >= start_date, t.date <= end_date)
        .group_by(t.referrer, t.medium)
        .order_by(visits.desc())
    )


def _devices_query(start_date: str, end_date: str):
    t = HistoricalDeviceData
    visits = func.sum(t.visits)
    return (
        select(
            t.device_type,
            visits.label("visits"),
            func.sum(t.visitors).label("visitors"),
        )
        .where(t.date >= start_date, t.date <= end_date)
        .group_by(t.device_type)
        .order_by(visits.desc())
    )


def _geographic_query(start_date: str, end_date: str):
    t = HistoricalGeographicData
    visits = func.sum(t.visits)
    return (
        select(
            t.country_code,
            t.city_name,
            visits.label("visits"),
            func.sum(t.visitors).label("visitors"),
            func.sum(t.new_visitors).label("new_visitors"),
        )
        .where(t.date >= start_date, t.date <= end_date)
        .group_by(t.country_code, t.city_name)
        .order_by(visits.desc())
    )


def _daily_query(start_date: str, end_date: str):
    t = HistoricalDailySummary
    return (
        select(
            t.date,
            t.total_page_views,
            t.total_sessions,
            t.total_users,
            t.bounce_rate,
        )
        .where(t.date >= start_date, t.date <= end_date)
        .order_by(t.date)
    )


def _summary_query(start_date: str, end_date: str):
    t = HistoricalDailySummary
    return select(
        func.count(t.id).label("days"),
        func.sum(t.total_page_views).label("total_page_views"),
        func.sum(t.total_sessions).label("total_sessions"),
        func.sum(t.total_users).label("total_users"),
        func.avg(t.bounce_rate).label("bounce_rate"),
        func.avg(t.avg_session_duration).label("avg_session_duration"),
    ).where(t.date >= start_date, t.date <= end_date)


QUERIES = {
    MetricFamily.PAGE_VIEWS: _page_views_query,
    MetricFamily.TRAFFIC_SOURCES: _traffic_sources_query,
    MetricFamily.DEVICES: _devices_query,
    MetricFamily.GEOGRAPHIC: _geographic_query,
    MetricFamily.DAILY: _daily_query,
    MetricFamily.SUMMARY: _summary_query,
}


class HistoricalStore:
    """Read side of the warehoused historical export."""

    def __init__(self, engine: Optional[Engine] = None):
        if engine is None:
            from strata.database import engine as default_engine

            engine = default_engine
        self.engine = engine

    def fetch_historical(
        self, family: MetricFamily, start_date: str, end_date: str
    ) -> List[Dict[str, Any]]:
        """Return native-named rows for a metric family over [start, end]."""
        family = get_family(family)
        query = QUERIES[family](start_date, end_date)
        with Session(self.engine) as session:
            rows = [dict(r._mapping) for r in session.exec(query).all()]

        if family == MetricFamily.SUMMARY:
            # Aggregates over an empty window come back as one all-NULL row
            if not rows or not rows[0].get("days"):
                rows = []
            else:
                rows[0].pop("days")

        logger.info(
            f"Fetched {len(rows)} historical {family.value} rows "
            f"for {start_date} → {end_date}",
            extra={"metric_family": family.value, "source": "historical"},
        )
        return rows

    def has_historical_data(self, start_date: str, end_date: str) -> bool:
        """True when the daily summary holds at least one day in [start, end]."""
        t = HistoricalDailySummary
        with Session(self.engine) as session:
            count = session.exec(
                select(func.count(t.id)).where(t.date >= start_date, t.date <= end_date)
            ).one()
        return int(count or 0) > 0

    def get_data_range(self) -> Optional[Dict[str, str]]:
        """First and last day held by the store, or None when empty."""
        t = HistoricalDailySummary
        with Session(self.engine) as session:
            first, last = session.exec(select(func.min(t.date), func.max(t.date))).one()
        if first is None or last is None:
            return None
        return {"start_date": first, "end_date": last}

    def table_counts(self) -> Dict[str, int]:
        """Row count of every historical table, keyed by metric family."""
        counts: Dict[str, int] = {}
        with Session(self.engine) as session:
            for family, table in HISTORICAL_TABLES.items():
                counts[family.value] = int(
                    session.exec(select(func.count(table.id))).one() or 0
                )
        return counts
