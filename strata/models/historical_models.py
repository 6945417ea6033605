"""STRATA — Historical Store Tables (Immutable Export).

Rows captured once from the discontinued analytics provider. Column names
are that provider's native field names; the normalizer maps them onto the
canonical schema at read time.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class HistoricalPageView(SQLModel, table=True):
    """Per-day, per-page traffic."""

    __tablename__ = "historical_page_views"
    __table_args__ = (UniqueConstraint("date", "page_path", name="uq_hist_page"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    date: str = Field(index=True, description="YYYY-MM-DD")
    page_path: str = Field(max_length=500)
    page_title: Optional[str] = Field(default=None, max_length=500)
    views: int = Field(default=0)
    visits: int = Field(default=0)
    bounce_rate: float = Field(default=0.0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HistoricalTrafficSource(SQLModel, table=True):
    """Per-day, per-referrer traffic."""

    __tablename__ = "historical_traffic_sources"
    __table_args__ = (
        UniqueConstraint("date", "referrer", "medium", name="uq_hist_traffic"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    date: str = Field(index=True, description="YYYY-MM-DD")
    referrer: str = Field(default="", max_length=255, description="Raw referrer URL or host")
    medium: str = Field(default="", max_length=100, description="Empty when unknown")
    visits: int = Field(default=0)
    visitors: int = Field(default=0)
    new_visitors: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HistoricalDeviceData(SQLModel, table=True):
    """Per-day, per-device traffic."""

    __tablename__ = "historical_device_data"
    __table_args__ = (UniqueConstraint("date", "device_type", name="uq_hist_device"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    date: str = Field(index=True, description="YYYY-MM-DD")
    device_type: str = Field(max_length=50)
    visits: int = Field(default=0)
    visitors: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HistoricalGeographicData(SQLModel, table=True):
    """Per-day, per-location traffic."""

    __tablename__ = "historical_geographic_data"
    __table_args__ = (
        UniqueConstraint("date", "country_code", "city_name", name="uq_hist_geo"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    date: str = Field(index=True, description="YYYY-MM-DD")
    country_code: str = Field(max_length=100)
    city_name: str = Field(default="", max_length=100)
    visits: int = Field(default=0)
    visitors: int = Field(default=0)
    new_visitors: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HistoricalDailySummary(SQLModel, table=True):
    """Site-wide totals per day. Also the table checked for data existence."""

    __tablename__ = "historical_daily_summary"

    id: Optional[int] = Field(default=None, primary_key=True)
    date: str = Field(index=True, unique=True, description="YYYY-MM-DD")
    total_page_views: int = Field(default=0)
    total_sessions: int = Field(default=0)
    total_users: int = Field(default=0)
    bounce_rate: float = Field(default=0.0)
    avg_session_duration: float = Field(default=0.0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
