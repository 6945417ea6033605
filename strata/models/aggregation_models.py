"""STRATA — Aggregation Output Models.

Value objects created, used and discarded within a single request.
Nothing here is persisted.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ProviderTag(str, Enum):
    """Which provider produced a batch of raw rows."""

    HISTORICAL = "historical"
    LIVE = "live"


class StrategyLabel(str, Enum):
    """Routing decision for a requested window."""

    HISTORICAL_ONLY = "historical-only"
    LIVE_ONLY = "live-only"
    HYBRID = "hybrid"
    NO_DATA = "no-data"


ERROR_SOURCE_TAG = "error"

DateRange = Tuple[str, str]


class StrategyDecision(BaseModel):
    """Which source(s) to read for a window, and over which sub-ranges."""

    use_historical: bool
    use_live: bool
    historical_range: Optional[DateRange] = None
    live_range: Optional[DateRange] = None
    label: StrategyLabel


class QualityReport(BaseModel):
    """Validation outcome attached to every router response."""

    valid_record_count: int = 0
    total_record_count: int = 0
    issues: List[str] = []


class ValidationResult(BaseModel):
    """Records that passed (possibly repaired) plus the repair log."""

    valid: List[Dict[str, Any]] = []
    issues: List[str] = []


class HybridResult(BaseModel):
    """Tagged result of one metric-family query."""

    model_config = ConfigDict(populate_by_name=True)

    data: List[Dict[str, Any]] = []
    source_tag: str
    """A StrategyLabel value, or "error" when every flagged source failed."""
    quality_report: QualityReport = QualityReport()
    historical_records: int = 0
    live_records: int = 0
    error: Optional[str] = Field(default=None, alias="_error")


class SummaryResult(BaseModel):
    """Headline totals. Always fully populated, zeros on failure."""

    model_config = ConfigDict(populate_by_name=True)

    total_page_views: int = Field(default=0, alias="totalPageViews")
    total_sessions: int = Field(default=0, alias="totalSessions")
    total_users: int = Field(default=0, alias="totalUsers")
    bounce_rate: float = Field(default=0.0, alias="bounceRate")
    average_session_duration: float = Field(default=0.0, alias="averageSessionDuration")
    source_tag: str
    error: Optional[str] = Field(default=None, alias="_error")
