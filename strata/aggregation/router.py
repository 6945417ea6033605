"""STRATA — Hybrid Query Router.

Runs one metric-family query end to end:
  resolve strategy → fetch flagged sources (concurrently) → normalize
  → canonicalize referrers → validate → merge → sort → truncate

A failing source contributes zero rows. Only when every flagged source
failed does the result carry source_tag "error" and an `_error` message,
so callers can tell "genuinely zero" apart from "fetch failed".
"""

import asyncio
import time
from typing import Any, Awaitable, Dict, List, NamedTuple, Optional

from strata.aggregation.merge import combine_summaries, merge_records, sort_records
from strata.aggregation.normalizer import normalize
from strata.aggregation.referrer import canonicalize_records
from strata.aggregation.strategy import parse_iso_date, resolve, resolve_date_token
from strata.aggregation.validator import validate
from strata.config import settings
from strata.connectors.base_source import (
    HistoricalInventory,
    HistoricalSource,
    LiveConnectionCheck,
    LiveRealtime,
    LiveSource,
)
from strata.connectors.ga4.client import LiveProviderError
from strata.core.logging import get_logger
from strata.core.metric_registry import MetricFamily
from strata.exceptions import InvalidDateRangeError
from strata.models.aggregation_models import (
    ERROR_SOURCE_TAG,
    HybridResult,
    ProviderTag,
    QualityReport,
    StrategyDecision,
    StrategyLabel,
    SummaryResult,
)

logger = get_logger("aggregation.router")


class SourceOutcome(NamedTuple):
    """Raw rows from one provider, or the reason it produced none."""

    provider: ProviderTag
    rows: List[Dict[str, Any]]
    error: Optional[str] = None


class HybridQueryRouter:
    """Serves every metric family from the historical store, GA4, or both.

    Holds no per-request state: the strategy is recomputed on every call.
    """

    def __init__(
        self,
        historical: HistoricalSource,
        live: LiveSource,
        cutover_date: Optional[str] = None,
    ):
        self.historical = historical
        self.live = live
        self.cutover_date = cutover_date or settings.ga4_start_date
        parse_iso_date(self.cutover_date)

    # ── Strategy ──

    def _has_historical_data(self, start_date: str, end_date: str) -> bool:
        """Existence check; an unreachable store counts as holding nothing."""
        try:
            return self.historical.has_historical_data(start_date, end_date)
        except Exception as e:
            logger.error(
                f"Historical existence check failed for {start_date} → {end_date}: {e}",
                extra={"source": ProviderTag.HISTORICAL.value},
            )
            return False

    async def _decide(
        self, family: MetricFamily, start_date: str, end_date: str
    ) -> StrategyDecision:
        start = resolve_date_token(start_date)
        end = resolve_date_token(end_date)
        if parse_iso_date(end) < parse_iso_date(start):
            raise InvalidDateRangeError(start, end)

        # has_historical_data hits the store, keep it off the event loop
        decision = await asyncio.to_thread(
            resolve, start, end, self.cutover_date, self._has_historical_data
        )
        logger.info(
            f"{family.value} {start} → {end}: {decision.label.value} "
            f"(historical={decision.historical_range}, live={decision.live_range})",
            extra={"metric_family": family.value, "strategy": decision.label.value},
        )
        return decision

    # ── Fetching ──

    async def _guarded(
        self, provider: ProviderTag, family: MetricFamily, fetch: Awaitable
    ) -> SourceOutcome:
        """Await one provider fetch, converting any failure into an outcome."""
        started = time.perf_counter()
        extra = {"metric_family": family.value, "source": provider.value}
        try:
            rows = await fetch
        except LiveProviderError as e:
            logger.error(
                f"{provider.value} {family.value} fetch failed [{e.kind.value}]: {e}",
                extra={**extra, "status_code": e.status_code},
            )
            return SourceOutcome(provider, [], f"{provider.value}: {e}")
        except Exception as e:
            logger.error(
                f"{provider.value} {family.value} fetch failed: {e}", extra=extra
            )
            return SourceOutcome(provider, [], f"{provider.value}: {e}")

        duration_ms = round((time.perf_counter() - started) * 1000, 1)
        logger.info(
            f"{provider.value} returned {len(rows)} {family.value} rows",
            extra={**extra, "duration_ms": duration_ms},
        )
        return SourceOutcome(provider, list(rows))

    async def _fetch(
        self, family: MetricFamily, decision: StrategyDecision
    ) -> List[SourceOutcome]:
        """Fetch every flagged source concurrently, historical first in the result."""
        pending = []
        if decision.use_historical and decision.historical_range:
            start, end = decision.historical_range
            pending.append(
                self._guarded(
                    ProviderTag.HISTORICAL,
                    family,
                    asyncio.to_thread(self.historical.fetch_historical, family, start, end),
                )
            )
        if decision.use_live and decision.live_range:
            start, end = decision.live_range
            pending.append(
                self._guarded(
                    ProviderTag.LIVE, family, self.live.fetch_live(family, start, end)
                )
            )
        # gather() keeps argument order
        return list(await asyncio.gather(*pending))

    @staticmethod
    def _all_failed(outcomes: List[SourceOutcome]) -> Optional[str]:
        if outcomes and all(o.error is not None for o in outcomes):
            return "; ".join(o.error for o in outcomes)
        return None

    @staticmethod
    def _normalize_outcomes(
        family: MetricFamily, outcomes: List[SourceOutcome]
    ) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        for outcome in outcomes:
            batch = normalize(outcome.rows, outcome.provider, family)
            if family == MetricFamily.TRAFFIC_SOURCES:
                batch = canonicalize_records(batch)
            records.extend(batch)
        return records

    # ── Query pipeline ──

    async def _query(
        self,
        family: MetricFamily,
        start_date: str,
        end_date: str,
        limit: Optional[int] = None,
    ) -> HybridResult:
        decision = await self._decide(family, start_date, end_date)
        if decision.label == StrategyLabel.NO_DATA:
            return HybridResult(source_tag=StrategyLabel.NO_DATA.value)

        outcomes = await self._fetch(family, decision)
        error = self._all_failed(outcomes)
        if error is not None:
            return HybridResult(source_tag=ERROR_SOURCE_TAG, error=error)

        records = self._normalize_outcomes(family, outcomes)
        validation = validate(records, family)
        data = sort_records(merge_records(validation.valid, family), family)
        if limit is not None:
            data = data[:limit]

        if validation.issues:
            logger.warning(
                f"{len(validation.issues)} validation issue(s) in {family.value}",
                extra={"metric_family": family.value},
            )

        return HybridResult(
            data=data,
            source_tag=decision.label.value,
            quality_report=QualityReport(
                valid_record_count=len(validation.valid),
                total_record_count=len(records),
                issues=validation.issues,
            ),
            historical_records=sum(
                len(o.rows) for o in outcomes if o.provider == ProviderTag.HISTORICAL
            ),
            live_records=sum(
                len(o.rows) for o in outcomes if o.provider == ProviderTag.LIVE
            ),
        )

    # ── Public API ──

    async def get_daily_metrics(
        self, start_date: str, end_date: str, limit: Optional[int] = None
    ) -> HybridResult:
        return await self._query(MetricFamily.DAILY, start_date, end_date, limit)

    async def get_page_views(
        self, start_date: str, end_date: str, limit: Optional[int] = None
    ) -> HybridResult:
        return await self._query(MetricFamily.PAGE_VIEWS, start_date, end_date, limit)

    async def get_traffic_sources(
        self, start_date: str, end_date: str, limit: Optional[int] = None
    ) -> HybridResult:
        return await self._query(
            MetricFamily.TRAFFIC_SOURCES, start_date, end_date, limit
        )

    async def get_device_breakdown(
        self, start_date: str, end_date: str, limit: Optional[int] = None
    ) -> HybridResult:
        return await self._query(MetricFamily.DEVICES, start_date, end_date, limit)

    async def get_geographic(
        self, start_date: str, end_date: str, limit: Optional[int] = None
    ) -> HybridResult:
        """Countries/cities by sessions, capped at GEOGRAPHIC_LIMIT by default."""
        if limit is None:
            limit = settings.geographic_limit
        return await self._query(MetricFamily.GEOGRAPHIC, start_date, end_date, limit)

    async def get_top_pages(
        self, start_date: str, end_date: str, limit: Optional[int] = None
    ) -> HybridResult:
        if limit is None:
            limit = settings.default_top_limit
        return await self.get_page_views(start_date, end_date, limit)

    async def get_top_referrers(
        self, start_date: str, end_date: str, limit: Optional[int] = None
    ) -> HybridResult:
        if limit is None:
            limit = settings.default_top_limit
        return await self.get_traffic_sources(start_date, end_date, limit)

    async def get_summary(self, start_date: str, end_date: str) -> SummaryResult:
        """Headline totals for the window.

        Never returns partial objects: on total failure every numeric field
        is zero and `_error` explains why.
        """
        family = MetricFamily.SUMMARY
        decision = await self._decide(family, start_date, end_date)
        if decision.label == StrategyLabel.NO_DATA:
            return SummaryResult(source_tag=StrategyLabel.NO_DATA.value)

        outcomes = await self._fetch(family, decision)
        error = self._all_failed(outcomes)
        if error is not None:
            return SummaryResult(source_tag=ERROR_SOURCE_TAG, error=error)

        validation = validate(self._normalize_outcomes(family, outcomes), family)
        return SummaryResult(
            **combine_summaries(validation.valid), source_tag=decision.label.value
        )

    async def get_realtime(self) -> Dict[str, Any]:
        """Live-only snapshot of active users; no historical counterpart exists."""
        empty: Dict[str, Any] = {"totalActiveUsers": 0, "topCountries": []}
        if not isinstance(self.live, LiveRealtime):
            return {**empty, "_error": "Live provider has no realtime report"}
        try:
            return await self.live.get_realtime()
        except LiveProviderError as e:
            logger.error(
                f"GA4 realtime report failed [{e.kind.value}]: {e}",
                extra={"source": "live", "status_code": e.status_code},
            )
            return {**empty, "_error": str(e)}

    async def get_data_source_info(self) -> Dict[str, Any]:
        """Availability of each provider plus the cutover between them."""
        historical: Dict[str, Any] = {"available": False}
        if isinstance(self.historical, HistoricalInventory):
            counts = await asyncio.to_thread(self.historical.table_counts)
            data_range = await asyncio.to_thread(self.historical.get_data_range)
            historical = {
                "available": data_range is not None,
                "record_count": sum(counts.values()),
                "tables": counts,
                "date_range": data_range,
            }

        live: Dict[str, Any] = {"connected": False}
        if isinstance(self.live, LiveConnectionCheck):
            try:
                live = {"connected": True, **await self.live.test_connection()}
            except LiveProviderError as e:
                logger.error(
                    f"GA4 connection check failed [{e.kind.value}]: {e}",
                    extra={"source": "live", "status_code": e.status_code},
                )
                live = {"connected": False, "error": str(e), "error_kind": e.kind.value}

        return {
            "cutover_date": self.cutover_date,
            "historical": historical,
            "live": live,
            "strategy": (
                f"Dates before {self.cutover_date} are served from the historical "
                f"store, dates from {self.cutover_date} on from GA4"
            ),
        }
