"""STRATA — Analytics API Routes."""

from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from strata.aggregation.router import HybridQueryRouter
from strata.connectors.ga4.endpoints import GA4Provider
from strata.connectors.historical.store import HistoricalStore
from strata.core.logging import get_logger
from strata.exceptions import StrataError

logger = get_logger("api.analytics")

router = APIRouter(prefix="/analytics", tags=["Analytics"])

# Dashboard endpoint names (and their legacy spellings) → canonical name
ENDPOINT_ALIASES = {
    "summary": "summary",
    "overview": "summary",
    "daily-metrics": "daily-metrics",
    "chart": "daily-metrics",
    "pageviews": "daily-metrics",
    "pages": "pages",
    "toppages": "pages",
    "top-pages": "pages",
    "referrers": "referrers",
    "traffic-sources": "referrers",
    "trafficsources": "referrers",
    "sources": "referrers",
    "devices": "devices",
    "device-breakdown": "devices",
    "geographic": "geographic",
    "geography": "geographic",
    "geo": "geographic",
    "countries": "geographic",
    "realtime": "realtime",
    "real-time": "realtime",
    "test-connection": "test-connection",
}


async def get_query_router() -> AsyncIterator[HybridQueryRouter]:
    """Dependency: a router over the configured store and GA4 property."""
    live = GA4Provider()
    try:
        yield HybridQueryRouter(HistoricalStore(), live)
    finally:
        await live.close()


@router.get("")
async def get_analytics(
    endpoint: str = Query(..., description="Which report, e.g. summary, pages, geo"),
    start_date: str = Query(
        "7daysAgo", alias="startDate", description="YYYY-MM-DD, today, yesterday or NdaysAgo"
    ),
    end_date: str = Query("today", alias="endDate"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    hybrid: HybridQueryRouter = Depends(get_query_router),
):
    """Serve one dashboard report from the historical store, GA4, or both."""
    name = ENDPOINT_ALIASES.get(endpoint.strip().lower())
    if name is None:
        raise HTTPException(status_code=400, detail=f"Unknown endpoint: {endpoint}")

    if name == "test-connection":
        info = await hybrid.get_data_source_info()
        return {"status": "success", "endpoint": name, "connection": info["live"]}

    if name == "realtime":
        data = await hybrid.get_realtime()
        return {"status": "success", "endpoint": name, "data": data}

    try:
        if name == "summary":
            summary = await hybrid.get_summary(start_date, end_date)
            return {
                "status": "success",
                "endpoint": name,
                "data": summary.model_dump(by_alias=True),
            }

        handlers = {
            "daily-metrics": hybrid.get_daily_metrics,
            "pages": hybrid.get_top_pages,
            "referrers": hybrid.get_top_referrers,
            "devices": hybrid.get_device_breakdown,
            "geographic": hybrid.get_geographic,
        }
        result = await handlers[name](start_date, end_date, limit)
    except StrataError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"status": "success", "endpoint": name, **result.model_dump(by_alias=True)}


@router.get("/data-source-info")
async def get_data_source_info(
    hybrid: HybridQueryRouter = Depends(get_query_router),
):
    """Historical coverage, GA4 reachability and the cutover between them."""
    try:
        info = await hybrid.get_data_source_info()
    except Exception as e:
        logger.error(f"Data source info failed: {e}")
        raise HTTPException(status_code=500, detail=f"Data source info failed: {str(e)}")
    return {"status": "success", **info}
