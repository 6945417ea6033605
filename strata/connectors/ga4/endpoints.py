"""STRATA — GA4 Report Endpoints.

One runReport definition per metric family. Responses are flattened into
rows keyed by GA4's own dimension/metric names, with values left as the
strings the API returns.
"""

import asyncio
from typing import Any, Dict, List, Optional

from strata.connectors.ga4.client import GA4Client
from strata.core.logging import get_logger
from strata.core.metric_registry import MetricFamily, get_family

logger = get_logger("ga4.endpoints")


def _order_by_metric(name: str) -> List[Dict[str, Any]]:
    return [{"metric": {"metricName": name}, "desc": True}]


REPORTS: Dict[MetricFamily, Dict[str, Any]] = {
    MetricFamily.DAILY: {
        "dimensions": ["date"],
        "metrics": ["screenPageViews", "sessions", "totalUsers", "bounceRate"],
        "orderBys": [{"dimension": {"dimensionName": "date"}}],
    },
    MetricFamily.PAGE_VIEWS: {
        "dimensions": ["pagePath", "pageTitle"],
        "metrics": ["screenPageViews", "sessions", "bounceRate"],
        "orderBys": _order_by_metric("screenPageViews"),
        "limit": 50,
    },
    MetricFamily.TRAFFIC_SOURCES: {
        "dimensions": ["sessionSource", "sessionMedium"],
        "metrics": ["sessions", "totalUsers", "newUsers"],
        "orderBys": _order_by_metric("sessions"),
        "limit": 50,
    },
    MetricFamily.DEVICES: {
        "dimensions": ["deviceCategory"],
        "metrics": ["sessions", "totalUsers"],
        "orderBys": _order_by_metric("sessions"),
    },
    MetricFamily.GEOGRAPHIC: {
        "dimensions": ["country", "city"],
        "metrics": ["sessions", "totalUsers", "newUsers"],
        "orderBys": _order_by_metric("sessions"),
        "limit": 50,
    },
    MetricFamily.SUMMARY: {
        "dimensions": [],
        "metrics": [
            "screenPageViews",
            "sessions",
            "totalUsers",
            "bounceRate",
            "averageSessionDuration",
        ],
    },
}


# Realtime reports cover the last 30 minutes and take no date range
REALTIME_TOTAL: Dict[str, Any] = {"metrics": [{"name": "activeUsers"}]}
REALTIME_COUNTRIES: Dict[str, Any] = {
    "dimensions": [{"name": "country"}],
    "metrics": [{"name": "activeUsers"}],
    "orderBys": _order_by_metric("activeUsers"),
    "limit": 5,
}


def _int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def build_report_request(
    family: MetricFamily, start_date: str, end_date: str
) -> Dict[str, Any]:
    """Build the runReport body for a metric family and window."""
    report = REPORTS[family]
    body: Dict[str, Any] = {
        "dateRanges": [{"startDate": start_date, "endDate": end_date}],
        "metrics": [{"name": m} for m in report["metrics"]],
    }
    if report["dimensions"]:
        body["dimensions"] = [{"name": d} for d in report["dimensions"]]
    if "orderBys" in report:
        body["orderBys"] = report["orderBys"]
    if "limit" in report:
        body["limit"] = report["limit"]
    return body


def parse_report_rows(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Flatten a runReport response into {header_name: value} rows."""
    dimension_names = [h["name"] for h in response.get("dimensionHeaders", [])]
    metric_names = [h["name"] for h in response.get("metricHeaders", [])]

    rows: List[Dict[str, Any]] = []
    for raw in response.get("rows", []):
        row: Dict[str, Any] = {}
        for name, cell in zip(dimension_names, raw.get("dimensionValues", [])):
            row[name] = cell.get("value")
        for name, cell in zip(metric_names, raw.get("metricValues", [])):
            row[name] = cell.get("value")
        rows.append(row)
    return rows


class GA4Provider:
    """Live provider: fetches raw GA4 rows for a metric family."""

    def __init__(self, client: Optional[GA4Client] = None):
        self.client = client or GA4Client()

    async def fetch_live(
        self, family: MetricFamily, start_date: str, end_date: str
    ) -> List[Dict[str, Any]]:
        family = get_family(family)
        body = build_report_request(family, start_date, end_date)
        response = await self.client.run_report(body)
        rows = parse_report_rows(response)
        logger.info(
            f"Fetched {len(rows)} GA4 {family.value} rows for {start_date} → {end_date}",
            extra={"metric_family": family.value, "source": "live"},
        )
        return rows

    async def test_connection(self) -> Dict[str, Any]:
        """Check the property is reachable with the configured credentials."""
        metadata = await self.client.get_metadata()
        return {
            "success": True,
            "property_id": self.client.property_id,
            "dimension_count": len(metadata.get("dimensions", [])),
            "metric_count": len(metadata.get("metrics", [])),
        }

    async def get_realtime(self) -> Dict[str, Any]:
        """Users active in the last 30 minutes, in total and for the top countries."""
        total, countries = await asyncio.gather(
            self.client.run_realtime_report(REALTIME_TOTAL),
            self.client.run_realtime_report(REALTIME_COUNTRIES),
        )
        total_rows = parse_report_rows(total)
        top_countries = [
            {"country": row.get("country") or "", "activeUsers": _int(row.get("activeUsers"))}
            for row in parse_report_rows(countries)
        ]
        return {
            "totalActiveUsers": _int(total_rows[0].get("activeUsers")) if total_rows else 0,
            "topCountries": top_countries,
            "propertyId": self.client.property_id,
        }

    async def close(self) -> None:
        await self.client.close()
