"""STRATA — Provider → Canonical Field Normalizer.

A pure rename. Each provider has one static mapping table, sectioned by
metric family because the same native column can mean different things
in different reports (the historical `total_page_views` is a per-day count
in the daily report and a window total in the summary). Fields without a
mapping pass through under their original name.
"""

from typing import Any, Dict, List

from strata.core.metric_registry import MetricFamily, get_family
from strata.models.aggregation_models import ProviderTag

FieldMap = Dict[str, str]

# ─────────────────────────────────────────────
# HISTORICAL EXPORT: native column names
# ─────────────────────────────────────────────

HISTORICAL_FIELD_MAP: Dict[MetricFamily, FieldMap] = {
    MetricFamily.DAILY: {
        "date": "date",
        "timestamp": "date",
        "total_page_views": "pageViews",
        "total_sessions": "sessions",
        "total_users": "users",
        "bounce_rate": "bounceRate",
    },
    MetricFamily.PAGE_VIEWS: {
        "page_path": "path",
        "page_title": "title",
        "views": "pageViews",
        "visits": "sessions",
        "bounce_rate": "bounceRate",
    },
    MetricFamily.TRAFFIC_SOURCES: {
        "referrer": "source",
        "referring_domain": "source",
        "medium": "medium",
        "visits": "sessions",
        "visitors": "users",
        "new_visitors": "newUsers",
    },
    MetricFamily.DEVICES: {
        "device_type": "deviceCategory",
        "device_category": "deviceCategory",
        "visits": "sessions",
        "visitors": "users",
    },
    MetricFamily.GEOGRAPHIC: {
        "country_code": "country",
        "city_name": "city",
        "visits": "sessions",
        "visitors": "users",
        "new_visitors": "newUsers",
    },
    MetricFamily.SUMMARY: {
        "total_page_views": "totalPageViews",
        "total_sessions": "totalSessions",
        "total_users": "totalUsers",
        "bounce_rate": "bounceRate",
        "avg_session_duration": "averageSessionDuration",
    },
}

# ─────────────────────────────────────────────
# GA4: Data API dimension / metric names
# ─────────────────────────────────────────────

LIVE_FIELD_MAP: Dict[MetricFamily, FieldMap] = {
    MetricFamily.DAILY: {
        "date": "date",
        "screenPageViews": "pageViews",
        "sessions": "sessions",
        "totalUsers": "users",
        "activeUsers": "users",
        "bounceRate": "bounceRate",
    },
    MetricFamily.PAGE_VIEWS: {
        "pagePath": "path",
        "pageTitle": "title",
        "screenPageViews": "pageViews",
        "sessions": "sessions",
        "bounceRate": "bounceRate",
    },
    MetricFamily.TRAFFIC_SOURCES: {
        "sessionSource": "source",
        "sessionMedium": "medium",
        "sessions": "sessions",
        "totalUsers": "users",
        "activeUsers": "users",
        "newUsers": "newUsers",
    },
    MetricFamily.DEVICES: {
        "deviceCategory": "deviceCategory",
        "sessions": "sessions",
        "totalUsers": "users",
        "activeUsers": "users",
    },
    MetricFamily.GEOGRAPHIC: {
        "country": "country",
        "city": "city",
        "sessions": "sessions",
        "totalUsers": "users",
        "activeUsers": "users",
        "newUsers": "newUsers",
    },
    MetricFamily.SUMMARY: {
        "screenPageViews": "totalPageViews",
        "sessions": "totalSessions",
        "totalUsers": "totalUsers",
        "bounceRate": "bounceRate",
        "averageSessionDuration": "averageSessionDuration",
    },
}


def field_map_for(provider: ProviderTag, family: MetricFamily) -> FieldMap:
    """Select the mapping table for a provider tag."""
    if provider == ProviderTag.HISTORICAL:
        return HISTORICAL_FIELD_MAP[family]
    if provider == ProviderTag.LIVE:
        return LIVE_FIELD_MAP[family]
    raise ValueError(f"Unknown provider tag: {provider!r}")


def normalize(
    raw_records: List[Dict[str, Any]],
    provider: ProviderTag,
    family: "str | MetricFamily",
) -> List[Dict[str, Any]]:
    """Rename provider-native keys to canonical ones, one output per input."""
    mapping = field_map_for(ProviderTag(provider), get_family(family))
    return [
        {mapping.get(key, key): value for key, value in record.items()}
        for record in raw_records
    ]
