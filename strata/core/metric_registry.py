"""STRATA — Unified Metric Registry.

Defines the metric families served by the aggregation layer and the
canonical fields of each. The validator and the merge step read field
kinds from here so every family is treated uniformly.
"""

from enum import Enum
from typing import Dict, List, Tuple

from strata.exceptions import UnknownMetricFamilyError


class MetricFamily(str, Enum):
    """A group of metrics returned together by one query."""

    DAILY = "daily"
    PAGE_VIEWS = "page_views"
    TRAFFIC_SOURCES = "traffic_sources"
    DEVICES = "devices"
    GEOGRAPHIC = "geographic"
    SUMMARY = "summary"


class FieldKind(str, Enum):
    """How a canonical field is categorised."""

    IDENTIFIER = "identifier"  # Identity of the row: date, path, country...
    DIMENSION = "dimension"  # Descriptive string: title, city, medium
    COUNT = "count"  # Non-negative integer: pageViews, sessions
    RATE = "rate"  # Fraction clamped to [0, 1]: bounceRate
    DURATION = "duration"  # Non-negative float seconds


class FieldDefinition:
    """Describes a single canonical field."""

    def __init__(
        self,
        name: str,
        kind: FieldKind,
        required: bool = True,
        description: str = "",
    ):
        self.name = name
        self.kind = kind
        self.required = required
        self.description = description

    def __repr__(self) -> str:
        return f"<Field {self.name} ({self.kind.value})>"


# ─────────────────────────────────────────────
# CANONICAL FIELDS: per metric family
# ─────────────────────────────────────────────

FAMILY_FIELDS: Dict[MetricFamily, List[FieldDefinition]] = {
    MetricFamily.DAILY: [
        FieldDefinition("date", FieldKind.IDENTIFIER, description="ISO date"),
        FieldDefinition("pageViews", FieldKind.COUNT),
        FieldDefinition("sessions", FieldKind.COUNT),
        FieldDefinition("users", FieldKind.COUNT),
        FieldDefinition("bounceRate", FieldKind.RATE, required=False),
    ],
    MetricFamily.PAGE_VIEWS: [
        FieldDefinition("path", FieldKind.IDENTIFIER, description="Page path"),
        FieldDefinition("title", FieldKind.DIMENSION),
        FieldDefinition("pageViews", FieldKind.COUNT),
        FieldDefinition("sessions", FieldKind.COUNT),
        FieldDefinition("bounceRate", FieldKind.RATE, required=False),
    ],
    MetricFamily.TRAFFIC_SOURCES: [
        FieldDefinition("source", FieldKind.IDENTIFIER, description="Referrer host"),
        FieldDefinition("medium", FieldKind.DIMENSION),
        FieldDefinition("sessions", FieldKind.COUNT),
        FieldDefinition("users", FieldKind.COUNT),
        FieldDefinition("newUsers", FieldKind.COUNT),
    ],
    MetricFamily.DEVICES: [
        FieldDefinition("deviceCategory", FieldKind.IDENTIFIER),
        FieldDefinition("sessions", FieldKind.COUNT),
        FieldDefinition("users", FieldKind.COUNT),
    ],
    MetricFamily.GEOGRAPHIC: [
        FieldDefinition("country", FieldKind.IDENTIFIER),
        FieldDefinition("city", FieldKind.DIMENSION, required=False),
        FieldDefinition("sessions", FieldKind.COUNT),
        FieldDefinition("users", FieldKind.COUNT),
        FieldDefinition("newUsers", FieldKind.COUNT),
    ],
    MetricFamily.SUMMARY: [
        FieldDefinition("totalPageViews", FieldKind.COUNT),
        FieldDefinition("totalSessions", FieldKind.COUNT),
        FieldDefinition("totalUsers", FieldKind.COUNT),
        FieldDefinition("bounceRate", FieldKind.RATE),
        FieldDefinition("averageSessionDuration", FieldKind.DURATION),
    ],
}


# ─────────────────────────────────────────────
# MERGE KEYS: rows with equal keys describe one entity
# ─────────────────────────────────────────────

IDENTITY_KEYS: Dict[MetricFamily, Tuple[str, ...]] = {
    MetricFamily.DAILY: ("date",),
    MetricFamily.PAGE_VIEWS: ("path",),
    MetricFamily.TRAFFIC_SOURCES: ("source", "medium"),
    MetricFamily.DEVICES: ("deviceCategory",),
    MetricFamily.GEOGRAPHIC: ("country", "city"),
}

# Field used for descending top-N ordering
SORT_FIELDS: Dict[MetricFamily, str] = {
    MetricFamily.PAGE_VIEWS: "pageViews",
    MetricFamily.TRAFFIC_SOURCES: "sessions",
    MetricFamily.DEVICES: "sessions",
    MetricFamily.GEOGRAPHIC: "sessions",
}

DEVICE_CATEGORIES = ("desktop", "mobile", "tablet")


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────


def get_family(name: "str | MetricFamily") -> MetricFamily:
    """Look up a metric family by value, raising on unknown names."""
    try:
        return MetricFamily(name)
    except ValueError:
        raise UnknownMetricFamilyError(str(name)) from None


def fields_of_kind(family: MetricFamily, kind: FieldKind) -> list[FieldDefinition]:
    """Return the fields of a family with the given kind, in schema order."""
    return [f for f in FAMILY_FIELDS[family] if f.kind == kind]


def count_fields(family: MetricFamily) -> list[str]:
    return [f.name for f in fields_of_kind(family, FieldKind.COUNT)]


def rate_fields(family: MetricFamily) -> list[FieldDefinition]:
    return fields_of_kind(family, FieldKind.RATE)
