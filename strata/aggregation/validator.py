"""STRATA — Canonical Record Validator.

Policy: repair, don't reject. A bad field is reset to a safe default and
an issue line is logged for it; a record is dropped only when its
identifying field (date, path, country) is missing or malformed, since no
default would mean anything there.

Validation never mutates its input and never raises on bad data.
"""

import math
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from strata.core.metric_registry import (
    DEVICE_CATEGORIES,
    FieldKind,
    MetricFamily,
    count_fields,
    fields_of_kind,
    get_family,
    rate_fields,
)
from strata.models.aggregation_models import ValidationResult

Record = Dict[str, Any]
DATE_FORMATS = ("%Y-%m-%d", "%Y%m%d")  # ISO, and GA4's compact `date` dimension


# ─────────────────────────────────────────────
# FIELD CHECKS
# ─────────────────────────────────────────────


def _to_number(value: Any) -> Optional[float]:
    """Coerce ints, floats and numeric strings; None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _parse_date(value: Any) -> Optional[str]:
    """Return an ISO date string, or None when the value is not a date."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date().isoformat()
        except ValueError:
            continue
    return None


def _repair_counts(
    item: Record, record: Record, index: int, fields: List[str], issues: List[str]
) -> None:
    for field in fields:
        value = record.get(field)
        if value is None:
            item[field] = 0
            continue
        number = _to_number(value)
        if number is None or number < 0:
            issues.append(f"Row {index}: Invalid {field}: {value!r}")
            item[field] = 0
        else:
            item[field] = int(round(number))


def _repair_rates(
    item: Record, record: Record, index: int, family: MetricFamily, issues: List[str]
) -> None:
    for definition in rate_fields(family):
        field = definition.name
        value = record.get(field)
        if value is None:
            if definition.required:
                item[field] = 0.0
            else:
                item.pop(field, None)
            continue
        number = _to_number(value)
        if number is None:
            issues.append(f"Row {index}: Invalid {field}: {value!r}")
            item[field] = 0.0
        elif number < 0 or number > 1:
            clamped = min(max(number, 0.0), 1.0)
            issues.append(
                f"Row {index}: {field} {value!r} out of range, clamped to {clamped}"
            )
            item[field] = clamped
        else:
            item[field] = number


def _repair_durations(
    item: Record, record: Record, index: int, family: MetricFamily, issues: List[str]
) -> None:
    for definition in fields_of_kind(family, FieldKind.DURATION):
        field = definition.name
        value = record.get(field)
        if value is None:
            item[field] = 0.0
            continue
        number = _to_number(value)
        if number is None or number < 0:
            issues.append(f"Row {index}: Invalid {field}: {value!r}")
            item[field] = 0.0
        else:
            item[field] = number


def _repair_numbers(
    item: Record, record: Record, index: int, family: MetricFamily, issues: List[str]
) -> None:
    _repair_counts(item, record, index, count_fields(family), issues)
    _repair_rates(item, record, index, family, issues)
    _repair_durations(item, record, index, family, issues)


# ─────────────────────────────────────────────
# PER-FAMILY VALIDATORS
# ─────────────────────────────────────────────


def validate_daily_metrics(records: List[Record]) -> ValidationResult:
    """Rows keyed by date. Rows without a parseable date are dropped."""
    valid: List[Record] = []
    issues: List[str] = []

    for index, record in enumerate(records):
        item = dict(record)
        value = record.get("date")
        if _is_blank(value):
            issues.append(f"Row {index}: Missing date, row dropped")
            continue
        iso = _parse_date(value)
        if iso is None:
            issues.append(f"Row {index}: Invalid date format: {value!r}, row dropped")
            continue
        item["date"] = iso
        _repair_numbers(item, record, index, MetricFamily.DAILY, issues)
        valid.append(item)

    return ValidationResult(valid=valid, issues=issues)


def validate_page_views(records: List[Record]) -> ValidationResult:
    """Rows keyed by path. Rows without a path are dropped."""
    valid: List[Record] = []
    issues: List[str] = []

    for index, record in enumerate(records):
        item = dict(record)
        path = record.get("path")
        if _is_blank(path) or not isinstance(path, str):
            issues.append(f"Row {index}: Missing path, row dropped")
            continue
        item["path"] = path.strip()

        title = record.get("title")
        if _is_blank(title):
            item["title"] = item["path"]
        elif not isinstance(title, str):
            item["title"] = str(title)

        _repair_numbers(item, record, index, MetricFamily.PAGE_VIEWS, issues)
        valid.append(item)

    return ValidationResult(valid=valid, issues=issues)


def validate_traffic_sources(records: List[Record]) -> ValidationResult:
    """Rows keyed by source/medium. Never drops; blanks get defaults."""
    valid: List[Record] = []
    issues: List[str] = []

    for index, record in enumerate(records):
        item = dict(record)
        source = record.get("source")
        if _is_blank(source) or not isinstance(source, str):
            issues.append(f"Row {index}: Missing source {source!r}, set to (direct)")
            item["source"] = "(direct)"
        else:
            item["source"] = source.strip()

        medium = record.get("medium")
        if _is_blank(medium) or not isinstance(medium, str):
            issues.append(f"Row {index}: Missing medium {medium!r}, set to referral")
            item["medium"] = "referral"
        else:
            item["medium"] = medium.strip()

        _repair_numbers(item, record, index, MetricFamily.TRAFFIC_SOURCES, issues)
        valid.append(item)

    return ValidationResult(valid=valid, issues=issues)


def validate_devices(records: List[Record]) -> ValidationResult:
    """Rows keyed by device category; unknown categories become desktop."""
    valid: List[Record] = []
    issues: List[str] = []

    for index, record in enumerate(records):
        item = dict(record)
        category = record.get("deviceCategory")
        if _is_blank(category):
            issues.append(f"Row {index}: Missing deviceCategory, set to desktop")
            item["deviceCategory"] = "desktop"
        elif not isinstance(category, str) or category.strip().lower() not in DEVICE_CATEGORIES:
            issues.append(f"Row {index}: Invalid deviceCategory: {category!r}, set to desktop")
            item["deviceCategory"] = "desktop"
        else:
            item["deviceCategory"] = category.strip().lower()

        _repair_numbers(item, record, index, MetricFamily.DEVICES, issues)
        valid.append(item)

    return ValidationResult(valid=valid, issues=issues)


def validate_geographic(records: List[Record]) -> ValidationResult:
    """Rows keyed by country (+ optional city). No country, no row."""
    valid: List[Record] = []
    issues: List[str] = []

    for index, record in enumerate(records):
        item = dict(record)
        country = record.get("country")
        if _is_blank(country) or not isinstance(country, str):
            issues.append(f"Row {index}: Missing country, row dropped")
            continue
        item["country"] = country.strip()

        city = record.get("city")
        if city is None:
            item["city"] = ""
        elif not isinstance(city, str):
            issues.append(f"Row {index}: Invalid city: {city!r}")
            item["city"] = ""
        else:
            item["city"] = city.strip()

        _repair_numbers(item, record, index, MetricFamily.GEOGRAPHIC, issues)
        valid.append(item)

    return ValidationResult(valid=valid, issues=issues)


def validate_summary(records: List[Record]) -> ValidationResult:
    """Window totals. No identifying field, so nothing is ever dropped."""
    valid: List[Record] = []
    issues: List[str] = []

    for index, record in enumerate(records):
        item = dict(record)
        _repair_numbers(item, record, index, MetricFamily.SUMMARY, issues)
        valid.append(item)

    return ValidationResult(valid=valid, issues=issues)


VALIDATORS: Dict[MetricFamily, Callable[[List[Record]], ValidationResult]] = {
    MetricFamily.DAILY: validate_daily_metrics,
    MetricFamily.PAGE_VIEWS: validate_page_views,
    MetricFamily.TRAFFIC_SOURCES: validate_traffic_sources,
    MetricFamily.DEVICES: validate_devices,
    MetricFamily.GEOGRAPHIC: validate_geographic,
    MetricFamily.SUMMARY: validate_summary,
}


def validate(records: List[Record], family: "str | MetricFamily") -> ValidationResult:
    """Validate a normalized batch with the routine for its metric family."""
    return VALIDATORS[get_family(family)](records)
