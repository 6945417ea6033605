"""STRATA — Historical Export Loader.

Imports rows exported from the discontinued provider into the historical
tables. Re-importing the same export is idempotent: rows are upserted on
each table's natural key.
"""

import math
from typing import Any, Dict, List, Tuple

from sqlmodel import Session, select

from strata.aggregation.strategy import parse_iso_date
from strata.connectors.historical.store import HISTORICAL_TABLES
from strata.core.logging import get_logger
from strata.core.metric_registry import MetricFamily, get_family
from strata.exceptions import InvalidDateError, StrataError

logger = get_logger("historical.loader")

# Natural key columns per table, matching the unique constraints
NATURAL_KEYS: Dict[MetricFamily, Tuple[str, ...]] = {
    MetricFamily.PAGE_VIEWS: ("date", "page_path"),
    MetricFamily.TRAFFIC_SOURCES: ("date", "referrer", "medium"),
    MetricFamily.DEVICES: ("date", "device_type"),
    MetricFamily.GEOGRAPHIC: ("date", "country_code", "city_name"),
    MetricFamily.DAILY: ("date",),
}

# Key columns where an empty string is a legitimate value
BLANK_KEYS = {"medium", "city_name"}


class HistoricalLoadError(StrataError):
    """An export row cannot be stored."""

    pass


def _columns(table) -> set[str]:
    return set(table.model_fields) - {"id", "created_at"}


def _coerce_numbers(table, values: Dict[str, Any], index: int) -> None:
    """Cast numeric columns in place; table models skip pydantic validation."""
    for column in list(values):
        annotation = table.model_fields[column].annotation
        if annotation not in (int, float):
            continue
        value = values[column]
        if value is None:
            # NOT NULL column, let the model default apply
            del values[column]
            continue
        try:
            number = float(str(value).replace(",", "")) if isinstance(value, str) else float(value)
            if not math.isfinite(number):
                raise ValueError(value)
            values[column] = int(number) if annotation is int else number
        except (TypeError, ValueError, OverflowError):
            raise HistoricalLoadError(f"Row {index}: invalid {column} {value!r}") from None


def load_rows(
    session: Session,
    family: "str | MetricFamily",
    rows: List[Dict[str, Any]],
) -> Tuple[int, int]:
    """Upsert native-named export rows. Returns (created, updated)."""
    family = get_family(family)
    if family not in HISTORICAL_TABLES:
        raise HistoricalLoadError(
            f"{family.value} is derived from the daily summary and cannot be loaded"
        )

    table = HISTORICAL_TABLES[family]
    keys = NATURAL_KEYS[family]
    columns = _columns(table)
    created = updated = 0

    for index, row in enumerate(rows):
        values = {k: v for k, v in row.items() if k in columns}
        for column in BLANK_KEYS.intersection(keys):
            if values.get(column) is None:
                values[column] = ""
        missing = [k for k in keys if values.get(k) is None]
        if missing:
            raise HistoricalLoadError(f"Row {index}: missing key column(s) {missing}")
        try:
            # Stored as zero-padded ISO text, compared as text by the range queries
            values["date"] = parse_iso_date(str(values["date"]).strip()).isoformat()
        except InvalidDateError as e:
            raise HistoricalLoadError(f"Row {index}: {e}") from None
        _coerce_numbers(table, values, index)

        existing = session.exec(
            select(table).where(*[getattr(table, k) == values[k] for k in keys])
        ).first()

        if existing:
            for column, value in values.items():
                setattr(existing, column, value)
            session.add(existing)
            updated += 1
        else:
            session.add(table(**values))
            created += 1
        # Flush so duplicates later in the same batch hit the update path
        session.flush()

    session.commit()
    logger.info(
        f"Loaded {len(rows)} historical {family.value} rows "
        f"({created} new, {updated} updated)",
        extra={"metric_family": family.value, "source": "historical"},
    )
    return created, updated
