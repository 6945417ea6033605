"""STRATA — Post-Validation Merge & Ordering.

Rows from both providers that describe the same entity (same path, same
date...) are folded into one: counts are summed, rates are averaged
weighted by sessions. Ordering afterwards is a stable sort, so ties keep
the order in which rows were first seen (historical rows before live).
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from strata.core.metric_registry import (
    FieldKind,
    IDENTITY_KEYS,
    SORT_FIELDS,
    MetricFamily,
    count_fields,
    fields_of_kind,
    get_family,
    rate_fields,
)

Record = Dict[str, Any]
WEIGHT_FIELD = "sessions"


def _weighted_rate(
    left: Optional[float], left_weight: float, right: Optional[float], right_weight: float
) -> Optional[float]:
    if left is None:
        return right
    if right is None:
        return left
    total = left_weight + right_weight
    if total <= 0:
        return (left + right) / 2
    return (left * left_weight + right * right_weight) / total


def merge_records(records: List[Record], family: "str | MetricFamily") -> List[Record]:
    """Fold rows sharing an identity key; first occurrence fixes position."""
    family = get_family(family)
    keys = IDENTITY_KEYS.get(family)
    if not keys:
        return [dict(r) for r in records]

    counts = count_fields(family)
    rates = [f.name for f in rate_fields(family)]
    merged: Dict[Tuple[Any, ...], Record] = {}

    for record in records:
        identity = tuple(record.get(k) for k in keys)
        existing = merged.get(identity)
        if existing is None:
            merged[identity] = dict(record)
            continue

        # Rates first: they weigh on the pre-merge session counts
        left_weight = existing.get(WEIGHT_FIELD, 0)
        right_weight = record.get(WEIGHT_FIELD, 0)
        for field in rates:
            rate = _weighted_rate(
                existing.get(field), left_weight, record.get(field), right_weight
            )
            if rate is not None:
                existing[field] = rate
        for field in counts:
            existing[field] = existing.get(field, 0) + record.get(field, 0)

    return list(merged.values())


def sort_records(records: List[Record], family: "str | MetricFamily") -> List[Record]:
    """Daily rows ascend by date; ranked families descend by their sort field."""
    family = get_family(family)
    if family == MetricFamily.DAILY:
        return sorted(records, key=lambda r: r["date"])
    field = SORT_FIELDS.get(family)
    if field is None:
        return list(records)
    # sorted() is stable under reverse=True as well
    return sorted(records, key=lambda r: r.get(field, 0), reverse=True)


def combine_summaries(records: List[Record]) -> Record:
    """Sum totals across per-source summaries; average the ratio fields."""
    totals = count_fields(MetricFamily.SUMMARY)
    averaged = [
        f.name
        for f in fields_of_kind(MetricFamily.SUMMARY, FieldKind.RATE)
        + fields_of_kind(MetricFamily.SUMMARY, FieldKind.DURATION)
    ]
    sums: Dict[str, float] = defaultdict(float)
    samples: Dict[str, int] = defaultdict(int)

    for record in records:
        for field in totals:
            sums[field] += record.get(field, 0)
        for field in averaged:
            if record.get(field) is not None:
                sums[field] += record[field]
                samples[field] += 1

    combined: Record = {field: int(sums[field]) for field in totals}
    for field in averaged:
        combined[field] = sums[field] / samples[field] if samples[field] else 0.0
    return combined
