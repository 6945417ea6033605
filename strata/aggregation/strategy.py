"""STRATA — Date-Range Strategy Resolver.

Decides, per request, whether a window is served by the historical store,
the live provider, or both split at the cutover date. The decision is
recomputed on every call because relative tokens move with the clock.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from strata.exceptions import InvalidDateError
from strata.models.aggregation_models import StrategyDecision, StrategyLabel

DAYS_AGO = re.compile(r"^(\d+)daysAgo$")
ISO_FORMAT = "%Y-%m-%d"


def _today() -> date:
    return datetime.now(timezone.utc).date()


def parse_iso_date(value: str) -> date:
    """Parse a strict YYYY-MM-DD string."""
    try:
        return datetime.strptime(value, ISO_FORMAT).date()
    except (TypeError, ValueError):
        raise InvalidDateError(str(value)) from None


def resolve_date_token(value: str, today: Optional[date] = None) -> str:
    """Resolve "today", "yesterday" or "NdaysAgo" to YYYY-MM-DD.

    Absolute dates pass through unchanged once checked to be well formed.
    """
    today = today or _today()
    token = value.strip() if isinstance(value, str) else value

    if token == "today":
        return today.strftime(ISO_FORMAT)
    if token == "yesterday":
        return (today - timedelta(days=1)).strftime(ISO_FORMAT)
    if isinstance(token, str):
        match = DAYS_AGO.match(token)
        if match:
            return (today - timedelta(days=int(match.group(1)))).strftime(ISO_FORMAT)

    parse_iso_date(token)
    return token


def resolve(
    start_date: str,
    end_date: str,
    cutover_date: str,
    has_historical_data: Callable[[str, str], bool],
    today: Optional[date] = None,
) -> StrategyDecision:
    """Pick the source(s) for [start_date, end_date].

    Precondition: the resolved start is not after the resolved end. Callers
    reject inverted ranges before reaching this function.
    """
    start = resolve_date_token(start_date, today)
    end = resolve_date_token(end_date, today)
    cutover = parse_iso_date(cutover_date)
    start_day, end_day = parse_iso_date(start), parse_iso_date(end)

    # Whole window predates the live provider
    if end_day < cutover:
        if has_historical_data(start, end):
            return StrategyDecision(
                use_historical=True,
                use_live=False,
                historical_range=(start, end),
                label=StrategyLabel.HISTORICAL_ONLY,
            )
        return StrategyDecision(
            use_historical=False, use_live=False, label=StrategyLabel.NO_DATA
        )

    # Whole window is live-provider territory, including future windows
    if start_day >= cutover:
        return StrategyDecision(
            use_historical=False,
            use_live=True,
            live_range=(start, end),
            label=StrategyLabel.LIVE_ONLY,
        )

    # Straddles the cutover
    historical_end = (cutover - timedelta(days=1)).strftime(ISO_FORMAT)
    use_historical = has_historical_data(start, historical_end)
    return StrategyDecision(
        use_historical=use_historical,
        use_live=True,
        historical_range=(start, historical_end) if use_historical else None,
        live_range=(cutover.strftime(ISO_FORMAT), end),
        label=StrategyLabel.HYBRID,
    )
