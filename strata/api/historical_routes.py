"""STRATA — Historical Store API Routes."""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlmodel import Session

from strata.connectors.historical.loader import load_rows
from strata.connectors.historical.store import HistoricalStore
from strata.core.logging import get_logger
from strata.database import get_session
from strata.exceptions import StrataError

logger = get_logger("api.historical")

router = APIRouter(prefix="/analytics", tags=["Historical"])


def get_store() -> HistoricalStore:
    return HistoricalStore()


@router.get("/data-status")
async def get_data_status(store: HistoricalStore = Depends(get_store)):
    """Row counts per historical table and the days they cover."""
    counts = store.table_counts()
    return {
        "status": "success",
        "tables": counts,
        "total_records": sum(counts.values()),
        "date_range": store.get_data_range(),
    }


@router.post("/historical/{family}")
async def import_historical(
    family: str,
    rows: List[Dict[str, Any]] = Body(..., description="Export rows, native column names"),
    session: Session = Depends(get_session),
):
    """Upsert exported rows for one metric family.

    Rows are matched on their natural key (date + path, date + referrer +
    medium, ...), so re-posting the same export changes nothing.
    """
    try:
        created, updated = load_rows(session, family, rows)
    except StrataError as e:
        session.rollback()
        logger.error(f"Historical import failed: {e}", extra={"metric_family": family})
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "status": "success",
        "family": family,
        "received": len(rows),
        "created": created,
        "updated": updated,
    }
