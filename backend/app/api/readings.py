"""GET /api/temperature - Latest readings, time-ranged history and summaries."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..models.database import get_db
from ..schemas.reading import DailyStatsOut, ReadingOut, ReadingSummary
from ..services import reading_store, statistics

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_bound(raw: str) -> Optional[datetime]:
    """Parse an ISO 8601 query bound; None if it is not one."""
    try:
        return datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _range(db: Session, start_date: str, end_date: str):
    start = _parse_bound(start_date)
    end = _parse_bound(end_date)
    if start is None or end is None:
        logger.debug("Unparseable range %r .. %r; returning no readings", start_date, end_date)
        return []
    return reading_store.reading_range(db, start, end)


@router.get("/temperature/latest", response_model=list[ReadingOut])
def get_latest(db: Session = Depends(get_db)):
    """Return the 10 most recent readings, oldest first."""
    readings = reading_store.latest_n(db, reading_store.LATEST_COUNT)
    logger.debug("Returning %d latest readings", len(readings))
    return readings


@router.get("/temperature", response_model=list[ReadingOut])
def get_range(
    start_date: str = Query(alias="startDate", description="Start time ISO format"),
    end_date: str = Query(alias="endDate", description="End time ISO format"),
    db: Session = Depends(get_db),
):
    """Return readings with startDate <= timestamp <= endDate, ascending."""
    readings = _range(db, start_date, end_date)
    logger.debug("Found %d readings from %s to %s", len(readings), start_date, end_date)
    return readings


@router.get("/temperature/stats", response_model=ReadingSummary)
def get_range_stats(
    start_date: str = Query(alias="startDate", description="Start time ISO format"),
    end_date: str = Query(alias="endDate", description="End time ISO format"),
    db: Session = Depends(get_db),
):
    """Average/min/max temperature and level over a time range."""
    return statistics.summarize(_range(db, start_date, end_date))


@router.get("/stats/daily", response_model=list[DailyStatsOut])
def get_daily_stats(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """Return per-day aggregates; defaults to the last 30 days."""
    end = end_date or datetime.now(timezone.utc).date()
    start = start_date or end - timedelta(days=30)
    return [DailyStatsOut.from_row(row) for row in statistics.daily_range(db, start, end)]
