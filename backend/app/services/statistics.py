"""Derived values for readings: summaries, enrichment and daily rollups."""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.daily_stats import DailyStatsModel
from ..models.database import transaction, utc_naive
from ..models.reading import ReadingModel
from . import reading_store

logger = logging.getLogger(__name__)


def _series_stats(values: Iterable[Optional[float]]) -> dict[str, Optional[float]]:
    present = [v for v in values if v is not None]
    if not present:
        return {"avg": None, "min": None, "max": None}
    return {
        "avg": round(sum(present) / len(present), 2),
        "min": min(present),
        "max": max(present),
    }


def summarize(readings: Sequence[ReadingModel]) -> dict:
    """Average/min/max of temperature and level over the non-null values."""
    return {
        "count": len(readings),
        "temperature": _series_stats(r.temperature for r in readings),
        "level": _series_stats(r.level for r in readings),
    }


def _outside(value: Optional[float], low: object, high: object) -> bool:
    if value is None:
        return False
    if isinstance(low, (int, float)) and not isinstance(low, bool) and value < low:
        return True
    if isinstance(high, (int, float)) and not isinstance(high, bool) and value > high:
        return True
    return False


def _delta(current: Optional[float], previous: Optional[float]) -> float:
    if current is None or previous is None:
        return 0.0
    return round(current - previous, 2)


def enrich(
    temperature: Optional[float],
    level: Optional[float],
    previous: Optional[ReadingModel],
    thresholds: dict[str, object],
) -> dict:
    """Compute the derived reading columns for a new observation.

    ``thresholds`` is the settings mapping; only the *CriticalMin/Max keys
    are consulted.
    """
    present = sum(v is not None for v in (temperature, level))
    return {
        "temperature_trend": _delta(temperature, previous.temperature if previous else None),
        "level_trend": _delta(level, previous.level if previous else None),
        "is_temp_critical": _outside(
            temperature, thresholds.get("tempCriticalMin"), thresholds.get("tempCriticalMax"),
        ),
        "is_level_critical": _outside(
            level, thresholds.get("levelCriticalMin"), thresholds.get("levelCriticalMax"),
        ),
        "data_quality": present / 2,
    }


def _active_seconds(readings: Sequence[ReadingModel], field: str, day_end: datetime) -> int:
    """Seconds a status field was on, holding each reading's state until the next one."""
    total = 0.0
    for current, following in zip(readings, list(readings[1:]) + [None]):
        if not getattr(current, field):
            continue
        until = following.timestamp if following is not None else current.timestamp
        total += (min(until, day_end) - current.timestamp).total_seconds()
    return int(total)


def rollup_day(db: Session, day: date) -> Optional[DailyStatsModel]:
    """Recompute the daily_stats row for ``day`` (UTC) from the readings log.

    Returns None when the day has no readings.
    """
    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    readings = reading_store.reading_range(db, start, end)
    if not readings:
        return None

    summary = summarize(readings)
    with transaction(db):
        row = db.scalars(
            select(DailyStatsModel).where(DailyStatsModel.day == day)
        ).first()
        if row is None:
            row = DailyStatsModel(day=day)
            db.add(row)
        row.min_temperature = summary["temperature"]["min"]
        row.max_temperature = summary["temperature"]["max"]
        row.avg_temperature = summary["temperature"]["avg"]
        row.min_level = summary["level"]["min"]
        row.max_level = summary["level"]["max"]
        row.avg_level = summary["level"]["avg"]
        row.pump_active_time = _active_seconds(readings, "pump_status", end)
        row.heater_active_time = _active_seconds(readings, "heater_status", end)
        row.reading_count = summary["count"]
    db.refresh(row)
    return row


def daily_range(db: Session, start: date, end: date) -> list[DailyStatsModel]:
    """Return daily_stats rows with ``start <= day <= end``, ascending."""
    stmt = (
        select(DailyStatsModel)
        .where(DailyStatsModel.day >= start)
        .where(DailyStatsModel.day <= end)
        .order_by(DailyStatsModel.day)
    )
    return list(db.scalars(stmt))


def reading_day(reading: ReadingModel) -> date:
    return utc_naive(reading.timestamp).date()
