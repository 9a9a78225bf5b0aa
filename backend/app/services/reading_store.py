"""Persistence operations for the readings log.

Every mutating function runs inside its own scoped transaction so a
collector insert and a control-relay update never interleave partial
writes.  Datetimes are normalized to naive UTC before they reach a query.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, aliased

from ..models.database import transaction, utc_naive, utcnow
from ..models.reading import ReadingModel

logger = logging.getLogger(__name__)

LATEST_COUNT = 10

# Device status columns that may be overwritten in place
STATUS_FIELDS = ("pump_status", "heater_status")

_NEWEST_FIRST = (ReadingModel.timestamp.desc(), ReadingModel.id.desc())


def insert_reading(
    db: Session,
    *,
    temperature: Optional[float] = None,
    level: Optional[float] = None,
    timestamp: Optional[datetime] = None,
    pump_status: bool = False,
    heater_status: bool = False,
    **derived,
) -> ReadingModel:
    """Append one reading. ``timestamp`` defaults to now; rows are never overwritten.

    ``derived`` carries the optional enrichment columns (trends, critical
    flags, data_source, data_quality).
    """
    now = utcnow()
    row = ReadingModel(
        temperature=temperature,
        level=level,
        pump_status=bool(pump_status),
        heater_status=bool(heater_status),
        timestamp=utc_naive(timestamp) or now,
        created_at=now,
        **derived,
    )
    with transaction(db):
        db.add(row)
    db.refresh(row)
    return row


def latest(db: Session) -> Optional[ReadingModel]:
    """Return the most recent reading by timestamp, or None."""
    return db.scalars(select(ReadingModel).order_by(*_NEWEST_FIRST).limit(1)).first()


def latest_n(db: Session, n: int = LATEST_COUNT) -> list[ReadingModel]:
    """Return the ``n`` most recent readings, oldest first."""
    if n <= 0:
        return []
    rows = list(db.scalars(select(ReadingModel).order_by(*_NEWEST_FIRST).limit(n)))
    rows.reverse()
    return rows


def reading_range(db: Session, start: datetime, end: datetime) -> list[ReadingModel]:
    """Return readings with ``start <= timestamp <= end``, ascending."""
    stmt = (
        select(ReadingModel)
        .where(ReadingModel.timestamp >= utc_naive(start))
        .where(ReadingModel.timestamp <= utc_naive(end))
        .order_by(ReadingModel.timestamp, ReadingModel.id)
    )
    return list(db.scalars(stmt))


def exists_at(db: Session, timestamp: datetime) -> bool:
    """True if a reading attributed to exactly ``timestamp`` is already stored."""
    stmt = select(ReadingModel.id).where(ReadingModel.timestamp == utc_naive(timestamp)).limit(1)
    return db.scalar(stmt) is not None


def update_status(db: Session, field: str, state: bool) -> Optional[ReadingModel]:
    """Set ``field`` on the single most recent row and return that row.

    The target row is resolved inside the UPDATE statement itself so a
    concurrent insert cannot slip between choosing the row and writing it.
    Returns None (and writes nothing) when there are no readings.
    """
    if field not in STATUS_FIELDS:
        raise ValueError(f"Not a device status field: {field}")

    newest = aliased(ReadingModel)
    newest_id = (
        select(newest.id)
        .order_by(newest.timestamp.desc(), newest.id.desc())
        .limit(1)
        .scalar_subquery()
    )
    stmt = (
        update(ReadingModel)
        .where(ReadingModel.id == newest_id)
        .values({field: bool(state)})
        .returning(ReadingModel.id)
        .execution_options(synchronize_session=False)
    )

    with transaction(db):
        row_id = db.execute(stmt).scalar_one_or_none()
        if row_id is None:
            return None
        row = db.get(ReadingModel, row_id, populate_existing=True)
    return row


def purge_older_than(db: Session, days: int) -> int:
    """Delete readings whose timestamp is more than ``days`` days old."""
    cutoff = utcnow() - timedelta(days=days)
    with transaction(db):
        result = db.execute(
            delete(ReadingModel)
            .where(ReadingModel.timestamp < cutoff)
            .execution_options(synchronize_session=False)
        )
    count = result.rowcount or 0
    if count:
        logger.info("Purged %d readings older than %d days", count, days)
    return count
