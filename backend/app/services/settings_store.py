"""Key-value settings with typed values.

Each value is stored as text next to a type tag ("bool", "number",
"string") chosen when it is written, so reads never have to guess whether
"1" was a number or a string.  Rows written without a tag are coerced
lexically.
"""

import logging
import math
import re

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ..models.database import transaction, utcnow
from ..models.setting import SettingModel

logger = logging.getLogger(__name__)

TYPE_BOOL = "bool"
TYPE_NUMBER = "number"
TYPE_STRING = "string"

# Seeded on first start; existing values are never overwritten.
DEFAULT_SETTINGS: dict[str, object] = {
    "systemName": "Aquaponia",
    "updateInterval": 1,
    "dataRetention": 30,
    "emailAlerts": True,
    "pushAlerts": True,
    "alertEmail": "",
    "tempCriticalMin": 18,
    "tempWarningMin": 20,
    "tempWarningMax": 28,
    "tempCriticalMax": 30,
    "levelCriticalMin": 50,
    "levelWarningMin": 60,
    "levelWarningMax": 85,
    "levelCriticalMax": 90,
    "pumpAuto": True,
    "pumpOnTime": "06:00",
    "pumpOffTime": "18:00",
    "heaterAuto": True,
    "heaterOnTemp": 22,
    "heaterOffTemp": 24,
}

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def encode_value(value: object) -> tuple[str, str]:
    """Return (value_type, text) for a value about to be stored."""
    if value is None:
        return TYPE_STRING, ""
    if isinstance(value, bool):
        return TYPE_BOOL, "true" if value else "false"
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"Setting value must be finite, got {value!r}")
        return TYPE_NUMBER, _format_number(value)
    if isinstance(value, str):
        # Form submissions arrive as strings; keep their lexical meaning
        if value.lower() in ("true", "false"):
            return TYPE_BOOL, value.lower()
        if _NUMBER_RE.match(value) and math.isfinite(float(value)):
            return TYPE_NUMBER, value
        return TYPE_STRING, value
    raise TypeError(f"Unsupported setting value type: {type(value).__name__}")


def _parse_number(raw: str) -> int | float:
    try:
        return int(raw)
    except ValueError:
        return float(raw)


def _coerce_value(raw: str) -> object:
    """Try to coerce an untagged stored string back to bool/int/float."""
    if raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    if _NUMBER_RE.match(raw) and math.isfinite(float(raw)):
        return _parse_number(raw)
    return raw


def decode_value(value_type: str | None, raw: str | None) -> object:
    """Turn a stored (tag, text) pair back into a typed value."""
    raw = raw if raw is not None else ""
    if value_type == TYPE_BOOL:
        return raw.lower() == "true"
    if value_type == TYPE_NUMBER:
        try:
            return _parse_number(raw)
        except ValueError:
            logger.warning("Setting tagged as number holds %r; returning text", raw)
            return raw
    if value_type == TYPE_STRING:
        return raw
    return _coerce_value(raw)


def get_all(db: Session) -> dict[str, object]:
    """Return every stored setting as key -> typed value."""
    rows = db.scalars(select(SettingModel).order_by(SettingModel.key))
    return {row.key: decode_value(row.value_type, row.value) for row in rows}


def get_value(db: Session, key: str, default: object = None) -> object:
    row = db.get(SettingModel, key)
    if row is None:
        return default
    return decode_value(row.value_type, row.value)


def set_all(db: Session, updates: dict[str, object]) -> None:
    """Upsert every key in one transaction; any failure rolls back the batch."""
    now = utcnow()
    with transaction(db):
        for key, value in updates.items():
            existing = db.get(SettingModel, key)
            value_type, text = encode_value(value)
            if existing:
                existing.value = text
                existing.value_type = value_type
                existing.updated_at = now
            else:
                db.add(SettingModel(
                    key=key, value=text, value_type=value_type, updated_at=now,
                ))
            db.flush()
    logger.info("Updated %d settings: %s", len(updates), ", ".join(updates))


def seed_defaults(db: Session) -> int:
    """Insert any default settings that are missing. Returns rows added."""
    now = utcnow()
    added = 0
    with transaction(db):
        for key, value in DEFAULT_SETTINGS.items():
            value_type, text = encode_value(value)
            stmt = (
                sqlite_insert(SettingModel.__table__)
                .values(key=key, value=text, value_type=value_type, updated_at=now)
                .on_conflict_do_nothing(index_elements=["key"])
            )
            added += db.execute(stmt).rowcount or 0
    if added:
        logger.info("Seeded %d default settings", added)
    return added
