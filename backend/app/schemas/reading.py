"""Pydantic schemas for reading, statistics and control API payloads."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_serializer


def _iso_utc(value: Optional[datetime]) -> Optional[str]:
    """Stored datetimes are naive UTC; mark them as such on the wire."""
    if value is None:
        return None
    return value.isoformat() + ("" if value.tzinfo else "Z")


class ReadingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    temperature: Optional[float] = None
    level: Optional[float] = None
    pump_status: bool = False
    heater_status: bool = False
    timestamp: datetime
    created_at: datetime
    temperature_trend: Optional[float] = None
    level_trend: Optional[float] = None
    is_temp_critical: bool = False
    is_level_critical: bool = False
    data_source: Optional[str] = None
    data_quality: Optional[float] = None

    @field_serializer("timestamp", "created_at")
    def _serialize_dt(self, value: datetime) -> Optional[str]:
        return _iso_utc(value)


class SeriesStats(BaseModel):
    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None


class ReadingSummary(BaseModel):
    count: int
    temperature: SeriesStats
    level: SeriesStats


class DailyStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    min_temperature: Optional[float] = None
    max_temperature: Optional[float] = None
    avg_temperature: Optional[float] = None
    min_level: Optional[float] = None
    max_level: Optional[float] = None
    avg_level: Optional[float] = None
    pump_active_time: int = 0
    heater_active_time: int = 0
    reading_count: int = 0

    @classmethod
    def from_row(cls, row) -> "DailyStatsOut":
        return cls(
            date=row.day,
            min_temperature=row.min_temperature,
            max_temperature=row.max_temperature,
            avg_temperature=row.avg_temperature,
            min_level=row.min_level,
            max_level=row.max_level,
            avg_level=row.avg_level,
            pump_active_time=row.pump_active_time or 0,
            heater_active_time=row.heater_active_time or 0,
            reading_count=row.reading_count or 0,
        )


class ControlRequest(BaseModel):
    state: bool


class SuccessResponse(BaseModel):
    success: bool = True
