"""Reading ORM model for the sensor/actuator observation log."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Index
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base, utcnow


class ReadingModel(Base):
    __tablename__ = "readings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Sensor values (None when the sensor was unavailable)
    temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    level: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Actuator state, overwritten in place by the control relay
    pump_status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    heater_status: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # When the observation was taken vs. when it was stored
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Derived at collection time
    temperature_trend: Mapped[float] = mapped_column(Float, default=0.0)
    level_trend: Mapped[float] = mapped_column(Float, default=0.0)
    is_temp_critical: Mapped[bool] = mapped_column(Boolean, default=False)
    is_level_critical: Mapped[bool] = mapped_column(Boolean, default=False)
    data_source: Mapped[str] = mapped_column(String(50), default="thingspeak")
    data_quality: Mapped[float] = mapped_column(Float, default=1.0)

    __table_args__ = (
        Index("idx_readings_timestamp", "timestamp"),
        Index("idx_readings_temperature", "temperature"),
        Index("idx_readings_level", "level"),
    )
