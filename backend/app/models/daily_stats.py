"""DailyStats ORM model for per-day reading aggregates."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, Integer
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base, utcnow


class DailyStatsModel(Base):
    __tablename__ = "daily_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    day: Mapped[date] = mapped_column("date", Date, unique=True, nullable=False)

    min_temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    min_level: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_level: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_level: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Seconds the actuator was on during the day
    pump_active_time: Mapped[int] = mapped_column(Integer, default=0)
    heater_active_time: Mapped[int] = mapped_column(Integer, default=0)

    reading_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
