"""Setting ORM model for tagged key-value configuration storage."""

from datetime import datetime

from sqlalchemy import Text, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base, utcnow


class SettingModel(Base):
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # "bool", "number" or "string"; None on rows written before tagging
    value_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow,
    )
