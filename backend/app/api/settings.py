"""GET/POST /api/settings - Dashboard configuration."""

from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..models.database import get_db
from ..schemas.reading import SuccessResponse
from ..services import settings_store

router = APIRouter()

SettingValue = Optional[Union[bool, int, float, str]]


@router.get("/settings")
def get_settings(db: Session = Depends(get_db)) -> dict[str, SettingValue]:
    """Return all settings as key -> typed value."""
    return settings_store.get_all(db)


@router.post("/settings", response_model=SuccessResponse)
def update_settings(updates: dict[str, SettingValue], db: Session = Depends(get_db)):
    """Upsert every submitted key atomically."""
    try:
        settings_store.set_all(db, updates)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return SuccessResponse()
