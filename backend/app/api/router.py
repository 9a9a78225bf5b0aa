"""Top-level API router aggregation."""

from fastapi import APIRouter

from . import readings, control, settings, status

api_router = APIRouter(prefix="/api")

api_router.include_router(readings.router)
api_router.include_router(control.router)
api_router.include_router(settings.router)
api_router.include_router(status.router)
