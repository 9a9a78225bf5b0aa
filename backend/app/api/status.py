"""GET /api/status - Collector status."""

from fastapi import APIRouter

from ..config import settings

router = APIRouter()

_collector = None


def set_collector(collector) -> None:
    global _collector
    _collector = collector


@router.get("/status")
def get_status():
    """Return collector statistics, or a stub when collection is not running."""
    return {
        "thingspeak_configured": settings.thingspeak_configured,
        "collector": _collector.stats if _collector is not None else None,
    }
