"""POST /api/control/{device} - Pump and heater state changes."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..models.database import get_db
from ..schemas.reading import ControlRequest, SuccessResponse
from ..services import relay

logger = logging.getLogger(__name__)

router = APIRouter()

# Set by main.py lifespan once the ThingSpeak client exists
_gateway: Any = None


def set_gateway(gateway: Any) -> None:
    global _gateway
    _gateway = gateway


def get_gateway() -> Any:
    """Dependency returning the ThingSpeak client, or None when no channel is configured."""
    return _gateway


@router.post("/control/{device}", response_model=SuccessResponse)
async def control_device(
    device: str,
    body: ControlRequest,
    db: Session = Depends(get_db),
    gateway: Any = Depends(get_gateway),
):
    """Set a device state on the current reading and mirror it to ThingSpeak."""
    try:
        await relay.set_device_state(db, gateway, device, body.state)
    except relay.UnknownDeviceError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except relay.NoCurrentStateError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except relay.RelayPublishError as exc:
        raise HTTPException(status_code=502, detail=str(exc))

    logger.info("Updated %s state to %s", device, body.state)
    return SuccessResponse()
