"""Device control relay.

Writes a pump/heater state onto the current (most recent) reading and
mirrors the combined row to ThingSpeak.  The local store is the record of
truth: a failed mirror write is reported but the local change stays.
"""

import logging
from typing import Any

from sqlalchemy.orm import Session

from ..models.reading import ReadingModel
from . import reading_store
from .thingspeak import GatewayError

logger = logging.getLogger(__name__)

# Dashboard device names (and English aliases) -> status column
DEVICE_FIELDS: dict[str, str] = {
    "bomba": "pump_status",
    "aquecedor": "heater_status",
    "pump": "pump_status",
    "heater": "heater_status",
}


class RelayError(Exception):
    """Base class for control relay failures."""


class UnknownDeviceError(RelayError):
    def __init__(self, device: str):
        super().__init__(f"Unknown device: {device}")
        self.device = device


class NoCurrentStateError(RelayError):
    def __init__(self):
        super().__init__("No current reading to attach device state to")


class RelayPublishError(RelayError):
    """The local state was saved but the ThingSpeak mirror write failed."""

    def __init__(self, reading: ReadingModel, cause: Exception):
        super().__init__(f"State saved locally but remote update failed: {cause}")
        self.reading = reading


def resolve_device(device: str) -> str:
    """Map a device name to its status column, rejecting unknown names."""
    field = DEVICE_FIELDS.get(device.lower())
    if field is None:
        raise UnknownDeviceError(device)
    return field


async def set_device_state(db: Session, gateway: Any, device: str, state: bool) -> ReadingModel:
    """Set a device state on the current reading and mirror it remotely.

    With no gateway (channel not configured) only the local store is updated.

    Raises:
        UnknownDeviceError: ``device`` is not a known actuator.
        NoCurrentStateError: No readings exist yet.
        RelayPublishError: The local update committed but publishing failed.
    """
    field = resolve_device(device)

    row = reading_store.update_status(db, field, state)
    if row is None:
        raise NoCurrentStateError()
    logger.info("Set %s=%s on reading %d", field, state, row.id)

    if gateway is None:
        logger.debug("No ThingSpeak channel configured; skipping mirror write")
        return row

    try:
        await gateway.publish(row)
    except GatewayError as exc:
        logger.warning("Mirror write for %s failed: %s", device, exc)
        raise RelayPublishError(row, exc) from exc
    return row
