"""ThingSpeak channel client.

Reads the most recent feed entry (field1 = temperature, field2 = water
level) and writes back the combined sensor + actuator state as the four
channel fields.  The client never retries; the collector's next tick is the
retry.

Reference: https://www.mathworks.com/help/thingspeak/rest-api.html
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

THINGSPEAK_BASE_URL = "https://api.thingspeak.com"
REQUEST_TIMEOUT = 10.0

# Channel field layout
FIELD_TEMPERATURE = "field1"
FIELD_LEVEL = "field2"
FIELD_PUMP = "field3"
FIELD_HEATER = "field4"


class GatewayError(Exception):
    """The remote channel was unreachable or answered with an error."""


@dataclass
class FeedReading:
    """One feed entry translated to the internal reading shape."""
    temperature: Optional[float]
    level: Optional[float]
    timestamp: Optional[datetime]
    entry_id: Optional[int] = None


def _parse_number(raw: Any) -> Optional[float]:
    """Parse a channel field, returning None for missing or non-numeric values."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        # fromisoformat() only accepts a trailing "Z" from 3.11 on
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def _numeric_field(value: Any, digits: int | None = None) -> str:
    """Format a numeric field for a write call; missing/invalid becomes 0."""
    if isinstance(value, bool):
        number = float(value)
    else:
        number = _parse_number(value) or 0.0
    if digits is None:
        return str(int(number))
    return f"{number:.{digits}f}"


def parse_feed(data: Any) -> Optional[FeedReading]:
    """Translate a feeds.json payload into a FeedReading.

    Returns None when the channel reports no feed entries.
    """
    if not isinstance(data, dict):
        return None
    feeds = data.get("feeds")
    if not isinstance(feeds, list) or not feeds:
        return None

    latest = feeds[-1]
    if not isinstance(latest, dict):
        return None

    entry_id = latest.get("entry_id")
    return FeedReading(
        temperature=_parse_number(latest.get(FIELD_TEMPERATURE)),
        level=_parse_number(latest.get(FIELD_LEVEL)),
        timestamp=_parse_timestamp(latest.get("created_at")),
        entry_id=entry_id if isinstance(entry_id, int) else None,
    )


def build_update_params(api_key: str, reading: Any) -> dict[str, str]:
    """Map a reading (ORM row or FeedReading) to ThingSpeak update params."""
    return {
        "api_key": api_key,
        FIELD_TEMPERATURE: _numeric_field(getattr(reading, "temperature", None), 2),
        FIELD_LEVEL: _numeric_field(getattr(reading, "level", None), 2),
        FIELD_PUMP: _numeric_field(getattr(reading, "pump_status", None)),
        FIELD_HEATER: _numeric_field(getattr(reading, "heater_status", None)),
    }


class ThingSpeakClient:
    """Read/write access to a single ThingSpeak channel."""

    def __init__(
        self,
        channel_id: str,
        read_api_key: str,
        write_api_key: str,
        base_url: str = THINGSPEAK_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.channel_id = channel_id
        self._read_api_key = read_api_key
        self._write_api_key = write_api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def fetch_latest(self) -> Optional[FeedReading]:
        """Fetch the single most recent feed entry, or None if the feed is empty."""
        url = f"/channels/{self.channel_id}/feeds.json"
        params = {"api_key": self._read_api_key, "results": 1}

        try:
            async with self._client() as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise GatewayError(
                f"ThingSpeak read failed: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise GatewayError(f"ThingSpeak read failed: {exc}") from exc
        except ValueError as exc:
            raise GatewayError("ThingSpeak read returned invalid JSON") from exc

        reading = parse_feed(data)
        if reading is None:
            logger.debug("ThingSpeak channel %s has no feed data", self.channel_id)
        return reading

    async def publish(self, reading: Any) -> Optional[int]:
        """Write temperature, level, pump and heater state to the channel.

        Returns the entry id ThingSpeak assigned, or None if the response
        body is not one (ThingSpeak answers "0" when it drops an update).
        """
        params = build_update_params(self._write_api_key, reading)

        try:
            async with self._client() as client:
                resp = await client.get("/update", params=params)
                resp.raise_for_status()
                body = resp.text.strip()
        except httpx.HTTPStatusError as exc:
            raise GatewayError(
                f"ThingSpeak write failed: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise GatewayError(f"ThingSpeak write failed: {exc}") from exc

        try:
            entry_id = int(body)
        except ValueError:
            logger.warning("ThingSpeak write returned unexpected body: %r", body[:100])
            return None
        if entry_id <= 0:
            logger.warning("ThingSpeak rejected update (rate limited?)")
            return None
        logger.debug("ThingSpeak write OK: entry %d", entry_id)
        return entry_id
