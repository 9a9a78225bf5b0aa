"""Scheduled ThingSpeak collection loop.

Every tick fetches the latest feed entry, stores it as a reading and echoes
it back to the channel.  Ticks fire at a fixed cadence; a tick that arrives
while the previous cycle is still running is skipped rather than overlapped.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.database import SessionLocal
from ..models.reading import ReadingModel
from . import reading_store, settings_store, statistics
from .thingspeak import GatewayError

logger = logging.getLogger(__name__)


class Collector:
    """Manages the fetch-persist-publish lifecycle."""

    def __init__(
        self,
        gateway: Any,
        poll_interval: int = 60,
        session_factory: Callable[[], Session] = SessionLocal,
        retention_check_interval: int = 3600,
    ):
        self.gateway = gateway
        self.poll_interval = poll_interval
        self.retention_check_interval = retention_check_interval
        self._session_factory = session_factory
        self._running = False
        self._in_flight = False
        self._current: Optional[asyncio.Task] = None
        self._last_cycle: Optional[datetime] = None
        self._last_purge: Optional[float] = None
        self._last_error: Optional[str] = None
        self._cycles = 0
        self._stored = 0
        self._skipped = 0
        self._failures = 0
        self._start_time = time.time()

    @property
    def stats(self) -> dict:
        return {
            "running": self._running,
            "poll_interval": self.poll_interval,
            "last_cycle": self._last_cycle.isoformat() if self._last_cycle else None,
            "cycles": self._cycles,
            "readings_stored": self._stored,
            "skipped_ticks": self._skipped,
            "failures": self._failures,
            "last_error": self._last_error,
            "uptime_seconds": int(time.time() - self._start_time),
        }

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def run(self) -> None:
        """Fire a tick every poll_interval seconds until stopped or cancelled."""
        self._running = True
        self._start_time = time.time()
        logger.info("Collector starting with %ds interval", self.poll_interval)

        try:
            while self._running:
                if self._in_flight:
                    self._skipped += 1
                    logger.warning("Previous cycle still running; skipping tick")
                else:
                    self._current = asyncio.create_task(self.tick())
                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            pass
        finally:
            self._running = False
            # Let an in-flight cycle finish its transaction instead of cancelling it
            if self._current is not None and not self._current.done():
                await asyncio.shield(self._current)

    def stop(self) -> None:
        self._running = False

    async def tick(self) -> Optional[ReadingModel]:
        """Run one guarded cycle. Never raises; failures wait for the next tick."""
        if self._in_flight:
            self._skipped += 1
            logger.warning("Previous cycle still running; skipping tick")
            return None

        self._in_flight = True
        try:
            reading = await self.run_cycle()
            self._last_error = None
            await self._maybe_purge()
            return reading
        except GatewayError as e:
            self._failures += 1
            self._last_error = str(e)
            logger.warning("Collection cycle aborted: %s", e)
        except SQLAlchemyError as e:
            self._failures += 1
            self._last_error = "database error"
            logger.error("Collection cycle failed to persist: %s", e, exc_info=True)
        except Exception as e:
            self._failures += 1
            self._last_error = str(e)
            logger.error("Collection cycle error: %s", e, exc_info=True)
        finally:
            self._in_flight = False
        return None

    async def run_cycle(self) -> Optional[ReadingModel]:
        """Fetch, persist and echo one reading.

        Returns the stored reading, or None when there was nothing new.
        Fetch and persistence errors propagate; a failed echo does not.
        """
        self._cycles += 1
        self._last_cycle = datetime.now(timezone.utc)

        logger.debug("Fetching latest ThingSpeak entry...")
        feed = await self.gateway.fetch_latest()
        if feed is None:
            logger.info("No data collected in this cycle")
            return None

        db = self._session_factory()
        try:
            if feed.timestamp is not None and reading_store.exists_at(db, feed.timestamp):
                logger.info("Feed entry at %s already stored", feed.timestamp.isoformat())
                return None

            thresholds = settings_store.get_all(db)
            previous = reading_store.latest(db)
            derived = statistics.enrich(feed.temperature, feed.level, previous, thresholds)
            reading = reading_store.insert_reading(
                db,
                temperature=feed.temperature,
                level=feed.level,
                timestamp=feed.timestamp,
                **derived,
            )
            self._stored += 1
            logger.info(
                "Stored reading %d: temperature=%s level=%s",
                reading.id, reading.temperature, reading.level,
            )

            self._rollup(db, reading)
            db.refresh(reading)
            await self._publish(reading)
            return reading
        finally:
            db.close()

    async def _publish(self, reading: ReadingModel) -> None:
        """Echo the stored reading to the channel; failures are only logged."""
        try:
            entry_id = await self.gateway.publish(reading)
        except GatewayError as e:
            logger.warning("Write-back for reading %d failed: %s", reading.id, e)
            return
        logger.debug("Write-back for reading %d -> entry %s", reading.id, entry_id)

    @staticmethod
    def _rollup(db: Session, reading: ReadingModel) -> None:
        try:
            statistics.rollup_day(db, statistics.reading_day(reading))
        except SQLAlchemyError as e:
            logger.error("Daily rollup failed: %s", e)

    async def _maybe_purge(self) -> None:
        """Delete readings past the dataRetention window, at most once per interval."""
        now = time.monotonic()
        if (self._last_purge is not None
                and now - self._last_purge < self.retention_check_interval):
            return
        self._last_purge = now

        db = self._session_factory()
        try:
            days = settings_store.get_value(db, "dataRetention", 0)
            if isinstance(days, bool) or not isinstance(days, (int, float)) or days <= 0:
                return
            reading_store.purge_older_than(db, int(days))
        except SQLAlchemyError as e:
            logger.error("Retention purge failed: %s", e)
        finally:
            db.close()
