"""FastAPI application factory and lifespan for the aquaponics monitor."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .models.database import init_database, SessionLocal
from .services.collector import Collector
from .services.settings_store import seed_defaults
from .services.thingspeak import GatewayError, ThingSpeakClient
from .api.router import api_router
from .api import control as control_api
from .api import status as status_api

# Configure logging for our app (uvicorn only configures its own loggers)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:     %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Shared mutable state for shutdown
_app_refs: dict = {
    "gateway": None,
    "collector": None,
    "collector_task": None,
}


def _build_gateway() -> ThingSpeakClient:
    return ThingSpeakClient(
        channel_id=settings.thingspeak_channel_id,
        read_api_key=settings.thingspeak_read_api_key,
        write_api_key=settings.thingspeak_write_api_key,
        base_url=settings.thingspeak_base_url,
        timeout=settings.request_timeout_sec,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: prepare the database, start/stop collection."""

    logger.info("Database: %s", settings.db_path)
    init_database()
    db = SessionLocal()
    try:
        seed_defaults(db)
    finally:
        db.close()
    logger.info("Database initialized")

    if settings.thingspeak_configured:
        gateway = _build_gateway()
        collector = Collector(
            gateway,
            poll_interval=settings.poll_interval_sec,
            retention_check_interval=settings.retention_check_interval_sec,
        )
        collector_task = asyncio.create_task(collector.run())
        logger.info(
            "Collector started for channel %s (%ds interval)",
            settings.thingspeak_channel_id, settings.poll_interval_sec,
        )

        _app_refs["gateway"] = gateway
        _app_refs["collector"] = collector
        _app_refs["collector_task"] = collector_task
        control_api.set_gateway(gateway)
        status_api.set_collector(collector)
    else:
        logger.warning(
            "ThingSpeak channel not configured (set AQUAPONIA_THINGSPEAK_CHANNEL_ID "
            "and AQUAPONIA_THINGSPEAK_READ_API_KEY); collection disabled"
        )

    yield

    # Shutdown: stop the collector loop, letting a running cycle finish
    logger.info("Shutting down...")
    collector = _app_refs.get("collector")
    collector_task = _app_refs.get("collector_task")

    if collector:
        collector.stop()
    if collector_task:
        collector_task.cancel()
        try:
            await asyncio.wait_for(asyncio.shield(collector_task), timeout=15.0)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            pass
    control_api.set_gateway(None)
    status_api.set_collector(None)
    logger.info("Application shutdown complete")


async def _database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def _gateway_error_handler(request: Request, exc: GatewayError):
    logger.warning("ThingSpeak error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"error": "Remote channel unavailable"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Aquaponia Monitor",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SQLAlchemyError, _database_error_handler)
    app.add_exception_handler(GatewayError, _gateway_error_handler)

    # API routes
    app.include_router(api_router)

    # Serve the dashboard's static files if present
    public_dir = Path(__file__).parent.parent.parent / "public"
    if public_dir.exists():
        app.mount("/", StaticFiles(directory=str(public_dir), html=True), name="public")

    return app


# Application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
