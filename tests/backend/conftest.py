"""Shared fixtures: in-memory database, fake ThingSpeak gateway, API client."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.control import get_gateway
from app.main import create_app
from app.models.database import get_db, init_database


class FakeGateway:
    """Stands in for ThingSpeakClient; records every publish call."""

    def __init__(self):
        self.feed = None
        self.fetch_error: Exception | None = None
        self.publish_error: Exception | None = None
        self.fetch_calls = 0
        self.published: list[dict] = []

    async def fetch_latest(self):
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.feed

    async def publish(self, reading):
        if self.publish_error is not None:
            raise self.publish_error
        self.published.append({
            "temperature": reading.temperature,
            "level": reading.level,
            "pump_status": reading.pump_status,
            "heater_status": reading.heater_status,
        })
        return len(self.published)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(session_factory, gateway):
    app = create_app()

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    return TestClient(app)
