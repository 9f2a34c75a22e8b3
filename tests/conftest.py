from __future__ import annotations

from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import order_tracking.models  # noqa: F401
from order_tracking.core.database import Base, get_db
from order_tracking.services.event_bus import event_bus
from order_tracking.services.order_store import SqlOrderStore
from order_tracking.services.tracking_feed import ready_registry


@pytest.fixture(autouse=True)
def _reset_ready_registry():
    ready_registry.reset()
    yield
    ready_registry.reset()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return SqlOrderStore(db)


@pytest.fixture
def captured_events():
    """Registra os eventos publicados durante o teste."""
    events: list[tuple[str, dict]] = []
    unsubscribers = []

    def capture(*names: str):
        for name in names:
            unsubscribers.append(
                event_bus.subscribe(name, lambda payload, name=name: events.append((name, payload)))
            )
        return events

    yield capture
    for unsubscribe in unsubscribers:
        unsubscribe()


@pytest.fixture
def client(monkeypatch, session_factory):
    from order_tracking import main
    from order_tracking.deps import get_store_scope

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def _store_scope():
        session = session_factory()
        try:
            yield SqlOrderStore(session)
        finally:
            session.close()

    main.app.dependency_overrides[get_db] = _get_db
    main.app.dependency_overrides[get_store_scope] = lambda: _store_scope
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()
