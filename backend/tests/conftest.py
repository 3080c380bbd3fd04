"""
Pytest fixtures for the test database, entity stores and HTTP client.

Each test gets its own SQLite file, so concurrent sessions behave like
separate connections and nothing leaks between tests. Audit entries are
written inline so assertions can read them right after a mutation.
"""

from decimal import Decimal
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reservations.main import app
from reservations.api.deps import get_audit_propagator
from reservations.db.base import Base
from reservations.db.session import build_engine, build_session_factory, get_db
from reservations.models import Guest, Room
from reservations.schemas.guest import GuestCreate
from reservations.schemas.room import RoomCreate
from reservations.services import guest_service, room_service
from reservations.services.audit_service import AuditPropagator
from reservations.services.entity_store import EntityStore


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create tables in a fresh database file, yield a session factory, then dispose."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'reservations_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def propagator(session_factory) -> AuditPropagator:
    return AuditPropagator(session_factory, mode="inline")


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def store(db_session, propagator) -> EntityStore:
    return EntityStore(db_session, propagator)


@pytest_asyncio.fixture
async def make_store(session_factory, propagator):
    """Factory for extra stores on their own sessions (concurrent callers)."""
    sessions = []

    def _make() -> EntityStore:
        session = session_factory()
        sessions.append(session)
        return EntityStore(session, propagator)

    yield _make

    for session in sessions:
        await session.close()


@pytest_asyncio.fixture
async def client(session_factory, propagator) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB and audit dependencies."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_audit_propagator] = lambda: propagator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def room(store: EntityStore) -> Room:
    """Room 101: capacity 2 at 100.00 per night."""
    return await room_service.create_room(
        store,
        RoomCreate(room_number="101", type="double", capacity=2, price_per_night=Decimal("100.00")),
    )


@pytest_asyncio.fixture
async def suite(store: EntityStore) -> Room:
    return await room_service.create_room(
        store,
        RoomCreate(room_number="201", type="suite", capacity=4, price_per_night=Decimal("250.00")),
    )


@pytest_asyncio.fixture
async def guest(store: EntityStore) -> Guest:
    return await guest_service.create_guest(
        store,
        GuestCreate(full_name="Ada Lovelace", email="ada@example.com", phone="+44 20 7946 0000"),
    )


@pytest_asyncio.fixture
async def other_guest(store: EntityStore) -> Guest:
    return await guest_service.create_guest(
        store,
        GuestCreate(full_name="Charles Babbage", email="charles@example.com", phone="+44 20 7946 0001"),
    )
