"""
Pytest fixtures for stores, services and sample trips.

Engine and service tests run over the in-memory stores. SQL store tests use
a throwaway SQLite file per test unless TEST_DATABASE_URL points elsewhere.
"""

import os
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ridebook.db.base import Base
from ridebook.models.trip import Trip
from ridebook.services.booking_engine import BookingEngine
from ridebook.services.interfaces.local_trip_lock import LocalTripLock
from ridebook.services.query_service import TripQueryService
from ridebook.services.trip_service import TripService
from ridebook.stores.memory import InMemoryReservationStore, InMemoryTripStore
from ridebook.stores.sql import SqlReservationStore, SqlTripStore

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

DEPARTURE = datetime.now(timezone.utc) + timedelta(days=7)


@pytest.fixture
def trip_store() -> InMemoryTripStore:
    return InMemoryTripStore()


@pytest.fixture
def reservation_store() -> InMemoryReservationStore:
    return InMemoryReservationStore()


@pytest.fixture
def trip_lock() -> LocalTripLock:
    return LocalTripLock(timeout=2.0)


@pytest.fixture
def queries(trip_store, reservation_store) -> TripQueryService:
    return TripQueryService(trip_store, reservation_store)


@pytest.fixture
def engine(trip_store, reservation_store, trip_lock, queries) -> BookingEngine:
    return BookingEngine(trip_store, reservation_store, trip_lock, queries)


@pytest.fixture
def trip_service(trip_store, reservation_store, trip_lock) -> TripService:
    return TripService(trip_store, reservation_store, trip_lock)


@pytest.fixture
def make_trip(trip_service):
    """Publish an OPEN trip through the lifecycle service."""

    async def _make(owner="Ana Lopez", route="Alcoy - Valencia", seats=3, price="12.50") -> Trip:
        return await trip_service.publish_trip(
            owner=owner,
            route=route,
            departure_at=DEPARTURE,
            duration_minutes=90,
            price=Decimal(price),
            seats_offered=seats,
        )

    return _make


@pytest_asyncio.fixture
async def ana_trip(make_trip) -> Trip:
    """Ana Lopez offers 3 seats from Alcoy to Valencia."""
    return await make_trip()


async def _sql_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables, yield engine, then drop tables for isolation."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'ridebook_test.db'}"
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    async for engine in _sql_engine(tmp_path):
        yield engine


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(params=["memory", "sql"])
async def stores(request, tmp_path):
    """Both store implementations, for contract tests."""
    if request.param == "memory":
        yield InMemoryTripStore(), InMemoryReservationStore()
        return

    async for engine in _sql_engine(tmp_path):
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        yield SqlTripStore(factory), SqlReservationStore(factory)
