"""
Ride Booking Core - Application Context

Wires the booking core for an embedding request-handling layer:
- Trip and Reservation stores (SQL or in-memory)
- Per-trip locking (in-process or Redis)
- BookingEngine, TripService and TripQueryService over them

Usage:
    async with BookingApplication().lifespan() as booking:
        trip = await booking.trips.publish_trip(...)
        reservation = await booking.engine.reserve(trip.id, "Juan Perez", 2)
"""

from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from ridebook.core.config import Settings, get_settings
from ridebook.core.logging import get_logger, setup_logging
from ridebook.db.base import Base
from ridebook.db.session import create_engine, create_session_factory
from ridebook.services.booking_engine import BookingEngine
from ridebook.services.interfaces.trip_lock import TripLock
from ridebook.services.lock_factory import get_trip_lock
from ridebook.services.query_service import TripQueryService
from ridebook.services.redis_trip_lock import RedisTripLock
from ridebook.services.trip_service import TripService
from ridebook.stores.interfaces import ReservationStore, TripStore
from ridebook.stores.memory import InMemoryReservationStore, InMemoryTripStore
from ridebook.stores.sql import SqlReservationStore, SqlTripStore

logger = get_logger(__name__)


class BookingApplication:
    """Owns every long-lived resource of the booking core."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        trip_store: Optional[TripStore] = None,
        reservation_store: Optional[ReservationStore] = None,
        trip_lock: Optional[TripLock] = None,
    ):
        self.settings = settings or get_settings()
        self.db_engine: Optional[AsyncEngine] = None

        if trip_store is None or reservation_store is None:
            trip_store, reservation_store = self._build_stores()

        self.trip_store = trip_store
        self.reservation_store = reservation_store
        self.trip_lock = trip_lock or get_trip_lock(self.settings)

        self.queries = TripQueryService(self.trip_store, self.reservation_store)
        self.trips = TripService(self.trip_store, self.reservation_store, self.trip_lock)
        self.engine = BookingEngine(self.trip_store, self.reservation_store, self.trip_lock, self.queries)

    def _build_stores(self) -> tuple[TripStore, ReservationStore]:
        backend = self.settings.STORE_BACKEND.lower()

        if backend == "memory":
            return InMemoryTripStore(), InMemoryReservationStore()
        if backend == "sql":
            self.db_engine = create_engine(self.settings)
            session_factory = create_session_factory(self.db_engine)
            timeout = self.settings.STORE_TIMEOUT
            return SqlTripStore(session_factory, timeout), SqlReservationStore(session_factory, timeout)
        raise ValueError(f"Unknown STORE_BACKEND: {self.settings.STORE_BACKEND!r}")

    async def create_schema(self) -> None:
        """Create tables directly; production databases use the Alembic migrations."""
        if self.db_engine is None:
            return
        async with self.db_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def startup(self) -> None:
        logger.info(
            "application_starting",
            app=self.settings.APP_NAME,
            version=self.settings.APP_VERSION,
            environment=self.settings.ENVIRONMENT,
            store_backend=self.settings.STORE_BACKEND,
            lock_backend=self.trip_lock.backend,
        )

        if isinstance(self.trip_lock, RedisTripLock):
            # Fail at startup rather than on the first booking
            await self.trip_lock.redis.ping()
            logger.info("redis_ready")

    async def shutdown(self) -> None:
        await self.trip_lock.close()
        if self.db_engine is not None:
            await self.db_engine.dispose()
        logger.info("application_shutdown")

    @asynccontextmanager
    async def lifespan(self):
        """Application lifecycle: startup and shutdown hooks."""
        setup_logging(self.settings)
        await self.startup()
        try:
            yield self
        finally:
            await self.shutdown()
