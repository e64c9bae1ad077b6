"""
SQLAlchemy-backed stores.

Each public call opens its own session and transaction from the injected
session factory, runs under a bounded timeout, and closes the session before
returning detached domain objects. Driver errors and timeouts surface as
StoreFailure; integrity violations on reservations surface as
DuplicateReservation.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridebook.core.exceptions import (
    BookingError,
    DuplicateReservation,
    ReservationNotFound,
    StoreFailure,
    TripNotFound,
)
from ridebook.core.logging import get_logger
from ridebook.core.metrics import record_store_failure, record_store_operation
from ridebook.db.tables import (
    ReservationRow,
    TripRow,
    reservation_from_row,
    reservation_to_row,
    trip_from_row,
    trip_to_row,
)
from ridebook.models.reservation import Reservation
from ridebook.models.trip import Trip, TripState
from ridebook.stores.interfaces import ReservationStore, TripStore

logger = get_logger(__name__)

T = TypeVar("T")


class _SqlStore:
    store_name = "sql"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], timeout: float = 5.0):
        self._session_factory = session_factory
        self._timeout = timeout

    async def _in_transaction(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self._session_factory() as session:
            async with session.begin():
                return await work(session)

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        record_store_operation(self.store_name, operation)
        try:
            async with asyncio.timeout(self._timeout):
                return await self._in_transaction(work)
        except BookingError:
            raise
        except IntegrityError as e:
            raise self._integrity_error(operation, e) from e
        except TimeoutError as e:
            record_store_failure(self.store_name, operation)
            logger.error("store_timeout", store=self.store_name, operation=operation, timeout=self._timeout)
            raise StoreFailure(
                f"{self.store_name}.{operation} timed out after {self._timeout}s",
                operation=operation,
            ) from e
        except SQLAlchemyError as e:
            record_store_failure(self.store_name, operation)
            logger.error("store_failure", store=self.store_name, operation=operation, error=str(e))
            raise StoreFailure(f"{self.store_name}.{operation} failed: {e}", operation=operation) from e

    def _integrity_error(self, operation: str, error: IntegrityError) -> BookingError:
        record_store_failure(self.store_name, operation)
        logger.error("store_integrity_error", store=self.store_name, operation=operation, error=str(error.orig))
        return StoreFailure(f"{self.store_name}.{operation} violated a constraint", operation=operation)


class SqlTripStore(_SqlStore, TripStore):
    store_name = "sql_trips"

    async def find_all(self) -> set[Trip]:
        async def work(session: AsyncSession) -> set[Trip]:
            result = await session.execute(select(TripRow))
            return {trip_from_row(row) for row in result.scalars()}

        return await self._run("find_all", work)

    async def find_by_route_substring(self, text: str) -> set[Trip]:
        async def work(session: AsyncSession) -> set[Trip]:
            result = await session.execute(
                select(TripRow).where(TripRow.route.contains(text, autoescape=True))
            )
            return {trip_from_row(row) for row in result.scalars()}

        return await self._run("find_by_route", work)

    async def find_by_state(self, state: TripState) -> set[Trip]:
        async def work(session: AsyncSession) -> set[Trip]:
            result = await session.execute(select(TripRow).where(TripRow.state == TripState(state).value))
            return {trip_from_row(row) for row in result.scalars()}

        return await self._run("find_by_state", work)

    async def find_by_id(self, trip_id: int) -> Optional[Trip]:
        async def work(session: AsyncSession) -> Optional[Trip]:
            row = await session.get(TripRow, trip_id)
            return trip_from_row(row) if row else None

        return await self._run("find_by_id", work)

    async def add(self, trip: Trip) -> Trip:
        async def work(session: AsyncSession) -> Trip:
            row = trip_to_row(trip)
            session.add(row)
            await session.flush()
            return trip_from_row(row)

        stored = await self._run("add", work)
        trip.id = stored.id
        return stored

    async def update(self, trip: Trip) -> None:
        async def work(session: AsyncSession) -> None:
            row = await session.get(TripRow, trip.id) if trip.id is not None else None
            if row is None:
                raise TripNotFound(trip.id)
            trip_to_row(trip, row)

        await self._run("update", work)

    async def remove(self, trip: Trip) -> None:
        async def work(session: AsyncSession) -> None:
            row = await session.get(TripRow, trip.id) if trip.id is not None else None
            if row is None:
                raise TripNotFound(trip.id)
            await session.delete(row)

        await self._run("remove", work)


class SqlReservationStore(_SqlStore, ReservationStore):
    store_name = "sql_reservations"

    @staticmethod
    def _ordered(query):
        return query.order_by(ReservationRow.created_at, ReservationRow.code)

    async def _select_list(self, operation: str, query) -> list[Reservation]:
        async def work(session: AsyncSession) -> list[Reservation]:
            result = await session.execute(self._ordered(query))
            return [reservation_from_row(row) for row in result.scalars()]

        return await self._run(operation, work)

    async def find_all(self) -> set[Reservation]:
        return set(await self._select_list("find_all", select(ReservationRow)))

    async def find_by_id(self, code: str) -> Optional[Reservation]:
        async def work(session: AsyncSession) -> Optional[Reservation]:
            row = await session.get(ReservationRow, code)
            return reservation_from_row(row) if row else None

        return await self._run("find_by_id", work)

    async def find_all_by_user(self, user: str) -> list[Reservation]:
        return await self._select_list(
            "find_all_by_user", select(ReservationRow).where(ReservationRow.user == user)
        )

    async def find_all_by_trip(self, trip_id: int) -> list[Reservation]:
        return await self._select_list(
            "find_all_by_trip", select(ReservationRow).where(ReservationRow.trip_id == trip_id)
        )

    async def find_by_user_and_trip(self, user: str, trip_id: int) -> Optional[Reservation]:
        found = await self._select_list(
            "find_by_user_and_trip",
            select(ReservationRow).where(
                ReservationRow.user == user,
                ReservationRow.trip_id == trip_id,
            ),
        )
        return found[0] if found else None

    async def search_by_trip(self, trip_id: int, text: str) -> list[Reservation]:
        return await self._select_list(
            "search_by_trip",
            select(ReservationRow).where(
                ReservationRow.trip_id == trip_id,
                or_(
                    ReservationRow.user.contains(text, autoescape=True),
                    ReservationRow.code.contains(text, autoescape=True),
                ),
            ),
        )

    async def count_for_trip(self, trip_id: int) -> int:
        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                select(func.count()).select_from(ReservationRow).where(ReservationRow.trip_id == trip_id)
            )
            return int(result.scalar_one())

        return await self._run("count_for_trip", work)

    async def sum_seats_reserved_for_trip(self, trip_id: int) -> int:
        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                select(func.coalesce(func.sum(ReservationRow.seats_requested), 0)).where(
                    ReservationRow.trip_id == trip_id
                )
            )
            return int(result.scalar_one())

        return await self._run("sum_seats", work)

    async def add(self, reservation: Reservation) -> None:
        async def work(session: AsyncSession) -> None:
            if await session.get(ReservationRow, reservation.code) is not None:
                raise DuplicateReservation(
                    f"Reservation code {reservation.code} already exists", code=reservation.code
                )
            existing = await session.execute(
                select(ReservationRow.code).where(
                    ReservationRow.user == reservation.user,
                    ReservationRow.trip_id == reservation.trip_id,
                )
            )
            if existing.first() is not None:
                raise DuplicateReservation(
                    f"{reservation.user} already has a reservation on trip {reservation.trip_id}",
                    user=reservation.user,
                    trip_id=reservation.trip_id,
                )
            session.add(reservation_to_row(reservation))
            await session.flush()

        await self._run("add", work)

    async def update(self, reservation: Reservation) -> None:
        async def work(session: AsyncSession) -> None:
            row = await session.get(ReservationRow, reservation.code)
            if row is None:
                raise ReservationNotFound(reservation.code)
            reservation_to_row(reservation, row)

        await self._run("update", work)

    async def remove(self, reservation: Reservation) -> None:
        async def work(session: AsyncSession) -> None:
            row = await session.get(ReservationRow, reservation.code)
            if row is None:
                raise ReservationNotFound(reservation.code)
            await session.delete(row)

        await self._run("remove", work)

    def _integrity_error(self, operation: str, error: IntegrityError) -> BookingError:
        # A concurrent writer in another process won the unique (user, trip_id) or code race
        if operation == "add" and "unique" in str(error.orig).lower():
            logger.warning("reservation_unique_violation", error=str(error.orig))
            return DuplicateReservation("Reservation already exists")
        return super()._integrity_error(operation, error)
