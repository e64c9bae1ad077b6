"""
Booking engine: reservation admission and seat accounting.

CONCURRENCY STRATEGY: Per-trip critical section
===============================================

Problem:
  Two riders ask for the last seat of a trip at the same time.
  Both sum the reserved seats, both see one seat free, both insert.
  Result: Overbooking. Both may also compute the same "<trip>-<n>" code.

Solution:
  Every write on a trip runs under that trip's TripLock:

  1. Acquire the lock for trip_id (bounded wait, StoreFailure on timeout)
  2. Load the trip, sum reserved seats, run the admission rules
  3. Generate the reservation code
  4. Persist the reservation
  5. Close the trip if it is now full
  6. Release the lock

  If step 5 fails, or the task is cancelled after step 4, the reservation
  is removed again before the error propagates, so callers never observe a
  persisted reservation on a full trip that is still OPEN.

  If the lock cannot be released cleanly at step 6 (a Redis lock that
  outlived its TTL), the reservation is removed too and StoreFailure
  propagates: a caller never gets an error for a booking that exists.

  Trips never contend with each other; only requests for the same trip are
  serialized. The SQL schema (UNIQUE(user, trip_id), CHECK constraints)
  backs the lock up.

The engine owns no state: it coordinates the two stores and the lock.
"""

import asyncio
import time

from ridebook.core.exceptions import (
    AdmissionRejected,
    BookingError,
    DuplicateReservation,
    InsufficientSeats,
    InvalidSeatCount,
    SelfBookingDenied,
    StoreFailure,
    TripNotAvailable,
)
from ridebook.core.logging import get_logger
from ridebook.core.metrics import record_admission, record_trip_transition, reservation_latency
from ridebook.models.reservation import Reservation
from ridebook.models.trip import Trip
from ridebook.services.interfaces.trip_lock import TripLock
from ridebook.services.query_service import TripQueryService
from ridebook.stores.interfaces import ReservationStore, TripStore

logger = get_logger(__name__)


class BookingEngine:

    def __init__(
        self,
        trips: TripStore,
        reservations: ReservationStore,
        trip_lock: TripLock,
        queries: TripQueryService = None,
    ):
        self._trips = trips
        self._reservations = reservations
        self._trip_lock = trip_lock
        self._queries = queries or TripQueryService(trips, reservations)

    async def admit_reservation(self, trip_id: int, user: str, seats_requested: int) -> Trip:
        """
        Decide whether `user` may reserve `seats_requested` seats on the trip.

        Rules run in order and the first failure wins:
        TripNotFound, SelfBookingDenied, TripNotAvailable, InvalidSeatCount,
        InsufficientSeats, DuplicateReservation.

        Returns the trip unchanged. On its own this is only a pre-check; use
        `reserve` to admit and persist atomically.
        """
        try:
            trip = await self._trips.get_by_id(trip_id)

            if user == trip.owner:
                raise SelfBookingDenied(
                    f"{user} owns trip {trip_id} and cannot book it",
                    trip_id=trip_id,
                    user=user,
                )

            if not trip.is_open:
                raise TripNotAvailable(
                    f"Trip {trip_id} is {trip.state.value}",
                    trip_id=trip_id,
                    state=trip.state.value,
                )

            if seats_requested < 1:
                raise InvalidSeatCount(
                    f"At least one seat must be requested, got {seats_requested}",
                    seats_requested=seats_requested,
                )

            reserved = await self._reservations.sum_seats_reserved_for_trip(trip_id)
            if reserved + seats_requested > trip.seats_offered:
                raise InsufficientSeats(trip_id, seats_requested, trip.seats_offered - reserved)

            if await self._reservations.find_by_user_and_trip(user, trip_id) is not None:
                raise DuplicateReservation(
                    f"{user} already has a reservation on trip {trip_id}",
                    trip_id=trip_id,
                    user=user,
                )
        except BookingError as e:
            record_admission(e.code)
            if isinstance(e, AdmissionRejected):
                logger.info("admission_rejected", trip_id=trip_id, user=user, reason=e.code)
            raise

        record_admission("admitted")
        return trip

    async def reserve(self, trip_id: int, user: str, seats_requested: int) -> Reservation:
        """
        Admit, persist and account for a reservation as one unit per trip.
        Closes the trip when the reservation takes its last free seat.
        """
        start = time.perf_counter()
        committed = None
        try:
            async with self._trip_lock.hold(trip_id):
                trip = await self.admit_reservation(trip_id, user, seats_requested)

                code = await self._queries.generate_reservation_code(trip.id)
                reservation = Reservation(
                    code=code,
                    user=user,
                    seats_requested=seats_requested,
                    trip_id=trip.id,
                )
                await self._reservations.add(reservation)

                try:
                    await self.close_trip_if_full(trip)
                except BaseException:
                    await asyncio.shield(self._discard(reservation))
                    raise
                committed = reservation
        except StoreFailure:
            # Lock lost on release: another worker may have admitted against stale seats
            if committed is not None:
                logger.error("reservation_lock_lost", code=committed.code, trip_id=trip_id)
                await asyncio.shield(self._discard(committed))
            raise

        reservation_latency.observe(time.perf_counter() - start)
        logger.info(
            "reservation_created",
            code=reservation.code,
            trip_id=trip.id,
            user=user,
            seats=seats_requested,
            trip_state=trip.state.value,
        )
        return reservation

    async def close_trip_if_full(self, trip: Trip) -> Trip:
        """
        Transition the trip to CLOSED once its reserved seats reach
        `seats_offered`. No-op for a trip that is not OPEN.
        """
        current = await self._trips.get_by_id(trip.id)
        if not current.is_open:
            trip.state = current.state
            return trip

        reserved = await self._reservations.sum_seats_reserved_for_trip(current.id)
        if reserved >= current.seats_offered:
            current.close()
            await self._trips.update(current)
            record_trip_transition("closed", "full")
            logger.info("trip_closed", trip_id=current.id, reason="full", seats=current.seats_offered)

        trip.state = current.state
        return trip

    async def cancel_reservation(self, code: str) -> Reservation:
        """
        Remove a reservation and free its seats.
        A trip that was CLOSED stays CLOSED.
        """
        reservation = await self._reservations.get_by_id(code)
        async with self._trip_lock.hold(reservation.trip_id):
            await self._reservations.remove(reservation)

        logger.info(
            "reservation_cancelled",
            code=code,
            trip_id=reservation.trip_id,
            seats_released=reservation.seats_requested,
        )
        return reservation

    async def _discard(self, reservation: Reservation) -> None:
        try:
            await self._reservations.remove(reservation)
        except BookingError as e:
            # The caller still gets the original error
            logger.error("reservation_rollback_failed", code=reservation.code, error=str(e))
        else:
            logger.warning("reservation_rolled_back", code=reservation.code, trip_id=reservation.trip_id)
