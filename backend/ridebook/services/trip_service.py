"""
Trip lifecycle: publish, close, cancel and remove trips.
"""

from datetime import datetime
from decimal import Decimal

from ridebook.core.exceptions import TripNotAvailable
from ridebook.core.logging import get_logger
from ridebook.core.metrics import record_trip_transition
from ridebook.models.trip import Trip, TripState
from ridebook.services.interfaces.trip_lock import TripLock
from ridebook.stores.interfaces import ReservationStore, TripStore

logger = get_logger(__name__)


class TripService:

    def __init__(self, trips: TripStore, reservations: ReservationStore, trip_lock: TripLock):
        self._trips = trips
        self._reservations = reservations
        self._trip_lock = trip_lock

    async def publish_trip(
        self,
        owner: str,
        route: str,
        departure_at: datetime,
        duration_minutes: int,
        price: Decimal,
        seats_offered: int,
    ) -> Trip:
        """Create an OPEN trip. Its id is assigned by the Trip Store."""
        trip = Trip(
            owner=owner,
            route=route,
            departure_at=departure_at,
            duration_minutes=duration_minutes,
            price=price,
            seats_offered=seats_offered,
            state=TripState.OPEN,
        )
        trip = await self._trips.add(trip)
        logger.info("trip_published", trip_id=trip.id, owner=owner, route=route, seats=seats_offered)
        return trip

    async def close_trip(self, trip_id: int) -> Trip:
        """Owner stops taking reservations. Closing a closed trip is a no-op."""
        async with self._trip_lock.hold(trip_id):
            trip = await self._trips.get_by_id(trip_id)
            if trip.close():
                await self._trips.update(trip)
                record_trip_transition("closed", "owner")
                logger.info("trip_closed", trip_id=trip_id, reason="owner")
        return trip

    async def cancel_trip(self, trip_id: int) -> Trip:
        """OPEN -> CANCELLED. Existing reservations are kept for the record."""
        async with self._trip_lock.hold(trip_id):
            trip = await self._trips.get_by_id(trip_id)
            trip.cancel()
            await self._trips.update(trip)
        record_trip_transition("cancelled", "owner")
        logger.info("trip_cancelled", trip_id=trip_id)
        return trip

    async def remove_trip(self, trip_id: int) -> Trip:
        """Delete a trip that never received a reservation."""
        async with self._trip_lock.hold(trip_id):
            trip = await self._trips.get_by_id(trip_id)
            held = await self._reservations.count_for_trip(trip_id)
            if held:
                raise TripNotAvailable(
                    f"Trip {trip_id} has {held} reservation(s) and cannot be removed",
                    trip_id=trip_id,
                    reservations=held,
                )
            await self._trips.remove(trip)
        logger.info("trip_removed", trip_id=trip_id)
        return trip
