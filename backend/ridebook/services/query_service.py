"""
Read-side lookups over trips and reservations.
"""

from typing import Iterable

from ridebook.models.reservation import Reservation, reservation_code
from ridebook.models.trip import Trip
from ridebook.stores.interfaces import ReservationStore, TripStore


class TripQueryService:

    def __init__(self, trips: TripStore, reservations: ReservationStore):
        self._trips = trips
        self._reservations = reservations

    async def _with_reservation_flags(self, trips: Iterable[Trip]) -> set[Trip]:
        trips = set(trips)
        for trip in trips:
            trip.has_reservations = await self._reservations.count_for_trip(trip.id) > 0
        return trips

    async def list_trips(self) -> set[Trip]:
        """All trips, with `has_reservations` recomputed."""
        return await self._with_reservation_flags(await self._trips.find_all())

    async def find_trips_by_destination(self, text: str) -> set[Trip]:
        """
        Trips whose route contains `text`. Matching is a substring search with
        the collation of the underlying store. Empty text lists every trip.
        """
        if not text:
            return await self.list_trips()
        return await self._with_reservation_flags(await self._trips.find_by_route_substring(text))

    async def get_trip(self, trip_id: int) -> Trip:
        trip = await self._trips.get_by_id(trip_id)
        trip.has_reservations = await self._reservations.count_for_trip(trip_id) > 0
        return trip

    async def seats_available(self, trip_id: int) -> int:
        trip = await self._trips.get_by_id(trip_id)
        return trip.seats_offered - await self._reservations.sum_seats_reserved_for_trip(trip_id)

    async def find_reservation(self, code: str) -> Reservation:
        return await self._reservations.get_by_id(code)

    async def list_reservations_for_trip(self, trip_id: int) -> list[Reservation]:
        await self._trips.get_by_id(trip_id)
        return await self._reservations.find_all_by_trip(trip_id)

    async def list_reservations_for_user(self, user: str) -> list[Reservation]:
        return await self._reservations.find_all_by_user(user)

    async def search_reservations(self, trip_id: int, text: str) -> list[Reservation]:
        """Reservations on a trip whose user or code contains `text`."""
        await self._trips.get_by_id(trip_id)
        if not text:
            return await self._reservations.find_all_by_trip(trip_id)
        return await self._reservations.search_by_trip(trip_id, text)

    async def generate_reservation_code(self, trip_id: int) -> str:
        """
        "<trip_id>-<n>" with n = existing reservations + 1.

        Must run inside the trip's critical section. After cancellations the
        count can point at a code that is still taken, so n moves forward
        until it is free.
        """
        sequence = await self._reservations.count_for_trip(trip_id) + 1
        code = reservation_code(trip_id, sequence)
        while await self._reservations.find_by_id(code) is not None:
            sequence += 1
            code = reservation_code(trip_id, sequence)
        return code
