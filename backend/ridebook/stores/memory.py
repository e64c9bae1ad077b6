"""
In-memory store implementations.

Each call yields to the event loop once, the way a real driver round-trip
would, so unsynchronized read-check-write sequences interleave exactly as they
would against a database.
"""

import asyncio
import itertools
from dataclasses import replace
from typing import Optional

from ridebook.core.exceptions import DuplicateReservation, ReservationNotFound, TripNotFound
from ridebook.core.metrics import record_store_operation
from ridebook.models.reservation import Reservation
from ridebook.models.trip import Trip, TripState
from ridebook.stores.interfaces import ReservationStore, TripStore


def _ordered(reservations) -> list[Reservation]:
    return sorted(reservations, key=lambda r: (r.created_at, r.code))


class InMemoryTripStore(TripStore):

    def __init__(self):
        self._trips: dict[int, Trip] = {}
        self._ids = itertools.count(1)

    async def _io(self, operation: str) -> None:
        record_store_operation("memory_trips", operation)
        await asyncio.sleep(0)

    async def find_all(self) -> set[Trip]:
        await self._io("find_all")
        return {replace(t) for t in self._trips.values()}

    async def find_by_route_substring(self, text: str) -> set[Trip]:
        await self._io("find_by_route")
        return {replace(t) for t in self._trips.values() if text in t.route}

    async def find_by_state(self, state: TripState) -> set[Trip]:
        await self._io("find_by_state")
        return {replace(t) for t in self._trips.values() if t.state == state}

    async def find_by_id(self, trip_id: int) -> Optional[Trip]:
        await self._io("find_by_id")
        trip = self._trips.get(trip_id)
        return replace(trip) if trip else None

    async def add(self, trip: Trip) -> Trip:
        await self._io("add")
        stored = replace(trip, id=next(self._ids), has_reservations=False)
        self._trips[stored.id] = stored
        trip.id = stored.id
        return replace(stored)

    async def update(self, trip: Trip) -> None:
        await self._io("update")
        if trip.id not in self._trips:
            raise TripNotFound(trip.id)
        self._trips[trip.id] = replace(trip, has_reservations=False)

    async def remove(self, trip: Trip) -> None:
        await self._io("remove")
        if self._trips.pop(trip.id, None) is None:
            raise TripNotFound(trip.id)


class InMemoryReservationStore(ReservationStore):

    def __init__(self):
        self._reservations: dict[str, Reservation] = {}

    async def _io(self, operation: str) -> None:
        record_store_operation("memory_reservations", operation)
        await asyncio.sleep(0)

    def _for_trip(self, trip_id: int) -> list[Reservation]:
        return [r for r in self._reservations.values() if r.trip_id == trip_id]

    async def find_all(self) -> set[Reservation]:
        await self._io("find_all")
        return {replace(r) for r in self._reservations.values()}

    async def find_by_id(self, code: str) -> Optional[Reservation]:
        await self._io("find_by_id")
        reservation = self._reservations.get(code)
        return replace(reservation) if reservation else None

    async def find_all_by_user(self, user: str) -> list[Reservation]:
        await self._io("find_all_by_user")
        return _ordered(replace(r) for r in self._reservations.values() if r.user == user)

    async def find_all_by_trip(self, trip_id: int) -> list[Reservation]:
        await self._io("find_all_by_trip")
        return _ordered(replace(r) for r in self._for_trip(trip_id))

    async def find_by_user_and_trip(self, user: str, trip_id: int) -> Optional[Reservation]:
        await self._io("find_by_user_and_trip")
        for reservation in self._for_trip(trip_id):
            if reservation.user == user:
                return replace(reservation)
        return None

    async def search_by_trip(self, trip_id: int, text: str) -> list[Reservation]:
        await self._io("search_by_trip")
        return _ordered(
            replace(r) for r in self._for_trip(trip_id) if text in r.user or text in r.code
        )

    async def count_for_trip(self, trip_id: int) -> int:
        await self._io("count_for_trip")
        return len(self._for_trip(trip_id))

    async def sum_seats_reserved_for_trip(self, trip_id: int) -> int:
        await self._io("sum_seats")
        return sum(r.seats_requested for r in self._for_trip(trip_id))

    async def add(self, reservation: Reservation) -> None:
        await self._io("add")
        if reservation.code in self._reservations:
            raise DuplicateReservation(
                f"Reservation code {reservation.code} already exists", code=reservation.code
            )
        for existing in self._for_trip(reservation.trip_id):
            if existing.user == reservation.user:
                raise DuplicateReservation(
                    f"{reservation.user} already has a reservation on trip {reservation.trip_id}",
                    user=reservation.user,
                    trip_id=reservation.trip_id,
                )
        self._reservations[reservation.code] = replace(reservation)

    async def update(self, reservation: Reservation) -> None:
        await self._io("update")
        if reservation.code not in self._reservations:
            raise ReservationNotFound(reservation.code)
        self._reservations[reservation.code] = replace(reservation)

    async def remove(self, reservation: Reservation) -> None:
        await self._io("remove")
        if self._reservations.pop(reservation.code, None) is None:
            raise ReservationNotFound(reservation.code)
