"""
Store contracts consumed by the booking core.
Allows swapping persistence engines without changing business logic.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ridebook.core.exceptions import ReservationNotFound, TripNotFound
from ridebook.models.reservation import Reservation
from ridebook.models.trip import Trip, TripState


class TripStore(ABC):
    """
    Exclusive owner of Trip persistence.

    Implementations:
    - InMemoryTripStore: process-local dict, used in tests and single-node setups
    - SqlTripStore: SQLAlchemy async sessions against the `trips` table

    Every lookup returns detached copies; changes reach the store only
    through `update`.
    """

    @abstractmethod
    async def find_all(self) -> set[Trip]:
        pass

    @abstractmethod
    async def find_by_route_substring(self, text: str) -> set[Trip]:
        """Trips whose route contains `text`. Collation is store-defined."""
        pass

    @abstractmethod
    async def find_by_state(self, state: TripState) -> set[Trip]:
        pass

    @abstractmethod
    async def find_by_id(self, trip_id: int) -> Optional[Trip]:
        pass

    async def get_by_id(self, trip_id: int) -> Trip:
        trip = await self.find_by_id(trip_id)
        if trip is None:
            raise TripNotFound(trip_id)
        return trip

    @abstractmethod
    async def add(self, trip: Trip) -> Trip:
        """
        Persist a new trip. The store assigns a unique, monotonically
        increasing id and returns the trip carrying it.
        """
        pass

    @abstractmethod
    async def update(self, trip: Trip) -> None:
        """Raises TripNotFound if the id is absent."""
        pass

    @abstractmethod
    async def remove(self, trip: Trip) -> None:
        """Raises TripNotFound if the id is absent."""
        pass


class ReservationStore(ABC):
    """
    Exclusive owner of Reservation persistence.

    Ordered lookups return reservations by `created_at`, then `code`.
    """

    @abstractmethod
    async def find_all(self) -> set[Reservation]:
        pass

    @abstractmethod
    async def find_by_id(self, code: str) -> Optional[Reservation]:
        pass

    async def get_by_id(self, code: str) -> Reservation:
        reservation = await self.find_by_id(code)
        if reservation is None:
            raise ReservationNotFound(code)
        return reservation

    @abstractmethod
    async def find_all_by_user(self, user: str) -> list[Reservation]:
        pass

    @abstractmethod
    async def find_all_by_trip(self, trip_id: int) -> list[Reservation]:
        pass

    @abstractmethod
    async def find_by_user_and_trip(self, user: str, trip_id: int) -> Optional[Reservation]:
        pass

    @abstractmethod
    async def search_by_trip(self, trip_id: int, text: str) -> list[Reservation]:
        """Reservations of one trip whose user or code contains `text`."""
        pass

    @abstractmethod
    async def count_for_trip(self, trip_id: int) -> int:
        pass

    @abstractmethod
    async def sum_seats_reserved_for_trip(self, trip_id: int) -> int:
        """Total seats held on the trip, 0 if it has no reservations."""
        pass

    @abstractmethod
    async def add(self, reservation: Reservation) -> None:
        """Raises DuplicateReservation if the code or (user, trip) pair exists."""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> None:
        """Raises ReservationNotFound if the code is absent."""
        pass

    @abstractmethod
    async def remove(self, reservation: Reservation) -> None:
        """Raises ReservationNotFound if the code is absent."""
        pass
