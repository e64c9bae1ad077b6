"""
Trip entity: a published ride with fixed seat capacity and schedule.

Key design decisions:
- `id` is None until the Trip Store assigns one on `add`
- `seats_offered` is fixed at creation; remaining seats are always derived
  from the Reservation Store, never stored on the trip
- `has_reservations` is informational, filled in by the query layer
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from ridebook.core.exceptions import InvalidSeatCount, InvalidTripData, TripNotAvailable


class TripState(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


@dataclass(eq=False)
class Trip:
    owner: str
    route: str
    departure_at: datetime
    duration_minutes: int
    price: Decimal
    seats_offered: int
    state: TripState = TripState.OPEN
    id: Optional[int] = None
    has_reservations: bool = False

    def __post_init__(self) -> None:
        if self.seats_offered < 1:
            raise InvalidSeatCount(
                f"seats_offered must be at least 1, got {self.seats_offered}",
                seats_offered=self.seats_offered,
            )
        if self.duration_minutes < 1:
            raise InvalidTripData(
                f"duration_minutes must be positive, got {self.duration_minutes}",
                duration_minutes=self.duration_minutes,
            )
        try:
            self.price = Decimal(str(self.price))
        except InvalidOperation as e:
            raise InvalidTripData(f"price is not a number: {self.price!r}", price=str(self.price)) from e
        if not self.price.is_finite() or self.price <= 0:
            raise InvalidTripData(f"price must be positive, got {self.price}", price=str(self.price))
        self.state = TripState(self.state)

    @property
    def is_open(self) -> bool:
        return self.state == TripState.OPEN

    def close(self) -> bool:
        """
        OPEN -> CLOSED. Returns False when the trip was already closed.
        A cancelled trip cannot be closed.
        """
        if self.state == TripState.CLOSED:
            return False
        if self.state == TripState.CANCELLED:
            raise TripNotAvailable(f"Trip {self.id} is cancelled", trip_id=self.id)
        self.state = TripState.CLOSED
        return True

    def cancel(self) -> None:
        """OPEN -> CANCELLED."""
        if self.state != TripState.OPEN:
            raise TripNotAvailable(
                f"Trip {self.id} is {self.state.value} and cannot be cancelled",
                trip_id=self.id,
                state=self.state.value,
            )
        self.state = TripState.CANCELLED

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Trip):
            return NotImplemented
        if self.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(("trip", self.id))

    def __repr__(self) -> str:
        return f"<Trip(id={self.id}, route={self.route}, seats={self.seats_offered}, state={self.state.value})>"
