"""
Reservation entity: a rider's claim on seats of one trip.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from ridebook.core.exceptions import InvalidSeatCount


def reservation_code(trip_id: int, sequence: int) -> str:
    return f"{trip_id}-{sequence}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class Reservation:
    code: str
    user: str
    seats_requested: int
    trip_id: int
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.seats_requested < 1:
            raise InvalidSeatCount(
                f"seats_requested must be at least 1, got {self.seats_requested}",
                seats_requested=self.seats_requested,
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Reservation):
            return NotImplemented
        return self.code == other.code

    def __hash__(self) -> int:
        return hash(("reservation", self.code))

    def __repr__(self) -> str:
        return f"<Reservation(code={self.code}, user={self.user}, trip={self.trip_id}, seats={self.seats_requested})>"
