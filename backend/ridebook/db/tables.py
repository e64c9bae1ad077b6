"""
Relational mapping for trips and reservations.

Key design decisions:
- Trip ids come from the database sequence (autoincrement), never from a count
- Unique constraint on (user, trip_id) prevents duplicate reservations
- CHECK constraints keep seat counts positive even if a caller bypasses the engine
- Rows are converted to detached domain objects before leaving a store
"""

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)

from ridebook.db.base import Base, TimestampMixin
from ridebook.models.reservation import Reservation
from ridebook.models.trip import Trip, TripState

UNIQUE_USER_TRIP = "uq_user_trip_reservation"


class TripRow(Base, TimestampMixin):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner = Column(String(255), nullable=False, index=True)
    route = Column(String(255), nullable=False)
    departure_at = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    seats_offered = Column(Integer, nullable=False)
    state = Column(String(20), nullable=False, default=TripState.OPEN.value)

    __table_args__ = (
        CheckConstraint("seats_offered >= 1", name="check_seats_offered_positive"),
        CheckConstraint("duration_minutes > 0", name="check_duration_positive"),
        CheckConstraint("price > 0", name="check_price_positive"),
        CheckConstraint("state IN ('OPEN', 'CLOSED', 'CANCELLED')", name="check_trip_state"),
        Index("ix_trips_state", "state"),
        # Removed trip ids are never reused
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<TripRow(id={self.id}, route={self.route}, state={self.state})>"


class ReservationRow(Base, TimestampMixin):
    __tablename__ = "reservations"

    code = Column(String(64), primary_key=True)
    user = Column(String(255), nullable=False, index=True)
    seats_requested = Column(Integer, nullable=False)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("user", "trip_id", name=UNIQUE_USER_TRIP),
        CheckConstraint("seats_requested > 0", name="check_seats_requested_positive"),
    )

    def __repr__(self) -> str:
        return f"<ReservationRow(code={self.code}, user={self.user}, trip={self.trip_id})>"


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def trip_from_row(row: TripRow) -> Trip:
    return Trip(
        id=row.id,
        owner=row.owner,
        route=row.route,
        departure_at=_as_utc(row.departure_at),
        duration_minutes=row.duration_minutes,
        price=row.price,
        seats_offered=row.seats_offered,
        state=TripState(row.state),
    )


def trip_to_row(trip: Trip, row: TripRow = None) -> TripRow:
    row = row if row is not None else TripRow()
    row.owner = trip.owner
    row.route = trip.route
    row.departure_at = trip.departure_at
    row.duration_minutes = trip.duration_minutes
    row.price = trip.price
    row.seats_offered = trip.seats_offered
    row.state = trip.state.value
    return row


def reservation_from_row(row: ReservationRow) -> Reservation:
    return Reservation(
        code=row.code,
        user=row.user,
        seats_requested=row.seats_requested,
        trip_id=row.trip_id,
        created_at=_as_utc(row.created_at),
    )


def reservation_to_row(reservation: Reservation, row: ReservationRow = None) -> ReservationRow:
    row = row if row is not None else ReservationRow(code=reservation.code)
    row.user = reservation.user
    row.seats_requested = reservation.seats_requested
    row.trip_id = reservation.trip_id
    row.created_at = reservation.created_at
    return row
