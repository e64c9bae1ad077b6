"""
Typed errors raised by the booking core.

Every failure the request-handling layer must tell apart has its own class and
a stable ``code``. Nothing in the core returns ``None`` or an empty result in
place of one of these.
"""

from typing import Optional


class BookingError(Exception):
    """Base for every error surfaced by the booking core."""

    code = "booking_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.context = context


class InvalidTripData(BookingError):
    """A trip was built with out-of-range duration or price."""

    code = "invalid_trip_data"


class NotFoundError(BookingError):
    code = "not_found"


class TripNotFound(NotFoundError):
    code = "trip_not_found"

    def __init__(self, trip_id: Optional[int]):
        super().__init__(f"Trip {trip_id} not found", trip_id=trip_id)
        self.trip_id = trip_id


class ReservationNotFound(NotFoundError):
    code = "reservation_not_found"

    def __init__(self, reservation_code: str):
        super().__init__(f"Reservation {reservation_code} not found", reservation_code=reservation_code)
        self.reservation_code = reservation_code


class AdmissionRejected(BookingError):
    """A reservation request broke one of the admission rules."""

    code = "admission_rejected"


class SelfBookingDenied(AdmissionRejected):
    code = "self_booking_denied"


class TripNotAvailable(AdmissionRejected):
    code = "trip_not_available"


class InvalidSeatCount(AdmissionRejected):
    code = "invalid_seat_count"


class InsufficientSeats(AdmissionRejected):
    code = "insufficient_seats"

    def __init__(self, trip_id: int, requested: int, available: int):
        super().__init__(
            f"Not enough seats. Requested: {requested}, Available: {available}",
            trip_id=trip_id,
            requested=requested,
            available=available,
        )
        self.requested = requested
        self.available = available


class DuplicateReservation(AdmissionRejected):
    code = "duplicate_reservation"


class StoreFailure(BookingError):
    """
    Wraps any persistence-level error (driver error, timeout, lock timeout).
    The original exception is chained as ``__cause__``.
    """

    code = "store_failure"
