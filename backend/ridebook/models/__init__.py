from ridebook.models.trip import Trip, TripState
from ridebook.models.reservation import Reservation, reservation_code

__all__ = ["Trip", "TripState", "Reservation", "reservation_code"]
