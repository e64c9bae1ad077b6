from ridebook.services.booking_engine import BookingEngine
from ridebook.services.query_service import TripQueryService
from ridebook.services.trip_service import TripService

__all__ = ["BookingEngine", "TripQueryService", "TripService"]
