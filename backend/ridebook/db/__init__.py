from ridebook.db.base import Base, TimestampMixin
from ridebook.db.tables import ReservationRow, TripRow

__all__ = ["Base", "TimestampMixin", "TripRow", "ReservationRow"]
