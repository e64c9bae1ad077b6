from ridebook.stores.interfaces import ReservationStore, TripStore
from ridebook.stores.memory import InMemoryReservationStore, InMemoryTripStore
from ridebook.stores.sql import SqlReservationStore, SqlTripStore

__all__ = [
    "TripStore", "ReservationStore",
    "InMemoryTripStore", "InMemoryReservationStore",
    "SqlTripStore", "SqlReservationStore",
]
