"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .trip_lock import TripLock
from .local_trip_lock import LocalTripLock

__all__ = ['TripLock', 'LocalTripLock']
