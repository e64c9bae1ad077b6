"""
Tests for reservation admission, seat accounting and trip closure.
"""

import pytest
from prometheus_client import REGISTRY

from ridebook.core.exceptions import (
    AdmissionRejected,
    DuplicateReservation,
    InsufficientSeats,
    InvalidSeatCount,
    ReservationNotFound,
    SelfBookingDenied,
    StoreFailure,
    TripNotAvailable,
    TripNotFound,
)
from ridebook.models.trip import TripState
from ridebook.services.booking_engine import BookingEngine


@pytest.mark.asyncio
async def test_ana_lopez_scenario(engine, queries, ana_trip):
    """Two riders fill the trip; the third finds it closed."""
    first = await engine.reserve(ana_trip.id, "Juan Perez", 2)
    assert first.code == f"{ana_trip.id}-1"
    trip = await queries.get_trip(ana_trip.id)
    assert trip.state == TripState.OPEN
    assert await queries.seats_available(ana_trip.id) == 1

    second = await engine.reserve(ana_trip.id, "Maria Gomez", 1)
    assert second.code == f"{ana_trip.id}-2"
    trip = await queries.get_trip(ana_trip.id)
    assert trip.state == TripState.CLOSED

    with pytest.raises(TripNotAvailable):
        await engine.reserve(ana_trip.id, "Luis Ruiz", 1)


@pytest.mark.asyncio
async def test_owner_cannot_book_own_trip(engine, ana_trip):
    with pytest.raises(SelfBookingDenied):
        await engine.admit_reservation(ana_trip.id, "Ana Lopez", 1)


@pytest.mark.asyncio
async def test_self_booking_checked_before_availability(engine, trip_service, ana_trip):
    await trip_service.close_trip(ana_trip.id)
    with pytest.raises(SelfBookingDenied):
        await engine.admit_reservation(ana_trip.id, "Ana Lopez", 0)


@pytest.mark.asyncio
async def test_unknown_trip(engine):
    with pytest.raises(TripNotFound):
        await engine.reserve(999, "Juan Perez", 1)


@pytest.mark.asyncio
async def test_closed_and_cancelled_trips_are_not_bookable(engine, trip_service, make_trip):
    closed = await make_trip()
    cancelled = await make_trip()
    await trip_service.close_trip(closed.id)
    await trip_service.cancel_trip(cancelled.id)

    for trip in (closed, cancelled):
        with pytest.raises(TripNotAvailable):
            await engine.admit_reservation(trip.id, "Juan Perez", 1)


@pytest.mark.asyncio
async def test_availability_checked_before_seat_count(engine, trip_service, ana_trip):
    await trip_service.cancel_trip(ana_trip.id)
    with pytest.raises(TripNotAvailable):
        await engine.admit_reservation(ana_trip.id, "Juan Perez", 0)


@pytest.mark.asyncio
@pytest.mark.parametrize("seats", [0, -1])
async def test_invalid_seat_count(engine, ana_trip, seats):
    with pytest.raises(InvalidSeatCount):
        await engine.reserve(ana_trip.id, "Juan Perez", seats)


@pytest.mark.asyncio
async def test_insufficient_seats(engine, ana_trip):
    with pytest.raises(InsufficientSeats) as exc_info:
        await engine.reserve(ana_trip.id, "Juan Perez", 4)
    assert exc_info.value.available == 3
    assert exc_info.value.requested == 4


@pytest.mark.asyncio
async def test_seats_checked_before_duplicate(engine, ana_trip):
    await engine.reserve(ana_trip.id, "Juan Perez", 1)
    with pytest.raises(InsufficientSeats):
        await engine.admit_reservation(ana_trip.id, "Juan Perez", 3)


@pytest.mark.asyncio
async def test_duplicate_reservation(engine, reservation_store, ana_trip):
    await engine.reserve(ana_trip.id, "Juan Perez", 1)
    with pytest.raises(DuplicateReservation):
        await engine.reserve(ana_trip.id, "Juan Perez", 1)
    assert len(await reservation_store.find_all_by_trip(ana_trip.id)) == 1


@pytest.mark.asyncio
async def test_rejections_share_a_base_class(engine, ana_trip):
    with pytest.raises(AdmissionRejected):
        await engine.reserve(ana_trip.id, "Ana Lopez", 1)


@pytest.mark.asyncio
async def test_admit_returns_trip_without_persisting(engine, reservation_store, ana_trip):
    trip = await engine.admit_reservation(ana_trip.id, "Juan Perez", 3)
    assert trip.id == ana_trip.id
    assert trip.state == TripState.OPEN
    assert await reservation_store.sum_seats_reserved_for_trip(ana_trip.id) == 0


@pytest.mark.asyncio
async def test_close_trip_if_full_is_idempotent(engine, trip_store, ana_trip):
    await engine.reserve(ana_trip.id, "Juan Perez", 3)
    trip = await trip_store.get_by_id(ana_trip.id)
    assert trip.state == TripState.CLOSED

    again = await engine.close_trip_if_full(trip)
    assert again.state == TripState.CLOSED


@pytest.mark.asyncio
async def test_close_trip_if_full_leaves_partial_trip_open(engine, ana_trip):
    await engine.reserve(ana_trip.id, "Juan Perez", 1)
    trip = await engine.close_trip_if_full(ana_trip)
    assert trip.state == TripState.OPEN


@pytest.mark.asyncio
async def test_cancel_reservation_frees_seats(engine, queries, ana_trip):
    reservation = await engine.reserve(ana_trip.id, "Juan Perez", 2)
    cancelled = await engine.cancel_reservation(reservation.code)
    assert cancelled.code == reservation.code
    assert await queries.seats_available(ana_trip.id) == 3

    with pytest.raises(ReservationNotFound):
        await queries.find_reservation(reservation.code)


@pytest.mark.asyncio
async def test_cancel_does_not_reopen_closed_trip(engine, queries, ana_trip):
    reservation = await engine.reserve(ana_trip.id, "Juan Perez", 3)
    await engine.cancel_reservation(reservation.code)

    trip = await queries.get_trip(ana_trip.id)
    assert trip.state == TripState.CLOSED
    assert await queries.seats_available(ana_trip.id) == 3
    with pytest.raises(TripNotAvailable):
        await engine.reserve(ana_trip.id, "Maria Gomez", 1)


@pytest.mark.asyncio
async def test_cancel_unknown_reservation(engine):
    with pytest.raises(ReservationNotFound):
        await engine.cancel_reservation("1-99")


@pytest.mark.asyncio
async def test_codes_skip_past_cancelled_gaps(engine, make_trip):
    trip = await make_trip(seats=5)
    first = await engine.reserve(trip.id, "Juan Perez", 1)
    await engine.reserve(trip.id, "Maria Gomez", 1)
    await engine.cancel_reservation(first.code)

    # One reservation left, so count+1 would reuse the live code "<id>-2"
    third = await engine.reserve(trip.id, "Luis Ruiz", 1)
    assert third.code == f"{trip.id}-3"


class FailingUpdateTripStore:
    """Delegates to a real store but fails every update."""

    def __init__(self, inner):
        self._inner = inner

    def __getattr__(self, name):
        return getattr(self._inner, name)

    async def update(self, trip):
        raise StoreFailure("update failed")


@pytest.mark.asyncio
async def test_failed_closure_rolls_back_reservation(trip_store, reservation_store, trip_lock, ana_trip):
    engine = BookingEngine(FailingUpdateTripStore(trip_store), reservation_store, trip_lock)

    with pytest.raises(StoreFailure):
        await engine.reserve(ana_trip.id, "Juan Perez", 3)

    assert await reservation_store.find_all_by_trip(ana_trip.id) == []
    assert (await trip_store.get_by_id(ana_trip.id)).state == TripState.OPEN


def admission_count(result: str) -> float:
    return REGISTRY.get_sample_value("ridebook_admission_decisions_total", {"result": result}) or 0.0


@pytest.mark.asyncio
async def test_admission_decisions_are_counted(engine, ana_trip):
    admitted = admission_count("admitted")
    denied = admission_count("self_booking_denied")

    await engine.reserve(ana_trip.id, "Juan Perez", 1)
    with pytest.raises(SelfBookingDenied):
        await engine.reserve(ana_trip.id, "Ana Lopez", 1)

    assert admission_count("admitted") == admitted + 1
    assert admission_count("self_booking_denied") == denied + 1
