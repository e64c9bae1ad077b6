"""
Tests for the trip lifecycle: publish, close, cancel, remove.
"""

from decimal import Decimal

import pytest

from ridebook.core.exceptions import InvalidSeatCount, TripNotAvailable, TripNotFound
from ridebook.models.trip import TripState


@pytest.mark.asyncio
async def test_publish_assigns_store_ids(make_trip):
    first = await make_trip()
    second = await make_trip()
    assert first.state == TripState.OPEN
    assert first.id == 1
    assert second.id == 2


@pytest.mark.asyncio
async def test_publish_rejects_zero_seats(trip_service, trip_store):
    with pytest.raises(InvalidSeatCount):
        await trip_service.publish_trip(
            owner="Ana Lopez",
            route="Alcoy - Valencia",
            departure_at=None,
            duration_minutes=90,
            price=Decimal("10"),
            seats_offered=0,
        )
    assert await trip_store.find_all() == set()


@pytest.mark.asyncio
async def test_close_trip(trip_service, trip_store, ana_trip):
    closed = await trip_service.close_trip(ana_trip.id)
    assert closed.state == TripState.CLOSED
    assert (await trip_store.get_by_id(ana_trip.id)).state == TripState.CLOSED

    again = await trip_service.close_trip(ana_trip.id)
    assert again.state == TripState.CLOSED


@pytest.mark.asyncio
async def test_cancel_trip(trip_service, trip_store, ana_trip):
    await trip_service.cancel_trip(ana_trip.id)
    assert (await trip_store.get_by_id(ana_trip.id)).state == TripState.CANCELLED

    with pytest.raises(TripNotAvailable):
        await trip_service.cancel_trip(ana_trip.id)
    with pytest.raises(TripNotAvailable):
        await trip_service.close_trip(ana_trip.id)


@pytest.mark.asyncio
async def test_cancel_keeps_reservations(engine, trip_service, queries, ana_trip):
    await engine.reserve(ana_trip.id, "Juan Perez", 1)
    await trip_service.cancel_trip(ana_trip.id)
    assert len(await queries.list_reservations_for_trip(ana_trip.id)) == 1


@pytest.mark.asyncio
async def test_closed_trip_cannot_be_cancelled(trip_service, ana_trip):
    await trip_service.close_trip(ana_trip.id)
    with pytest.raises(TripNotAvailable):
        await trip_service.cancel_trip(ana_trip.id)


@pytest.mark.asyncio
async def test_lifecycle_on_unknown_trip(trip_service):
    with pytest.raises(TripNotFound):
        await trip_service.close_trip(9)
    with pytest.raises(TripNotFound):
        await trip_service.cancel_trip(9)
    with pytest.raises(TripNotFound):
        await trip_service.remove_trip(9)


@pytest.mark.asyncio
async def test_remove_trip_without_reservations(trip_service, trip_store, ana_trip):
    await trip_service.remove_trip(ana_trip.id)
    assert await trip_store.find_by_id(ana_trip.id) is None


@pytest.mark.asyncio
async def test_remove_trip_with_reservations_is_refused(engine, trip_service, trip_store, ana_trip):
    await engine.reserve(ana_trip.id, "Juan Perez", 1)
    with pytest.raises(TripNotAvailable):
        await trip_service.remove_trip(ana_trip.id)
    assert await trip_store.find_by_id(ana_trip.id) is not None
