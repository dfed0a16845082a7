from __future__ import annotations

import pytest

from src.scheduling.errors import TransientError
from src.scheduling.models import UNCATEGORIZED
from tests.helpers import booking, teacher


@pytest.mark.asyncio
async def test_bookings_are_cached_until_mutation(store, source) -> None:
    source.bookings = [booking(1, 1, "09:00", "10:00")]

    first = await store.get_bookings("2024-06-10", "2024-06-10")
    second = await store.get_bookings("2024-06-10", "2024-06-10")
    assert first == second
    assert source.calls["bookings"] == 1

    source.bookings.append(booking(2, 1, "11:00", "12:00"))
    store.record_mutated(2)
    third = await store.get_bookings("2024-06-10", "2024-06-10")
    assert [r.id for r in third] == [1, 2]
    assert source.calls["bookings"] == 2


@pytest.mark.asyncio
async def test_booking_filters(store, source) -> None:
    source.bookings = [
        booking(1, 1, "09:00", "10:00", course_id=1),
        booking(2, 2, "09:00", "10:00", status="cancelled", course_id=2),
        booking(3, 1, "09:00", "10:00", date="2024-06-12"),
        booking(4, 2, "09:00", "10:00", date="not a date"),
    ]

    everything = await store.get_bookings("2024-06-10", "2024-06-11")
    assert [r.id for r in everything] == [1, 2]

    by_teacher = await store.get_bookings("2024-06-10", "2024-06-12", resource_id=1)
    assert [r.id for r in by_teacher] == [1, 3]

    by_status = await store.get_bookings("2024-06-10", "2024-06-12", status="cancelled")
    assert [r.id for r in by_status] == [2]

    by_type = await store.get_bookings("2024-06-10", "2024-06-12", type_id=1)
    assert [r.id for r in by_type] == [1]


@pytest.mark.asyncio
async def test_bookings_use_type_catalog(store, source) -> None:
    source.types = [{"id": 1, "name": "visit", "description": "入户"}]
    source.bookings = [booking(1, 1, "09:00", "10:00", course_id=1), booking(2, 1, "11:00", "12:00")]

    records = await store.get_bookings("2024-06-10", "2024-06-10")

    assert [r.type_label for r in records] == ["入户", UNCATEGORIZED]


@pytest.mark.asyncio
async def test_catalog_failure_degrades_to_empty_catalog(store, source, notices) -> None:
    source.failing.add("types")
    source.bookings = [booking(1, 1, "09:00", "10:00", course_id=1)]

    records = await store.get_bookings("2024-06-10", "2024-06-10")

    assert records[0].type_label == UNCATEGORIZED
    assert len(notices.active()) == 1


@pytest.mark.asyncio
async def test_resources_served_stale_when_refresh_fails(store, source, clock, notices) -> None:
    source.resources = [teacher(1, "A")]
    await store.get_resources()

    clock.advance(store.config.resource_ttl_seconds + 1)
    source.failing.add("resources")

    resources = await store.get_resources()
    assert [r.id for r in resources] == [1]
    assert source.calls["resources"] == 2
    assert notices.active()


@pytest.mark.asyncio
async def test_availability_is_scoped_to_form_session(store, source) -> None:
    source.availability = [{"id": 1, "availability": {"2024-06-10": {"morning": False}}}]

    await store.get_availability("2024-06-10")
    await store.get_availability("2024-06-10")
    assert source.calls["availability"] == 1

    store.begin_form_session()
    await store.get_availability("2024-06-10")
    assert source.calls["availability"] == 2


@pytest.mark.asyncio
async def test_availability_is_never_served_stale(store, source, clock) -> None:
    await store.get_availability("2024-06-10")
    clock.advance(store.config.availability_ttl_seconds + 1)
    source.failing.add("availability")

    with pytest.raises(TransientError):
        await store.get_availability("2024-06-10")


@pytest.mark.asyncio
async def test_dispose_then_init(store, source) -> None:
    source.resources = [teacher(1, "A")]
    await store.get_resources()
    store.dispose()
    store.init()

    await store.get_resources()
    assert source.calls["resources"] == 2
