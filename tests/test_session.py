from __future__ import annotations

import asyncio

import pytest

from src.scheduling.intervals import TimeInterval
from src.scheduling.resolver import ConflictResolver, Resolution
from src.scheduling.session import PickerSession
from tests.helpers import booking, teacher


class RecordingPicker:
    def __init__(self) -> None:
        self.events: list[tuple] = []
        self.populated: list[Resolution] = []

    def set_interactive(self, enabled: bool) -> None:
        self.events.append(("interactive", enabled))

    def populate(self, resolution: Resolution) -> None:
        self.events.append(("populate", resolution.date))
        self.populated.append(resolution)


class GatedResolver(ConflictResolver):
    """Holds resolutions for a date until its gate is opened."""

    def __init__(self, store) -> None:
        super().__init__(store)
        self.gates: dict[str, asyncio.Event] = {}
        self.failures: dict[str, Exception] = {}

    async def resolve(self, date, interval, exclude_record_id=None):
        gate = self.gates.get(date)
        if gate is not None:
            await gate.wait()
        if date in self.failures:
            raise self.failures[date]
        return await super().resolve(date, interval, exclude_record_id)


@pytest.fixture
def picker() -> RecordingPicker:
    return RecordingPicker()


@pytest.fixture
def resolver(store, source) -> GatedResolver:
    source.resources = [teacher(1, "T1"), teacher(2, "T2")]
    source.bookings = [booking(10, 1, "09:30", "10:30")]
    return GatedResolver(store)


@pytest.mark.asyncio
async def test_refresh_disables_then_populates_and_enables(resolver, picker) -> None:
    session = PickerSession(resolver, picker)

    result = await session.refresh("2024-06-10", "9：00", "10点00分")

    assert result.interval == TimeInterval.parse("09:00", "10:00")
    assert result.busy == {1}
    assert picker.events == [
        ("interactive", False),
        ("populate", "2024-06-10"),
        ("interactive", True),
    ]


@pytest.mark.asyncio
async def test_superseded_resolution_is_discarded(resolver, picker) -> None:
    session = PickerSession(resolver, picker)
    resolver.gates["2024-06-10"] = asyncio.Event()

    first = asyncio.create_task(session.refresh("2024-06-10", "09:00", "10:00"))
    await asyncio.sleep(0)
    second = await session.refresh("2024-06-11", "09:00", "10:00")
    resolver.gates["2024-06-10"].set()

    assert await first is None
    assert second.date == "2024-06-11"
    assert [r.date for r in picker.populated] == ["2024-06-11"]
    assert picker.events[-1] == ("interactive", True)
    assert session.generation == 2


@pytest.mark.asyncio
async def test_incomplete_form_still_populates_everyone(resolver, picker, source) -> None:
    session = PickerSession(resolver, picker)

    result = await session.refresh("2024-06-10", "09:00", "")

    assert result.interval is None
    assert result.busy == set()
    assert [r.id for r in picker.populated[0].candidates] == [1, 2]
    assert source.calls["bookings"] == 0


@pytest.mark.asyncio
async def test_open_starts_a_new_form_session(resolver, picker, source) -> None:
    session = PickerSession(resolver, picker)

    await session.open("2024-06-10", "09:00", "10:00")
    await session.refresh("2024-06-10", "10:00", "11:00")
    assert source.calls["availability"] == 1

    await session.open("2024-06-10", "09:00", "10:00")
    assert source.calls["availability"] == 2


@pytest.mark.asyncio
async def test_broken_data_source_still_populates_picker(resolver, picker, source, notices) -> None:
    session = PickerSession(resolver, picker)
    source.errors["bookings"] = ConnectionResetError("socket closed")

    result = await session.refresh("2024-06-10", "09:00", "10:00")

    assert result.degraded
    assert result.busy == set()
    assert result.unavailable == set()
    assert len(notices.active()) == 1
    assert picker.events == [
        ("interactive", False),
        ("populate", "2024-06-10"),
        ("interactive", True),
    ]


@pytest.mark.asyncio
async def test_superseded_failure_is_dropped(resolver, picker) -> None:
    session = PickerSession(resolver, picker)
    resolver.gates["2024-06-10"] = asyncio.Event()
    resolver.failures["2024-06-10"] = RuntimeError("late failure")

    first = asyncio.create_task(session.refresh("2024-06-10", "09:00", "10:00"))
    await asyncio.sleep(0)
    second = await session.refresh("2024-06-11", "09:00", "10:00")
    resolver.gates["2024-06-10"].set()

    assert await first is None
    assert [r.date for r in picker.populated] == [second.date]
    assert picker.events[-1] == ("interactive", True)
