"""Test doubles shared by the test modules."""

from __future__ import annotations

from collections import Counter
from typing import Any

from src.scheduling.errors import TransientError


class ManualClock:
    """Epoch-milliseconds clock advanced by hand."""

    def __init__(self, start_ms: float = 1_700_000_000_000.0) -> None:
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += seconds * 1000

    def seconds(self) -> float:
        return self.now_ms / 1000


class FakeSource:
    """In-memory DataSource.

    Names in ``failing`` raise TransientError; ``errors`` maps a name to any
    other exception to raise instead.
    """

    def __init__(
        self,
        bookings: list[dict[str, Any]] | None = None,
        resources: list[dict[str, Any]] | None = None,
        availability: Any = None,
        types: list[dict[str, Any]] | None = None,
    ) -> None:
        self.bookings = bookings if bookings is not None else []
        self.resources = resources if resources is not None else []
        self.availability = availability if availability is not None else []
        self.types = types if types is not None else []
        self.failing: set[str] = set()
        self.errors: dict[str, Exception] = {}
        self.calls: Counter[str] = Counter()

    def _hit(self, name: str) -> None:
        self.calls[name] += 1
        if name in self.errors:
            raise self.errors[name]
        if name in self.failing:
            raise TransientError(f"{name} endpoint unreachable")

    async def fetch_bookings(self, start_date: str, end_date: str) -> Any:
        self._hit("bookings")
        return list(self.bookings)

    async def fetch_resources(self) -> Any:
        self._hit("resources")
        return {"data": list(self.resources)}

    async def fetch_availability(self, start_date: str, end_date: str) -> Any:
        self._hit("availability")
        return self.availability

    async def fetch_schedule_types(self) -> Any:
        self._hit("types")
        return list(self.types)


def booking(
    id: int,
    teacher_id: int,
    start: str,
    end: str,
    date: str = "2024-06-10",
    status: str = "confirmed",
    **extra: Any,
) -> dict[str, Any]:
    row = {
        "id": id,
        "teacher_id": teacher_id,
        "student_id": 900 + id,
        "date": date,
        "start_time": start,
        "end_time": end,
        "status": status,
        "location": "",
    }
    row.update(extra)
    return row


def teacher(id: int, name: str, status: int = 1, restriction: int | None = 1) -> dict[str, Any]:
    row: dict[str, Any] = {"id": id, "name": name, "status": status}
    if restriction is not None:
        row["restriction"] = restriction
    return row
