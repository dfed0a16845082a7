"""Pydantic models for bookings, teachers and availability declarations.

All data structures use Pydantic v2 and are frozen: the client only holds
read-only projections of what the remote store owns.
"""

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from src.scheduling.intervals import TimeInterval, minutes_to_hhmm

UNCATEGORIZED = "uncategorized"


class ScheduleStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RestrictionTier(str, enum.Enum):
    """Whether a teacher's availability declarations are binding."""

    UNRESTRICTED = "unrestricted"  # restriction: 0
    AVAILABILITY_CHECKED = "availability_checked"  # restriction: 1 or absent


class ResourceStatus(enum.IntEnum):
    ACTIVE = 1
    PAUSED = 0
    DELETED = -1


class Slot(str, enum.Enum):
    """Fixed daily bands used for coarse availability declarations."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class ScheduleRecord(BaseModel):
    """One booked lesson in canonical shape.

    ``interval`` is None when the stored times cannot be parsed; such a record
    is kept for display but never takes part in conflict math.
    """

    model_config = ConfigDict(frozen=True)

    id: int | str
    resource_id: int | None = None  # teacher
    resource_name: str = ""
    counterparty_ids: tuple[int, ...] = ()  # students
    counterparty_name: str = ""
    date: str | None = None  # YYYY-MM-DD
    interval: TimeInterval | None = None
    location: str = ""
    status: ScheduleStatus = ScheduleStatus.PENDING
    type_id: int | None = None
    type_label: str = UNCATEGORIZED

    @property
    def start_time(self) -> str | None:
        return self.interval.start if self.interval else None

    @property
    def end_time(self) -> str | None:
        return self.interval.end if self.interval else None

    @property
    def is_cancelled(self) -> bool:
        return self.status is ScheduleStatus.CANCELLED

    def with_status(self, status: ScheduleStatus) -> "ScheduleRecord":
        """Same booking, new lifecycle state."""
        return self.model_copy(update={"status": ScheduleStatus(status)})

    def to_payload(self) -> dict[str, Any]:
        """Serialize using the API's canonical field names.

        normalize_record() of the result yields an equal record.
        """
        return {
            "id": self.id,
            "teacher_id": self.resource_id,
            "teacher_name": self.resource_name,
            "student_ids": list(self.counterparty_ids),
            "student_name": self.counterparty_name,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "location": self.location,
            "status": self.status.value,
            "course_id": self.type_id,
            "schedule_type_cn": self.type_label,
        }


class Resource(BaseModel):
    """A teacher as seen by the booking form's picker."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    status: int = ResourceStatus.ACTIVE
    restriction_tier: RestrictionTier = RestrictionTier.AVAILABILITY_CHECKED

    @property
    def is_deleted(self) -> bool:
        return self.status == ResourceStatus.DELETED

    @property
    def is_paused(self) -> bool:
        return self.status == ResourceStatus.PAUSED

    @property
    def is_unrestricted(self) -> bool:
        return self.restriction_tier is RestrictionTier.UNRESTRICTED


class AvailabilityRecord(BaseModel):
    """Declared availability of one teacher on one date.

    A slot set to None was not declared and counts as open; only an explicit
    False closes it.
    """

    model_config = ConfigDict(frozen=True)

    resource_id: int
    date: str
    morning: bool | None = None
    afternoon: bool | None = None
    evening: bool | None = None

    def declared(self, slot: Slot) -> bool | None:
        return getattr(self, slot.value)

    def is_open(self, slot: Slot) -> bool:
        return self.declared(slot) is not False


class ScheduleType(BaseModel):
    """Entry of the course/schedule type catalog."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    description: str = ""

    @property
    def label(self) -> str:
        return self.description or self.name or UNCATEGORIZED


class Cluster(BaseModel):
    """A maximal run of overlapping bookings in one grid cell (display only)."""

    model_config = ConfigDict(frozen=True)

    records: tuple[ScheduleRecord, ...]
    min_start: int | None = None
    max_end: int | None = None

    @property
    def time_label(self) -> str | None:
        if self.min_start is None or self.max_end is None:
            return None
        return f"{minutes_to_hhmm(self.min_start)}-{minutes_to_hhmm(self.max_end)}"

    @property
    def locations(self) -> list[str]:
        seen: list[str] = []
        for record in self.records:
            location = record.location.strip()
            if location and location not in seen:
                seen.append(location)
        return seen

    @property
    def all_cancelled(self) -> bool:
        return all(record.is_cancelled for record in self.records)
