"""Availability policy: which teachers may be booked in a given time range.

Teachers declare availability per date in three fixed bands. A booking that
touches a band the teacher explicitly closed makes the teacher ineligible,
unless the teacher is on the UNRESTRICTED tier, for whom declarations are
informational only.
"""

import enum
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from src.scheduling.intervals import MINUTES_PER_DAY, OnUnknown, TimeInterval
from src.scheduling.logging import get_logger
from src.scheduling.models import AvailabilityRecord, Resource, Slot

log = get_logger(__name__)

# Half-open [start, end) minute bounds; policy constants, not per teacher
SLOT_BOUNDS: dict[Slot, tuple[int, int]] = {
    Slot.MORNING: (6 * 60, 12 * 60),
    Slot.AFTERNOON: (12 * 60, 19 * 60),
    Slot.EVENING: (19 * 60, MINUTES_PER_DAY),
}


def touched_slots(interval: TimeInterval) -> frozenset[Slot]:
    """Slots whose bounds overlap the interval."""
    return frozenset(
        slot
        for slot, (slot_start, slot_end) in SLOT_BOUNDS.items()
        if not (interval.end_minute <= slot_start or interval.start_minute >= slot_end)
    )


class AvailabilityIndex:
    """Availability declarations keyed by ``(resource_id, date)``."""

    def __init__(self, records: Iterable[AvailabilityRecord] = ()) -> None:
        self._records: dict[tuple[int, str], AvailabilityRecord] = {}
        for record in records:
            self._records[(record.resource_id, record.date)] = record

    def get(self, resource_id: int, date: str) -> AvailabilityRecord | None:
        return self._records.get((resource_id, date))

    def records(self) -> list[AvailabilityRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records


class EligibilityReason(str, enum.Enum):
    UNRESTRICTED = "unrestricted"
    NO_DECLARATION = "no_declaration"
    SLOTS_OPEN = "slots_open"
    SLOT_CLOSED = "slot_closed"
    UNKNOWN = "unknown"


class Eligibility(BaseModel):
    model_config = ConfigDict(frozen=True)

    eligible: bool
    reason: EligibilityReason
    closed_slots: frozenset[Slot] = frozenset()


class AvailabilityPolicyEngine:
    """Evaluates a teacher's declared availability against a target interval.

    Args:
        on_unknown: Outcome for an unparseable target interval. EXCLUDE keeps
            every teacher eligible so an incomplete form hides nobody.
    """

    def __init__(self, on_unknown: OnUnknown = OnUnknown.EXCLUDE) -> None:
        self.on_unknown = on_unknown

    def is_eligible(
        self,
        resource: Resource,
        date: str | None,
        target: TimeInterval | None,
        availability: AvailabilityIndex,
    ) -> Eligibility:
        if resource.is_unrestricted:
            return Eligibility(eligible=True, reason=EligibilityReason.UNRESTRICTED)

        if target is None or not date:
            return Eligibility(
                eligible=self.on_unknown is OnUnknown.EXCLUDE,
                reason=EligibilityReason.UNKNOWN,
            )

        record = availability.get(resource.id, date)
        if record is None:
            return Eligibility(eligible=True, reason=EligibilityReason.NO_DECLARATION)

        closed = frozenset(slot for slot in touched_slots(target) if not record.is_open(slot))
        if closed:
            log.debug(
                "teacher_slot_closed",
                resource_id=resource.id,
                date=date,
                slots=sorted(slot.value for slot in closed),
            )
            return Eligibility(
                eligible=False,
                reason=EligibilityReason.SLOT_CLOSED,
                closed_slots=closed,
            )
        return Eligibility(eligible=True, reason=EligibilityReason.SLOTS_OPEN)
