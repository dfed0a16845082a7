"""Conflict and availability resolution for the booking form's teacher picker.

For a candidate lesson (date + interval) every teacher is judged on two
independent axes:

- busy: the teacher already has a non-cancelled booking overlapping the
  interval. This is a hard rule and applies to every tier.
- unavailable: the teacher's declared availability closes a slot the
  interval touches. UNRESTRICTED teachers are never unavailable.

The resolver never blocks the form: if the remote data cannot be loaded it
returns empty sets, flags the result as degraded and posts a notice. Any
exception from the fetch layer counts, not only classified FetchErrors;
cancellation still propagates.
"""

import asyncio
import unicodedata
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from src.scheduling.availability import AvailabilityIndex, AvailabilityPolicyEngine
from src.scheduling.config import SchedulingConfig, get_config
from src.scheduling.errors import FetchError
from src.scheduling.intervals import OnUnknown, TimeInterval, overlaps
from src.scheduling.logging import get_logger
from src.scheduling.models import Resource, ResourceStatus, ScheduleRecord
from src.scheduling.store import ScheduleDataStore

log = get_logger(__name__)

STATUS_WEIGHTS: dict[int, int] = {
    ResourceStatus.ACTIVE: 0,
    ResourceStatus.PAUSED: 1,
}
OTHER_STATUS_WEIGHT = 2


def status_weight(resource: Resource) -> int:
    return STATUS_WEIGHTS.get(resource.status, OTHER_STATUS_WEIGHT)


def name_sort_key(name: str) -> str:
    # Stand-in for a locale-aware collation; only a secondary key
    return unicodedata.normalize("NFKC", name).casefold()


def rank_resources(resources: Iterable[Resource]) -> list[Resource]:
    """Non-deleted teachers ordered by (status weight, name, id)."""
    return sorted(
        (r for r in resources if not r.is_deleted),
        key=lambda r: (status_weight(r), name_sort_key(r.name), r.id),
    )


def pick_default(
    ranked: Iterable[Resource],
    busy: frozenset[int],
    unavailable: frozenset[int],
) -> int | None:
    """First free teacher in rank order, preferring availability-checked ones.

    Unrestricted teachers stay selectable but are only picked by default
    when no free availability-checked teacher exists.
    """
    free = [r for r in ranked if r.id not in busy and r.id not in unavailable]
    for resource in free:
        if not resource.is_unrestricted:
            return resource.id
    return free[0].id if free else None


class Resolution(BaseModel):
    """Outcome of one resolve() call."""

    model_config = ConfigDict(frozen=True)

    date: str | None = None
    interval: TimeInterval | None = None
    busy: frozenset[int] = frozenset()
    unavailable: frozenset[int] = frozenset()
    candidates: tuple[Resource, ...] = ()
    default_pick: int | None = None
    degraded: bool = False

    def is_free(self, resource_id: int) -> bool:
        return resource_id not in self.busy and resource_id not in self.unavailable


def find_busy(
    bookings: Iterable[ScheduleRecord],
    target: TimeInterval | None,
    exclude_record_id: int | str | None = None,
    on_unknown: OnUnknown = OnUnknown.EXCLUDE,
) -> frozenset[int]:
    """Teachers with a non-cancelled booking overlapping ``target``.

    ``exclude_record_id`` keeps a booking being edited from conflicting with itself.
    """
    busy = set()
    for record in bookings:
        if record.is_cancelled or record.resource_id is None:
            continue
        if exclude_record_id is not None and str(record.id) == str(exclude_record_id):
            continue
        if overlaps(record.interval, target, on_unknown):
            busy.add(record.resource_id)
    return frozenset(busy)


class ConflictResolver:
    """Partitions teachers into busy / unavailable / free for a target lesson.

    Args:
        store: Cached data access.
        policy: Availability policy engine; built from ``on_unknown`` if omitted.
        on_unknown: Treatment of unparseable times in both axes.
    """

    def __init__(
        self,
        store: ScheduleDataStore,
        policy: AvailabilityPolicyEngine | None = None,
        *,
        on_unknown: OnUnknown = OnUnknown.EXCLUDE,
    ) -> None:
        self.store = store
        self.on_unknown = on_unknown
        self.policy = policy or AvailabilityPolicyEngine(on_unknown)

    @classmethod
    def from_config(
        cls, store: ScheduleDataStore, config: SchedulingConfig | None = None
    ) -> "ConflictResolver":
        config = config or get_config()
        return cls(store, on_unknown=OnUnknown(config.on_unknown))

    def _degraded(
        self,
        date: str | None,
        interval: TimeInterval | None,
        ranked: list[Resource],
        error: Exception,
    ) -> Resolution:
        if isinstance(error, FetchError):
            log.warning("conflict_check_failed", date=date, error=str(error), type=type(error).__name__)
        else:
            log.warning(
                "conflict_check_failed_unexpectedly",
                date=date,
                error=str(error),
                type=type(error).__name__,
                exc_info=error,
            )
        self.store.notices.warn(
            "Conflict check unavailable; the selected teacher may already be booked.",
            date=date,
        )
        return Resolution(
            date=date,
            interval=interval,
            candidates=tuple(ranked),
            default_pick=pick_default(ranked, frozenset(), frozenset()),
            degraded=True,
        )

    async def resolve(
        self,
        date: str | None,
        interval: TimeInterval | None,
        exclude_record_id: int | str | None = None,
    ) -> Resolution:
        """Resolve busy and unavailable teachers for ``interval`` on ``date``.

        An incomplete target (no date, or no interval under the EXCLUDE
        policy) resolves to empty sets without touching bookings.
        """
        try:
            resources = await self.store.get_resources()
        except Exception as e:
            return self._degraded(date, interval, [], e)
        ranked = rank_resources(resources)

        if not date or (interval is None and self.on_unknown is OnUnknown.EXCLUDE):
            log.debug("resolution_incomplete_target", date=date, interval=str(interval))
            return Resolution(
                date=date,
                interval=interval,
                candidates=tuple(ranked),
                default_pick=pick_default(ranked, frozenset(), frozenset()),
            )

        # Bookings are always refetched; availability comes from the form session cache
        bookings, availability = await asyncio.gather(
            self.store.get_bookings(date, date, force=True),
            self.store.get_availability(date),
            return_exceptions=True,
        )
        for result in (bookings, availability):
            if isinstance(result, Exception):
                return self._degraded(date, interval, ranked, result)
            if isinstance(result, BaseException):
                # cancellation and interpreter exits are not fetch failures
                raise result

        busy = find_busy(bookings, interval, exclude_record_id, self.on_unknown)
        unavailable = self.find_unavailable(ranked, date, interval, availability)
        resolution = Resolution(
            date=date,
            interval=interval,
            busy=busy,
            unavailable=unavailable,
            candidates=tuple(ranked),
            default_pick=pick_default(ranked, busy, unavailable),
        )
        log.info(
            "conflicts_resolved",
            date=date,
            interval=str(interval),
            busy=len(busy),
            unavailable=len(unavailable),
            default_pick=resolution.default_pick,
        )
        return resolution

    def find_unavailable(
        self,
        resources: Iterable[Resource],
        date: str,
        interval: TimeInterval | None,
        availability: AvailabilityIndex,
    ) -> frozenset[int]:
        return frozenset(
            r.id
            for r in resources
            if not self.policy.is_eligible(r, date, interval, availability).eligible
        )
