"""Cached access to teachers, bookings, availability and the type catalog.

ScheduleDataStore owns one BoundedCache per kind of data, each with its own
freshness rules:

- teachers and booking grids: TTL, serve stale data when a refresh fails;
  booking grids are also dropped on every known mutation.
- availability declarations: scoped to one booking-form session and never
  served stale; begin_form_session() drops them.
- type catalog: long TTL; a failed load degrades to an empty catalog.
"""

from collections.abc import Callable
from typing import Any

from src.scheduling.availability import AvailabilityIndex
from src.scheduling.cache import BoundedCache, make_cache_key
from src.scheduling.client import DataSource
from src.scheduling.config import SchedulingConfig, get_config
from src.scheduling.errors import FetchError
from src.scheduling.logging import get_logger
from src.scheduling.models import Resource, ScheduleRecord
from src.scheduling.normalize import (
    ScheduleTypeCatalog,
    normalize_availability,
    normalize_records,
    normalize_resources,
)
from src.scheduling.notices import NoticeBoard

log = get_logger(__name__)

_CATALOG_KEY = "types"
_RESOURCES_KEY = "teachers"
_BOOKINGS_PREFIX = "bookings"
_AVAILABILITY_PREFIX = "availability"


class ScheduleDataStore:
    """Read-through store in front of a DataSource.

    Args:
        source: Remote data source (ApiClient or a test double).
        config: Engine configuration; defaults to the singleton.
        notices: Board receiving serve-stale and degradation warnings.
        clock: Epoch-milliseconds clock shared by all caches.
    """

    def __init__(
        self,
        source: DataSource,
        config: SchedulingConfig | None = None,
        *,
        notices: NoticeBoard | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.source = source
        self.config = config or get_config()
        self.notices = notices or NoticeBoard()

        def make(name: str, ttl: float, serve_stale: bool) -> BoundedCache:
            kwargs: dict[str, Any] = {
                "serve_stale": serve_stale,
                "max_entries": self.config.cache_max_entries,
                "notices": self.notices,
            }
            if clock is not None:
                kwargs["clock"] = clock
            return BoundedCache(name, ttl, **kwargs)

        self.resources_cache: BoundedCache[list[Resource]] = make(
            "teachers", self.config.resource_ttl_seconds, True
        )
        self.bookings_cache: BoundedCache[list[ScheduleRecord]] = make(
            "bookings", self.config.booking_ttl_seconds, True
        )
        self.availability_cache: BoundedCache[AvailabilityIndex] = make(
            "availability", self.config.availability_ttl_seconds, False
        )
        self.catalog_cache: BoundedCache[ScheduleTypeCatalog] = make(
            "schedule_types", self.config.type_catalog_ttl_seconds, True
        )

    @property
    def _caches(self) -> tuple[BoundedCache, ...]:
        return (
            self.resources_cache,
            self.bookings_cache,
            self.availability_cache,
            self.catalog_cache,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def init(self) -> None:
        for cache in self._caches:
            cache.init()

    def invalidate_bookings(self) -> None:
        self.bookings_cache.invalidate(_BOOKINGS_PREFIX)

    def record_mutated(self, record_id: int | str | None = None) -> None:
        """Call after any create/update/delete/status change of a booking."""
        log.info("booking_mutated", record_id=record_id)
        self.invalidate_bookings()

    def begin_form_session(self) -> None:
        """Call whenever the booking form opens.

        Availability must never be judged against declarations carried over
        from a previous editing session.
        """
        dropped = self.availability_cache.invalidate(_AVAILABILITY_PREFIX)
        log.debug("form_session_started", availability_dropped=dropped)

    def dispose(self) -> None:
        for cache in self._caches:
            cache.dispose()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_type_catalog(self, force: bool = False) -> ScheduleTypeCatalog:
        """Type catalog; an unreachable catalog yields an empty one."""

        async def fetch() -> ScheduleTypeCatalog:
            return ScheduleTypeCatalog.from_payload(await self.source.fetch_schedule_types())

        try:
            return await self.catalog_cache.get_or_fetch(_CATALOG_KEY, fetch, force=force)
        except FetchError as e:
            log.warning("type_catalog_unavailable", error=str(e))
            self.notices.warn("Course types could not be loaded.", error=str(e))
            return ScheduleTypeCatalog()

    async def get_resources(self, force: bool = False) -> list[Resource]:
        """All teachers, including paused and deleted ones."""

        async def fetch() -> list[Resource]:
            resources = normalize_resources(await self.source.fetch_resources())
            log.info("teachers_loaded", count=len(resources))
            return resources

        return await self.resources_cache.get_or_fetch(_RESOURCES_KEY, fetch, force=force)

    async def get_bookings(
        self,
        start_date: str,
        end_date: str,
        status: str | None = None,
        type_id: int | None = None,
        resource_id: int | None = None,
        force: bool = False,
    ) -> list[ScheduleRecord]:
        """Bookings dated within ``[start_date, end_date]`` matching the optional filters.

        Each filter combination is its own cache entry; all of them are
        dropped together by invalidate_bookings(). Records without a usable
        date never match a range.
        """
        catalog = await self.get_type_catalog()

        async def fetch() -> list[ScheduleRecord]:
            rows = await self.source.fetch_bookings(start_date, end_date)
            records = normalize_records(rows, catalog, timezone=self.config.display_timezone)
            log.info("bookings_loaded", start=start_date, end=end_date, count=len(records))
            return [
                r
                for r in records
                if r.date is not None
                and start_date <= r.date <= end_date
                and (status is None or r.status.value == status)
                and (type_id is None or r.type_id == type_id)
                and (resource_id is None or r.resource_id == resource_id)
            ]

        key = make_cache_key(_BOOKINGS_PREFIX, start_date, end_date, status, type_id, resource_id)
        return await self.bookings_cache.get_or_fetch(key, fetch, force=force)

    async def get_availability(self, date: str) -> AvailabilityIndex:
        """Availability declarations for one date (current form session only)."""

        async def fetch() -> AvailabilityIndex:
            index = normalize_availability(await self.source.fetch_availability(date, date))
            log.debug("availability_loaded", date=date, records=len(index))
            return index

        return await self.availability_cache.get_or_fetch(
            make_cache_key(_AVAILABILITY_PREFIX, date), fetch
        )
