"""Scheduling conflict and availability engine for the tutoring dashboard.

Decides which teachers can take a candidate lesson (busy / unavailable /
free), groups overlapping bookings for the weekly grid, and caches the
remote data both of those consume.
"""

from src.scheduling.availability import (
    SLOT_BOUNDS,
    AvailabilityIndex,
    AvailabilityPolicyEngine,
    Eligibility,
    EligibilityReason,
)
from src.scheduling.cache import BoundedCache, CacheEntry, make_cache_key
from src.scheduling.client import ApiClient, DataSource, RetryPolicy
from src.scheduling.clustering import cluster
from src.scheduling.intervals import OnUnknown, TimeInterval, parse_time, to_minutes
from src.scheduling.models import (
    AvailabilityRecord,
    Cluster,
    Resource,
    RestrictionTier,
    ScheduleRecord,
    ScheduleStatus,
    Slot,
)
from src.scheduling.normalize import ScheduleTypeCatalog, normalize_record
from src.scheduling.notices import NoticeBoard
from src.scheduling.resolver import ConflictResolver, Resolution
from src.scheduling.session import PickerSession, ResourcePicker
from src.scheduling.store import ScheduleDataStore

__all__ = [
    "ApiClient",
    "AvailabilityIndex",
    "AvailabilityPolicyEngine",
    "AvailabilityRecord",
    "BoundedCache",
    "CacheEntry",
    "Cluster",
    "ConflictResolver",
    "DataSource",
    "Eligibility",
    "EligibilityReason",
    "NoticeBoard",
    "OnUnknown",
    "PickerSession",
    "Resolution",
    "Resource",
    "ResourcePicker",
    "RestrictionTier",
    "RetryPolicy",
    "SLOT_BOUNDS",
    "ScheduleDataStore",
    "ScheduleRecord",
    "ScheduleStatus",
    "ScheduleTypeCatalog",
    "Slot",
    "TimeInterval",
    "cluster",
    "make_cache_key",
    "normalize_record",
    "parse_time",
    "to_minutes",
]
