"""Normalization of raw API payloads into canonical models.

The booking API has accumulated several spellings for the same concept
(``teacher_id`` / ``teacherId``, ``date`` / ``class_date`` / ``arr_date``,
``start_time`` / ``startTime`` ...). All "guess the shape" logic lives here,
driven by FIELD_PRIORITY: for each canonical field the first candidate key
holding a non-empty value wins.

Nothing in this module raises on malformed times or dates; those become None.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.scheduling.availability import AvailabilityIndex
from src.scheduling.errors import InvalidIntervalError
from src.scheduling.intervals import TimeInterval
from src.scheduling.logging import get_logger
from src.scheduling.models import (
    UNCATEGORIZED,
    AvailabilityRecord,
    Resource,
    ResourceStatus,
    RestrictionTier,
    ScheduleRecord,
    ScheduleStatus,
    ScheduleType,
    Slot,
)

log = get_logger(__name__)

DEFAULT_TIMEZONE = "Asia/Shanghai"

FIELD_PRIORITY: dict[str, tuple[str, ...]] = {
    "id": ("id", "schedule_id"),
    "resource_id": ("teacher_id", "teacherId", "resource_id"),
    "resource_name": ("teacher_name", "teacherName"),
    "counterparty_ids": ("student_ids", "studentIds", "student_id", "studentId"),
    "counterparty_name": ("student_name", "studentName"),
    "date": ("date", "class_date", "class-date", "arr_date"),
    "start": ("start_time", "startTime"),
    "end": ("end_time", "endTime"),
    "type_id": ("course_id", "type_id", "schedule_type_id"),
    # schedule_type_cn is handled separately: it beats the catalog lookup
    "type_text": ("schedule_types", "schedule_type"),
}

# Envelope keys the list endpoints have used over time
LIST_ENVELOPE_KEYS = ("data", "teachers", "rows", "items")

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLASH_DATE_RE = re.compile(r"^\d{4}/\d{1,2}/\d{1,2}$")
_DATE_PREFIX_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")

_FLAG_STRINGS = {"true": True, "false": False}


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------
def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return isinstance(value, (list, tuple)) and not value


def first_present(raw: Mapping[str, Any], field: str) -> Any:
    """Value of the highest-priority non-empty key for a canonical field."""
    for key in FIELD_PRIORITY[field]:
        value = raw.get(key)
        if not _is_empty(value):
            return value
    return None


def coerce_int(value: Any) -> int | None:
    """Integer value of an id-like field, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if re.fullmatch(r"-?\d+", text):
        return int(text)
    return None


def _coerce_record_id(value: Any) -> int | str | None:
    as_int = coerce_int(value)
    if as_int is not None:
        return as_int
    if _is_empty(value):
        return None
    return str(value).strip()


def _coerce_id_list(value: Any) -> tuple[int, ...]:
    if _is_empty(value):
        return ()
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = value
    else:
        items = (value,)
    ids = []
    for item in items:
        as_int = coerce_int(item)
        if as_int is not None and as_int not in ids:
            ids.append(as_int)
    return tuple(ids)


def _coerce_flag(value: Any) -> bool | None:
    # Only an explicit false closes a slot; 0 and "no" count as undeclared
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return _FLAG_STRINGS.get(value.strip().lower())
    return None


def _zone(name: str) -> ZoneInfo | None:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning("unknown_timezone", timezone=name)
        return None


def parse_date(raw: Any, timezone: str = DEFAULT_TIMEZONE) -> str | None:
    """Normalize a date value to ISO ``YYYY-MM-DD``.

    Accepts date/datetime objects, ``YYYY-MM-DD``, ``YYYY/MM/DD`` and ISO
    timestamps. Aware timestamps are converted to ``timezone`` first, so a
    UTC midnight stored by the server lands on the right local day.

    Returns:
        ISO date string, or None if the value cannot be interpreted.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, date):
        return raw.isoformat()
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            if _ISO_DATE_RE.match(text):
                return date.fromisoformat(text).isoformat()
            if _SLASH_DATE_RE.match(text):
                year, month, day = (int(part) for part in text.split("/"))
                return date(year, month, day).isoformat()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            value = datetime.fromisoformat(text)
        except ValueError:
            return None

    if value.tzinfo is not None:
        zone = _zone(timezone)
        if zone is not None:
            value = value.astimezone(zone)
    return value.date().isoformat()


def unwrap_list(payload: Any) -> list[Any]:
    """Extract the row list from a bare list or a ``{"data": [...]}``-style envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in LIST_ENVELOPE_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


# ---------------------------------------------------------------------------
# Type catalog
# ---------------------------------------------------------------------------
class ScheduleTypeCatalog:
    """Lookup of numeric course/schedule type ids to display labels."""

    def __init__(self, types: Iterable[ScheduleType] = ()) -> None:
        self._by_id: dict[int, ScheduleType] = {t.id: t for t in types}

    @classmethod
    def from_payload(cls, payload: Any) -> "ScheduleTypeCatalog":
        types = []
        for row in unwrap_list(payload):
            if not isinstance(row, Mapping):
                continue
            type_id = coerce_int(row.get("id"))
            if type_id is None:
                continue
            types.append(
                ScheduleType(
                    id=type_id,
                    name=str(row.get("name") or ""),
                    description=str(row.get("description") or ""),
                )
            )
        return cls(types)

    def get(self, type_id: int | None) -> ScheduleType | None:
        if type_id is None:
            return None
        return self._by_id.get(type_id)

    def label_for(self, type_id: int | None) -> str:
        schedule_type = self.get(type_id)
        return schedule_type.label if schedule_type else UNCATEGORIZED

    def all(self) -> list[ScheduleType]:
        return list(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------
def _normalize_status(raw: Any) -> ScheduleStatus:
    text = str(raw or "").strip().lower()
    try:
        return ScheduleStatus(text)
    except ValueError:
        if text:
            log.debug("unknown_status_defaulted", status=text)
        return ScheduleStatus.PENDING


def _resolve_type_label(
    raw: Mapping[str, Any], type_id: int | None, catalog: ScheduleTypeCatalog | None
) -> str:
    explicit = raw.get("schedule_type_cn")
    if not _is_empty(explicit):
        return str(explicit).strip()
    if catalog is not None:
        schedule_type = catalog.get(type_id)
        if schedule_type is not None:
            return schedule_type.label
    text = first_present(raw, "type_text")
    if text is not None:
        return str(text).strip()
    return UNCATEGORIZED


def normalize_record(
    raw: Mapping[str, Any],
    catalog: ScheduleTypeCatalog | None = None,
    *,
    timezone: str = DEFAULT_TIMEZONE,
) -> ScheduleRecord:
    """Map one raw booking payload onto a ScheduleRecord.

    Raises:
        ValueError: If the payload carries no usable id.
    """
    record_id = _coerce_record_id(first_present(raw, "id"))
    if record_id is None:
        raise ValueError("booking payload has no id")

    try:
        interval = TimeInterval.parse(first_present(raw, "start"), first_present(raw, "end"))
    except InvalidIntervalError as e:
        log.debug("non_positive_interval", record_id=record_id, error=str(e))
        interval = None

    type_id = coerce_int(first_present(raw, "type_id"))
    return ScheduleRecord(
        id=record_id,
        resource_id=coerce_int(first_present(raw, "resource_id")),
        resource_name=str(first_present(raw, "resource_name") or ""),
        counterparty_ids=_coerce_id_list(first_present(raw, "counterparty_ids")),
        counterparty_name=str(first_present(raw, "counterparty_name") or ""),
        date=parse_date(first_present(raw, "date"), timezone),
        interval=interval,
        location=str(raw.get("location") or "").strip(),
        status=_normalize_status(raw.get("status")),
        type_id=type_id,
        type_label=_resolve_type_label(raw, type_id, catalog),
    )


def normalize_records(
    rows: Any,
    catalog: ScheduleTypeCatalog | None = None,
    *,
    timezone: str = DEFAULT_TIMEZONE,
) -> list[ScheduleRecord]:
    """Normalize a booking list, skipping rows that are not records at all."""
    records = []
    skipped = 0
    for row in unwrap_list(rows):
        if not isinstance(row, Mapping):
            skipped += 1
            continue
        try:
            records.append(normalize_record(row, catalog, timezone=timezone))
        except ValueError:
            skipped += 1
    if skipped:
        log.warning("booking_rows_skipped", skipped=skipped, kept=len(records))
    return records


# ---------------------------------------------------------------------------
# Teachers
# ---------------------------------------------------------------------------
def normalize_resource(raw: Mapping[str, Any]) -> Resource:
    """Map one teacher payload ``{id, name, status, restriction}`` onto a Resource.

    Raises:
        ValueError: If the payload has no numeric id.
    """
    resource_id = coerce_int(raw.get("id"))
    if resource_id is None:
        raise ValueError("teacher payload has no numeric id")

    status = coerce_int(raw.get("status"))
    restriction = coerce_int(raw.get("restriction"))
    return Resource(
        id=resource_id,
        name=str(raw.get("name") or "").strip(),
        status=ResourceStatus.ACTIVE if status is None else status,
        restriction_tier=(
            RestrictionTier.UNRESTRICTED
            if restriction == 0
            else RestrictionTier.AVAILABILITY_CHECKED
        ),
    )


def normalize_resources(payload: Any) -> list[Resource]:
    resources = []
    for row in unwrap_list(payload):
        if not isinstance(row, Mapping):
            continue
        try:
            resources.append(normalize_resource(row))
        except ValueError:
            log.warning("teacher_row_skipped", row_id=row.get("id"))
    return resources


# ---------------------------------------------------------------------------
# Availability declarations
# ---------------------------------------------------------------------------
def _availability_records(resource_id: int, by_date: Any) -> list[AvailabilityRecord]:
    if not isinstance(by_date, Mapping):
        return []
    exact: dict[str, Mapping[str, Any]] = {}
    prefixed: dict[str, Mapping[str, Any]] = {}
    for key, slots in by_date.items():
        match = _DATE_PREFIX_RE.match(str(key))
        if match is None or not isinstance(slots, Mapping):
            continue
        day = match.group(1)
        # "2024-06-10" beats "2024-06-10T00:00:00Z" for the same day
        target = exact if str(key) == day else prefixed
        target.setdefault(day, slots)

    records = []
    for day, slots in {**prefixed, **exact}.items():
        records.append(
            AvailabilityRecord(
                resource_id=resource_id,
                date=day,
                **{slot.value: _coerce_flag(slots.get(slot.value)) for slot in Slot},
            )
        )
    return records


def normalize_availability(payload: Any) -> AvailabilityIndex:
    """Build an AvailabilityIndex from either payload shape the API returns.

    List shape: ``[{"id": 3, "availability": {"2024-06-10": {...}}}, ...]``
    Map shape:  ``{"3": {"2024-06-10": {"morning": false, ...}}}``
    """
    records: list[AvailabilityRecord] = []
    rows = unwrap_list(payload)
    if rows:
        for row in rows:
            if not isinstance(row, Mapping):
                continue
            resource_id = coerce_int(row.get("id", row.get("teacher_id")))
            if resource_id is not None:
                records.extend(_availability_records(resource_id, row.get("availability")))
    elif isinstance(payload, Mapping):
        for key, by_date in payload.items():
            resource_id = coerce_int(key)
            if resource_id is not None:
                records.extend(_availability_records(resource_id, by_date))
    return AvailabilityIndex(records)
