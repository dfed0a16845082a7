"""Time-of-day parsing and the canonical minute-resolution interval.

Every time that enters the engine passes through parse_time(), which accepts
the encodings the booking API and the form inputs produce:

    "9:30", "09:30", "09:30:00", "9：30" (full-width colon), "9点30分", "9时30"

and returns a zero-padded "HH:MM" string, or None for anything else. None is
never an error: it means "cannot reason about this value", and what that
implies for conflict math is decided by an explicit OnUnknown policy.
"""

import enum
import re

from pydantic import BaseModel, ConfigDict, model_validator

from src.scheduling.errors import InvalidIntervalError

MINUTES_PER_DAY = 24 * 60

_COLON_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")
_CJK_TIME_RE = re.compile(r"^([01]?\d|2[0-3])\s*[时点]\s*([0-5]?\d)\s*分?$")


class OnUnknown(str, enum.Enum):
    """What an unparseable time means for a conflict or eligibility check.

    EXCLUDE: the value cannot conflict with anything (fail-open).
    BLOCK: the value is treated as conflicting / ineligible (fail-closed).
    """

    EXCLUDE = "exclude"
    BLOCK = "block"


def parse_time(raw: object) -> str | None:
    """Normalize a time-of-day value to "HH:MM".

    Seconds are discarded. Returns None for None, empty input, out-of-range
    hours and any unrecognized form.
    """
    if raw is None:
        return None
    text = str(raw).strip().replace("：", ":")
    if not text:
        return None

    match = _COLON_TIME_RE.match(text) or _CJK_TIME_RE.match(text)
    if match is None:
        return None
    return f"{int(match.group(1)):02d}:{int(match.group(2)):02d}"


def to_minutes(raw: object) -> int | None:
    """Minutes since midnight for any value parse_time() accepts, else None."""
    hhmm = parse_time(raw)
    if hhmm is None:
        return None
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_hhmm(minutes: int | None) -> str:
    """Format minutes since midnight as "HH:MM" ("" for None)."""
    if minutes is None:
        return ""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _check_bounds(start_minute: int, end_minute: int) -> None:
    if not (0 <= start_minute < MINUTES_PER_DAY and 0 <= end_minute < MINUTES_PER_DAY):
        raise InvalidIntervalError(
            f"interval minutes out of range: {start_minute}-{end_minute}"
        )
    if end_minute <= start_minute:
        raise InvalidIntervalError(
            f"interval must have positive length: {start_minute}-{end_minute}"
        )


class TimeInterval(BaseModel):
    """A half-open range ``[start_minute, end_minute)`` within one day.

    Build intervals with from_minutes() or parse(); both raise
    InvalidIntervalError. Direct construction runs the same check, but
    pydantic reports it as a ValidationError.
    """

    model_config = ConfigDict(frozen=True)

    start_minute: int
    end_minute: int

    @model_validator(mode="after")
    def _validate_range(self) -> "TimeInterval":
        _check_bounds(self.start_minute, self.end_minute)
        return self

    @classmethod
    def from_minutes(cls, start_minute: int, end_minute: int) -> "TimeInterval":
        """Build an interval, raising InvalidIntervalError (not a pydantic error)."""
        _check_bounds(start_minute, end_minute)
        return cls(start_minute=start_minute, end_minute=end_minute)

    @classmethod
    def parse(cls, start: object, end: object) -> "TimeInterval | None":
        """Parse two time values into an interval.

        Returns None if either side is unparseable. Raises InvalidIntervalError
        if both parse but the interval has zero or negative length.
        """
        start_minute = to_minutes(start)
        end_minute = to_minutes(end)
        if start_minute is None or end_minute is None:
            return None
        return cls.from_minutes(start_minute, end_minute)

    @property
    def start(self) -> str:
        return minutes_to_hhmm(self.start_minute)

    @property
    def end(self) -> str:
        return minutes_to_hhmm(self.end_minute)

    @property
    def duration(self) -> int:
        return self.end_minute - self.start_minute

    def overlaps(self, other: "TimeInterval") -> bool:
        """Half-open overlap test; intervals that only touch do not overlap."""
        return not (
            self.end_minute <= other.start_minute
            or self.start_minute >= other.end_minute
        )

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def parse_interval(start: object, end: object) -> TimeInterval | None:
    """Like TimeInterval.parse(), but a non-positive length also yields None."""
    try:
        return TimeInterval.parse(start, end)
    except InvalidIntervalError:
        return None


def overlaps(
    a: TimeInterval | None,
    b: TimeInterval | None,
    on_unknown: OnUnknown = OnUnknown.EXCLUDE,
) -> bool:
    """Overlap test that tolerates unknown operands.

    With OnUnknown.EXCLUDE an unknown interval never conflicts; with
    OnUnknown.BLOCK it always does.
    """
    if a is None or b is None:
        return on_unknown is OnUnknown.BLOCK
    return a.overlaps(b)
