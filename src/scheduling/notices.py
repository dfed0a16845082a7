"""Transient, dismissable warnings for the user.

Degraded results (stale cache data, a failed conflict check) are never
errors, but the user has to be told. Components post a Notice here and the
UI shows whatever active() returns.
"""

import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from src.scheduling.logging import get_logger

log = get_logger(__name__)

DEFAULT_NOTICE_TTL_SECONDS = 8.0


@dataclass(frozen=True)
class Notice:
    id: int
    message: str
    created_at: float
    context: dict[str, Any] = field(default_factory=dict)


class NoticeBoard:
    """Collects notices until they are dismissed or expire.

    Args:
        ttl_seconds: Lifetime of a notice; None keeps notices until dismissed.
        clock: Seconds-returning clock, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float | None = DEFAULT_NOTICE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._ids = itertools.count(1)
        self._notices: dict[int, Notice] = {}

    def warn(self, message: str, **context: Any) -> Notice:
        notice = Notice(
            id=next(self._ids),
            message=message,
            created_at=self._clock(),
            context=context,
        )
        self._notices[notice.id] = notice
        log.info("notice_posted", notice_id=notice.id, message=message, **context)
        return notice

    def active(self) -> list[Notice]:
        if self.ttl_seconds is not None:
            now = self._clock()
            expired = [
                nid for nid, n in self._notices.items() if now - n.created_at >= self.ttl_seconds
            ]
            for nid in expired:
                del self._notices[nid]
        return list(self._notices.values())

    def dismiss(self, notice_id: int) -> bool:
        return self._notices.pop(notice_id, None) is not None

    def clear(self) -> None:
        self._notices.clear()
