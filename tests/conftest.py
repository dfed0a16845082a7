from __future__ import annotations

import pytest

from src.scheduling.config import SchedulingConfig
from src.scheduling.notices import NoticeBoard
from src.scheduling.store import ScheduleDataStore
from tests.helpers import FakeSource, ManualClock


@pytest.fixture
def config() -> SchedulingConfig:
    return SchedulingConfig(_env_file=None, retry_backoff_ms=0)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def notices(clock: ManualClock) -> NoticeBoard:
    return NoticeBoard(ttl_seconds=None, clock=clock.seconds)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def store(
    source: FakeSource,
    config: SchedulingConfig,
    notices: NoticeBoard,
    clock: ManualClock,
) -> ScheduleDataStore:
    return ScheduleDataStore(source, config, notices=notices, clock=clock)
