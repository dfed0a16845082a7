from __future__ import annotations

from src.scheduling.notices import NoticeBoard
from tests.helpers import ManualClock


def test_notices_expire() -> None:
    clock = ManualClock()
    board = NoticeBoard(ttl_seconds=8, clock=clock.seconds)

    board.warn("refresh failed", cache="teachers")
    clock.advance(7)
    later = board.warn("conflict check unavailable")
    assert [n.message for n in board.active()] == ["refresh failed", "conflict check unavailable"]

    clock.advance(1)
    assert board.active() == [later]


def test_dismiss_and_clear() -> None:
    board = NoticeBoard(ttl_seconds=None)
    first = board.warn("a")
    board.warn("b", date="2024-06-10")

    assert board.dismiss(first.id)
    assert not board.dismiss(first.id)
    assert [n.context for n in board.active()] == [{"date": "2024-06-10"}]

    board.clear()
    assert board.active() == []
