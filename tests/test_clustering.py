from __future__ import annotations

from src.scheduling.clustering import cluster
from src.scheduling.intervals import parse_interval
from src.scheduling.models import ScheduleRecord, ScheduleStatus


def rec(id: int, start: str | None, end: str | None, **extra) -> ScheduleRecord:
    return ScheduleRecord(
        id=id,
        resource_id=1,
        date="2024-06-10",
        interval=parse_interval(start, end),
        **extra,
    )


def test_merges_overlapping_and_splits_gaps() -> None:
    records = [rec(1, "09:00", "10:00"), rec(2, "09:45", "11:00"), rec(3, "11:30", "12:00")]

    clusters = cluster(records)

    assert [[r.id for r in c.records] for c in clusters] == [[1, 2], [3]]
    assert clusters[0].time_label == "09:00-11:00"
    assert clusters[1].time_label == "11:30-12:00"


def test_input_order_does_not_matter() -> None:
    records = [rec(3, "11:30", "12:00"), rec(2, "09:45", "11:00"), rec(1, "09:00", "10:00")]
    assert [[r.id for r in c.records] for c in cluster(records)] == [[1, 2], [3]]


def test_touching_bookings_share_a_cluster() -> None:
    clusters = cluster([rec(1, "10:00", "11:00"), rec(2, "11:00", "12:00")])
    assert len(clusters) == 1
    assert clusters[0].min_start == 600
    assert clusters[0].max_end == 720


def test_bridged_records_merge_transitively() -> None:
    # 1 and 3 do not overlap directly; 2 bridges them
    clusters = cluster([rec(1, "09:00", "10:00"), rec(2, "09:30", "11:30"), rec(3, "11:00", "12:00")])
    assert [[r.id for r in c.records] for c in clusters] == [[1, 2, 3]]
    assert clusters[0].time_label == "09:00-12:00"


def test_contained_record_does_not_shrink_cluster() -> None:
    clusters = cluster([rec(1, "09:00", "12:00"), rec(2, "09:30", "10:00"), rec(3, "11:59", "13:00")])
    assert len(clusters) == 1
    assert clusters[0].max_end == 780


def test_equal_starts_keep_input_order() -> None:
    clusters = cluster([rec(5, "09:00", "10:00"), rec(4, "09:00", "09:30"), rec(6, "09:00", "11:00")])
    assert [r.id for r in clusters[0].records] == [5, 4, 6]


def test_unparseable_records_are_singletons() -> None:
    records = [rec(1, "09:00", "10:00"), rec(2, None, "09:30"), rec(3, "09:15", "09:45"), rec(4, "bad", "x")]

    clusters = cluster(records)

    assert [[r.id for r in c.records] for c in clusters] == [[1, 3], [2], [4]]
    assert clusters[1].time_label is None
    assert clusters[1].min_start is None


def test_every_record_lands_in_exactly_one_cluster() -> None:
    records = [
        rec(i, start, end)
        for i, (start, end) in enumerate(
            [
                ("08:00", "09:00"),
                ("08:30", "08:40"),
                ("13:00", "14:00"),
                (None, None),
                ("10:00", "10:30"),
                ("10:30", "11:00"),
                ("13:30", "15:00"),
                ("18:00", "19:00"),
            ]
        )
    ]

    clusters = cluster(records)

    seen = [r.id for c in clusters for r in c.records]
    assert sorted(seen) == sorted(r.id for r in records)
    assert len(seen) == len(set(seen))


def test_records_in_different_clusters_do_not_overlap() -> None:
    records = [
        rec(1, "08:00", "09:00"),
        rec(2, "09:01", "10:00"),
        rec(3, "09:30", "09:45"),
        rec(4, "12:00", "13:00"),
        rec(5, "12:59", "14:00"),
    ]
    clusters = cluster(records)
    for i, a in enumerate(clusters):
        for b in clusters[i + 1 :]:
            for ra in a.records:
                for rb in b.records:
                    assert not ra.interval.overlaps(rb.interval)


def test_empty_input() -> None:
    assert cluster([]) == []


def test_cluster_presentation_helpers() -> None:
    clusters = cluster(
        [
            rec(1, "09:00", "10:00", location="Room A", status=ScheduleStatus.CANCELLED),
            rec(2, "09:30", "10:30", location=" ", status=ScheduleStatus.CANCELLED),
            rec(3, "09:40", "10:00", location="Room A", status=ScheduleStatus.CANCELLED),
        ]
    )
    assert clusters[0].locations == ["Room A"]
    assert clusters[0].all_cancelled
