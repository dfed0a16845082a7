"""Overlap clustering for the weekly grid.

Bookings of one teacher on one day are merged into display groups with the
classic merge-overlapping-intervals sweep: sort by start, then extend the
current group while the next start does not pass the group's end. Bookings
that merely touch (10:00-11:00 and 11:00-12:00) end up in the same group.
"""

from collections.abc import Iterable

from src.scheduling.models import Cluster, ScheduleRecord


def cluster(records: Iterable[ScheduleRecord]) -> list[Cluster]:
    """Group same-cell bookings into overlap clusters.

    Records without a parseable interval cannot be compared: each becomes a
    singleton cluster, listed after the timed clusters in input order.
    """
    records = list(records)
    # sorted() is stable, so equal starts keep their input order
    timed = sorted(
        (r for r in records if r.interval is not None),
        key=lambda r: r.interval.start_minute,
    )

    clusters: list[Cluster] = []
    current: list[ScheduleRecord] = []
    min_start = max_end = 0

    for record in timed:
        interval = record.interval
        if current and interval.start_minute <= max_end:
            current.append(record)
            max_end = max(max_end, interval.end_minute)
            continue
        if current:
            clusters.append(Cluster(records=tuple(current), min_start=min_start, max_end=max_end))
        current = [record]
        min_start, max_end = interval.start_minute, interval.end_minute

    if current:
        clusters.append(Cluster(records=tuple(current), min_start=min_start, max_end=max_end))

    clusters.extend(Cluster(records=(r,)) for r in records if r.interval is None)
    return clusters
