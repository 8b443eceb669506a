"""Display window and tick generation for the timeline axis.

Only the parts of the day that hold tasks are shown. Task intervals are
merged into clusters, each cluster is padded by one grid step on both ends,
and the padded windows are quantized into ticks on the interval grid.

Functions:
    merge_intervals: Merge (start, end) spans into clusters
    build_windows: Pad and clamp clusters into display windows
    build_ticks: Full, de-duplicated tick list for a set of intervals
"""
from datetime import datetime, timedelta
from typing import Iterable, List, Sequence, Tuple

from models import ParsedInterval, TimeWindow
from utils.time_utils import align_to_interval

Span = Tuple[datetime, datetime]

MERGE_GAP = timedelta(hours=2)
EARLIEST_HOUR = 6  # Floor for the padded start of a window
LOOKBACK_HOURS = 2
NEXT_DAY_LIMIT_HOUR = 1  # Windows end at 01:00 of the following day at the latest


def interval_spans(intervals: Iterable[ParsedInterval], default_minutes: int = 30) -> List[Span]:
    """Resolve intervals into (start, end) pairs, skipping ones without an anchor."""
    return [
        interval.span(default_minutes)
        for interval in intervals
        if interval is not None and interval.anchor is not None
    ]


def merge_intervals(spans: Sequence[Span], merge_gap: timedelta = MERGE_GAP) -> List[TimeWindow]:
    """
    Merge spans into clusters.

    Spans are sorted by start. A span joins the running cluster when it
    starts no later than merge_gap after the cluster's end; otherwise a new
    cluster starts. The gap keeps a normal working day in one window while
    separating a morning task from a late-night one.

    Args:
        spans: (start, end) pairs
        merge_gap: Largest gap that still joins two spans

    Returns:
        Clusters in ascending order (no padding)
    """
    if not spans:
        return []

    ordered = sorted(spans, key=lambda span: (span[0], span[1]))
    first_start, first_end = ordered[0]
    clusters = [TimeWindow(start=first_start, end=first_end)]

    for start, end in ordered[1:]:
        current = clusters[-1]
        if start <= current.end + merge_gap:
            current.end = max(current.end, end)
        else:
            clusters.append(TimeWindow(start=start, end=end))

    return clusters


def pad_window(cluster: TimeWindow, interval_minutes: int) -> TimeWindow:
    """
    Extend a cluster by one grid step on both ends.

    The padded start is kept at or after a reasonable floor (the cluster's
    start hour minus up to two hours, never before 06:00) and the padded end
    at or before 01:00 of the day after the cluster starts. Neither clamp
    cuts into the cluster itself, so a 03:00 task is still fully shown.
    """
    step = timedelta(minutes=interval_minutes)
    day = cluster.start.replace(hour=0, minute=0, second=0, microsecond=0)

    floor_hour = max(EARLIEST_HOUR, cluster.start.hour - LOOKBACK_HOURS)
    floor = min(day + timedelta(hours=floor_hour), cluster.start)
    start = max(cluster.start - step, floor)

    limit = day + timedelta(days=1, hours=NEXT_DAY_LIMIT_HOUR)
    end = min(cluster.end + step, max(limit, cluster.end))

    return TimeWindow(start=start, end=end)


def build_windows(
    intervals: Iterable[ParsedInterval],
    interval_minutes: int,
    default_minutes: int = 30,
    merge_gap: timedelta = MERGE_GAP,
) -> List[TimeWindow]:
    """Merge intervals into clusters and pad them into display windows.

    Every cluster is kept, however far apart the clusters are.
    """
    clusters = merge_intervals(interval_spans(intervals, default_minutes), merge_gap)
    return [pad_window(cluster, interval_minutes) for cluster in clusters]


def window_ticks(window: TimeWindow, interval_minutes: int) -> List[datetime]:
    """Ticks from the aligned window start through its end inclusive."""
    step = timedelta(minutes=interval_minutes)
    current = align_to_interval(window.start, interval_minutes)
    ticks = []
    while current <= window.end:
        ticks.append(current)
        current += step
    return ticks


def ticks_for_windows(windows: Iterable[TimeWindow], interval_minutes: int) -> List[datetime]:
    """Merge the ticks of several windows, dropping duplicates, ascending."""
    seen = set()
    for window in windows:
        seen.update(window_ticks(window, interval_minutes))
    return sorted(seen)


def build_ticks(
    intervals: Iterable[ParsedInterval],
    interval_minutes: int,
    default_minutes: int = 30,
    merge_gap: timedelta = MERGE_GAP,
) -> List[datetime]:
    """
    Build the display axis for a set of task intervals.

    Args:
        intervals: Parsed task intervals (None entries are ignored)
        interval_minutes: Grid step
        default_minutes: Length given to tasks without an end
        merge_gap: Largest gap that still joins two clusters

    Returns:
        Ordered, de-duplicated ticks. Empty if no interval has a time.
    """
    windows = build_windows(intervals, interval_minutes, default_minutes, merge_gap)
    return ticks_for_windows(windows, interval_minutes)


def is_contiguous(ticks: Sequence[datetime], index: int, interval_minutes: int) -> bool:
    """True if the tick after index follows it directly on the grid."""
    if index + 1 >= len(ticks):
        return False
    return ticks[index + 1] - ticks[index] <= timedelta(minutes=interval_minutes)
