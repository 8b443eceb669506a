"""Tests for display window and tick generation."""
import pytest
from datetime import timedelta

from models import ParsedInterval, TimeWindow
from business_logic.time_windows import (
    build_ticks,
    build_windows,
    is_contiguous,
    merge_intervals,
    pad_window,
    ticks_for_windows,
)


def span(at, start, end):
    return (at(*start), at(*end))


class TestMergeIntervals:
    """Test clustering of task spans."""

    def test_empty(self):
        assert merge_intervals([]) == []

    def test_gap_of_exactly_two_hours_merges(self, at):
        clusters = merge_intervals([span(at, (9, 0), (10, 0)), span(at, (12, 0), (12, 30))])
        assert clusters == [TimeWindow(at(9, 0), at(12, 30))]

    def test_gap_over_two_hours_splits(self, at):
        clusters = merge_intervals([span(at, (9, 0), (10, 0)), span(at, (12, 1), (12, 30))])
        assert clusters == [TimeWindow(at(9, 0), at(10, 0)), TimeWindow(at(12, 1), at(12, 30))]

    def test_unsorted_input(self, at):
        clusters = merge_intervals([span(at, (20, 0), (21, 0)), span(at, (8, 0), (9, 0))])
        assert [cluster.start for cluster in clusters] == [at(8, 0), at(20, 0)]

    def test_contained_span_keeps_cluster_end(self, at):
        clusters = merge_intervals([span(at, (9, 0), (13, 0)), span(at, (10, 0), (10, 30))])
        assert clusters == [TimeWindow(at(9, 0), at(13, 0))]

    def test_custom_gap(self, at):
        spans = [span(at, (9, 0), (10, 0)), span(at, (10, 45), (11, 0))]
        assert len(merge_intervals(spans, timedelta(minutes=30))) == 2


class TestPadWindow:
    """Test padding and clamping of clusters."""

    def test_pads_one_step_each_side(self, at):
        window = pad_window(TimeWindow(at(9, 0), at(10, 0)), 30)
        assert window == TimeWindow(at(8, 30), at(10, 30))

    def test_start_not_before_six(self, at):
        window = pad_window(TimeWindow(at(6, 30), at(7, 0)), 60)
        assert window.start == at(6, 0)

    def test_clamp_never_hides_early_task(self, at):
        window = pad_window(TimeWindow(at(3, 0), at(4, 0)), 30)
        assert window.start == at(3, 0)
        assert window.end == at(4, 30)

    def test_end_clamped_to_one_am(self, at):
        window = pad_window(TimeWindow(at(23, 0), at(0, 45, days=1)), 60)
        assert window.end == at(1, 0, days=1)

    def test_end_clamp_never_hides_late_task(self, at):
        window = pad_window(TimeWindow(at(23, 0), at(2, 0, days=1)), 30)
        assert window.end == at(2, 0, days=1)


class TestBuildTicks:
    """Test the full axis."""

    def test_empty_input(self):
        assert build_ticks([], 30) == []
        assert build_ticks([None, ParsedInterval()], 30) == []

    def test_single_task(self, at):
        ticks = build_ticks([ParsedInterval(start=at(9, 0), duration=60)], 30)
        assert ticks == [at(8, 30), at(9, 0), at(9, 30), at(10, 0), at(10, 30)]

    def test_bare_start_uses_default_duration(self, at):
        ticks = build_ticks([ParsedInterval(start=at(14, 0))], 60)
        assert ticks == [at(13, 0), at(14, 0), at(15, 0)]

    def test_due_only_is_placed(self, at):
        ticks = build_ticks([ParsedInterval(due=at(16, 0))], 60)
        assert at(16, 0) in ticks

    def test_unaligned_start(self, at):
        ticks = build_ticks([ParsedInterval(start=at(9, 10), duration=20)], 30)
        assert ticks[0] == at(8, 30)
        assert all(tick.minute % 30 == 0 for tick in ticks)

    @pytest.mark.parametrize("interval", [15, 30, 60])
    def test_ticks_strictly_ascending(self, at, interval):
        intervals = [
            ParsedInterval(start=at(9, 0), duration=45),
            ParsedInterval(start=at(9, 20), duration=90),
            ParsedInterval(start=at(19, 0), duration=30),
        ]
        ticks = build_ticks(intervals, interval)
        assert ticks == sorted(set(ticks))
        assert all(tick.minute % interval == 0 for tick in ticks)

    def test_far_apart_clusters_all_kept(self, at):
        intervals = [
            ParsedInterval(start=at(7, 0), duration=30),
            ParsedInterval(start=at(13, 0), duration=30),
            ParsedInterval(start=at(22, 0), duration=30),
        ]
        windows = build_windows(intervals, 60)
        assert len(windows) == 3
        ticks = ticks_for_windows(windows, 60)
        assert at(7, 0) in ticks and at(13, 0) in ticks and at(22, 0) in ticks
        assert at(10, 0) not in ticks

    def test_overlapping_padding_deduplicated(self, at):
        windows = [TimeWindow(at(9, 0), at(10, 0)), TimeWindow(at(10, 0), at(11, 0))]
        assert ticks_for_windows(windows, 60) == [at(9, 0), at(10, 0), at(11, 0)]


def test_is_contiguous(at):
    ticks = [at(9, 0), at(9, 30), at(13, 0)]
    assert is_contiguous(ticks, 0, 30)
    assert not is_contiguous(ticks, 1, 30)
