"""Tests for drop quantization and task line rewriting."""
import pytest
from datetime import timedelta

from business_logic.drag_quantizer import apply_drop, on_drop, rebuild_start_token
from business_logic.task_lines import (
    build_task_line,
    find_time_tokens,
    leading_indent,
    replace_last_time_token,
    toggle_completion,
)
from models import ParsedInterval


class TestOnDrop:
    """Test the line produced by a drop."""

    def test_tie_rounds_up(self, make_task, at):
        task = make_task("- [ ] Focus @09:00+1h")
        assert on_drop(task, at(10, 15), 30) == "- [ ] Focus @10:30+1h"

    def test_rounds_to_nearest(self, make_task, at):
        task = make_task("- [ ] Focus @09:00")
        assert on_drop(task, at(10, 14), 30) == "- [ ] Focus @10:00"
        assert on_drop(task, at(10, 7), 15) == "- [ ] Focus @10:00"
        assert on_drop(task, at(10, 8), 15) == "- [ ] Focus @10:15"
        assert on_drop(task, at(10, 29), 60) == "- [ ] Focus @10:00"

    def test_result_is_on_grid(self, make_task, at):
        task = make_task("- [ ] Focus @09:00")
        for interval in (15, 30, 60):
            for minutes in range(0, 240, 7):
                line = on_drop(task, at(8, 0) + timedelta(minutes=minutes), interval)
                new_task = make_task(line)
                assert new_task.interval.start.minute % interval == 0

    def test_only_last_token_replaced(self, make_task, at):
        task = make_task("- [ ] Sync @09:00 then @11:00+30min")
        assert on_drop(task, at(14, 0), 30) == "- [ ] Sync @09:00 then @14:00+30min"

    def test_duration_suffix_kept_verbatim(self, make_task, at):
        task = make_task("- [ ] Read @9:00+90min due:17:00")
        assert on_drop(task, at(13, 0), 30) == "- [ ] Read @13:00+90min due:17:00"

    def test_range_keeps_length(self, make_task, at):
        task = make_task("- [ ] Workshop @09:00-10:30")
        assert on_drop(task, at(14, 0), 30) == "- [ ] Workshop @14:00-15:30"

    def test_range_across_midnight_keeps_length(self, make_task, at):
        task = make_task("- [ ] Night shift @22:00-01:00")
        assert on_drop(task, at(21, 0), 30) == "- [ ] Night shift @21:00-00:00"

    def test_due_only_task_gets_start_token(self, make_task, at):
        task = make_task("- [ ] Pay rent due:16:00")
        assert on_drop(task, at(15, 0), 30) == "- [ ] Pay rent due:16:00 @15:00"

    def test_non_numeric_token_gets_appended(self, make_task, at):
        task = make_task("- [ ] Gym @下午6点+1小时")
        line = on_drop(task, at(19, 0), 30)
        assert line == "- [ ] Gym @下午6点+1小时 @19:00+1h"
        assert make_task(line).interval.start == at(19, 0)

    def test_dropped_line_parses_to_new_start(self, make_task, at):
        task = make_task("- [x] Done @09:00+45min")
        new_task = make_task(on_drop(task, at(11, 40), 15))
        assert new_task.interval.start == at(11, 45)
        assert new_task.interval.duration == 45
        assert new_task.completed


class TestApplyDrop:
    def test_updated_task(self, make_task, at):
        task = make_task("- [ ] Focus @09:00+1h due:17:00")
        updated, line = apply_drop(task, at(12, 0), 30)
        assert updated.source_line == line
        assert updated.interval.start == at(12, 0)
        assert updated.interval.end == at(13, 0)
        assert updated.interval.due == at(17, 0)
        assert updated.id == task.id


class TestRebuildStartToken:
    def test_bare(self, at):
        assert rebuild_start_token("- [ ] A @09:00", at(10, 0)) == "@10:00"

    def test_without_token_uses_known_duration(self, at):
        assert rebuild_start_token("- [ ] A", at(10, 0), duration=90) == "@10:00+1h30min"
        assert rebuild_start_token("- [ ] A", at(10, 0)) == "@10:00"


class TestTaskLines:
    """Test pure line transformations."""

    def test_find_time_tokens(self):
        tokens = find_time_tokens("- [ ] A @09:00 @10:00-11:00 @12:00+2h mail@13:00")
        assert [token.group(0) for token in tokens] == ["@09:00", "@10:00-11:00", "@12:00+2h"]

    def test_replace_last_time_token_appends(self):
        assert replace_last_time_token("- [ ] A  ", "@10:00") == "- [ ] A @10:00"

    @pytest.mark.parametrize("line,expected", [
        ("- [ ] A", "- [x] A"),
        ("- [x] A", "- [ ] A"),
        ("- [X] A", "- [ ] A"),
        ("  - [ ] Nested @09:00", "  - [x] Nested @09:00"),
        ("no checkbox", "no checkbox"),
    ])
    def test_toggle_completion(self, line, expected):
        assert toggle_completion(line) == expected

    def test_leading_indent(self):
        assert leading_indent("    - [ ] A") == "    "
        assert leading_indent("- [ ] A") == ""

    def test_build_task_line(self, at):
        interval = ParsedInterval(start=at(14, 0), duration=90, due=at(17, 0))
        assert build_task_line(False, "Write report", interval) == "- [ ] Write report @14:00+1h30min due:17:00"
        assert build_task_line(True, " Done ", None, indent="  ") == "  - [x] Done"
