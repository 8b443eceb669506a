"""Tests for task line parsing and markdown file handling."""
import pytest
from datetime import date, timedelta
from pathlib import Path

from markdown_handler import (
    MarkdownHandler,
    apply_line_change,
    is_skipped_line,
    parse_task_line,
    parse_tasks,
)


class TestParseTaskLine:
    """Test parsing of single lines."""

    def test_unchecked_task_with_duration(self, make_task, at):
        task = make_task("- [ ] Write report @14:00+1h30min", task_id=3)
        assert task.id == 3
        assert task.label == "Write report"
        assert not task.completed
        assert task.interval.start == at(14, 0)
        assert task.interval.duration == 90
        assert task.source_line == "- [ ] Write report @14:00+1h30min"

    def test_completed_task(self, make_task):
        assert make_task("- [x] Done @09:00").completed
        assert make_task("- [X] Done @09:00").completed

    def test_indented_task(self, make_task, at):
        task = make_task("    - [ ] Nested @10:00")
        assert task.label == "Nested"
        assert task.interval.start == at(10, 0)

    def test_token_in_middle_of_label(self, make_task):
        task = make_task("- [ ] Call @15:00 the bank")
        assert task.label == "Call the bank"

    def test_matched_token_removed_not_earlier_text(self, make_task, at):
        task = make_task("- [ ] Send mail@09:00 @09:00")
        assert task.label == "Send mail@09:00"
        assert task.interval.start == at(9, 0)

    def test_untimed_task(self, make_task):
        task = make_task("- [ ] Buy milk")
        assert task.interval is None
        assert not task.has_time

    def test_unparseable_token_stays_in_label(self, make_task):
        task = make_task("- [ ] Lunch @banana")
        assert task.interval is None
        assert task.label == "Lunch @banana"

    def test_email_address_is_not_a_token(self, make_task):
        task = make_task("- [ ] Mail bob@example.com")
        assert task.interval is None
        assert task.label == "Mail bob@example.com"

    def test_start_and_due_combine(self, make_task, at):
        task = make_task("- [ ] Ship @14:00+1h due:17:00")
        assert task.interval.start == at(14, 0)
        assert task.interval.end == at(15, 0)
        assert task.interval.due == at(17, 0)
        assert task.label == "Ship"

    def test_due_only(self, make_task, at):
        task = make_task("- [ ] Pay rent due:16:00")
        assert task.has_time
        assert task.interval.start is None
        assert task.interval.anchor == at(16, 0)

    def test_later_start_token_wins(self, make_task, at):
        task = make_task("- [ ] Meeting @09:00 moved @10:30+30min")
        assert task.interval.start == at(10, 30)
        assert task.interval.duration == 30
        assert task.label == "Meeting moved"

    def test_relative_tokens_with_spaces(self, make_task, now):
        task = make_task("- [ ] Tea @in 20 minutes")
        assert task.interval.start == now + timedelta(minutes=20)
        assert task.label == "Tea"

    def test_twelve_hour_token_with_space(self, make_task, at):
        task = make_task("- [ ] Gym @6:30 pm")
        assert task.interval.start == at(18, 30)
        assert task.label == "Gym"

    def test_non_task_lines(self, make_task):
        assert make_task("Just some text @14:00") is None
        assert make_task("- plain bullet @14:00") is None
        assert make_task("") is None
        assert make_task("// - [ ] commented @14:00") is None
        assert make_task("# - [ ] heading") is None


class TestParseTasks:
    """Test parsing of whole blocks."""

    def test_ids_are_line_indexes(self, sample_timeline, now):
        tasks = parse_tasks(sample_timeline, now)
        assert [task.id for task in tasks] == [1, 2, 4, 5, 7]

    def test_mixed_block(self, sample_timeline, now):
        tasks = parse_tasks(sample_timeline, now)
        assert [task.label for task in tasks] == ["Standup", "Review PR", "Lunch", "Buy milk", "Ship release"]
        assert [task.has_time for task in tasks] == [True, True, True, False, True]

    def test_empty_text(self, now):
        assert parse_tasks("", now) == []
        assert parse_tasks("\n\n", now) == []

    def test_windows_line_endings(self, now):
        tasks = parse_tasks("- [ ] A @09:00\r\n- [ ] B @10:00\r\n", now)
        assert [task.source_line for task in tasks] == ["- [ ] A @09:00", "- [ ] B @10:00"]


def test_is_skipped_line():
    assert is_skipped_line("   ")
    assert is_skipped_line("  // note")
    assert is_skipped_line("# Title")
    assert not is_skipped_line("- [ ] task")


class TestApplyLineChange:
    def test_replaces_first_matching_line(self):
        text = "- [ ] A @09:00\n- [ ] A @09:00"
        assert apply_line_change(text, "- [ ] A @09:00", "- [ ] A @10:00") == "- [ ] A @10:00\n- [ ] A @09:00"

    def test_missing_line_leaves_text(self):
        assert apply_line_change("- [ ] A", "- [ ] B", "- [ ] C") == "- [ ] A"

    def test_partial_line_is_not_a_match(self):
        text = "- [ ] Call @09:00-10:00"
        assert apply_line_change(text, "- [ ] Call @09:00", "- [ ] Call @11:00") == text


class TestMarkdownHandlerInitialization:
    """Test MarkdownHandler initialization."""

    def test_init_with_custom_base_dir(self, tmp_path):
        handler = MarkdownHandler(base_dir=str(tmp_path))
        assert handler.base_dir == tmp_path

    def test_init_creates_base_directory(self, tmp_path):
        new_dir = tmp_path / "new_task_dir"
        MarkdownHandler(base_dir=str(new_dir))
        assert new_dir.exists()

    def test_get_file_path(self, markdown_handler, tmp_path):
        assert markdown_handler.get_file_path(date(2025, 1, 15)) == tmp_path / "2025-01-15.md"


class TestLoadTimelineText:
    """Test reading timeline text from files."""

    def test_reads_fenced_block(self, markdown_handler, daily_file, sample_timeline):
        assert markdown_handler.load_timeline_text(daily_file) == sample_timeline + "\n"

    def test_whole_file_without_block(self, markdown_handler, tmp_path):
        path = tmp_path / "plain.md"
        path.write_text("- [ ] A @09:00\n", encoding="utf-8")
        assert markdown_handler.load_timeline_text(path) == "- [ ] A @09:00\n"

    def test_missing_file(self, markdown_handler, tmp_path):
        assert markdown_handler.load_timeline_text(tmp_path / "nope.md") == ""


class TestReplaceLine:
    """Test writing line changes back."""

    def test_updates_line_inside_block(self, markdown_handler, daily_file):
        changed = markdown_handler.replace_line(daily_file, "- [ ] Lunch @12:00", "- [ ] Lunch @12:30")
        assert changed
        content = daily_file.read_text(encoding="utf-8")
        assert "- [ ] Lunch @12:30" in content
        assert "- [ ] Lunch @12:00" not in content
        assert content.startswith("# 2025-01-15\n\nSome notes.")
        assert content.endswith("More notes.\n")

    def test_text_outside_block_untouched(self, markdown_handler, tmp_path):
        path = tmp_path / "note.md"
        path.write_text("- [ ] A @09:00\n\n```timeline\n- [ ] A @09:00\n```\n", encoding="utf-8")
        assert markdown_handler.replace_line(path, "- [ ] A @09:00", "- [ ] A @10:00")
        assert path.read_text(encoding="utf-8") == "- [ ] A @09:00\n\n```timeline\n- [ ] A @10:00\n```\n"

    def test_second_block(self, markdown_handler, tmp_path):
        path = tmp_path / "note.md"
        path.write_text("```timeline\n- [ ] A\n```\n\n```timeline\n- [ ] B\n```\n", encoding="utf-8")
        assert markdown_handler.replace_line(path, "- [ ] B", "- [x] B")
        assert path.read_text(encoding="utf-8") == "```timeline\n- [ ] A\n```\n\n```timeline\n- [x] B\n```\n"

    def test_file_without_block(self, markdown_handler, tmp_path):
        path = tmp_path / "plain.md"
        path.write_text("- [ ] A @09:00\n- [ ] B\n", encoding="utf-8")
        assert markdown_handler.replace_line(path, "- [ ] B", "- [x] B")
        assert path.read_text(encoding="utf-8") == "- [ ] A @09:00\n- [x] B\n"

    def test_missing_line(self, markdown_handler, daily_file):
        before = daily_file.read_text(encoding="utf-8")
        assert not markdown_handler.replace_line(daily_file, "- [ ] Gone", "- [x] Gone")
        assert daily_file.read_text(encoding="utf-8") == before

    def test_missing_file(self, markdown_handler, tmp_path):
        assert not markdown_handler.replace_line(tmp_path / "nope.md", "a", "b")

    def test_prefix_of_another_line_is_not_replaced(self, markdown_handler, tmp_path):
        path = tmp_path / "note.md"
        content = "```timeline\n- [ ] Call @09:00-10:00\n```\n"
        path.write_text(content, encoding="utf-8")
        assert not markdown_handler.replace_line(path, "- [ ] Call @09:00", "- [ ] Call @11:00")
        assert path.read_text(encoding="utf-8") == content

    def test_block_chosen_by_whole_line(self, markdown_handler, tmp_path):
        path = tmp_path / "note.md"
        path.write_text("```timeline\n- [ ] B @09:00+1h\n```\n\n```timeline\n- [ ] B @09:00\n```\n", encoding="utf-8")
        assert markdown_handler.replace_line(path, "- [ ] B @09:00", "- [x] B @09:00")
        assert path.read_text(encoding="utf-8") == "```timeline\n- [ ] B @09:00+1h\n```\n\n```timeline\n- [x] B @09:00\n```\n"

    def test_write_error_raises_ioerror(self, markdown_handler, daily_file, monkeypatch):
        def fail(*args, **kwargs):
            raise PermissionError("read-only")
        monkeypatch.setattr(Path, "write_text", fail)
        with pytest.raises(IOError):
            markdown_handler.replace_line(daily_file, "- [ ] Lunch @12:00", "- [ ] Lunch @12:30")


class TestAppendLine:
    """Test adding task lines."""

    def test_appends_to_block(self, markdown_handler, daily_file):
        markdown_handler.append_line(daily_file, "- [ ] New @15:00")
        text = markdown_handler.load_timeline_text(daily_file)
        assert text.rstrip("\n").split("\n")[-1] == "- [ ] New @15:00"
        assert daily_file.read_text(encoding="utf-8").endswith("More notes.\n")

    def test_creates_missing_file(self, markdown_handler, tmp_path):
        path = tmp_path / "2025-02-01.md"
        markdown_handler.append_line(path, "- [ ] First @09:00", header_date=date(2025, 2, 1))
        assert path.read_text(encoding="utf-8") == "# 2025-02-01\n\n```timeline\n- [ ] First @09:00\n```\n"

    def test_appends_to_plain_file(self, markdown_handler, tmp_path):
        path = tmp_path / "plain.md"
        path.write_text("- [ ] A", encoding="utf-8")
        markdown_handler.append_line(path, "- [ ] B")
        assert path.read_text(encoding="utf-8") == "- [ ] A\n- [ ] B\n"
