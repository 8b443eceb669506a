"""Pytest configuration and shared fixtures."""
import pytest
from datetime import datetime, timedelta
from pathlib import Path

from config import Config
from markdown_handler import MarkdownHandler, parse_task_line


@pytest.fixture
def now():
    """Fixed reference instant: 2025-01-15 12:00."""
    return datetime(2025, 1, 15, 12, 0)


@pytest.fixture
def at(now):
    """Build an instant on the reference day, e.g. at(9, 30)."""
    def _at(hour, minute=0, days=0):
        moment = now.replace(hour=hour, minute=minute)
        return moment + timedelta(days=days)
    return _at


@pytest.fixture
def make_task(now):
    """Parse a task line against the reference instant."""
    def _make(line, task_id=0):
        return parse_task_line(line, task_id, now)
    return _make


@pytest.fixture
def settings(tmp_path):
    """Config isolated from the environment and the home directory."""
    return Config(base_dir=tmp_path, log_file=tmp_path / "ttimeline.log")


@pytest.fixture
def markdown_handler(tmp_path):
    """Create a MarkdownHandler instance with temporary directory."""
    return MarkdownHandler(base_dir=str(tmp_path))


@pytest.fixture
def sample_timeline():
    """Timeline block text with timed, untimed and skipped lines."""
    return "\n".join([
        "# Tuesday",
        "- [ ] Standup @09:00+15min",
        "- [x] Review PR @09:30-10:30",
        "// - [ ] commented out @11:00",
        "- [ ] Lunch @12:00",
        "- [ ] Buy milk",
        "not a task @13:00",
        "- [ ] Ship release due:17:00",
    ])


@pytest.fixture
def daily_file(tmp_path, sample_timeline) -> Path:
    """Markdown note with the sample timeline in a fenced block."""
    path = tmp_path / "2025-01-15.md"
    path.write_text(
        "# 2025-01-15\n\nSome notes.\n\n```timeline\n" + sample_timeline + "\n```\n\nMore notes.\n",
        encoding="utf-8",
    )
    return path
