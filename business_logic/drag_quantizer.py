"""Quantize dropped tasks onto the tick grid and rewrite their line."""
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from models import ParsedInterval, TaskItem
from utils.time_utils import format_clock, format_duration_suffix, round_to_interval
from business_logic.task_lines import find_time_tokens, replace_last_time_token

logger = logging.getLogger("ttimeline.drag")


def rebuild_start_token(original_line: str, new_start: datetime, duration: Optional[int] = None) -> str:
    """
    Build the start token for a moved task.

    The shape of the line's last start token is preserved: a duration suffix
    is kept verbatim, a range keeps its length, a bare time stays bare. A
    line without a start token gets a bare token, or a duration suffix when
    the task's duration is known from elsewhere.
    """
    token = f"@{format_clock(new_start)}"
    matches = find_time_tokens(original_line)

    if not matches:
        if duration:
            token += f"+{format_duration_suffix(duration)}"
        return token

    last = matches[-1]
    start_text, end_text, suffix = last.group(1), last.group(2), last.group(3)

    if suffix:
        return token + suffix

    if end_text:
        old_start = _clock_minutes(start_text)
        old_end = _clock_minutes(end_text)
        length = (old_end - old_start) % (24 * 60)
        new_end = new_start + timedelta(minutes=length)
        return f"{token}-{format_clock(new_end)}"

    return token


def _clock_minutes(text: str) -> int:
    hours, minutes = text.split(":")
    return int(hours) * 60 + int(minutes)


def apply_drop(task: TaskItem, dropped: datetime, interval_minutes: int) -> Tuple[TaskItem, str]:
    """
    Move a task to a dropped instant.

    The instant is rounded to the nearest multiple of interval_minutes
    (ties round up), the last start token of the line is rewritten and the
    task's interval is moved by the same amount.

    Args:
        task: Task being dropped
        dropped: Instant under the drop position
        interval_minutes: Grid step

    Returns:
        Tuple of (updated_task, new_source_line)
    """
    new_start = round_to_interval(dropped, interval_minutes)
    duration = task.interval.duration if task.interval else None

    new_token = rebuild_start_token(task.source_line, new_start, duration)
    new_line = replace_last_time_token(task.source_line, new_token)

    interval = task.interval
    if interval is not None:
        interval = ParsedInterval(
            start=new_start,
            duration=interval.duration,
            due=interval.due,
            is_range=interval.is_range,
        )
    else:
        interval = ParsedInterval(start=new_start)

    logger.debug("Drop %r at %s -> %r", task.source_line, format_clock(new_start), new_line)
    return task.with_line(new_line, interval), new_line


def on_drop(task: TaskItem, dropped: datetime, interval_minutes: int) -> str:
    """Return the source line of a task after dropping it at an instant."""
    _, new_line = apply_drop(task, dropped, interval_minutes)
    return new_line
