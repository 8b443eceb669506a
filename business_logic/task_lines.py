"""Rewriting of task source lines.

Every change made from the timeline (drop, completion toggle, edit) is a
pure transformation of the originating line. The caller decides how the
new line is persisted.
"""
import re
from typing import List, Optional

from models import ParsedInterval
from utils.time_utils import DURATION_SUFFIX, format_task_tokens

CHECKBOX_RE = re.compile(r'^(\s*-\s*\[)([ xX])(\])')

# Start tokens the user can move: @HH:mm, @HH:mm-HH:mm, @HH:mm+<duration>
START_TOKEN_RE = re.compile(
    r'(?<!\S)@(\d{1,2}:\d{2})(?:-(\d{1,2}:\d{2})|(' + DURATION_SUFFIX + r'))?(?![\w:])',
    re.IGNORECASE,
)


def find_time_tokens(line: str) -> List[re.Match]:
    """All start-token-shaped substrings of a line, left to right."""
    return list(START_TOKEN_RE.finditer(line))


def replace_last_time_token(line: str, new_token: str) -> str:
    """
    Replace the last start token of a line.

    A line may hold several time-like substrings; the last one is the one
    being manipulated. Without any, the token is appended at the end.
    """
    matches = find_time_tokens(line)
    if not matches:
        return f"{line.rstrip()} {new_token}"
    last = matches[-1]
    return line[:last.start()] + new_token + line[last.end():]


def toggle_completion(line: str) -> str:
    """Flip the checkbox of a task line; other lines come back unchanged."""
    match = CHECKBOX_RE.match(line)
    if not match:
        return line
    mark = ' ' if match.group(2).lower() == 'x' else 'x'
    return line[:match.start(2)] + mark + line[match.end(2):]


def leading_indent(line: str) -> str:
    return line[:len(line) - len(line.lstrip())]


def build_task_line(completed: bool, label: str, interval: Optional[ParsedInterval] = None, indent: str = "") -> str:
    """
    Render a canonical task line.

    Example:
        >>> build_task_line(False, "Write report", ParsedInterval(start=..., duration=90))
        '- [ ] Write report @14:00+1h30min'
    """
    parts = [f"{indent}- [{'x' if completed else ' '}] {label.strip()}"]
    if interval is not None:
        parts.extend(format_task_tokens(interval))
    return " ".join(parts)
