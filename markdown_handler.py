"""Read task lines from timeline text and write line changes back to markdown files."""
import logging
import re
from pathlib import Path
from datetime import date, datetime
from typing import List, Optional
from models import ParsedInterval, TaskItem
from config import config
from utils.time_utils import parse_task_time

logger = logging.getLogger("ttimeline.files")

# Task line: optional indent, dash, checkbox, body
TASK_LINE_RE = re.compile(r'^\s*-\s*\[([ xX])\]\s*(.*?)\s*$')

# Time tokens start after whitespace with "@" or "due:". Relative English
# forms and spaced 12-hour clocks ("6:30 pm") contain one space, everything
# else is a single whitespace-delimited word.
_RELATIVE_TEXT = r'in\s+\d+\s*(?:minutes?|mins?|hours?|hrs?)(?![a-z])'
_CLOCK_12_TEXT = r'\d{1,2}:\d{2}\s(?:am|pm)(?![a-z])\S*'
TIME_TOKEN_RE = re.compile(
    rf'(?<!\S)(?:@|due:)(?:{_RELATIVE_TEXT}|{_CLOCK_12_TEXT}|\S+)',
    re.IGNORECASE,
)

# ```timeline fenced block inside a markdown note
TIMELINE_BLOCK_RE = re.compile(r'^```timeline[ \t]*\n(.*?)^```[ \t]*$', re.DOTALL | re.MULTILINE)


def is_skipped_line(line: str) -> bool:
    """Blank lines and // or # comments never produce tasks."""
    stripped = line.strip()
    return not stripped or stripped.startswith('//') or stripped.startswith('#')


def parse_task_line(line: str, task_id: int = 0, now: Optional[datetime] = None) -> Optional[TaskItem]:
    """Parse one line into a TaskItem.

    Every time token that parses contributes to the interval; later tokens
    override earlier ones field by field. Tokens that do not parse stay in
    the label.

    Args:
        line: Raw line of the timeline block
        task_id: Identifier to give the task (its line index)
        now: Reference instant for the time parser

    Returns:
        TaskItem, or None if the line is not a checkbox task
    """
    if is_skipped_line(line):
        return None

    match = TASK_LINE_RE.match(line)
    if not match:
        return None

    checkbox, body = match.groups()
    interval: Optional[ParsedInterval] = None
    spans = []

    for token_match in TIME_TOKEN_RE.finditer(body):
        parsed = parse_task_time(token_match.group(0), now)
        if parsed is None:
            continue
        interval = parsed if interval is None else interval.merged_with(parsed)
        spans.append(token_match.span())

    label = body
    for start, end in reversed(spans):
        label = label[:start] + ' ' + label[end:]

    return TaskItem(
        id=task_id,
        label=re.sub(r'\s+', ' ', label).strip(),
        completed=checkbox.lower() == 'x',
        interval=interval,
        source_line=line.rstrip('\r'),
    )


def parse_tasks(text: str, now: Optional[datetime] = None) -> List[TaskItem]:
    """Parse a block of text into tasks, one per checkbox line.

    Lines that are not checkbox tasks are skipped silently.
    """
    if now is None:
        now = datetime.now()

    tasks = []
    for index, line in enumerate(text.split('\n')):
        task = parse_task_line(line, index, now)
        if task is not None:
            tasks.append(task)
    return tasks


def has_line(text: str, line: str) -> bool:
    """Check whether some whole line of text equals line."""
    return any(candidate.rstrip('\r') == line for candidate in text.split('\n'))


def apply_line_change(text: str, old_line: str, new_line: str) -> str:
    """Replace the first line equal to old_line.

    Only whole lines match; text without such a line is returned unchanged.
    """
    lines = text.split('\n')
    for index, line in enumerate(lines):
        if line.rstrip('\r') == old_line:
            lines[index] = new_line
            return '\n'.join(lines)
    return text


class MarkdownHandler:
    """Locate timeline text in markdown files and persist line changes."""

    def __init__(self, base_dir: Optional[str] = None):
        """
        Initialize MarkdownHandler.

        Args:
            base_dir: Optional base directory path. If None, uses config.base_dir.
        """
        if base_dir is None:
            self.base_dir = config.base_dir
        else:
            self.base_dir = Path(base_dir).expanduser()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def get_file_path(self, task_date: date) -> Path:
        """Get the file path for a given date.

        Args:
            task_date: The date to get the file path for

        Returns:
            Path object pointing to the markdown file for that date (YYYY-MM-DD.md format)
        """
        filename = task_date.strftime("%Y-%m-%d.md")
        return self.base_dir / filename

    def _read(self, file_path: Path) -> Optional[str]:
        """Read a file, returning None when it is missing or unreadable."""
        if not file_path.exists():
            return None
        try:
            return file_path.read_text(encoding="utf-8")
        except (IOError, PermissionError, UnicodeDecodeError) as e:
            # File exists but can't be read (permissions, encoding issues, etc.)
            logger.warning("Cannot read %s: %s", file_path, e)
            return None

    def _write(self, file_path: Path, content: str) -> None:
        try:
            file_path.write_text(content, encoding="utf-8")
        except (IOError, PermissionError) as e:
            # Raise the exception to let caller handle it
            raise IOError(f"Failed to save tasks to {file_path}: {e}") from e

    def load_timeline_text(self, file_path: Path) -> str:
        """Load the timeline text of a markdown file.

        The content of the first ```timeline block is returned; a file
        without such a block is treated as one whole timeline.

        Args:
            file_path: Markdown file to read

        Returns:
            Timeline text. Empty string if the file doesn't exist or cannot be read.
        """
        content = self._read(file_path)
        if content is None:
            return ""

        match = TIMELINE_BLOCK_RE.search(content)
        if match:
            return match.group(1)
        return content

    def replace_line(self, file_path: Path, old_line: str, new_line: str) -> bool:
        """Write a task line change back to the file.

        Only timeline blocks are touched when the file has any; the first
        block containing old_line is updated.

        Args:
            file_path: Markdown file to update
            old_line: Line as it was rendered
            new_line: Replacement line

        Returns:
            True if the file changed, False if old_line was not found

        Raises:
            IOError: If file cannot be written
        """
        content = self._read(file_path)
        if content is None:
            return False

        blocks = list(TIMELINE_BLOCK_RE.finditer(content))
        if blocks:
            updated = content
            for block in blocks:
                block_text = block.group(1)
                if not has_line(block_text, old_line):
                    continue
                new_block = apply_line_change(block_text, old_line, new_line)
                updated = content[:block.start(1)] + new_block + content[block.end(1):]
                break
        else:
            updated = apply_line_change(content, old_line, new_line)

        if updated == content:
            logger.info("Line not found in %s: %r", file_path, old_line)
            return False

        self._write(file_path, updated)
        logger.debug("Updated %s: %r -> %r", file_path, old_line, new_line)
        return True

    def append_line(self, file_path: Path, line: str, header_date: Optional[date] = None) -> None:
        """Append a task line to the file's timeline.

        The line goes at the end of the first timeline block, or at the end
        of the file when it has none. A missing file is created with a date
        header and an empty timeline block.

        Raises:
            IOError: If file cannot be written
        """
        content = self._read(file_path)
        if content is None:
            header = f"# {header_date.strftime('%Y-%m-%d')}\n\n" if header_date else ""
            content = f"{header}```timeline\n```\n"

        match = TIMELINE_BLOCK_RE.search(content)
        if match:
            block_text = match.group(1)
            if block_text and not block_text.endswith('\n'):
                block_text += '\n'
            updated = content[:match.start(1)] + block_text + line + '\n' + content[match.end(1):]
        else:
            separator = '' if not content or content.endswith('\n') else '\n'
            updated = content + separator + line + '\n'

        self._write(file_path, updated)
