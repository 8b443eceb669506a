"""Data models for the timeline engine."""
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import List, Optional, Tuple


@dataclass
class ParsedInterval:
    """Structured result of parsing one or more time tokens.

    Invariants:
    - at least one of start/due is set
    - duration without end means end = start + duration
    - start and end together make duration derived, never authoritative

    is_range remembers that the token was written as @HH:mm-HH:mm so the
    formatter can produce the same token again.
    """
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    duration: Optional[int] = None  # minutes
    due: Optional[datetime] = None
    is_range: bool = False

    def __post_init__(self):
        if self.start is not None and self.end is not None:
            self.duration = int(round((self.end - self.start).total_seconds() / 60))
        elif self.start is not None and self.duration is not None:
            self.end = self.start + timedelta(minutes=self.duration)

    @property
    def anchor(self) -> Optional[datetime]:
        """Instant the task is placed at: its start, else its due time."""
        return self.start if self.start is not None else self.due

    def span(self, default_minutes: int = 30) -> Tuple[datetime, datetime]:
        """Return (start, end) used for layout.

        Tasks without a known end (bare @HH:mm or due-only) get
        default_minutes of height.
        """
        anchor = self.anchor
        if self.start is not None and self.end is not None and self.end > self.start:
            return self.start, self.end
        return anchor, anchor + timedelta(minutes=default_minutes)

    def merged_with(self, other: 'ParsedInterval') -> 'ParsedInterval':
        """Combine with a later token on the same line; later fields win."""
        if other.start is not None:
            start, end, duration, is_range = other.start, other.end, other.duration, other.is_range
        else:
            start, end, duration, is_range = self.start, self.end, self.duration, self.is_range
        due = other.due if other.due is not None else self.due
        return ParsedInterval(start=start, end=end, duration=duration, due=due, is_range=is_range)


@dataclass
class TaskItem:
    """One checkbox-prefixed line of the timeline block.

    id is the 0-based line index inside the block. A task whose interval is
    None is timeless and rendered in the no-time bucket.
    """
    id: int
    label: str
    completed: bool = False
    interval: Optional[ParsedInterval] = None
    source_line: str = ""

    @property
    def has_time(self) -> bool:
        return self.interval is not None and self.interval.anchor is not None

    def with_line(self, source_line: str, interval: Optional[ParsedInterval] = None) -> 'TaskItem':
        """Copy of this task pointing at a rewritten source line."""
        return replace(self, source_line=source_line,
                       interval=interval if interval is not None else self.interval)


@dataclass
class TimeWindow:
    """A merged cluster of task intervals plus buffer."""
    start: datetime
    end: datetime

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


@dataclass
class ColumnAssignment:
    """Lane of a task inside its overlap group."""
    task_id: int
    column: int
    group_size: int


@dataclass
class PixelPosition:
    top: float
    height: float


@dataclass
class RenderedTask:
    """A task with everything the display surface needs to draw it."""
    task: TaskItem
    top: float
    height: float
    offset_percent: float
    width_percent: float
    group_size: int
    column: int = 0


@dataclass
class TimelineLayout:
    """Output of one render pass.

    state is "empty" when no task lines were found, "error" when the pass
    failed (error holds the message), otherwise "rendered".
    """
    state: str = "empty"
    tasks: List[RenderedTask] = field(default_factory=list)
    untimed: List[TaskItem] = field(default_factory=list)
    ticks: List[datetime] = field(default_factory=list)
    windows: List[TimeWindow] = field(default_factory=list)
    tick_offsets: List[float] = field(default_factory=list)
    now_offset: Optional[float] = None
    total_height: float = 0.0
    error: Optional[str] = None

    def find_task(self, source_line: str) -> Optional[TaskItem]:
        """Look up a task of this layout by its current source line."""
        for rendered in self.tasks:
            if rendered.task.source_line == source_line:
                return rendered.task
        for task in self.untimed:
            if task.source_line == source_line:
                return task
        return None

    def all_tasks(self) -> List[TaskItem]:
        """Timed tasks in display order followed by untimed ones."""
        return [rendered.task for rendered in self.tasks] + list(self.untimed)
