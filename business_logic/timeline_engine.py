"""Render pass of the timeline.

A pass goes Parsing -> WindowBuilding/Layout -> Positioning -> Rendered and
starts over on every content or configuration change. Nothing derived is
kept between passes. Changes to task lines are reported through the
on_change callback; persisting them is up to the caller.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Optional

from config import Config, config as default_config
from models import RenderedTask, TaskItem, TimelineLayout
from markdown_handler import parse_task_line, parse_tasks
from business_logic.drag_quantizer import apply_drop
from business_logic.overlap_layout import column_geometry, layout as column_layout
from business_logic.position_mapper import MeasuredGeometry, RenderContext, map_interval, offset_to_instant
from business_logic.now_indicator import now_position
from business_logic.task_lines import build_task_line, leading_indent, replace_last_time_token, toggle_completion
from business_logic.time_windows import build_windows, ticks_for_windows
from utils.time_utils import format_clock, format_duration_suffix

logger = logging.getLogger("ttimeline.engine")

ChangeCallback = Callable[[str, str], None]


class TimelineEngine:
    """Turn timeline text into a layout and task edits into line changes."""

    def __init__(self, settings: Optional[Config] = None, on_change: Optional[ChangeCallback] = None):
        """
        Initialize TimelineEngine.

        Args:
            settings: Configuration. If None, uses the global config.
            on_change: Called with (old_line, new_line) whenever a drop,
                completion toggle or edit changes a task line.
        """
        self.settings = settings or default_config
        self.on_change = on_change

    @property
    def interval_minutes(self) -> int:
        return self.settings.interval_minutes

    def update_config(self, **changes) -> None:
        """Replace configuration values; the next render uses them."""
        values = dict(self.settings.__dict__)
        values.update(changes)
        self.settings = Config(**values)

    def make_context(self, ticks, geometry: Optional[MeasuredGeometry] = None) -> RenderContext:
        """Build the per-pass position context."""
        return RenderContext(
            ticks,
            self.settings.interval_minutes,
            nominal_height=self.settings.rows_per_tick,
            min_height=self.settings.min_task_height,
            geometry=geometry,
        )

    def render(self, text: str, now: Optional[datetime] = None, geometry: Optional[MeasuredGeometry] = None,
               day: Optional[date] = None) -> TimelineLayout:
        """
        Run one render pass.

        Relative time tokens are resolved against now, captured once for the
        whole pass. Clock tokens are placed on day, which defaults to the
        date of now; for any other day the relative tokens keep the time of
        now and the current time marker is hidden. Any failure inside the
        pass is logged and returned as an error layout; nothing escapes.

        Args:
            text: Timeline text, one task candidate per line
            now: Reference instant (wall clock if None)
            geometry: Measured tick heights of the display surface
            day: Date the timeline belongs to (date of now if None)

        Returns:
            TimelineLayout with state "empty", "rendered" or "error"
        """
        if now is None:
            now = datetime.now()
        try:
            return self._render(text or "", now, geometry, day)
        except Exception as e:
            logger.exception("Timeline render failed")
            return TimelineLayout(state="error", error=f"Render error: {e}")

    def _render(self, text: str, now: datetime, geometry: Optional[MeasuredGeometry],
                day: Optional[date] = None) -> TimelineLayout:
        settings = self.settings
        default_minutes = settings.default_duration_minutes
        is_today = day is None or day == now.date()
        anchor = now if is_today else datetime.combine(day, now.time())

        tasks = parse_tasks(text, anchor)
        if not tasks:
            return TimelineLayout(state="empty")

        timed = [task for task in tasks if task.has_time]
        untimed = [task for task in tasks if not task.has_time]

        windows = build_windows(
            [task.interval for task in timed],
            settings.interval_minutes,
            default_minutes,
            timedelta(minutes=settings.merge_gap_minutes),
        )
        ticks = ticks_for_windows(windows, settings.interval_minutes)
        assignments = column_layout(timed, default_minutes)

        context = self.make_context(ticks, geometry)
        by_id = {task.id: task for task in timed}
        rendered = []
        for assignment in assignments:
            task = by_id[assignment.task_id]
            position = map_interval(task.interval, context, default_minutes)
            offset, width = column_geometry(assignment.column, assignment.group_size)
            rendered.append(RenderedTask(
                task=task,
                top=position.top,
                height=position.height,
                offset_percent=offset,
                width_percent=width,
                group_size=assignment.group_size,
                column=assignment.column,
            ))

        logger.debug("Rendered %d timed, %d untimed tasks on %d ticks in %d windows",
                     len(rendered), len(untimed), len(ticks), len(windows))

        return TimelineLayout(
            state="rendered",
            tasks=rendered,
            untimed=untimed,
            ticks=ticks,
            windows=windows,
            tick_offsets=[context.offset(index) for index in range(len(ticks))],
            now_offset=now_position(now, context, settings.now_margin_minutes) if is_today else None,
            total_height=context.total_height,
        )

    def _emit(self, old_line: str, new_line: str) -> None:
        if new_line != old_line and self.on_change is not None:
            self.on_change(old_line, new_line)

    def _is_current(self, task: TaskItem, layout: TimelineLayout) -> bool:
        """Check that a task still exists in the latest layout."""
        if layout.find_task(task.source_line) is None:
            logger.warning("Ignoring change to stale task line %r", task.source_line)
            return False
        return True

    def _clamp_to_day(self, moment: datetime, day: date) -> datetime:
        """Clamp moment to the grid slots of day."""
        first = datetime.combine(day, time.min)
        last = first + timedelta(days=1) - timedelta(minutes=self.settings.interval_minutes)
        return max(first, min(last, moment))

    def drop(self, task: TaskItem, dropped: datetime, layout: TimelineLayout) -> Optional[str]:
        """
        Drop a task at an instant.

        The start stays on the task's day; drops past midnight land on the
        last grid slot of the day.

        Returns:
            The new source line, or None if dragging is disabled or the task
            is no longer part of layout
        """
        if not self.settings.enable_dragging or not self._is_current(task, layout):
            return None
        if task.interval is not None and task.interval.anchor is not None:
            dropped = self._clamp_to_day(dropped, task.interval.anchor.date())
        _, new_line = apply_drop(task, dropped, self.settings.interval_minutes)
        self._emit(task.source_line, new_line)
        return new_line

    def drop_at(self, task: TaskItem, offset: float, layout: TimelineLayout,
                geometry: Optional[MeasuredGeometry] = None) -> Optional[str]:
        """Drop a task at a vertical offset of the rendered layout."""
        context = self.make_context(layout.ticks, geometry)
        dropped = offset_to_instant(offset, context)
        if dropped is None:
            return None
        return self.drop(task, dropped, layout)

    def nudge(self, task: TaskItem, steps: int, layout: TimelineLayout) -> Optional[str]:
        """Move a timed task by a number of grid steps (keyboard drag)."""
        if not task.has_time:
            return None
        start = task.interval.anchor + timedelta(minutes=steps * self.settings.interval_minutes)
        return self.drop(task, start, layout)

    def resize(self, task: TaskItem, minutes: int, layout: TimelineLayout) -> Optional[str]:
        """Give a task with a start time a new duration, keeping its start."""
        if minutes <= 0 or task.interval is None or task.interval.start is None:
            return None
        if not self._is_current(task, layout):
            return None
        token = f"@{format_clock(task.interval.start)}+{format_duration_suffix(minutes)}"
        new_line = replace_last_time_token(task.source_line, token)
        self._emit(task.source_line, new_line)
        return new_line

    def toggle(self, task: TaskItem, layout: TimelineLayout) -> Optional[str]:
        """Flip a task's checkbox. Returns the new line, or None if stale."""
        if not self._is_current(task, layout):
            return None
        new_line = toggle_completion(task.source_line)
        self._emit(task.source_line, new_line)
        return new_line

    def edit(self, task: TaskItem, body: str, layout: TimelineLayout, now: Optional[datetime] = None) -> Optional[str]:
        """
        Replace a task's label and time tokens.

        body is what follows the checkbox, e.g. "Review @14:00+1h due:17:00".
        The completion state and indentation are kept and the tokens are
        written back in canonical form.

        Returns:
            The new line, or None if the task is stale or body has no label
        """
        if not self._is_current(task, layout):
            return None
        parsed = parse_task_line(f"- [ ] {body}", task.id, now)
        if parsed is None or not parsed.label:
            return None
        new_line = build_task_line(task.completed, parsed.label, parsed.interval,
                                   leading_indent(task.source_line))
        self._emit(task.source_line, new_line)
        return new_line
