"""Timeline widget drawing the layout as a vertical axis of terminal rows."""
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from rich.cells import cell_len, set_cell_size
from rich.markup import escape
from textual import events
from textual.message import Message
from textual.widgets import Static

from models import RenderedTask, TaskItem, TimelineLayout
from utils.time_utils import format_clock, format_duration, time_status
from business_logic.time_windows import is_contiguous

GUTTER_WIDTH = 8  # "HH:MM ┤ "
MIN_BOX_WIDTH = 6

SELECTED_STYLE = "#ff006e on #2d2d44"
NOW_STYLE = "#ff006e"
STATUS_STYLES = {
    "past": "#e2e8f0 on #24243a",
    "current": "bold #1a1a2e on #0abdc6",
    "upcoming": "#e2e8f0 on #2d2d44",
}


class TerminalGeometry:
    """Measured row heights of the widget.

    Every tick takes rows_per_tick rows; a tick followed by a break between
    two windows gets gap_rows extra rows for the separator.
    """

    def __init__(self, rows_per_tick: int, interval_minutes: int, gap_rows: int = 1):
        self.rows_per_tick = rows_per_tick
        self.interval_minutes = interval_minutes
        self.gap_rows = gap_rows

    def tick_height(self, index: int, ticks: Sequence[datetime]) -> Optional[float]:
        if index + 1 < len(ticks) and not is_contiguous(ticks, index, self.interval_minutes):
            return float(self.rows_per_tick + self.gap_rows)
        return float(self.rows_per_tick)


class TimelineWidget(Static):
    """Widget to display the timeline of one task block."""

    def __init__(self, layout: Optional[TimelineLayout] = None, interval_minutes: int = 30, rows_per_tick: int = 2):
        super().__init__()
        self.timeline = layout or TimelineLayout()
        self.interval_minutes = interval_minutes
        self.rows_per_tick = rows_per_tick
        self.selected_index = 0
        self.now: Optional[datetime] = None
        self._drag_line: Optional[str] = None
        self._drag_top = 0.0
        self._drag_row = 0

    def terminal_geometry(self) -> TerminalGeometry:
        return TerminalGeometry(self.rows_per_tick, self.interval_minutes)

    def set_layout(self, layout: TimelineLayout, now: Optional[datetime] = None) -> None:
        """Show a new layout, keeping the selection index in range."""
        self.timeline = layout
        self.now = now
        count = len(layout.all_tasks())
        self.selected_index = min(self.selected_index, max(0, count - 1))
        self.refresh(layout=True)

    def get_available_width(self) -> int:
        """Width to draw into, with a conservative fallback."""
        available_width = 80  # Conservative default
        try:
            if self.parent and hasattr(self.parent, 'scrollable_content_region'):
                available_width = self.parent.scrollable_content_region.width
            elif self.parent and hasattr(self.parent, 'size') and self.parent.size:
                available_width = self.parent.size.width - 6  # -4 padding, -2 scrollbar
            elif hasattr(self, 'app') and hasattr(self.app, 'console'):
                available_width = self.app.console.width - 6
        except (AttributeError, TypeError, RuntimeError):
            pass  # Use default
        return available_width if available_width > GUTTER_WIDTH + MIN_BOX_WIDTH else 80

    def get_selected_task(self) -> Optional[TaskItem]:
        tasks = self.timeline.all_tasks()
        if 0 <= self.selected_index < len(tasks):
            return tasks[self.selected_index]
        return None

    def move_selection(self, delta: int) -> None:
        """Move the selection up or down, clamped to the task list."""
        tasks = self.timeline.all_tasks()
        if not tasks:
            return
        self.selected_index = max(0, min(len(tasks) - 1, self.selected_index + delta))
        self.refresh()
        self.scroll_to_selected()

    def select_line(self, source_line: str) -> None:
        """Select the task with this source line, if present."""
        for index, task in enumerate(self.timeline.all_tasks()):
            if task.source_line == source_line:
                self.selected_index = index
                return

    class TaskDropped(Message):
        """A timed task was dragged with the mouse and released on a row."""

        def __init__(self, task: TaskItem, offset: float) -> None:
            self.task = task
            self.offset = offset
            super().__init__()

    def task_at(self, x: int, y: int) -> Optional[int]:
        """Index of the timed task drawn at widget coordinates, if any."""
        lane_x = x - GUTTER_WIDTH
        if lane_x < 0:
            return None
        lane_width = self.get_available_width() - GUTTER_WIDTH
        for index, rendered in enumerate(self.timeline.tasks):
            top = int(round(rendered.top))
            height = max(1, int(round(rendered.height)))
            left, width = self.box_columns(rendered, lane_width)
            if top <= y < top + height and left <= lane_x < left + width:
                return index
        return None

    def on_mouse_down(self, event: events.MouseDown) -> None:
        index = self.task_at(event.x, event.y)
        if index is None:
            return
        self.selected_index = index
        self._drag_line = self.timeline.tasks[index].task.source_line
        self._drag_top = self.timeline.tasks[index].top
        self._drag_row = event.y
        self.capture_mouse()
        self.refresh()

    def on_mouse_up(self, event: events.MouseUp) -> None:
        source_line, self._drag_line = self._drag_line, None
        self.release_mouse()
        if source_line is None or event.y == self._drag_row:
            return
        # The layout may have been replaced while the button was held
        task = self.timeline.find_task(source_line)
        if task is None:
            return
        # Keep the grab point: the box top moves by as many rows as the pointer
        offset = self._drag_top + (event.y - self._drag_row)
        self.post_message(self.TaskDropped(task, max(0.0, offset)))

    def box_lines(self, rendered: RenderedTask) -> List[str]:
        """Plain text lines shown inside a task box."""
        task = rendered.task
        check = "✓ " if task.completed else ""
        lines = [f"{check}{task.label}"]
        interval = task.interval
        if interval.start is not None and interval.end is not None:
            text = f"{format_clock(interval.start)}-{format_clock(interval.end)}"
            if interval.duration:
                text += f" ({format_duration(interval.duration)})"
            lines.append(text)
        elif interval.start is not None:
            lines.append(format_clock(interval.start))
        if interval.due is not None and interval.due != interval.start:
            lines.append(f"due {format_clock(interval.due)}")
        return lines

    def box_style(self, rendered: RenderedTask, index: int) -> str:
        if index == self.selected_index:
            return SELECTED_STYLE
        style = STATUS_STYLES[time_status(rendered.task.interval.anchor, self.now)]
        if rendered.task.completed:
            style = f"dim strike {style}"
        return style

    def box_columns(self, rendered: RenderedTask, lane_width: int) -> Tuple[int, int]:
        """Left column and width of a task box inside the lane."""
        left = int(lane_width * rendered.offset_percent / 100)
        width = int(lane_width * rendered.width_percent / 100) - 1
        width = max(MIN_BOX_WIDTH, width)
        return left, min(width, max(1, lane_width - left))

    def gutter_rows(self, total_rows: int) -> List[str]:
        """Axis labels: a time at each tick row, separators at window breaks."""
        timeline = self.timeline
        gutter = ["      │ "] * total_rows
        for index, tick in enumerate(timeline.ticks):
            row = int(round(timeline.tick_offsets[index]))
            if row < total_rows:
                gutter[row] = f"[dim]{format_clock(tick)}[/dim] ┤ "
            if index + 1 < len(timeline.ticks) and not is_contiguous(timeline.ticks, index, self.interval_minutes):
                gap_row = int(round(timeline.tick_offsets[index + 1])) - 1
                if 0 <= gap_row < total_rows:
                    gutter[gap_row] = "[dim]  ┄┄  ┊[/dim] "
        return gutter

    def render_axis(self, available_width: int) -> List[str]:
        """Draw the timed tasks over the tick axis."""
        timeline = self.timeline
        total_rows = max(1, int(round(timeline.total_height)))
        lane_width = available_width - GUTTER_WIDTH

        # row -> list of (left, width, text, style)
        rows: List[List[Tuple[int, int, str, str]]] = [[] for _ in range(total_rows)]
        for index, rendered in enumerate(timeline.tasks):
            top = int(round(rendered.top))
            height = max(1, int(round(rendered.height)))
            left, width = self.box_columns(rendered, lane_width)
            style = self.box_style(rendered, index)
            lines = self.box_lines(rendered)
            for offset in range(height):
                row = top + offset
                if not 0 <= row < total_rows:
                    continue
                text = lines[offset] if offset < len(lines) else ""
                marker = "▌" if offset == 0 else " "
                rows[row].append((left, width, marker + text, style))

        now_row = None
        if timeline.now_offset is not None:
            now_row = min(total_rows - 1, int(timeline.now_offset))

        gutter = self.gutter_rows(total_rows)
        output = []
        for row_index, boxes in enumerate(rows):
            fill = "─" if row_index == now_row else " "
            cursor = 0
            parts = [gutter[row_index]]
            for left, width, text, style in sorted(boxes, key=lambda box: box[0]):
                left = max(left, cursor)
                if left >= lane_width:
                    continue
                width = min(width, lane_width - left)
                if left > cursor:
                    parts.append(self._fill(fill, left - cursor))
                parts.append(f"[{style}]{escape(set_cell_size(text, width))}[/]")
                cursor = left + width
            if row_index == now_row and self.now is not None:
                label = f" now {format_clock(self.now)}"
                remaining = lane_width - cursor
                if remaining > cell_len(label):
                    parts.append(self._fill(fill, remaining - cell_len(label)))
                    parts.append(f"[{NOW_STYLE}]{label}[/]")
                    cursor = lane_width
            if row_index == now_row and cursor < lane_width:
                parts.append(self._fill(fill, lane_width - cursor))
            output.append("".join(parts).rstrip())
        return output

    @staticmethod
    def _fill(char: str, count: int) -> str:
        if char == " ":
            return " " * count
        return f"[{NOW_STYLE}]{char * count}[/]"

    def render_untimed(self) -> List[str]:
        """Tasks without time information, listed under the axis."""
        lines = ["", "[bold #8b5cf6]No time[/bold #8b5cf6]"]
        offset = len(self.timeline.tasks)
        for index, task in enumerate(self.timeline.untimed):
            checkbox = "\\[x]" if task.completed else "\\[ ]"
            label = escape(task.label)
            if task.completed:
                label = f"[strike]{label}[/strike]"
            line = f"  {checkbox} {label}"
            if offset + index == self.selected_index:
                line = f"[{SELECTED_STYLE}]{line}[/]"
            lines.append(line)
        return lines

    def render(self) -> str:
        """Render the timeline."""
        timeline = self.timeline
        if timeline.state == "error":
            return f"[bold red]{escape(timeline.error or 'Render error')}[/bold red]"
        if timeline.state == "empty":
            return "[dim]No tasks in this timeline. Press 'a' to add one.[/dim]"

        lines = []
        if timeline.ticks:
            lines.extend(self.render_axis(self.get_available_width()))
        if timeline.untimed:
            lines.extend(self.render_untimed())
        return "\n".join(lines)

    def selected_row(self) -> int:
        """Row of the selected task in the rendered output."""
        timeline = self.timeline
        if self.selected_index < len(timeline.tasks):
            return int(round(timeline.tasks[self.selected_index].top))
        untimed_index = self.selected_index - len(timeline.tasks)
        return int(round(timeline.total_height)) + 2 + untimed_index

    def scroll_to_selected(self) -> None:
        """Scroll the parent container only when the selection leaves the viewport."""
        if not self.timeline.all_tasks():
            return

        line_number = self.selected_row()
        try:
            container = self.parent
            if container and hasattr(container, 'scroll_offset') and hasattr(container, 'size'):
                scroll_y = container.scroll_offset.y
                viewport_height = container.size.height

                visible_top = scroll_y
                visible_bottom = scroll_y + viewport_height - 1

                if line_number < visible_top:
                    container.scroll_to(y=line_number, animate=False)
                elif line_number > visible_bottom:
                    new_scroll_y = line_number - viewport_height + 1
                    container.scroll_to(y=max(0, new_scroll_y), animate=False)
        except (AttributeError, RuntimeError):
            # Widget not mounted yet or container is being replaced
            pass
