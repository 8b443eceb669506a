"""Main TUI application for the task timeline."""
import argparse
import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

from textual.app import App, ComposeResult
from textual.widgets import Header, Static, Input
from textual.containers import Container
from textual.binding import Binding
from textual import events

from config import Config, config, configure_logging
from markdown_handler import MarkdownHandler, TASK_LINE_RE
from business_logic.now_indicator import NowIndicatorTicker
from business_logic.timeline_engine import TimelineEngine
from ui.help_screen import HelpScreen
from ui.timeline_widget import TimelineWidget
from ui.widgets import CenteredFooter
from utils.time_utils import format_duration, parse_duration_string

logger = logging.getLogger("ttimeline.app")


class TimelineApp(App):
    """A terminal timeline of the day's time-tagged tasks."""

    TITLE = "tTimeline"

    CSS = """
    Screen {
        background: #1a1a2e;
    }

    Header {
        background: #2d2d44;
        color: #0abdc6;
    }

    #date_header {
        height: 3;
        content-align: center middle;
        background: #0abdc6;
        color: #ffffff;
        text-style: bold;
    }

    #timeline {
        height: 1fr;
        padding: 1 2;
        overflow-y: auto;
        background: #1a1a2e;
    }

    TimelineWidget {
        height: auto;
        color: #e2e8f0;
    }

    #input_container {
        height: auto;
        padding: 1;
        background: #1a1a2e;
    }

    Input {
        margin: 0 1;
        background: #2d2d44;
        color: #ffffff;
        border: tall #8b5cf6;
    }

    Input:focus {
        border: tall #0abdc6;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=False),
        Binding("h", "show_help", "Help", show=False),
        Binding("a", "add_task", "Add", show=False),
        Binding("e", "edit_task", "Edit", show=False),
        Binding("t", "set_duration", "Duration", show=False),
        Binding("x", "toggle_complete", "Complete", show=False),
        Binding("space", "toggle_complete", "Complete", show=False),
        Binding("j", "move_down", "Down", show=False),
        Binding("k", "move_up", "Up", show=False),
        Binding("down", "move_down", "Down", show=False),
        Binding("up", "move_up", "Up", show=False),
        Binding("right_square_bracket", "nudge_later", "Later", show=False),
        Binding("left_square_bracket", "nudge_earlier", "Earlier", show=False),
        Binding("shift+down", "nudge_later", "S-↓ Later", show=False),
        Binding("shift+up", "nudge_earlier", "S-↑ Earlier", show=False),
        Binding("i", "cycle_interval", "Interval", show=False),
        Binding("D", "toggle_dragging", "Dragging", show=False),
        Binding("r", "reload", "Reload", show=False),
        Binding("left", "prev_day", "Prev Day", show=False),
        Binding("right", "next_day", "Next Day", show=False),
        Binding("g", "today", "Today", show=False),
    ]

    def __init__(self, file_path: Optional[Path] = None, settings: Optional[Config] = None):
        """
        Initialize TimelineApp.

        Args:
            file_path: Markdown file to show. If None, the daily file of the
                current date under the configured base directory is used and
                day navigation is enabled.
            settings: Configuration. If None, uses the global config.
        """
        super().__init__()
        self.settings = settings or config
        self.handler = MarkdownHandler(str(self.settings.base_dir))
        self.engine = TimelineEngine(self.settings, on_change=self._persist_change)
        self.fixed_path = Path(file_path).expanduser() if file_path else None
        self.current_date = date.today()
        self.text = self.handler.load_timeline_text(self.file_path)

        self.adding_task = False
        self.editing_task = False
        self.setting_duration = False
        self.task_to_edit = None
        # File watching state
        self.last_file_mtime = None
        self.file_watch_interval = None
        self.now_ticker = None

    @property
    def file_path(self) -> Path:
        if self.fixed_path is not None:
            return self.fixed_path
        return self.handler.get_file_path(self.current_date)

    def compose(self) -> ComposeResult:
        """Compose the UI."""
        yield Header()
        yield Static(id="date_header")
        yield Container(
            TimelineWidget(interval_minutes=self.engine.interval_minutes,
                           rows_per_tick=self.settings.rows_per_tick),
            id="timeline"
        )
        yield Container(id="input_container")
        yield CenteredFooter()

    def on_mount(self) -> None:
        """Set up the app after mounting."""
        self.update_date_header()
        self.render_timeline()
        self.update_footer()
        # Start file watcher for external changes
        self._update_file_mtime()
        self.file_watch_interval = self.set_interval(self.settings.file_watch_seconds, self._check_file_changes)
        self.now_ticker = NowIndicatorTicker(self.set_interval, self.render_timeline,
                                             self.settings.now_refresh_seconds)
        self.now_ticker.start()

    def on_unmount(self) -> None:
        """Stop recurring timers."""
        if self.now_ticker is not None:
            self.now_ticker.stop()
        if self.file_watch_interval is not None:
            self.file_watch_interval.stop()

    def render_timeline(self) -> None:
        """Run a render pass over the current text and show it."""
        try:
            widget = self.query_one(TimelineWidget)
        except Exception:
            # Widget not accessible (e.g., modal is open)
            return
        now = datetime.now()
        widget.interval_minutes = self.engine.interval_minutes
        # A fixed file follows the wall clock; a daily file belongs to its date
        day = None if self.fixed_path is not None else self.current_date
        layout = self.engine.render(self.text, now, widget.terminal_geometry(), day=day)
        widget.set_layout(layout, now)
        widget.scroll_to_selected()

    @property
    def current_layout(self):
        return self.query_one(TimelineWidget).timeline

    def _update_file_mtime(self) -> None:
        """Update the stored modification time of the shown file."""
        try:
            if self.file_path.exists():
                self.last_file_mtime = self.file_path.stat().st_mtime
            else:
                self.last_file_mtime = None
        except OSError:
            self.last_file_mtime = None

    def _check_file_changes(self) -> None:
        """Reload if the shown file has been modified externally."""
        file_path = self.file_path
        try:
            if not file_path.exists():
                # File was deleted externally
                if self.last_file_mtime is not None:
                    self.last_file_mtime = None
                    self._reload_from_disk()
                return

            current_mtime = file_path.stat().st_mtime
            if self.last_file_mtime is None or current_mtime > self.last_file_mtime:
                self.last_file_mtime = current_mtime
                self._reload_from_disk()
        except OSError as e:
            # File access error, skip this check
            logger.debug("File check failed for %s: %s", file_path, e)

    def _reload_from_disk(self) -> None:
        """Reload the timeline text and re-render, keeping the selection."""
        self.text = self.handler.load_timeline_text(self.file_path)
        self.render_timeline()

    def update_date_header(self) -> None:
        """Update the date header."""
        header = self.query_one("#date_header", Static)
        if self.fixed_path is not None:
            header.update(self.fixed_path.name)
        else:
            header.update(self.current_date.strftime("%A, %B %d, %Y"))

    def update_footer(self) -> None:
        """Show the grid step and dragging state."""
        try:
            footer = self.query_one(CenteredFooter)
        except Exception:
            # Footer not accessible (modal is open or transitioning)
            return
        footer.show_status(self.engine.interval_minutes, self.engine.settings.enable_dragging)

    def _persist_change(self, old_line: str, new_line: str) -> None:
        """Write a task line change reported by the engine to the file."""
        try:
            changed = self.handler.replace_line(self.file_path, old_line, new_line)
        except IOError as e:
            logger.error("%s", e)
            self.notify(str(e), severity="error")
            return
        if not changed:
            self.notify("Task line not found in file; reloading", severity="warning")

    def _after_change(self, new_line: Optional[str]) -> None:
        """Reload after an edit and keep the changed task selected."""
        self._reload_from_disk()
        self._update_file_mtime()
        if new_line:
            widget = self.query_one(TimelineWidget)
            widget.select_line(new_line)
            widget.refresh()
            widget.scroll_to_selected()

    def action_move_down(self) -> None:
        """Move selection down."""
        self.query_one(TimelineWidget).move_selection(1)

    def action_move_up(self) -> None:
        """Move selection up."""
        self.query_one(TimelineWidget).move_selection(-1)

    def _nudge(self, steps: int) -> None:
        task = self.query_one(TimelineWidget).get_selected_task()
        if not task or not task.has_time:
            return
        if not self.engine.settings.enable_dragging:
            self.notify("Dragging is disabled (press D)", severity="warning")
            return
        self._after_change(self.engine.nudge(task, steps, self.current_layout))

    def action_nudge_later(self) -> None:
        """Move the selected task one grid step later."""
        self._nudge(1)

    def action_nudge_earlier(self) -> None:
        """Move the selected task one grid step earlier."""
        self._nudge(-1)

    def on_timeline_widget_task_dropped(self, message: TimelineWidget.TaskDropped) -> None:
        """Handle a mouse drop on the axis."""
        if not self.engine.settings.enable_dragging:
            self.notify("Dragging is disabled (press D)", severity="warning")
            return
        widget = self.query_one(TimelineWidget)
        new_line = self.engine.drop_at(message.task, message.offset, widget.timeline, widget.terminal_geometry())
        self._after_change(new_line)

    def action_toggle_complete(self) -> None:
        """Toggle completion of selected task."""
        task = self.query_one(TimelineWidget).get_selected_task()
        if task:
            self._after_change(self.engine.toggle(task, self.current_layout))

    def action_cycle_interval(self) -> None:
        """Switch to the next grid step."""
        self.engine.update_config(interval_minutes=self.engine.settings.next_interval())
        self.render_timeline()
        self.update_footer()

    def action_toggle_dragging(self) -> None:
        """Enable or disable moving tasks."""
        self.engine.update_config(enable_dragging=not self.engine.settings.enable_dragging)
        self.update_footer()

    def action_reload(self) -> None:
        """Reload the file from disk."""
        self._reload_from_disk()
        self._update_file_mtime()

    def _navigate_to_date(self, new_date: date) -> None:
        """Show the daily file of another date."""
        if self.fixed_path is not None:
            self.notify("Day navigation is only available for daily files")
            return
        self.current_date = new_date
        self.query_one(TimelineWidget).selected_index = 0
        self.update_date_header()
        self._reload_from_disk()
        self._update_file_mtime()

    def action_next_day(self) -> None:
        """Navigate to next day."""
        self._navigate_to_date(self.current_date + timedelta(days=1))

    def action_prev_day(self) -> None:
        """Navigate to previous day."""
        self._navigate_to_date(self.current_date - timedelta(days=1))

    def action_today(self) -> None:
        """Navigate to today."""
        self._navigate_to_date(date.today())

    def action_show_help(self) -> None:
        """Show the help screen."""
        self.push_screen(HelpScreen())

    def action_add_task(self) -> None:
        """Show input to add a new task."""
        if self.adding_task or self.editing_task:
            return
        self.adding_task = True
        container = self.query_one("#input_container")
        input_widget = Input(placeholder="Enter task (e.g. Review PR @14:00+1h due:17:00)...")
        container.mount(input_widget)
        input_widget.focus()

    def action_edit_task(self) -> None:
        """Edit the label and time tokens of the selected task."""
        task = self.query_one(TimelineWidget).get_selected_task()
        if not task or self.editing_task or self.adding_task:
            return
        match = TASK_LINE_RE.match(task.source_line)
        body = match.group(2) if match else task.label

        self.editing_task = True
        self.task_to_edit = task
        container = self.query_one("#input_container")
        input_widget = Input(value=body, placeholder="Edit task...")
        container.mount(input_widget)
        input_widget.focus()

    def action_set_duration(self) -> None:
        """Set the duration of the selected task."""
        task = self.query_one(TimelineWidget).get_selected_task()
        if not task or task.interval is None or task.interval.start is None:
            return
        if self.editing_task or self.adding_task or self.setting_duration:
            return
        current = f" [current: {format_duration(task.interval.duration)}]" if task.interval.duration else ""

        self.setting_duration = True
        self.task_to_edit = task
        container = self.query_one("#input_container")
        input_widget = Input(placeholder=f"Enter duration (e.g., 30, 45min, 1.5h, 1h30m){current}")
        container.mount(input_widget)
        input_widget.focus()

    def _handle_add_task_input(self, value: str) -> None:
        """Append a new unchecked task line."""
        if value:
            try:
                self.handler.append_line(self.file_path, f"- [ ] {value}", header_date=self.current_date)
            except IOError as e:
                logger.error("%s", e)
                self.notify(str(e), severity="error")
            self._after_change(None)
        self.adding_task = False

    def _handle_edit_task_input(self, value: str) -> None:
        """Rewrite the edited task line."""
        if value and self.task_to_edit is not None:
            new_line = self.engine.edit(self.task_to_edit, value, self.current_layout)
            if new_line is None:
                self.notify("Task changed on disk or has no label; edit discarded", severity="warning")
            self._after_change(new_line)
        self.editing_task = False
        self.task_to_edit = None

    def _handle_duration_input(self, value: str) -> None:
        """Rewrite the start token of the task with the new duration."""
        if value and self.task_to_edit is not None:
            minutes = parse_duration_string(value)
            if minutes is None:
                self.notify(f"Cannot read duration: {value}", severity="warning")
            else:
                self._after_change(self.engine.resize(self.task_to_edit, minutes, self.current_layout))
        self.setting_duration = False
        self.task_to_edit = None

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle input submission by dispatching to appropriate handler."""
        value = event.value.strip()

        if self.adding_task:
            self._handle_add_task_input(value)
        elif self.editing_task:
            self._handle_edit_task_input(value)
        elif self.setting_duration:
            self._handle_duration_input(value)

        # Remove input widget
        event.input.remove()

    def _clear_input_state(self) -> None:
        """Clear all input mode state flags."""
        self.adding_task = False
        self.editing_task = False
        self.setting_duration = False
        self.task_to_edit = None

    def on_key(self, event: events.Key) -> None:
        """Handle escape while an input is open."""
        focused = self.focused
        if isinstance(focused, Input):
            if event.key == "escape":
                focused.remove()
                self._clear_input_state()
                event.prevent_default()
            return

        if event.key == "escape":
            # Don't handle escape if a modal screen is active
            if len(self.screen_stack) > 1:
                return
            container = self.query_one("#input_container")
            inputs = container.query(Input)
            if inputs:
                for input_widget in inputs:
                    input_widget.remove()
                self._clear_input_state()


def main():
    """Run the application."""
    parser = argparse.ArgumentParser(prog="ttimeline", description="Terminal timeline of time-tagged tasks")
    parser.add_argument("file", nargs="?", help="markdown file to show (default: today's daily file)")
    args = parser.parse_args()

    configure_logging()
    app = TimelineApp(Path(args.file) if args.file else None)
    app.run()


if __name__ == "__main__":
    main()
