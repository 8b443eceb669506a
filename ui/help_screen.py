"""Help screen listing keys and time token formats."""
from textual.app import ComposeResult
from textual.screen import Screen
from textual.widgets import Static
from textual.containers import VerticalScroll
from textual.binding import Binding
from textual import events


class HelpScreen(Screen):
    """Modal screen showing keyboard shortcuts."""

    BINDINGS = [
        Binding("escape", "dismiss", "Close", show=False),
    ]

    CSS = """
    HelpScreen {
        align: center middle;
        background: rgba(26, 26, 46, 0.9);
    }

    #help_container {
        width: 80;
        height: auto;
        max-height: 90%;
        background: #2d2d44;
        border: thick #0abdc6;
        padding: 1 2;
    }

    #help_title {
        text-align: center;
        text-style: bold;
        color: #0abdc6;
        margin-bottom: 1;
    }

    #help_content {
        height: auto;
        overflow-y: auto;
        color: #e2e8f0;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the help screen."""
        with VerticalScroll(id="help_container"):
            yield Static("Keyboard Shortcuts", id="help_title")
            yield Static(self.get_help_text(), id="help_content")

    def get_help_text(self) -> str:
        """Get formatted help text."""
        return """[bold]Navigation[/bold]
↑/↓ or j/k    Move selection up/down (timed tasks, then untimed)
←/→           Previous/next day (daily files only)
g             Jump to today

[bold]Task Operations[/bold]
a             Add a task line to the timeline block
e             Edit label and time tokens of the selected task
t             Set duration of the selected task (30, 45min, 1.5h, 1h30m)
Space or x    Toggle task completion

[bold]Moving Tasks[/bold]
] or Shift+↓  Move selected task one grid step later
[ or Shift+↑  Move selected task one grid step earlier
Mouse drag    Drag a task box and release it on a new row
              • Start snaps to the grid (ties round up)
              • A duration (+1h) or range (-16:00) keeps its length
D             Enable/disable moving tasks

[bold]Time Tokens[/bold]
@14:30            Start (30 min box)
@14:30+2h         Start + duration (also +90min, +1h30min)
@14:30-16:00      Range; an earlier end is on the next day
due:16:00         Due time
@2:30pm, @下午2点30分, @in 30 minutes, @30分钟后

[bold]View[/bold]
i             Cycle grid step (15 / 30 / 60 minutes)
r             Reload the file from disk
              • External changes are picked up every second

[bold]General[/bold]
h             Show this help
q             Quit

[dim]Press Esc to close this help[/dim]"""

    def on_key(self, event: events.Key) -> None:
        """Handle key events - block all except Esc and arrow keys."""
        # Allow Esc (handled by binding) and arrow keys (for scrolling)
        if event.key not in ("escape", "up", "down"):
            event.prevent_default()
            event.stop()

    def action_dismiss(self) -> None:
        """Close the help screen."""
        self.dismiss()
