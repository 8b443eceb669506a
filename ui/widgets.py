"""Custom UI widgets for the timeline app."""
from textual.widgets import Static

HINTS = "[bold]H[/bold] [dim]Help[/dim] [bold]Q[/bold] [dim]Quit[/dim]"


class CenteredFooter(Static):
    """Footer line with the grid step, dragging state and key hints."""

    DEFAULT_CSS = """
    CenteredFooter {
        background: transparent;
        color: #0abdc6;
        dock: bottom;
        height: 1;
        text-align: center;
        border: thick #0abdc6;
    }
    """

    def __init__(self):
        super().__init__()
        self.update(f"[dim]Press[/dim] {HINTS}")

    @staticmethod
    def status_text(interval_minutes: int, dragging: bool) -> str:
        drag = "[green]on[/green]" if dragging else "[red]off[/red]"
        return f"Grid: [bold]{interval_minutes}m[/bold] [dim]•[/dim] Drag: {drag} [dim]•[/dim] {HINTS}"

    def show_status(self, interval_minutes: int, dragging: bool) -> None:
        self.update(self.status_text(interval_minutes, dragging))
