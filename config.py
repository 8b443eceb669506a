"""Configuration settings for the timeline application."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple


DEFAULT_INTERVAL_MINUTES = 30


@dataclass
class Config:
    """Application configuration settings.

    Centralized configuration to avoid hardcoded values throughout the codebase.
    """
    # File system
    base_dir: Path = Path("~/tasks").expanduser()

    # Timeline grid
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    allowed_intervals: Tuple[int, ...] = (15, 30, 60)
    enable_dragging: bool = True
    merge_gap_minutes: int = 120  # Gap that still joins two clusters into one window
    default_duration_minutes: int = 30  # Height given to tasks without an end
    now_margin_minutes: int = 30  # Slack around the axis for the "now" marker

    # Display surface (terminal rows)
    rows_per_tick: int = 2
    min_task_height: float = 1.0
    now_refresh_seconds: float = 60.0
    file_watch_seconds: float = 1.0

    # Logging
    log_file: Path = Path.home() / ".ttimeline" / "ttimeline.log"
    log_level: str = "WARNING"

    # Colors
    color_primary: str = "#0abdc6"  # Cyan - primary accent
    color_accent: str = "#ff006e"  # Pink - selection highlight, now marker
    color_secondary: str = "#8b5cf6"  # Purple - secondary accent
    color_bg_dark: str = "#1a1a2e"  # Dark background
    color_bg_medium: str = "#2d2d44"  # Medium background
    color_text: str = "#e2e8f0"  # Light text
    color_text_dim: str = "#ffffff"  # White text

    def __post_init__(self):
        if self.interval_minutes not in self.allowed_intervals:
            self.interval_minutes = DEFAULT_INTERVAL_MINUTES

    def next_interval(self) -> int:
        """Return the allowed interval following the current one (wraps)."""
        intervals = list(self.allowed_intervals)
        index = intervals.index(self.interval_minutes)
        return intervals[(index + 1) % len(intervals)]

    @classmethod
    def load(cls) -> 'Config':
        """
        Load configuration.

        Defaults can be overridden with environment variables:
        TTIMELINE_DIR, TTIMELINE_INTERVAL, TTIMELINE_DRAGGING, TTIMELINE_LOG_LEVEL.
        Values that cannot be parsed are ignored.

        Returns:
            Config instance with default or loaded values
        """
        kwargs = {}

        base_dir = os.environ.get("TTIMELINE_DIR")
        if base_dir:
            kwargs["base_dir"] = Path(base_dir).expanduser()

        interval = os.environ.get("TTIMELINE_INTERVAL")
        if interval:
            try:
                kwargs["interval_minutes"] = int(interval)
            except ValueError:
                pass

        dragging = os.environ.get("TTIMELINE_DRAGGING")
        if dragging:
            kwargs["enable_dragging"] = dragging.strip().lower() not in ("0", "false", "no", "off")

        log_level = os.environ.get("TTIMELINE_LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level.strip().upper()

        return cls(**kwargs)


def configure_logging(settings: Optional[Config] = None) -> logging.Logger:
    """Send the ``ttimeline`` logger tree to the log file.

    The terminal belongs to the TUI, so nothing is written to stderr.
    Safe to call more than once.
    """
    settings = settings or config
    logger = logging.getLogger("ttimeline")
    logger.setLevel(getattr(logging, settings.log_level, logging.WARNING))

    if not logger.handlers:
        try:
            settings.log_file.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        except OSError:
            handler = logging.NullHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


# Global config instance
config = Config.load()
