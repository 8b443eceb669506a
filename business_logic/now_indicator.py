"""Current time marker on the timeline."""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from business_logic.position_mapper import RenderContext, instant_offset

logger = logging.getLogger("ttimeline.now")

# scheduler(seconds, callback) -> handle with stop(); textual's App.set_interval fits
Scheduler = Callable[[float, Callable[[], None]], Any]


def now_position(now: datetime, context: RenderContext, margin_minutes: int = 30) -> Optional[float]:
    """
    Vertical offset of the "now" marker.

    Args:
        now: Current instant
        context: Render context of the current pass
        margin_minutes: Slack allowed before the first tick and after the
            last tick's slot

    Returns:
        Offset clamped to the drawn axis, or None when now falls outside
        [first tick - margin, last tick + interval + margin]
    """
    ticks = context.ticks
    if not ticks:
        return None

    margin = timedelta(minutes=margin_minutes)
    if now < ticks[0] - margin or now > ticks[-1] + context.step + margin:
        return None

    offset = instant_offset(now, context)
    return min(max(0.0, offset), context.total_height)


class NowIndicatorTicker:
    """Polling handle that refreshes the "now" marker on a fixed cadence.

    The timer lives between start() and stop(); the view stops it when it
    is torn down so no recurring timer outlives it.
    """

    def __init__(self, scheduler: Scheduler, callback: Callable[[], None], seconds: float = 60.0):
        self.scheduler = scheduler
        self.callback = callback
        self.seconds = seconds
        self._handle = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        """Start polling. Calling start() twice keeps a single timer."""
        if self._handle is not None:
            return
        self._handle = self.scheduler(self.seconds, self._tick)

    def stop(self) -> None:
        """Cancel the timer if one is running."""
        if self._handle is None:
            return
        self._handle.stop()
        self._handle = None

    def _tick(self) -> None:
        try:
            self.callback()
        except Exception:
            # The view may be mid re-render or already gone
            logger.exception("Now marker refresh failed")
