"""Mapping between instants on the tick axis and vertical pixel offsets.

The display surface draws one row (of nominal height) per tick, but may
report different measured heights, e.g. an extra separator row after a
window break. A RenderContext is built fresh for every render pass and
holds the offset table for that pass, so no geometry survives a re-render.
"""
from bisect import bisect_right
from datetime import datetime, timedelta
from typing import Dict, Optional, Protocol, Sequence

from models import ParsedInterval, PixelPosition


class MeasuredGeometry(Protocol):
    """Capability that reports the measured height of tick rows."""

    def tick_height(self, index: int, ticks: Sequence[datetime]) -> Optional[float]:
        """Height of the row for ticks[index], or None to use the nominal height."""
        ...


class NominalGeometry:
    """Every tick row has the nominal height."""

    def tick_height(self, index: int, ticks: Sequence[datetime]) -> Optional[float]:
        return None


class RenderContext:
    """Per-render state for position mapping.

    Offsets are prefix sums of the measured tick heights, filled lazily and
    keyed by tick index. invalidate() drops them when the surface geometry
    changes (resize); a new render pass simply builds a new context.
    """

    def __init__(
        self,
        ticks: Sequence[datetime],
        interval_minutes: int,
        nominal_height: float = 60.0,
        min_height: float = 20.0,
        geometry: Optional[MeasuredGeometry] = None,
    ):
        self.ticks = list(ticks)
        self.interval_minutes = interval_minutes
        self.nominal_height = nominal_height
        self.min_height = min_height
        self.geometry = geometry or NominalGeometry()
        self._offsets: Dict[int, float] = {}

    def invalidate(self) -> None:
        """Forget cached offsets."""
        self._offsets.clear()

    def tick_height(self, index: int) -> float:
        measured = self.geometry.tick_height(index, self.ticks)
        if measured is None or measured <= 0:
            return self.nominal_height
        return float(measured)

    def offset(self, index: int) -> float:
        """Top of the row for ticks[index]; index == len(ticks) is the bottom."""
        if index <= 0:
            return 0.0
        if index in self._offsets:
            return self._offsets[index]

        # Extend the table from the last known entry
        known = max((i for i in self._offsets if i < index), default=0)
        total = self._offsets.get(known, 0.0)
        for i in range(known, index):
            total += self.tick_height(i)
            self._offsets[i + 1] = total
        return total

    @property
    def total_height(self) -> float:
        return self.offset(len(self.ticks))

    @property
    def step(self) -> timedelta:
        return timedelta(minutes=self.interval_minutes)


def instant_offset(moment: datetime, context: RenderContext) -> float:
    """
    Vertical offset of an instant.

    The instant is located between the tick at or before it and the end of
    that tick's bracket (the next tick, or one grid step later when the next
    tick is further away). The fraction inside the bracket is applied to the
    measured row offsets. Instants before the first tick extrapolate with the
    nominal height; instants past the last row clamp to the bottom.
    """
    ticks = context.ticks
    if not ticks:
        return 0.0

    step_seconds = context.step.total_seconds()
    if moment < ticks[0]:
        return (moment - ticks[0]).total_seconds() / step_seconds * context.nominal_height

    index = bisect_right(ticks, moment) - 1
    tick = ticks[index]
    bracket_end = tick + context.step
    if index + 1 < len(ticks):
        bracket_end = min(bracket_end, ticks[index + 1])

    fraction = (moment - tick).total_seconds() / (bracket_end - tick).total_seconds()
    fraction = min(1.0, fraction)

    top = context.offset(index)
    bottom = context.offset(index + 1)
    return top + fraction * (bottom - top)


def map_span(start: datetime, end: datetime, context: RenderContext) -> PixelPosition:
    """Pixel span of [start, end]; height floored at context.min_height."""
    top = instant_offset(start, context)
    bottom = instant_offset(end, context)
    height = bottom - top
    return PixelPosition(top=max(0.0, top), height=max(context.min_height, height))


def map_interval(interval: ParsedInterval, context: RenderContext, default_minutes: int = 30) -> PixelPosition:
    """
    Pixel position of a task interval.

    Args:
        interval: Parsed interval with a start or due time
        context: Render context of the current pass
        default_minutes: Length given to intervals without an end

    Returns:
        PixelPosition with top >= 0 and height >= context.min_height
    """
    if interval is None or interval.anchor is None or not context.ticks:
        return PixelPosition(top=0.0, height=context.min_height)
    start, end = interval.span(default_minutes)
    return map_span(start, end, context)


def offset_to_instant(offset: float, context: RenderContext) -> Optional[datetime]:
    """
    Inverse mapping: the instant drawn at a vertical offset.

    Used to turn a drop position on the surface into an instant before it is
    quantized.

    Returns:
        datetime, or None if there are no ticks
    """
    ticks = context.ticks
    if not ticks:
        return None
    if offset <= 0:
        return ticks[0]

    for index, tick in enumerate(ticks):
        top = context.offset(index)
        bottom = context.offset(index + 1)
        if offset < bottom or index == len(ticks) - 1:
            bracket_end = tick + context.step
            if index + 1 < len(ticks):
                bracket_end = min(bracket_end, ticks[index + 1])
            height = bottom - top
            fraction = 0.0 if height <= 0 else min(1.0, (offset - top) / height)
            return tick + (bracket_end - tick) * fraction
    return ticks[-1]
