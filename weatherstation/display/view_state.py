"""View state derived from the current batch of readings."""

from dataclasses import dataclass, field
from typing import List, Optional

from weatherstation.shared.models import Reading

HOURS_PER_VIEWPORT = 24
FULL_WIDTH = 100.0


def latest_reading(readings: List[Reading]) -> Reading:
    """Newest reading, or a zero-valued placeholder when there is none."""
    if readings:
        return readings[0]
    return Reading(id=None, created_at=None, temperature=0.0, humidity=0.0)


def chart_series(readings: List[Reading]) -> List[Reading]:
    """Readings oldest first, the order they are plotted in."""
    return list(reversed(readings))


def chart_width_percent(readings: List[Reading]) -> float:
    """Width of the trend chart as a percentage of the viewport.

    Up to one day of data stretches to fit; longer spans get one viewport
    width per 24 hours and scroll horizontally.
    """
    if len(readings) < 2:
        return FULL_WIDTH

    newest = readings[0].timestamp
    oldest = readings[-1].timestamp
    if newest is None or oldest is None:
        return FULL_WIDTH

    try:
        duration_hours = (newest - oldest).total_seconds() / 3600
    except TypeError:
        # naive and aware timestamps mixed in one batch
        return FULL_WIDTH
    if duration_hours > HOURS_PER_VIEWPORT:
        return duration_hours / HOURS_PER_VIEWPORT * 100
    return FULL_WIDTH


class ChartViewport:
    """Horizontal window over a chart wider than the screen."""

    def __init__(self, viewport_columns: int):
        self.viewport_columns = max(1, viewport_columns)
        self.total_columns = self.viewport_columns
        self.offset = 0

    def resize(self, width_percent: float, viewport_columns: Optional[int] = None) -> None:
        """Recompute the chart width, keeping the pan offset in range."""
        if viewport_columns is not None:
            self.viewport_columns = max(1, viewport_columns)
        self.total_columns = max(
            self.viewport_columns,
            int(round(self.viewport_columns * width_percent / 100)),
        )
        self.offset = min(self.offset, self.max_offset)

    @property
    def max_offset(self) -> int:
        return self.total_columns - self.viewport_columns

    def pan(self, delta: int) -> int:
        """Shift the window by delta columns, clamped to the chart."""
        self.offset = max(0, min(self.max_offset, self.offset + delta))
        return self.offset

    def show_newest(self) -> int:
        """Move the window to the right edge, where the newest readings are."""
        self.offset = self.max_offset
        return self.offset


@dataclass
class RevealWindow:
    """Number of table rows rendered, grown as the viewer nears the bottom."""
    total: int = 0
    page_size: int = 20
    threshold: int = 50
    size: int = field(init=False, default=0)

    def __post_init__(self):
        self.size = self.page_size

    @property
    def visible_count(self) -> int:
        return min(self.size, self.total)

    @property
    def exhausted(self) -> bool:
        return self.size >= self.total

    def reset(self, total: int) -> None:
        """Start over with a fresh batch of ``total`` readings."""
        self.total = total
        self.size = self.page_size

    def grow(self) -> bool:
        """Reveal another page. Returns False when everything is shown."""
        if self.exhausted:
            return False
        self.size = min(self.size + self.page_size, self.total)
        return True

    def on_scroll(self, scroll_top: float, client_height: float, scroll_height: float) -> bool:
        """Grow the window when the scroll position is near the bottom."""
        if scroll_height - scroll_top - client_height <= self.threshold:
            return self.grow()
        return False

    def visible(self, readings: List[Reading]) -> List[Reading]:
        return readings[:self.size]
