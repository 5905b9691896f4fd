"""
Terminal Monitor for the Weather Station Dashboard
Full-screen terminal interface using Rich library.
"""

import asyncio
import logging
import os
import signal
import sys
import termios
import tty
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Set

from rich.align import Align
from rich.console import Console, Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from weatherstation.shared.models import Reading
from .config import Config
from .poller import PollingHandle, ReadingPoller
from .view_state import (
    ChartViewport,
    RevealWindow,
    chart_series,
    chart_width_percent,
    latest_reading,
)

logger = logging.getLogger(__name__)

BLOCKS = " ▁▂▃▄▅▆▇█"

# Panel borders and padding eaten from the console width
CHART_MARGIN = 4

# Scroll geometry units per table row, the same units as display.scroll_threshold
ROW_UNITS = 10

# Chart columns moved per pan key press
PAN_STEP = 8

KEY_UP = "\x1b[A"
KEY_DOWN = "\x1b[B"
KEY_RIGHT = "\x1b[C"
KEY_LEFT = "\x1b[D"

KEY_HELP = "r refresh  j/k scroll  h/l pan  q quit"


def resample(values: Sequence[float], columns: int) -> List[float]:
    """Stretch or squeeze values onto ``columns`` evenly spaced samples."""
    if not values or columns <= 0:
        return []
    if len(values) == 1:
        return [values[0]] * columns
    if columns == 1:
        return [values[-1]]
    last = len(values) - 1
    return [values[round(c * last / (columns - 1))] for c in range(columns)]


def render_area(values: Sequence[float], height: int) -> List[str]:
    """Render values as rows of block characters, top row first."""
    if not values or height <= 0:
        return []
    lo, hi = min(values), max(values)
    steps = height * 8
    if hi > lo:
        levels = [(v - lo) / (hi - lo) * steps for v in values]
    else:
        levels = [steps / 2] * len(values)

    rows = []
    for row in range(height, 0, -1):
        base = (row - 1) * 8
        rows.append("".join(
            BLOCKS[max(0, min(8, int(level - base)))] for level in levels
        ))
    return rows


def format_time(reading: Reading, fmt: str = "%H:%M") -> str:
    ts = reading.timestamp
    if ts is None:
        return "---"
    return ts.astimezone().strftime(fmt)


def split_keys(data: str) -> List[str]:
    """Split raw terminal input into key presses, keeping arrow sequences whole."""
    keys = []
    i = 0
    while i < len(data):
        if data.startswith("\x1b[", i) and i + 2 < len(data):
            keys.append(data[i:i + 3])
            i += 3
        else:
            keys.append(data[i])
            i += 1
    return keys


class TerminalMonitor:
    """Terminal-based dashboard using Rich"""

    def __init__(self, config: Config, poller: ReadingPoller, console: Optional[Console] = None):
        self.config = config
        self.poller = poller
        self.console = console or Console()

        self.reveal = RevealWindow(
            page_size=config.display.page_size,
            threshold=config.display.scroll_threshold,
        )
        self.viewport = ChartViewport(self.console.width - CHART_MARGIN)
        # First table row on screen
        self.table_offset = 0

        # Redraw as each fetch goes out so the refreshing marker shows
        self.poller.on_fetch_start = self.update_display

        self._handle: Optional[PollingHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._running = False

    def on_readings(self, readings: List[Reading]):
        """Poll callback: refresh derived view state and redraw."""
        if self.poller.last_error is None:
            self.reveal.reset(len(self.poller.readings))
            self.table_offset = 0
            self.viewport.resize(
                chart_width_percent(self.poller.readings),
                self.console.width - CHART_MARGIN,
            )
            self.viewport.show_newest()
        self.update_display()

    async def refresh(self) -> List[Reading]:
        """Fetch a batch now, outside the polling schedule."""
        readings = await self.poller.poll()
        self.on_readings(readings)
        return readings

    def scroll(self, scroll_top: float, client_height: float, scroll_height: float) -> bool:
        """Reveal more table rows when scrolled near the bottom."""
        grew = self.reveal.on_scroll(scroll_top, client_height, scroll_height)
        if grew:
            self.update_display()
        return grew

    def scroll_rows(self, delta: int) -> int:
        """Scroll the readings table by delta rows and reveal more near the bottom."""
        visible = min(self.reveal.visible_count, len(self.poller.readings))
        fit = self._table_rows()
        self.table_offset = max(0, min(max(0, visible - fit), self.table_offset + delta))
        if not self.scroll(
            scroll_top=self.table_offset * ROW_UNITS,
            client_height=fit * ROW_UNITS,
            scroll_height=visible * ROW_UNITS,
        ):
            self.update_display()
        return self.table_offset

    def pan(self, delta: int) -> int:
        """Pan the trend chart horizontally."""
        offset = self.viewport.pan(delta)
        self.update_display()
        return offset

    def handle_key(self, key: str):
        """Act on one key press."""
        if key == "r":
            task = asyncio.create_task(self.refresh())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        elif key in ("j", KEY_DOWN):
            self.scroll_rows(1)
        elif key in ("k", KEY_UP):
            self.scroll_rows(-1)
        elif key == " ":
            self.scroll_rows(self._table_rows())
        elif key in ("h", KEY_LEFT):
            self.pan(-PAN_STEP)
        elif key in ("l", KEY_RIGHT):
            self.pan(PAN_STEP)
        elif key == "q":
            logger.info("Quit requested")
            self._running = False

    def _on_input(self, fd: int):
        data = os.read(fd, 64)
        if not data:
            asyncio.get_running_loop().remove_reader(fd)
            return
        for key in split_keys(data.decode(errors="ignore")):
            self.handle_key(key)

    def _table_rows(self) -> int:
        """Rows of readings that fit on screen below the chart."""
        used = 3 + 6 + self.config.display.chart_height * 2 + 5
        # panel border and table header
        return max(1, self.console.height - used - 3)

    def update_display(self):
        """Redraw the dashboard with current poller state"""
        try:
            layout = self.render()
            self.console.clear()
            self.console.print(layout)
        except Exception as e:
            logger.error(f"Display update failed: {e}")
            self._show_error_display(str(e))

    def render(self) -> Layout:
        """Create the main display layout"""
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="cards", size=6),
            Layout(name="chart", size=self.config.display.chart_height * 2 + 5),
            Layout(name="readings"),
        )
        layout["cards"].split_row(
            Layout(name="temperature"),
            Layout(name="humidity"),
            Layout(name="status"),
        )

        latest = latest_reading(self.poller.readings)
        layout["header"].update(self._create_header())
        layout["temperature"].update(self._create_temperature_card(latest))
        layout["humidity"].update(self._create_humidity_card(latest))
        layout["status"].update(self._create_status_card())
        layout["chart"].update(self._create_chart_panel())
        layout["readings"].update(self._create_readings_panel())
        return layout

    def _create_header(self) -> Panel:
        header_text = Text()
        header_text.append("WEATHER STATION", style="bold cyan")
        header_text.append("  ● ", style="green")
        header_text.append("Live Monitoring", style="white")
        if self.poller.loading:
            header_text.append("  ⟳ refreshing", style="yellow")
        header_text.append(f"   {KEY_HELP}", style="dim")
        return Panel(Align.center(header_text), style="cyan")

    def _create_temperature_card(self, latest: Reading) -> Panel:
        content = Text()
        content.append(f"{latest.temperature:.1f}°C\n", style="bold red")
        content.append("Optimal Range", style="dim")
        return Panel(content, title="TEMPERATURE", style="red")

    def _create_humidity_card(self, latest: Reading) -> Panel:
        content = Text()
        content.append(f"{latest.humidity:.1f}%\n", style="bold blue")
        content.append("Comfortable", style="dim")
        return Panel(content, title="HUMIDITY", style="blue")

    def _create_status_card(self) -> Panel:
        content = Text()
        content.append("System Active\n", style="bold green")

        last = self.poller.last_successful_fetch
        updated = last.strftime("%H:%M:%S") if last else "..."
        content.append(f"Last updated: {updated}", style="white")

        if self.poller.source.kind == "synthetic":
            content.append("\nDemo data", style="yellow")

        error = self.poller.last_error
        if self.config.display.show_errors and error is not None:
            content.append(f"\nError: {error.message}", style="bold red")

        return Panel(content, title="STATUS", style="cyan")

    def _create_chart_panel(self) -> Panel:
        series = chart_series(self.poller.readings)
        if not series:
            return Panel(
                Align.center(Text("Waiting for readings...", style="dim")),
                title="ENVIRONMENTAL TRENDS",
                style="cyan",
            )

        height = self.config.display.chart_height
        start = self.viewport.offset
        end = start + self.viewport.viewport_columns

        charts = []
        for label, values, style, unit in (
            ("Temperature", [r.temperature for r in series], "red", "°C"),
            ("Humidity", [r.humidity for r in series], "blue", "%"),
        ):
            columns = resample(values, self.viewport.total_columns)[start:end]
            charts.append(Text(
                f"{label} ({min(values):.1f}-{max(values):.1f}{unit})", style=f"bold {style}"
            ))
            for row in render_area(columns, height):
                charts.append(Text(row, style=style))

        # x axis: the visible slice's first and last timestamps
        first = series[round(start / max(1, self.viewport.total_columns - 1) * (len(series) - 1))]
        last = series[round((end - 1) / max(1, self.viewport.total_columns - 1) * (len(series) - 1))]
        axis = Table.grid(expand=True)
        axis.add_column(justify="left")
        axis.add_column(justify="right")
        axis.add_row(format_time(first), format_time(last))
        charts.append(axis)

        title = "ENVIRONMENTAL TRENDS"
        if self.viewport.max_offset > 0:
            title += f" [{self.viewport.offset}/{self.viewport.max_offset}]"
        return Panel(Group(*charts), title=title, style="cyan")

    def _create_readings_panel(self) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", box=None, expand=True)
        table.add_column("Time", style="white")
        table.add_column("Temperature", style="white")
        table.add_column("Humidity", style="white")
        table.add_column("Status", style="white")

        for reading in self.reveal.visible(self.poller.readings)[self.table_offset:]:
            table.add_row(
                format_time(reading),
                f"{reading.temperature:.1f}°C",
                f"{reading.humidity:.1f}%",
                Text("OK", style="green"),
            )

        total = len(self.poller.readings)
        title = f"RECENT READINGS ({min(self.reveal.visible_count, total)}/{total})"
        return Panel(table, title=title, style="cyan")

    def _show_error_display(self, error_msg: str):
        """Show error display when rendering fails"""
        try:
            self.console.clear()
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.console.print(Panel(
                Align.center(Text(f"DISPLAY ERROR - {timestamp}\n\n{error_msg}", style="bold red")),
                title="System Error",
                style="red",
            ))
        except Exception as e:
            logger.error(f"Failed to show error display: {e}")

    def _setup_signal_handlers(self):
        """Set up signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            signame = signal.Signals(signum).name
            logger.info(f"Received {signame}, shutting down...")
            self._running = False

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

    def start(self) -> PollingHandle:
        """Start polling. Only one schedule is active per monitor."""
        if self._handle is None or self._handle.cancelled:
            self._handle = self.poller.schedule_polling(
                self.config.polling.interval, self.on_readings
            )
        return self._handle

    def stop(self):
        """Stop polling; late responses are discarded."""
        self._running = False
        if self._handle is not None:
            self._handle.cancel()

    async def run(self):
        """Run the dashboard until interrupted."""
        self._setup_signal_handlers()
        self._running = True
        self.update_display()
        self.start()
        detach = self._attach_keyboard(asyncio.get_running_loop())

        logger.info("Dashboard is running. Press q or Ctrl+C to stop.")
        try:
            while self._running:
                await asyncio.sleep(1.0)
        except asyncio.CancelledError:
            pass
        finally:
            self.stop()
            if detach is not None:
                detach()
            logger.info("Dashboard stopped.")

    def _attach_keyboard(self, loop: asyncio.AbstractEventLoop) -> Optional[Callable[[], None]]:
        """Read key presses from stdin in cbreak mode.

        Returns a callable that removes the reader and restores the terminal,
        or None when stdin is not a terminal.
        """
        if sys.stdin is None or not sys.stdin.isatty():
            logger.info("stdin is not a terminal, keyboard controls disabled")
            return None

        fd = sys.stdin.fileno()
        saved = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        loop.add_reader(fd, self._on_input, fd)

        def detach():
            loop.remove_reader(fd)
            termios.tcsetattr(fd, termios.TCSADRAIN, saved)

        return detach
