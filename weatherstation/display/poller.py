"""
Reading Poller for the Dashboard
Fetches recent readings on a schedule, normalizes them, and keeps the
latest successful batch for display.
"""

import asyncio
import json
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, List, Optional, Set, Tuple

from weatherstation.shared.datasource import FetchError, ReadingsSource
from weatherstation.shared.models import Reading

logger = logging.getLogger(__name__)

# Observed batch sizes: the compact view and the full-history view
COMPACT_LIMIT = 20
HISTORY_LIMIT = 3000

ORDER_COLUMN = "created_at"

PollCallback = Callable[[List[Reading]], Any]


class PollingHandle:
    """Handle for a polling schedule; cancel() stops future polls.

    Fetches already in flight are left to finish, but their results are
    discarded once the handle is cancelled.
    """

    def __init__(self):
        self._cancelled = False
        self._ticker: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def inflight(self) -> int:
        """Number of fetches started by this schedule that have not finished."""
        return len(self._inflight)

    def _track(self, task: asyncio.Task) -> None:
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def cancel(self) -> None:
        """Stop the schedule. Safe to call any number of times."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._ticker is not None and not self._ticker.done():
            self._ticker.cancel()


class ReadingPoller:
    """Polls a readings source and holds the latest batch.

    State kept between polls:
        readings: last successfully fetched batch, newest first. A failed
            fetch leaves it untouched.
        last_error: error from the most recent poll, None after a success.
        last_successful_fetch: local time of the last successful poll.
    """

    def __init__(
        self,
        source: ReadingsSource,
        table: str = "readings",
        limit: int = COMPACT_LIMIT,
    ):
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        self.source = source
        self.table = table
        self.limit = limit

        self.readings: List[Reading] = []
        self.last_error: Optional[FetchError] = None
        self.last_successful_fetch: Optional[datetime] = None
        self._pending = 0

        # Called with no arguments each time a fetch goes out
        self.on_fetch_start: Optional[Callable[[], Any]] = None

    @property
    def loading(self) -> bool:
        """True while at least one fetch is in flight."""
        return self._pending > 0

    async def fetch_recent_readings(self, limit: Optional[int] = None) -> List[Reading]:
        """Fetch and normalize the most recent readings.

        Errors are logged and reported as an empty list; this method never
        raises for source failures and does not touch poller state.
        """
        readings, _ = await self._fetch(limit)
        return readings

    async def poll(self) -> List[Reading]:
        """Run one refresh cycle and update state."""
        readings, error = await self._fetch(self.limit)
        self._apply(readings, error)
        return readings

    def schedule_polling(self, interval: float, callback: PollCallback) -> PollingHandle:
        """Poll now and then every ``interval`` seconds until cancelled.

        Must be called with a running event loop. Each tick starts its own
        fetch even if the previous one has not returned; whichever response
        lands last wins.

        Args:
            interval: Seconds between polls.
            callback: Called with each batch (empty on failure). May be a
                coroutine function.

        Returns:
            Handle used to stop the schedule.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        handle = PollingHandle()
        handle._ticker = asyncio.create_task(self._run_schedule(interval, callback, handle))
        logger.info(f"Polling {self.table} every {interval}s (limit {self.limit})")
        return handle

    async def _run_schedule(
        self, interval: float, callback: PollCallback, handle: PollingHandle
    ) -> None:
        try:
            while not handle.cancelled:
                handle._track(asyncio.create_task(self._poll_for(handle, callback)))
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.debug("Polling schedule stopped")

    async def _poll_for(self, handle: PollingHandle, callback: PollCallback) -> None:
        readings, error = await self._fetch(self.limit)
        if handle.cancelled:
            logger.debug("Discarding readings that arrived after polling stopped")
            return

        self._apply(readings, error)

        try:
            result = callback(readings)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Polling callback failed: {e}")

    async def _fetch(self, limit: Optional[int]) -> Tuple[List[Reading], Optional[FetchError]]:
        """Fetch one batch, returning (readings, error)."""
        limit = self.limit if limit is None else limit
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")

        self._pending += 1
        if self.on_fetch_start is not None:
            try:
                self.on_fetch_start()
            except Exception as e:
                logger.error(f"Fetch start hook failed: {e}")
        try:
            result = await self.source.select_recent(self.table, ORDER_COLUMN, limit)
        except Exception as e:
            logger.error(f"Fetch error: {e}")
            return [], FetchError(message=str(e) or e.__class__.__name__)
        finally:
            self._pending -= 1

        if result.error is not None:
            self._log_error(result.error)
            return [], result.error

        rows = result.data or []
        logger.debug(f"Raw readings data: {rows}")

        try:
            readings = [Reading.from_record(row, index) for index, row in enumerate(rows)]
        except (TypeError, ValueError, AttributeError) as e:
            error = FetchError(message=f"Malformed reading row: {e}")
            self._log_error(error)
            return [], error

        return readings, None

    def _apply(self, readings: List[Reading], error: Optional[FetchError]) -> None:
        """Replace state with the outcome of a poll."""
        if error is not None:
            self.last_error = error
            return
        self.readings = readings
        self.last_error = None
        self.last_successful_fetch = datetime.now()

    def _log_error(self, error: FetchError) -> None:
        logger.error(f"Readings source error: {json.dumps(asdict(error))}")
        logger.error(
            f"Error details: message={error.message} details={error.details} hint={error.hint}"
        )
