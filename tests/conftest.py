"""Shared fixtures for the weather station test suite.

Provides a scriptable fake readings source and helpers that build raw
rows the way the hosted table returns them (newest first).
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from weatherstation.shared.datasource import QueryResult, ReadingsSource

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeSource(ReadingsSource):
    """Readings source that replays queued results.

    Each queued item is either a ``QueryResult`` or an exception to raise.
    Once the queue is empty every call returns ``default``.
    """

    kind = "fake"

    def __init__(self, results: Optional[list] = None, rows: Optional[List[Dict[str, Any]]] = None):
        self.results = list(results or [])
        self.default = QueryResult(data=rows or [])
        self.calls: List[tuple] = []
        self.inserted: List[tuple] = []
        self.closed = False

    async def select_recent(self, table: str, order_column: str, limit: int) -> QueryResult:
        self.calls.append((table, order_column, limit))
        result = self.results.pop(0) if self.results else self.default
        if isinstance(result, Exception):
            raise result
        return result

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> QueryResult:
        self.inserted.append((table, rows))
        return QueryResult(data=rows)

    async def close(self) -> None:
        self.closed = True


class GatedSource(FakeSource):
    """Fake source whose responses wait until ``gate`` is set."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        super().__init__(rows=rows)
        self.gate = asyncio.Event()

    async def select_recent(self, table: str, order_column: str, limit: int) -> QueryResult:
        self.calls.append((table, order_column, limit))
        await self.gate.wait()
        return self.default


def make_rows(count: int, span_hours: float = 0.0, start: datetime = BASE_TIME) -> List[Dict[str, Any]]:
    """Build ``count`` canonical rows, newest first, evenly spread over ``span_hours``."""
    step = timedelta(hours=span_hours / (count - 1)) if count > 1 else timedelta(0)
    return [
        {
            "id": i + 1,
            "created_at": (start - i * step).isoformat(),
            "temperature": 20.0 + i * 0.1,
            "humidity": 50.0 + i * 0.2,
        }
        for i in range(count)
    ]


@pytest.fixture()
def sample_rows() -> List[Dict[str, Any]]:
    """Three rows mixing canonical and short column names."""
    return [
        {"id": 3, "created_at": "2024-05-01T12:00:00+00:00", "temperature": 21.5, "humidity": 40.0},
        {"id": 2, "created_at": "2024-05-01T11:45:00+00:00", "temp": 21.0, "hum": 41.0},
        {"created_at": "2024-05-01T11:30:00+00:00"},
    ]


@pytest.fixture()
def fake_source(sample_rows) -> FakeSource:
    return FakeSource(rows=sample_rows)
