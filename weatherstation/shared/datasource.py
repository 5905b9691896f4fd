"""Readings source configuration and clients.

Two interchangeable sources sit behind ``ReadingsSource``:

- ``RestSource`` talks to the hosted database's REST table endpoint.
- ``SyntheticSource`` fabricates a plausible time series locally, used
  for demonstration when no backend is configured.

The source is chosen once at startup by ``create_source`` and reused
across polls.
"""

import asyncio
import logging
import math
import os
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import aiohttp

logger = logging.getLogger(__name__)

PLACEHOLDER_MARKERS = ("your-project-url", "your-anon-key")

ON_MISSING_SYNTHETIC = "synthetic"
ON_MISSING_FAIL = "fail"
ON_MISSING_CHOICES = (ON_MISSING_SYNTHETIC, ON_MISSING_FAIL)


class ConfigurationError(Exception):
    """Raised when the readings source is not configured and may not degrade."""

    pass


@dataclass
class FetchError:
    """Error reported by a readings source.

    Mirrors the error body of the REST endpoint; transport failures only
    carry a message.
    """
    message: str
    details: Optional[str] = None
    hint: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FetchError":
        """Create an error from a JSON error body."""
        return cls(
            message=str(data.get("message") or data.get("error") or "Unknown error"),
            details=data.get("details"),
            hint=data.get("hint"),
            code=data.get("code"),
        )


@dataclass
class QueryResult:
    """Outcome of a source request: rows on success, an error otherwise."""
    data: Optional[List[Dict[str, Any]]] = None
    error: Optional[FetchError] = None


@dataclass
class SourceConfig:
    """Readings source connection configuration."""
    url: str = ""
    key: str = ""
    timeout: float = 10.0
    synthetic_latency: float = 0.8

    @classmethod
    def from_env(cls) -> "SourceConfig":
        """Create config from environment variables."""
        return cls(
            url=os.getenv("SUPABASE_URL", ""),
            key=os.getenv("SUPABASE_ANON_KEY", ""),
        )

    @property
    def is_configured(self) -> bool:
        """True when both settings are present and not placeholders."""
        if not self.url or not self.key:
            return False
        return not any(
            marker in value
            for marker in PLACEHOLDER_MARKERS
            for value in (self.url, self.key)
        )


class ReadingsSource(ABC):
    """Base class for readings sources."""

    kind: str = ""

    @abstractmethod
    async def select_recent(
        self, table: str, order_column: str, limit: int
    ) -> QueryResult:
        """Fetch up to ``limit`` rows ordered by ``order_column`` descending."""
        pass

    @abstractmethod
    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> QueryResult:
        """Insert rows into ``table``."""
        pass

    async def close(self) -> None:
        """Release any resources held by the source."""
        pass


class RestSource(ReadingsSource):
    """Source backed by the hosted database's REST interface."""

    kind = "rest"

    def __init__(self, config: SourceConfig):
        self.config = config
        self.base_url = config.url.rstrip("/") + "/rest/v1"
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "apikey": self.config.key,
                    "Authorization": f"Bearer {self.config.key}",
                },
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )
        return self._session

    async def _request(self, method: str, table: str, **kwargs) -> QueryResult:
        url = f"{self.base_url}/{table}"
        try:
            async with self._get_session().request(method, url, **kwargs) as response:
                if response.status >= 400:
                    return QueryResult(error=await self._read_error(response))
                if response.status == 204:
                    return QueryResult(data=[])
                return QueryResult(data=await response.json(content_type=None))
        except asyncio.TimeoutError:
            return QueryResult(error=FetchError(message="Request timed out", details=url))
        except aiohttp.ClientError as e:
            return QueryResult(error=FetchError(message=str(e) or e.__class__.__name__, details=url))

    @staticmethod
    async def _read_error(response: aiohttp.ClientResponse) -> FetchError:
        """Build a FetchError from an error response."""
        try:
            body = await response.json(content_type=None)
        except ValueError:
            body = None

        if isinstance(body, dict):
            error = FetchError.from_dict(body)
        else:
            error = FetchError(message=response.reason or "Request failed")
        if error.code is None:
            error.code = str(response.status)
        return error

    async def select_recent(
        self, table: str, order_column: str, limit: int
    ) -> QueryResult:
        params = {
            "select": "*",
            "order": f"{order_column}.desc",
            "limit": str(limit),
        }
        return await self._request("GET", table, params=params)

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> QueryResult:
        return await self._request(
            "POST",
            table,
            json=rows,
            headers={"Prefer": "return=representation"},
        )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None


class SyntheticSource(ReadingsSource):
    """Source that fabricates readings without a backend.

    Temperature follows a sine wave around 22 °C and humidity a cosine
    wave around 55 %, both with jitter, one sample every 15 minutes going
    back from now.
    """

    kind = "synthetic"

    SAMPLE_INTERVAL = timedelta(minutes=15)
    DEFAULT_COUNT = 10

    def __init__(self, latency: float = 0.8, rng: Optional[random.Random] = None):
        self.latency = latency
        self.rng = rng or random.Random()
        logger.info("Initialized SyntheticSource")

    def generate(self, count: int, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Generate ``count`` rows, newest first."""
        now = now or datetime.now(timezone.utc)
        rows = []
        for i in range(count):
            created_at = now - i * self.SAMPLE_INTERVAL
            rows.append({
                "id": f"synthetic-{i}",
                "created_at": created_at.isoformat(),
                "temperature": 22 + math.sin(i * 0.5) * 5 + self.rng.uniform(-1, 1),
                "humidity": 55 + math.cos(i * 0.5) * 10 + self.rng.uniform(-2, 2),
            })
        return rows

    async def select_recent(
        self, table: str, order_column: str, limit: int
    ) -> QueryResult:
        logger.debug(f"Fetching last {limit} synthetic records from {table}")
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        return QueryResult(data=self.generate(limit or self.DEFAULT_COUNT))

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> QueryResult:
        logger.info(f"Synthetic insert of {len(rows)} rows into {table}")
        return QueryResult(data=rows)


def create_source(config: SourceConfig, on_missing: str = ON_MISSING_SYNTHETIC) -> ReadingsSource:
    """Choose the readings source for this session.

    Args:
        config: Source connection configuration.
        on_missing: What to do without a usable configuration, either
            ``"synthetic"`` (degrade to SyntheticSource) or ``"fail"``.

    Returns:
        The source to use for the lifetime of the process.

    Raises:
        ConfigurationError: If the source is not configured and
            ``on_missing`` is ``"fail"``.
        ValueError: If ``on_missing`` is not a known mode.
    """
    if on_missing not in ON_MISSING_CHOICES:
        raise ValueError(f"Unknown on_missing mode: {on_missing}")

    if config.is_configured:
        logger.info(f"Using readings source at {config.url}")
        return RestSource(config)

    if on_missing == ON_MISSING_FAIL:
        raise ConfigurationError(
            "SUPABASE_URL and SUPABASE_ANON_KEY must be set to reach the readings source"
        )

    logger.warning("Readings source settings missing. Using synthetic readings.")
    return SyntheticSource(latency=config.synthetic_latency)
