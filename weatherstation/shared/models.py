"""Core data models for sensor readings."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union


def _first_present(record: Dict[str, Any], *keys: str) -> float:
    """Return the first non-null value among keys, or 0."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return float(value)
    return 0.0


@dataclass
class Reading:
    """Represents a single temperature/humidity sample.

    Readings are built from raw table rows with ``from_record``, which
    accepts both the canonical column names (``temperature``, ``humidity``)
    and the short ones (``temp``, ``hum``).
    """
    id: Optional[Union[str, int]]
    created_at: Optional[str]
    temperature: float = 0.0
    humidity: float = 0.0

    @classmethod
    def from_record(cls, record: Dict[str, Any], index: int) -> "Reading":
        """Normalize a raw row into a Reading.

        Args:
            record: Row as returned by the readings source.
            index: Position of the row in its batch, used to synthesize an id.

        Returns:
            The normalized reading.
        """
        reading_id = record.get("id")
        if reading_id is None:
            reading_id = f"reading-{index}"
        return cls(
            id=reading_id,
            created_at=record.get("created_at"),
            temperature=_first_present(record, "temperature", "temp"),
            humidity=_first_present(record, "humidity", "hum"),
        )

    @property
    def timestamp(self) -> Optional[datetime]:
        """Parse created_at, return None if missing or unparseable."""
        if not self.created_at:
            return None
        try:
            return datetime.fromisoformat(self.created_at)
        except (ValueError, TypeError):
            return None

    def to_record(self) -> Dict[str, Any]:
        """Convert to a row using canonical column names."""
        record: Dict[str, Any] = {
            "temperature": self.temperature,
            "humidity": self.humidity,
        }
        if self.created_at:
            record["created_at"] = self.created_at
        return record
