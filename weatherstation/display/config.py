"""Configuration loading for the dashboard service."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from weatherstation.shared.config import get_log_level, load_yaml_config
from weatherstation.shared.datasource import (
    ON_MISSING_CHOICES,
    ON_MISSING_SYNTHETIC,
    SourceConfig,
)

logger = logging.getLogger(__name__)


@dataclass
class PollingConfig:
    """How often and how much to fetch."""
    interval: float = 30.0
    limit: int = 20
    table: str = "readings"


@dataclass
class DisplayConfig:
    """Terminal dashboard presentation settings."""
    page_size: int = 20
    scroll_threshold: int = 50
    show_errors: bool = False
    chart_height: int = 8


@dataclass
class Config:
    """Main configuration container."""
    source: SourceConfig
    polling: PollingConfig = field(default_factory=PollingConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    on_missing_source: str = ON_MISSING_SYNTHETIC
    log_level: str = "INFO"
    log_file: Optional[str] = None


def _positive(value, name: str, kind=int):
    """Convert value with kind and require it to be > 0."""
    try:
        converted = kind(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if converted <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return converted


def parse_config(data: dict) -> Config:
    """Build a Config from a configuration dictionary.

    Source credentials always come from the environment; the dictionary
    only tunes how the source behaves.

    Raises:
        ValueError: If a value is out of range or unknown.
    """
    source_data = data.get("source", {}) or {}
    source_config = SourceConfig.from_env()
    source_config.timeout = _positive(source_data.get("timeout", 10.0), "source.timeout", float)
    source_config.synthetic_latency = float(source_data.get("synthetic_latency", 0.8))

    on_missing = str(source_data.get("on_missing", ON_MISSING_SYNTHETIC)).lower()
    if on_missing not in ON_MISSING_CHOICES:
        raise ValueError(
            f"source.on_missing must be one of {', '.join(ON_MISSING_CHOICES)}, got {on_missing!r}"
        )

    polling_data = data.get("polling", {}) or {}
    polling = PollingConfig(
        interval=_positive(polling_data.get("interval", 30.0), "polling.interval", float),
        limit=_positive(polling_data.get("limit", 20), "polling.limit"),
        table=polling_data.get("table", "readings"),
    )

    display_data = data.get("display", {}) or {}
    display = DisplayConfig(
        page_size=_positive(display_data.get("page_size", 20), "display.page_size"),
        scroll_threshold=int(display_data.get("scroll_threshold", 50)),
        show_errors=bool(display_data.get("show_errors", False)),
        chart_height=_positive(display_data.get("chart_height", 8), "display.chart_height"),
    )

    return Config(
        source=source_config,
        polling=polling,
        display=display,
        on_missing_source=on_missing,
        log_level=get_log_level(data),
        log_file=data.get("log_file"),
    )


def load_config(config_path: Optional[Union[str, Path]] = None) -> Config:
    """Load configuration from YAML file and environment variables.

    Args:
        config_path: Path to the dashboard YAML file. If not provided, looks
                    for dashboard.yaml in the repo's config directory.

    Returns:
        Config object with all settings loaded.
    """
    data = load_yaml_config(config_path)
    return parse_config(data)
