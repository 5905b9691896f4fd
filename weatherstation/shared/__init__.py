"""Shared utilities for weather station services."""

from .models import Reading
from .datasource import (
    ConfigurationError,
    FetchError,
    QueryResult,
    ReadingsSource,
    RestSource,
    SourceConfig,
    SyntheticSource,
    create_source,
)
from .config import load_yaml_config, get_config_path
from .logging import setup_logging

__all__ = [
    "Reading",
    "ConfigurationError",
    "FetchError",
    "QueryResult",
    "ReadingsSource",
    "RestSource",
    "SourceConfig",
    "SyntheticSource",
    "create_source",
    "load_yaml_config",
    "get_config_path",
    "setup_logging",
]
