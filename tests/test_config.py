"""Tests for dashboard configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from weatherstation.display.config import load_config, parse_config
from weatherstation.shared.config import get_config_path, load_yaml_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "WEATHERSTATION_ENV"):
        monkeypatch.delenv(name, raising=False)


class TestParseConfig:
    """Building Config objects from dictionaries."""

    def test_defaults(self) -> None:
        config = parse_config({})
        assert config.polling.interval == 30.0
        assert config.polling.limit == 20
        assert config.polling.table == "readings"
        assert config.display.page_size == 20
        assert config.display.scroll_threshold == 50
        assert config.display.show_errors is False
        assert config.on_missing_source == "synthetic"
        assert config.log_level == "INFO"
        assert config.log_file is None
        assert not config.source.is_configured

    def test_values_are_read(self) -> None:
        config = parse_config({
            "log_level": "debug",
            "source": {"on_missing": "FAIL", "timeout": 5, "synthetic_latency": 0},
            "polling": {"interval": 10, "limit": 3000},
            "display": {"show_errors": True, "chart_height": 6},
        })
        assert config.log_level == "DEBUG"
        assert config.on_missing_source == "fail"
        assert config.source.timeout == 5.0
        assert config.source.synthetic_latency == 0.0
        assert config.polling.interval == 10.0
        assert config.polling.limit == 3000
        assert config.display.show_errors is True
        assert config.display.chart_height == 6

    def test_credentials_come_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("SUPABASE_URL", "https://abc.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        assert parse_config({}).source.is_configured

    @pytest.mark.parametrize(
        "data",
        [
            {"polling": {"limit": 0}},
            {"polling": {"interval": -5}},
            {"polling": {"limit": "many"}},
            {"display": {"page_size": 0}},
            {"source": {"on_missing": "retry"}},
        ],
    )
    def test_invalid_values_rejected(self, data) -> None:
        with pytest.raises(ValueError):
            parse_config(data)


class TestLoadConfig:
    """Reading YAML files from disk."""

    def test_load_from_path(self, tmp_path: Path) -> None:
        path = tmp_path / "dashboard.yaml"
        path.write_text("polling:\n  interval: 15\n  limit: 50\n")
        config = load_config(path)
        assert config.polling.interval == 15.0
        assert config.polling.limit == 50

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "dashboard.yaml"
        path.write_text("")
        assert load_config(path).polling.limit == 20

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_yaml_config(tmp_path / "nope.yaml", load_env=False)

    def test_shipped_config_loads(self) -> None:
        config = load_config()
        assert config.polling.table == "readings"


class TestGetConfigPath:
    def test_default_name(self, tmp_path: Path) -> None:
        assert get_config_path(config_dir=tmp_path) == tmp_path / "dashboard.yaml"

    def test_environment_specific_file(self, tmp_path: Path, monkeypatch) -> None:
        (tmp_path / "dashboard-lab.yaml").write_text("{}")
        monkeypatch.setenv("WEATHERSTATION_ENV", "lab")
        assert get_config_path(config_dir=tmp_path) == tmp_path / "dashboard-lab.yaml"

    def test_environment_without_file_falls_back(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("WEATHERSTATION_ENV", "lab")
        assert get_config_path(config_dir=tmp_path) == tmp_path / "dashboard.yaml"
