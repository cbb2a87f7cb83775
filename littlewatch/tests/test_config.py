"""Tests for the threshold config loader and the client settings."""

from __future__ import annotations

import copy
from pathlib import Path

import pytest
import yaml

from littlewatch.config import Settings
from littlewatch.vitals.config_loader import (
    ConfigValidationError,
    ThresholdConfig,
    get_threshold_config,
    load_threshold_config,
    reload_threshold_config,
)


@pytest.fixture
def threshold_config() -> ThresholdConfig:
    """Load the real bundled config for tests."""
    return load_threshold_config()


@pytest.fixture
def raw_config(threshold_config: ThresholdConfig) -> dict:
    return copy.deepcopy(threshold_config._raw)


def write_yaml(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Bundled config
# ---------------------------------------------------------------------------


class TestBundledConfig:
    def test_version(self, threshold_config: ThresholdConfig) -> None:
        assert threshold_config.version == "1.0"

    def test_heart_rate_bounds(self, threshold_config: ThresholdConfig) -> None:
        hr = threshold_config.vital("heart_rate")
        assert hr.critical_below == 80
        assert hr.critical_above == 170
        assert hr.warning_ranges == [(80, 89), (161, 170)]
        assert hr.decimals == 0

    def test_temperature_bounds(self, threshold_config: ThresholdConfig) -> None:
        temp = threshold_config.vital("temperature")
        assert temp.critical_below == 35.5
        assert temp.critical_at_or_above == 38.0
        assert temp.critical_above is None
        assert temp.warning_ranges == [(35.5, 35.9), (37.6, 37.9)]
        assert temp.decimals == 1

    def test_oxygen_bounds(self, threshold_config: ThresholdConfig) -> None:
        spo2 = threshold_config.vital("oxygen_saturation")
        assert spo2.critical_below == 90
        assert spo2.warning_ranges == [(90, 94)]
        assert spo2.labels["warning"] == "Slightly Low"

    def test_unknown_vital(self, threshold_config: ThresholdConfig) -> None:
        with pytest.raises(KeyError, match="respiration"):
            threshold_config.vital("respiration")

    def test_singleton_is_cached(self) -> None:
        assert get_threshold_config() is get_threshold_config()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_threshold_config(tmp_path / "nope.yaml")

    def test_missing_vitals_section(self, tmp_path: Path) -> None:
        path = write_yaml(tmp_path / "t.yaml", {"version": "2.0"})
        with pytest.raises(ConfigValidationError, match="'vitals' section"):
            load_threshold_config(path)

    def test_missing_required_vital(self, tmp_path: Path, raw_config: dict) -> None:
        del raw_config["vitals"]["oxygen_saturation"]
        path = write_yaml(tmp_path / "t.yaml", raw_config)
        with pytest.raises(ConfigValidationError, match="oxygen_saturation"):
            load_threshold_config(path)

    def test_inverted_warning_range(self, tmp_path: Path, raw_config: dict) -> None:
        raw_config["vitals"]["heart_rate"]["warning_ranges"] = [[89, 80]]
        path = write_yaml(tmp_path / "t.yaml", raw_config)
        with pytest.raises(ConfigValidationError, match="low > high"):
            load_threshold_config(path)

    def test_non_numeric_bound(self, tmp_path: Path, raw_config: dict) -> None:
        raw_config["vitals"]["heart_rate"]["critical_below"] = "eighty"
        path = write_yaml(tmp_path / "t.yaml", raw_config)
        with pytest.raises(ConfigValidationError, match="must be a number"):
            load_threshold_config(path)

    def test_no_critical_bound(self, tmp_path: Path, raw_config: dict) -> None:
        spo2 = raw_config["vitals"]["oxygen_saturation"]
        del spo2["critical_below"]
        path = write_yaml(tmp_path / "t.yaml", raw_config)
        with pytest.raises(ConfigValidationError, match="no critical bound"):
            load_threshold_config(path)

    def test_yaml_parse_error(self, tmp_path: Path) -> None:
        path = tmp_path / "t.yaml"
        path.write_text("vitals: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="YAML parse error"):
            load_threshold_config(path)


# ---------------------------------------------------------------------------
# Reload
# ---------------------------------------------------------------------------


class TestReload:
    def test_reload_replaces_singleton(self, tmp_path: Path, raw_config: dict) -> None:
        raw_config["version"] = "9.9"
        path = write_yaml(tmp_path / "t.yaml", raw_config)
        try:
            reloaded = reload_threshold_config(path)
            assert reloaded.version == "9.9"
            assert get_threshold_config() is reloaded
        finally:
            reload_threshold_config()
        assert get_threshold_config().version == "1.0"

    def test_invalid_reload_keeps_previous(self, tmp_path: Path) -> None:
        before = get_threshold_config()
        path = write_yaml(tmp_path / "t.yaml", {"vitals": {"heart_rate": "oops"}})
        with pytest.raises(ConfigValidationError):
            reload_threshold_config(path)
        assert get_threshold_config() is before


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LITTLEWATCH_API_BASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.api_base_url == "https://little-watch-backend.onrender.com/api"
        assert settings.poll_interval_seconds == 30.0
        assert settings.reconnection_attempts == 5
        assert settings.history_page_size == 20

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LITTLEWATCH_POLL_INTERVAL_SECONDS", "5")
        monkeypatch.setenv("LITTLEWATCH_SOCKET_URL", "https://socket.test")
        settings = Settings(_env_file=None)
        assert settings.poll_interval_seconds == 5.0
        assert settings.socket_url == "https://socket.test"
