"""Load and validate the clinical threshold configuration.

The thresholds live in ``thresholds.yaml`` alongside this module.  They are
loaded once and cached; ``reload_threshold_config()`` re-reads them from disk
and keeps the previous config when the new file is invalid.

Usage::

    from littlewatch.vitals.config_loader import get_threshold_config

    config = get_threshold_config()
    hr = config.vital("heart_rate")
    hr.critical_below        # 80.0
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("littlewatch.vitals.config")

_CONFIG_PATH = Path(__file__).parent / "thresholds.yaml"

REQUIRED_VITALS: tuple[str, ...] = ("heart_rate", "temperature", "oxygen_saturation")
STATUS_KEYS: tuple[str, ...] = ("normal", "warning", "critical")


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class VitalThresholds:
    """Bounds for one vital sign.

    Attributes:
        name:                 Vital key (e.g. 'heart_rate').
        title:                Human-readable title.
        unit:                 Display unit.
        decimals:             Decimal places when rendering the value.
        critical_below:       Values strictly below are critical.
        critical_above:       Values strictly above are critical.
        critical_at_or_above: Values at or above are critical.
        warning_ranges:       Inclusive (low, high) ranges that are warnings.
        labels:               Status → label shown next to the value.
    """

    name: str
    title: str
    unit: str
    decimals: int = 0
    critical_below: float | None = None
    critical_above: float | None = None
    critical_at_or_above: float | None = None
    warning_ranges: list[tuple[float, float]] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)

    def is_critical(self, value: float) -> bool:
        if self.critical_below is not None and value < self.critical_below:
            return True
        if self.critical_above is not None and value > self.critical_above:
            return True
        if self.critical_at_or_above is not None and value >= self.critical_at_or_above:
            return True
        return False

    def is_warning(self, value: float) -> bool:
        return any(low <= value <= high for low, high in self.warning_ranges)


@dataclass
class ThresholdConfig:
    """Complete, validated threshold configuration."""

    version: str
    vitals: dict[str, VitalThresholds]
    _raw: dict = field(default_factory=dict, repr=False)

    def vital(self, name: str) -> VitalThresholds:
        """Return the thresholds for a vital.

        Raises:
            KeyError: If the vital is not configured.
        """
        if name not in self.vitals:
            raise KeyError(
                f"No thresholds configured for '{name}'. Available: {list(self.vitals)}"
            )
        return self.vitals[name]


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when thresholds.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Threshold config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _number(value: Any, where: str, errors: list[str]) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        errors.append(f"{where} must be a number, got {value!r}")
        return None
    if math.isnan(number):
        errors.append(f"{where} must not be NaN")
        return None
    return number


def _validate_and_build(raw: dict) -> ThresholdConfig:
    """Validate the raw YAML dict and construct a ThresholdConfig.

    Raises:
        ConfigValidationError: If required vitals are missing or bounds are invalid.
    """
    errors: list[str] = []
    version = str(raw.get("version", "1.0"))

    vitals_raw = raw.get("vitals") or {}
    if not isinstance(vitals_raw, dict) or not vitals_raw:
        raise ConfigValidationError("'vitals' section is missing or empty")

    for name in REQUIRED_VITALS:
        if name not in vitals_raw:
            errors.append(f"Missing thresholds for required vital '{name}'")

    vitals: dict[str, VitalThresholds] = {}
    for name, cfg in vitals_raw.items():
        if not isinstance(cfg, dict):
            errors.append(f"vitals.{name} must be a mapping")
            continue

        ranges: list[tuple[float, float]] = []
        for i, pair in enumerate(cfg.get("warning_ranges") or []):
            if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                errors.append(f"vitals.{name}.warning_ranges[{i}] must be [low, high]")
                continue
            low = _number(pair[0], f"vitals.{name}.warning_ranges[{i}][0]", errors)
            high = _number(pair[1], f"vitals.{name}.warning_ranges[{i}][1]", errors)
            if low is None or high is None:
                continue
            if low > high:
                errors.append(f"vitals.{name}.warning_ranges[{i}] has low > high")
                continue
            ranges.append((low, high))

        thresholds = VitalThresholds(
            name=name,
            title=str(cfg.get("title", name.replace("_", " ").title())),
            unit=str(cfg.get("unit", "")),
            decimals=int(cfg.get("decimals", 0)),
            critical_below=_number(cfg.get("critical_below"), f"vitals.{name}.critical_below", errors),
            critical_above=_number(cfg.get("critical_above"), f"vitals.{name}.critical_above", errors),
            critical_at_or_above=_number(
                cfg.get("critical_at_or_above"), f"vitals.{name}.critical_at_or_above", errors
            ),
            warning_ranges=ranges,
            labels={key: str((cfg.get("labels") or {}).get(key, key.title())) for key in STATUS_KEYS},
        )
        if (
            thresholds.critical_below is None
            and thresholds.critical_above is None
            and thresholds.critical_at_or_above is None
        ):
            errors.append(f"vitals.{name} defines no critical bound")
        vitals[name] = thresholds

    if errors:
        raise ConfigValidationError(
            f"thresholds.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return ThresholdConfig(version=version, vitals=vitals, _raw=raw)


def load_threshold_config(path: Path | None = None) -> ThresholdConfig:
    """Load and validate the threshold config from disk.

    Args:
        path: Override path to YAML. Uses the bundled thresholds.yaml by default.
    """
    target = path or _CONFIG_PATH
    config = _validate_and_build(_load_yaml(target))
    logger.info("Loaded threshold config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with reload support
# ---------------------------------------------------------------------------

_config: ThresholdConfig | None = None
_config_lock = threading.Lock()


def get_threshold_config() -> ThresholdConfig:
    """Return the global ThresholdConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_threshold_config()
    return _config


def reload_threshold_config(path: Path | None = None) -> ThresholdConfig:
    """Reload thresholds from disk and replace the singleton.

    If validation fails the old config is retained and the error re-raised.
    """
    global _config
    new_config = load_threshold_config(path)
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded threshold config: %s → %s", old_version, new_config.version)
    return new_config
