"""Vitals projection, clinical thresholds and paginated history.

Core modules:
    projection    — VitalsSnapshot and the last-writer-wins VitalsProjection
    thresholds    — classify() / assess() against clinical ranges
    config_loader — Load/validate/reload thresholds.yaml
    history       — Paginated vitals history by period
"""

from littlewatch.vitals.config_loader import ThresholdConfig, get_threshold_config
from littlewatch.vitals.projection import VitalsProjection, VitalsSnapshot, VitalsView
from littlewatch.vitals.thresholds import VitalAssessment, VitalStatus, assess, classify

__all__ = [
    "VitalsProjection",
    "VitalsSnapshot",
    "VitalsView",
    "VitalStatus",
    "VitalAssessment",
    "classify",
    "assess",
    "ThresholdConfig",
    "get_threshold_config",
]
