"""Clinical classification of vital-sign readings.

``classify()`` is a pure function of the numeric value and the configured
bounds.  ``assess()`` is what a screen renders: it additionally maps a
missing reading, and a reading of exactly ``0`` (the backend sends 0 when
the band has nothing), to a "No Reading" placeholder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from littlewatch.vitals.config_loader import ThresholdConfig, get_threshold_config

NO_READING_DISPLAY = "--"
NO_READING_LABEL = "No Reading"


class VitalStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class VitalAssessment:
    """Render-time view of one vital.

    Attributes:
        vital:   Vital key (e.g. 'heart_rate').
        value:   Raw stored value (``None`` or ``0`` for no reading).
        status:  Classification; ``normal`` when there is no reading.
        label:   Status label, or "No Reading".
        display: Formatted value, or "--".
        unit:    Display unit.
    """

    vital: str
    value: float | None
    status: VitalStatus
    label: str
    display: str
    unit: str

    @property
    def has_reading(self) -> bool:
        return self.display != NO_READING_DISPLAY


def is_no_reading(value: float | None) -> bool:
    """True for absent readings and for 0, which the backend uses for absent."""
    return value is None or value == 0


def classify(vital: str, value: float, config: ThresholdConfig | None = None) -> VitalStatus:
    """Classify a reading as normal, warning or critical.

    Critical bounds are checked first, then the inclusive warning ranges;
    anything else is normal.

    Raises:
        KeyError: If ``vital`` has no configured thresholds.
    """
    thresholds = (config or get_threshold_config()).vital(vital)
    if thresholds.is_critical(value):
        return VitalStatus.CRITICAL
    if thresholds.is_warning(value):
        return VitalStatus.WARNING
    return VitalStatus.NORMAL


def classify_heart_rate(bpm: float) -> VitalStatus:
    return classify("heart_rate", bpm)


def classify_temperature(celsius: float) -> VitalStatus:
    return classify("temperature", celsius)


def classify_oxygen_saturation(percent: float) -> VitalStatus:
    return classify("oxygen_saturation", percent)


def assess(
    vital: str, value: float | None, config: ThresholdConfig | None = None
) -> VitalAssessment:
    """Build the render-time assessment of one vital.  Never cached."""
    thresholds = (config or get_threshold_config()).vital(vital)

    if is_no_reading(value):
        return VitalAssessment(
            vital=vital,
            value=value,
            status=VitalStatus.NORMAL,
            label=NO_READING_LABEL,
            display=NO_READING_DISPLAY,
            unit=thresholds.unit,
        )

    status = classify(vital, value, config)
    if thresholds.decimals > 0:
        display = f"{value:.{thresholds.decimals}f}"
    else:
        display = str(int(round(value)))
    return VitalAssessment(
        vital=vital,
        value=value,
        status=status,
        label=thresholds.labels[status.value],
        display=display,
        unit=thresholds.unit,
    )
