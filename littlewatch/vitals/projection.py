"""Displayable vitals state fed by the realtime channel and the poller.

Both sources call :meth:`VitalsProjection.apply_snapshot` on the same event
loop, so there is no locking and no merge logic: whichever update is applied
last wins.  ``timestamp`` is kept for display only; out-of-order delivery
between the two sources is not reconciled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from littlewatch.vitals.config_loader import ThresholdConfig
from littlewatch.vitals.thresholds import NO_READING_DISPLAY, VitalAssessment, assess

logger = logging.getLogger("littlewatch.vitals.projection")

# Payload key → snapshot field for the ``device`` block.
_DEVICE_FIELDS: dict[str, str] = {
    "battery_level": "battery_level",
    "is_connected": "device_connected",
}

_VITALS_FIELDS: tuple[str, ...] = (
    "heart_rate",
    "temperature",
    "oxygen_saturation",
    "movement_status",
    "timestamp",
    "is_alert",
)


@dataclass
class VitalsSnapshot:
    """Latest known readings.  ``None`` means no reading; ``0`` is kept as 0.

    Attributes:
        heart_rate:        Beats per minute.
        temperature:       Degrees Celsius.
        oxygen_saturation: SpO2 percent.
        movement_status:   Backend movement label (e.g. 'sleeping', 'active').
        battery_level:     Band battery, 0–100.
        device_connected:  Whether the band is online.
        timestamp:         UTC time of the reading, for display ordering only.
        is_alert:          Alert flag carried by the last reading.
    """

    heart_rate: float | None = None
    temperature: float | None = None
    oxygen_saturation: float | None = None
    movement_status: str | None = None
    battery_level: float | None = None
    device_connected: bool | None = None
    timestamp: datetime | None = None
    is_alert: bool | None = None


SNAPSHOT_FIELDS: frozenset[str] = frozenset(f.name for f in fields(VitalsSnapshot))


@dataclass(frozen=True)
class VitalsView:
    """What a dashboard renders, recomputed on every ``render()``."""

    heart_rate: VitalAssessment
    temperature: VitalAssessment
    oxygen_saturation: VitalAssessment
    movement: str
    battery: str
    device_connected: bool
    last_update: datetime | None
    has_alerts: bool


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` allowed) into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Could not parse timestamp: %r", value)
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def snapshot_from_payload(data: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a ``{vitals: {...}, device: {...}}`` payload into snapshot fields.

    Only keys actually present in the payload are returned, so the result
    can be passed straight to :meth:`VitalsProjection.apply_snapshot` as a
    partial update.  A payload without a ``vitals`` block is read as a flat
    vitals record.
    """
    vitals = data.get("vitals")
    if not isinstance(vitals, Mapping):
        vitals = data
    device = data.get("device")

    partial: dict[str, Any] = {key: vitals[key] for key in _VITALS_FIELDS if key in vitals}
    if isinstance(device, Mapping):
        for key, field_name in _DEVICE_FIELDS.items():
            if key in device:
                partial[field_name] = device[key]
    return partial


class VitalsProjection:
    """Last-writer-wins projection of the band's vitals.

    Args:
        config: Threshold config used when rendering; defaults to the bundled one.
    """

    def __init__(self, config: ThresholdConfig | None = None) -> None:
        self._config = config
        self._snapshot = VitalsSnapshot()
        self._has_alerts = False
        self._listeners: list[Callable[[VitalsSnapshot], None]] = []

    @property
    def snapshot(self) -> VitalsSnapshot:
        return self._snapshot

    @property
    def has_alerts(self) -> bool:
        return self._has_alerts

    def add_listener(self, listener: Callable[[VitalsSnapshot], None]) -> Callable[[], None]:
        """Register a change listener.  Returns a callable that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def apply_snapshot(self, partial: Mapping[str, Any]) -> None:
        """Apply a partial snapshot.

        Keys present with a value overwrite, keys present with ``None``
        become "no reading", keys not present are left untouched.  The alert
        flag is only ever raised here, when ``is_alert`` is exactly true.
        """
        for key, value in partial.items():
            if key not in SNAPSHOT_FIELDS:
                logger.debug("Ignoring unknown snapshot field %r", key)
                continue
            if key == "timestamp":
                value = parse_timestamp(value)
            setattr(self._snapshot, key, value)

        if partial.get("is_alert") is True:
            self._has_alerts = True
        self._notify()

    def apply_payload(self, data: Mapping[str, Any]) -> None:
        """Apply a ``{vitals, device}`` payload from REST or the channel."""
        self.apply_snapshot(snapshot_from_payload(data))

    def raise_alert(self) -> None:
        """Flag an unread alert (e.g. a pushed notification)."""
        if not self._has_alerts:
            self._has_alerts = True
            self._notify()

    def acknowledge_alerts(self) -> None:
        if self._has_alerts:
            self._has_alerts = False
            self._notify()

    def mark_no_device(self) -> None:
        """Reset to an empty, disconnected snapshot (no band linked)."""
        self._snapshot = VitalsSnapshot(device_connected=False)
        self._notify()

    def render(self) -> VitalsView:
        """Classify the current snapshot.  Recomputed on every call."""
        snap = self._snapshot
        if snap.battery_level:
            battery = f"{int(round(snap.battery_level))}%"
        else:
            battery = NO_READING_DISPLAY
        return VitalsView(
            heart_rate=assess("heart_rate", snap.heart_rate, self._config),
            temperature=assess("temperature", snap.temperature, self._config),
            oxygen_saturation=assess("oxygen_saturation", snap.oxygen_saturation, self._config),
            movement=snap.movement_status or NO_READING_DISPLAY,
            battery=battery,
            device_connected=bool(snap.device_connected),
            last_update=snap.timestamp,
            has_alerts=self._has_alerts,
        )

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception("Vitals listener failed")
