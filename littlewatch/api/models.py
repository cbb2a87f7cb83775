"""Pydantic models for the LittleWatch REST payloads.

The backend wraps every payload in ``{success, data, message}``.  Only the
fields the client acts on are declared; everything else is kept through
``extra="allow"`` so screens can still show it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LittleWatchBase(BaseModel):
    """Base model with shared config for all LittleWatch payloads."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ---------- User ----------


class Profile(LittleWatchBase):
    user_id: int | str | None = None
    name: str | None = None
    email: str | None = None
    device_serial: str | None = None
    notification_enabled: bool = True


# ---------- Vitals ----------


class LatestVitals(LittleWatchBase):
    """``GET /vitals/latest-by-serial/{serial}`` payload."""

    vitals: dict[str, Any] = Field(default_factory=dict)
    device: dict[str, Any] = Field(default_factory=dict)

    @field_validator("vitals", "device", mode="before")
    @classmethod
    def _null_block_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class HistorySummary(LittleWatchBase):
    avg_heart_rate: float | None = None
    avg_temperature: float | None = None
    avg_oxygen: float | None = None
    total_readings: int | None = None


class VitalsHistory(LittleWatchBase):
    """One page of ``GET /vitals/history-by-serial/{serial}``."""

    readings: list[dict[str, Any]] = Field(default_factory=list)
    summary: HistorySummary | None = None


# ---------- Notifications ----------


class Notification(LittleWatchBase):
    id: int | str
    title: str | None = None
    message: str | None = None
    type: str | None = None
    read: bool = False
    created_at: datetime | None = None


# ---------- Sleep ----------


class CurrentSleep(LittleWatchBase):
    is_sleeping: bool = False
    current_duration_minutes: int | None = None
    start_time: datetime | None = None
