"""Current sleep state for the sleep-patterns screen.

Session detection happens on the backend; this module only mirrors what
the backend pushes (``sleep_*`` and ``movement_status_update`` events) and
reloads the 7-day data and statistics when a session ends.  A
:class:`~littlewatch.sync.poller.FallbackPoller` refreshes everything every
30 seconds as a fallback.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from littlewatch.api.client import LittleWatchClient
from littlewatch.api.errors import LittleWatchError
from littlewatch.events import Subscription
from littlewatch.realtime.channel import (
    MOVEMENT_STATUS_UPDATE,
    SLEEP_DATA_UPDATED,
    SLEEP_DURATION_UPDATE,
    SLEEP_ENDED,
    SLEEP_SESSION_UPDATE,
    SLEEP_STARTED,
    SLEEP_STATS_UPDATED,
    RealtimeChannel,
)
from littlewatch.sync.poller import FallbackPoller
from littlewatch.vitals.projection import parse_timestamp

logger = logging.getLogger("littlewatch.sleep")

SLEEP_AUTO_REFRESH_SECONDS = 30.0
SLEEP_HISTORY_DAYS = 7


@dataclass
class SleepState:
    is_sleeping: bool = False
    current_duration_minutes: int | None = None
    total_duration_minutes: int | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SleepTracker:
    """Mirror of the band's sleep state plus recent sleep data."""

    def __init__(
        self,
        api: LittleWatchClient,
        device_serial: str,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._api = api
        self._device_serial = device_serial
        self._clock = clock
        self._subscriptions: list[Subscription] = []
        self._poller = FallbackPoller(self._fetch_all, self._apply_all, name="sleep")
        self.current = SleepState()
        self.sleep_data: list[dict[str, Any]] = []
        self.statistics: dict[str, Any] | None = None
        self.error: str | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def attach(self, channel: RealtimeChannel) -> None:
        handlers = {
            SLEEP_SESSION_UPDATE: self._on_session_update,
            SLEEP_STARTED: self._on_sleep_started,
            SLEEP_ENDED: self._on_sleep_ended,
            SLEEP_DURATION_UPDATE: self._on_duration_update,
            SLEEP_STATS_UPDATED: self._on_stats_updated,
            SLEEP_DATA_UPDATED: self._on_data_updated,
            MOVEMENT_STATUS_UPDATE: self._on_movement_status,
        }
        for event, handler in handlers.items():
            self._subscriptions.append(channel.on_event(event, handler))

    def start_auto_refresh(self, interval_seconds: float = SLEEP_AUTO_REFRESH_SECONDS) -> None:
        self._poller.start(interval_seconds)

    def detach(self) -> None:
        """Unsubscribe from the channel and stop auto refresh."""
        self._poller.stop()
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

    async def load(self) -> None:
        """Fetch data, statistics and current status together."""
        try:
            self._apply_all(await self._fetch_all())
        except LittleWatchError as exc:
            logger.warning("Failed to load sleep data for %s: %s", self._device_serial, exc)
            self.error = "Failed to load sleep data"

    # ------------------------------------------------------------------
    # REST
    # ------------------------------------------------------------------

    async def _fetch_all(self) -> dict[str, Any]:
        data, stats, current = await asyncio.gather(
            self._api.get_sleep_data(self._device_serial, days=SLEEP_HISTORY_DAYS),
            self._api.get_sleep_statistics(self._device_serial, days=SLEEP_HISTORY_DAYS),
            self._api.get_current_sleep(self._device_serial),
        )
        return {"data": data, "statistics": stats, "current": current}

    def _apply_all(self, result: dict[str, Any]) -> None:
        self.sleep_data = list(result.get("data") or [])
        self.statistics = result.get("statistics")
        current = result.get("current")
        if current is not None:
            self.current = SleepState(
                is_sleeping=current.is_sleeping,
                current_duration_minutes=current.current_duration_minutes,
                start_time=current.start_time,
                extra=current.model_extra or {},
            )
        self.error = None

    async def _reload_data(self) -> None:
        try:
            self.sleep_data = await self._api.get_sleep_data(
                self._device_serial, days=SLEEP_HISTORY_DAYS
            )
        except LittleWatchError as exc:
            logger.warning("Sleep data refresh failed: %s", exc)

    # ------------------------------------------------------------------
    # Channel handlers
    # ------------------------------------------------------------------

    def _on_session_update(self, data: dict[str, Any]) -> None:
        data = data or {}
        self.current = SleepState(
            is_sleeping=bool(data.get("is_sleeping")),
            current_duration_minutes=data.get("current_duration_minutes"),
            start_time=parse_timestamp(data.get("start_time")),
            extra=dict(data),
        )

    def _on_sleep_started(self, data: dict[str, Any]) -> None:
        data = data or {}
        logger.info("Sleep started on %s", self._device_serial)
        self.current = SleepState(
            is_sleeping=True,
            current_duration_minutes=0,
            start_time=parse_timestamp(data.get("start_time")) or self._clock(),
            extra=dict(data),
        )

    async def _on_sleep_ended(self, data: dict[str, Any]) -> None:
        data = data or {}
        logger.info("Sleep ended on %s", self._device_serial)
        self.current = SleepState(
            is_sleeping=False,
            total_duration_minutes=data.get("total_duration_minutes"),
            end_time=self._clock(),
            extra=dict(data),
        )
        await self.load()

    def _on_duration_update(self, data: dict[str, Any]) -> None:
        minutes = (data or {}).get("current_duration_minutes")
        self.current.current_duration_minutes = minutes

    def _on_stats_updated(self, data: dict[str, Any]) -> None:
        self.statistics = data

    async def _on_data_updated(self, data: Any) -> None:
        await self._reload_data()

    async def _on_movement_status(self, data: dict[str, Any]) -> None:
        if (data or {}).get("movement_status") == "sleeping":
            self.current = SleepState(
                is_sleeping=True, current_duration_minutes=0, start_time=self._clock()
            )
            return
        self.current = SleepState(is_sleeping=False)
        await self.load()
