"""Live vitals dashboard: wires session, REST, channel and poller together.

Lifecycle mirrors a screen:

1. ``load()``   profile → device serial → latest vitals → channel connect →
                fallback poller start
2. ``refresh()`` pull to refresh: profile and latest vitals again,
                reconnecting the channel only if the serial changed
3. ``close()``   stop the poller, drop channel subscriptions, disconnect.
                A guard flag makes any response that lands afterwards a no-op.

The poller only fetches while the channel is not connected, so the two
sources do not race in the normal case.
"""

from __future__ import annotations

import logging
from typing import Any

from littlewatch.api.client import LittleWatchClient
from littlewatch.api.errors import AuthenticationError, ChannelTransportError, LittleWatchError
from littlewatch.config import Settings, get_settings
from littlewatch.events import Subscription
from littlewatch.realtime.channel import NEW_NOTIFICATION, VITALS_UPDATE, RealtimeChannel
from littlewatch.session.store import SessionStore
from littlewatch.sync.poller import FallbackPoller
from littlewatch.vitals.projection import VitalsProjection

logger = logging.getLogger("littlewatch.dashboard")

LOAD_ERROR_MESSAGE = "Unable to load vitals. Pull down to try again."


class VitalsDashboard:
    """Keeps a :class:`VitalsProjection` current for one signed-in user."""

    def __init__(
        self,
        api: LittleWatchClient,
        channel: RealtimeChannel,
        store: SessionStore,
        *,
        settings: Settings | None = None,
        projection: VitalsProjection | None = None,
    ) -> None:
        self._api = api
        self._channel = channel
        self._store = store
        self._settings = settings or get_settings()
        self.projection = projection or VitalsProjection()
        self._poller = FallbackPoller(self._poll_latest, self._apply, name="dashboard")
        self._subscriptions: list[Subscription] = []
        self._closed = False
        self._loaded_once = False
        self.device_serial: str | None = None
        self.error: str | None = None
        self.last_notification: Any = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def poller(self) -> FallbackPoller:
        return self._poller

    async def load(self) -> None:
        """Initial load.  Sets ``error`` instead of raising on network trouble."""
        if self._closed:
            return
        if not await self._load_profile_and_vitals():
            return
        if self.device_serial is not None:
            await self._go_live()

    async def refresh(self) -> None:
        if self._closed:
            return
        previous_serial = self.device_serial
        if not await self._load_profile_and_vitals():
            return
        if self.device_serial != previous_serial:
            if self.device_serial is None:
                self._poller.stop()
                await self._channel.disconnect()
            else:
                await self._go_live()

    async def close(self) -> None:
        """Tear down.  Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._poller.stop()
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        await self._channel.disconnect()
        logger.info("Dashboard closed")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_profile_and_vitals(self) -> bool:
        """Fetch profile then latest vitals.  Returns False if the load aborted."""
        try:
            profile = await self._api.get_profile()
        except AuthenticationError:
            # UnauthorizedHandler has already cleared the session and redirected.
            return False
        except LittleWatchError as exc:
            logger.warning("Profile fetch failed: %s", exc)
            if not self._loaded_once:
                self.error = LOAD_ERROR_MESSAGE
            return False
        if self._closed:
            return False

        self._remember_serial(profile.device_serial)
        if self.device_serial is None:
            self.projection.mark_no_device()
            self._loaded_once = True
            self.error = None
            return True

        try:
            latest = await self._api.get_latest_vitals(self.device_serial)
        except AuthenticationError:
            return False
        except LittleWatchError as exc:
            logger.warning("Latest vitals fetch failed for %s: %s", self.device_serial, exc)
            if not self._loaded_once:
                self.error = LOAD_ERROR_MESSAGE
        else:
            self._apply(latest.model_dump())
            self.error = None
        self._loaded_once = True
        return not self._closed

    def _remember_serial(self, device_serial: str | None) -> None:
        self.device_serial = device_serial
        session = self._api.session
        if session is not None and session.device_serial != device_serial:
            session = session.with_device(device_serial)
            self._api.session = session
            self._store.set(session)

    async def _go_live(self) -> None:
        if not self._subscriptions:
            self._subscriptions = [
                self._channel.on_event(VITALS_UPDATE, self._on_vitals_update),
                self._channel.on_event(NEW_NOTIFICATION, self._on_notification),
            ]
        await self._connect_channel()
        if not self._closed:
            self._poller.start(self._settings.poll_interval_seconds)

    async def _connect_channel(self) -> None:
        session = self._api.session
        if session is None or self._closed:
            return
        try:
            await self._channel.connect(session.user_id, self.device_serial)
        except ChannelTransportError as exc:
            logger.warning("Realtime unavailable, relying on polling: %s", exc)

    async def _poll_latest(self) -> dict[str, Any] | None:
        if self.device_serial is None or self._channel.connected:
            return None
        latest = await self._api.get_latest_vitals(self.device_serial)
        return latest.model_dump()

    def _apply(self, payload: dict[str, Any]) -> None:
        if self._closed:
            logger.debug("Dropping vitals that arrived after close")
            return
        self.projection.apply_payload(payload)

    def _on_vitals_update(self, response: Any) -> None:
        if not isinstance(response, dict):
            return
        data = response.get("data")
        if response.get("success") and isinstance(data, dict):
            self._apply(data)

    def _on_notification(self, notification: Any) -> None:
        if self._closed:
            return
        logger.info("New notification received")
        self.last_notification = notification
        self.projection.raise_alert()
