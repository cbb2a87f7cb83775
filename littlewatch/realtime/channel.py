"""Socket.IO realtime channel for live vitals and alerts.

One long-lived connection per signed-in user.  Every time the transport
reports ``connect`` (the first time and after each automatic reconnection)
the channel re-sends its two registrations:

    register_device  {userId, deviceSerial}   → routes vitals for the band
    join_user_room   userId                    → routes notifications

Reconnection attempts and delay are transport configuration; the channel
itself owns no retry policy, no acknowledgements and no de-duplication.
Inbound events are fanned out to subscribers through an
:class:`~littlewatch.events.EventEmitter`.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError

from littlewatch.api.errors import ChannelTransportError
from littlewatch.config import Settings, get_settings
from littlewatch.events import EventEmitter, Handler, Subscription

logger = logging.getLogger("littlewatch.realtime.channel")

# Inbound events
VITALS_UPDATE = "vitals_update"
NEW_NOTIFICATION = "new_notification"
SLEEP_SESSION_UPDATE = "sleep_session_update"
SLEEP_STARTED = "sleep_started"
SLEEP_ENDED = "sleep_ended"
SLEEP_DURATION_UPDATE = "sleep_duration_update"
SLEEP_STATS_UPDATED = "sleep_stats_updated"
SLEEP_DATA_UPDATED = "sleep_data_updated"
MOVEMENT_STATUS_UPDATE = "movement_status_update"

INBOUND_EVENTS: tuple[str, ...] = (
    VITALS_UPDATE,
    NEW_NOTIFICATION,
    SLEEP_SESSION_UPDATE,
    SLEEP_STARTED,
    SLEEP_ENDED,
    SLEEP_DURATION_UPDATE,
    SLEEP_STATS_UPDATED,
    SLEEP_DATA_UPDATED,
    MOVEMENT_STATUS_UPDATE,
)

# Outbound events
REGISTER_DEVICE = "register_device"
JOIN_USER_ROOM = "join_user_room"

# Emitted locally whenever ChannelState changes; payload is the new state.
STATE_CHANGED = "channel_state"


class ChannelState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class RealtimeChannel:
    """Socket.IO channel parameterised by user id and device serial.

    Usage::

        channel = RealtimeChannel(settings)
        sub = channel.on_event(VITALS_UPDATE, projection_handler)
        await channel.connect(session.user_id, session.device_serial)
        ...
        sub.unsubscribe()
        await channel.disconnect()

    Args:
        settings:       Client settings (socket URL, reconnection knobs).
        client_factory: Callable building the Socket.IO client; defaults to
                        ``socketio.AsyncClient``.  Injected in tests.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client_factory: Callable[..., Any] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client_factory = client_factory or socketio.AsyncClient
        self._events = EventEmitter()
        self._sio: Any = None
        self._state = ChannelState.DISCONNECTED
        self._user_id: str | None = None
        self._device_serial: str | None = None
        self.registrations = 0

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ChannelState.CONNECTED

    def on_event(self, event: str, handler: Handler) -> Subscription:
        """Subscribe to an inbound event (or ``STATE_CHANGED``)."""
        return self._events.subscribe(event, handler)

    async def connect(self, user_id: str, device_serial: str | None) -> None:
        """Open the transport.  Registration happens on the ``connect`` signal.

        Calling ``connect`` while a connection exists tears that one down
        first, so registrations always carry the latest identifiers.

        Raises:
            ChannelTransportError: If the initial connection attempt fails.
        """
        if self._sio is not None:
            await self.disconnect()

        self._user_id = user_id
        self._device_serial = device_serial
        sio = self._client_factory(
            reconnection=True,
            reconnection_attempts=self._settings.reconnection_attempts,
            reconnection_delay=self._settings.reconnection_delay_seconds,
            logger=False,
        )
        sio.on("connect", self._on_connect)
        sio.on("disconnect", self._on_disconnect)
        sio.on("connect_error", self._on_connect_error)
        for event in INBOUND_EVENTS:
            sio.on(event, self._make_dispatcher(event))
        self._sio = sio

        await self._set_state(ChannelState.CONNECTING)
        logger.info("Connecting realtime channel to %s", self._settings.socket_url)
        try:
            await sio.connect(self._settings.socket_url, transports=["websocket"])
        except SocketConnectionError as exc:
            logger.warning("Realtime channel could not connect: %s", exc)
            self._sio = None
            await self._set_state(ChannelState.ERROR)
            raise ChannelTransportError(f"Realtime channel could not connect: {exc}") from exc

    async def disconnect(self) -> None:
        """Close the transport.  Safe to call when not connected."""
        sio, self._sio = self._sio, None
        if sio is not None:
            await sio.disconnect()
            logger.info("Realtime channel disconnected")
        await self._set_state(ChannelState.DISCONNECTED)

    def close(self) -> None:
        """Drop every subscriber.  Call after ``disconnect()`` on teardown."""
        self._events.clear()

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    async def _on_connect(self) -> None:
        sio = self._sio
        if sio is None:
            return
        await self._set_state(ChannelState.CONNECTED)
        await sio.emit(
            REGISTER_DEVICE,
            {"userId": self._user_id, "deviceSerial": self._device_serial},
        )
        await sio.emit(JOIN_USER_ROOM, self._user_id)
        self.registrations += 1
        logger.info(
            "Realtime channel connected; registered device %s for user %s",
            self._device_serial, self._user_id,
        )

    async def _on_disconnect(self, *args: Any) -> None:
        logger.info("Realtime channel transport disconnected")
        await self._set_state(ChannelState.DISCONNECTED)

    async def _on_connect_error(self, *args: Any) -> None:
        logger.warning("Realtime channel connection error: %s", args[0] if args else "")
        await self._set_state(ChannelState.ERROR)

    def _make_dispatcher(self, event: str) -> Callable[..., Any]:
        async def dispatch(*args: Any) -> None:
            payload = args[0] if args else None
            logger.debug("Received %s", event)
            await self._events.emit(event, payload)

        return dispatch

    async def _set_state(self, state: ChannelState) -> None:
        if state is self._state:
            return
        self._state = state
        await self._events.emit(STATE_CHANGED, state)
