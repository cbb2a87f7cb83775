"""Tests for the realtime channel: registration on every connect, dispatch, teardown."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from littlewatch.api.errors import ChannelTransportError
from littlewatch.config import Settings
from littlewatch.realtime.channel import (
    JOIN_USER_ROOM,
    NEW_NOTIFICATION,
    REGISTER_DEVICE,
    STATE_CHANGED,
    VITALS_UPDATE,
    ChannelState,
    RealtimeChannel,
)
from littlewatch.tests.conftest import (
    SOCKET_URL,
    TEST_SERIAL,
    TEST_USER_ID,
    FakeSocketFactory,
)

REGISTRATION = [
    (REGISTER_DEVICE, {"userId": TEST_USER_ID, "deviceSerial": TEST_SERIAL}),
    (JOIN_USER_ROOM, TEST_USER_ID),
]


@pytest.fixture
def channel(settings: Settings, socket_factory: FakeSocketFactory) -> RealtimeChannel:
    return RealtimeChannel(settings, client_factory=socket_factory)


class TestConnect:
    @pytest.mark.asyncio
    async def test_registers_once_per_connect(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        await channel.connect(TEST_USER_ID, TEST_SERIAL)
        client = socket_factory.last
        assert client.url == SOCKET_URL
        assert client.transports == ["websocket"]
        assert client.emitted == REGISTRATION
        assert channel.registrations == 1
        assert channel.state is ChannelState.CONNECTED
        assert channel.connected is True

    @pytest.mark.asyncio
    async def test_transport_options(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        await channel.connect(TEST_USER_ID, TEST_SERIAL)
        options = socket_factory.last.options
        assert options["reconnection"] is True
        assert options["reconnection_attempts"] == 5
        assert options["reconnection_delay"] == 1.0

    @pytest.mark.asyncio
    async def test_reconnect_re_registers(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        await channel.connect(TEST_USER_ID, TEST_SERIAL)
        client = socket_factory.last
        await client.fire("disconnect")
        assert channel.state is ChannelState.DISCONNECTED
        assert client.emitted == REGISTRATION

        await client.fire("connect")
        assert client.emitted == REGISTRATION * 2
        assert channel.registrations == 2
        assert channel.connected is True

    @pytest.mark.asyncio
    async def test_failed_connect_emits_nothing(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        states: list[ChannelState] = []
        channel.on_event(STATE_CHANGED, states.append)
        socket_factory.fail_next = True

        with pytest.raises(ChannelTransportError):
            await channel.connect(TEST_USER_ID, TEST_SERIAL)

        assert socket_factory.last.emitted == []
        assert channel.registrations == 0
        assert channel.state is ChannelState.ERROR
        assert states == [ChannelState.CONNECTING, ChannelState.ERROR]

    @pytest.mark.asyncio
    async def test_connect_error_signal(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        await channel.connect(TEST_USER_ID, TEST_SERIAL)
        await socket_factory.last.fire("connect_error", "timeout")
        assert channel.state is ChannelState.ERROR

    @pytest.mark.asyncio
    async def test_second_connect_replaces_transport(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        await channel.connect(TEST_USER_ID, TEST_SERIAL)
        await channel.connect(TEST_USER_ID, "XYZ789")
        first, second = socket_factory.clients
        assert first.disconnect_calls == 1
        assert second.emitted[0] == (
            REGISTER_DEVICE,
            {"userId": TEST_USER_ID, "deviceSerial": "XYZ789"},
        )
        assert first.emitted == REGISTRATION
        assert channel.registrations == 2


class TestDispatch:
    @pytest.mark.asyncio
    async def test_inbound_event_reaches_subscriber(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        handler = MagicMock()
        channel.on_event(VITALS_UPDATE, handler)
        await channel.connect(TEST_USER_ID, TEST_SERIAL)

        payload = {"success": True, "data": {"vitals": {"heart_rate": 140}}}
        await socket_factory.last.fire(VITALS_UPDATE, payload)
        handler.assert_called_once_with(payload)

    @pytest.mark.asyncio
    async def test_async_subscriber_awaited(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        handler = AsyncMock()
        channel.on_event(NEW_NOTIFICATION, handler)
        await channel.connect(TEST_USER_ID, TEST_SERIAL)
        await socket_factory.last.fire(NEW_NOTIFICATION, {"title": "High temperature"})
        handler.assert_awaited_once_with({"title": "High temperature"})

    @pytest.mark.asyncio
    async def test_unsubscribed_handler_not_called(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        handler = MagicMock()
        subscription = channel.on_event(VITALS_UPDATE, handler)
        await channel.connect(TEST_USER_ID, TEST_SERIAL)
        subscription.unsubscribe()
        await socket_factory.last.fire(VITALS_UPDATE, {})
        handler.assert_not_called()
        assert subscription.active is False


class TestTeardown:
    @pytest.mark.asyncio
    async def test_disconnect(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        await channel.connect(TEST_USER_ID, TEST_SERIAL)
        await channel.disconnect()
        assert socket_factory.last.disconnect_calls == 1
        assert channel.state is ChannelState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_disconnect_when_idle(self, channel: RealtimeChannel) -> None:
        await channel.disconnect()
        assert channel.state is ChannelState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_close_drops_subscribers(
        self, channel: RealtimeChannel, socket_factory: FakeSocketFactory
    ) -> None:
        handler = MagicMock()
        channel.on_event(VITALS_UPDATE, handler)
        await channel.connect(TEST_USER_ID, TEST_SERIAL)
        client = socket_factory.last
        await channel.disconnect()
        channel.close()
        await client.fire(VITALS_UPDATE, {})
        handler.assert_not_called()
