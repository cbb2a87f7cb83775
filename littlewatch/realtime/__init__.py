"""Realtime Socket.IO channel for pushed vitals, alerts and sleep events."""

from littlewatch.realtime.channel import (
    INBOUND_EVENTS,
    NEW_NOTIFICATION,
    STATE_CHANGED,
    VITALS_UPDATE,
    ChannelState,
    RealtimeChannel,
)

__all__ = [
    "RealtimeChannel",
    "ChannelState",
    "INBOUND_EVENTS",
    "VITALS_UPDATE",
    "NEW_NOTIFICATION",
    "STATE_CHANGED",
]
