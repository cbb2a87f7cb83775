"""Link and unlink the LittleWatch band.

The serial arrives as the decoded text of the QR code on the band.  A
successful link or unlink is written back to the stored session so the
dashboard and realtime channel pick up the new serial.
"""

from __future__ import annotations

import logging

from littlewatch.api.client import LittleWatchClient
from littlewatch.api.errors import NotLoggedInError
from littlewatch.session.store import Session, SessionStore

logger = logging.getLogger("littlewatch.devices")


class DeviceLinker:
    def __init__(self, api: LittleWatchClient, store: SessionStore) -> None:
        self._api = api
        self._store = store

    async def current_serial(self) -> str | None:
        """Serial linked on the backend, refreshed into the session."""
        profile = await self._api.get_profile()
        self._remember(profile.device_serial)
        return profile.device_serial

    async def link(self, scanned: str) -> Session:
        """Link the band whose serial was scanned.

        Raises:
            ValueError: If the scanned text is blank.
            LittleWatchError: If the backend refuses the link.
        """
        device_serial = scanned.strip()
        if not device_serial:
            raise ValueError("Scanned QR code does not contain a device serial")

        await self._api.link_device(device_serial)
        logger.info("Linked device %s", device_serial)
        return self._remember(device_serial)

    async def unlink(self) -> Session:
        await self._api.unlink_device()
        logger.info("Unlinked device")
        return self._remember(None)

    def _remember(self, device_serial: str | None) -> Session:
        session = self._api.session
        if session is None:
            raise NotLoggedInError("Device linking requires a session")
        session = session.with_device(device_serial)
        self._api.session = session
        self._store.set(session)
        return session
