"""Centralized handling of rejected credentials.

Every authenticated call goes through the same client, which hands 401 and 403
responses to :class:`UnauthorizedHandler`.  Login and signup rejections are
not routed here.  A rejected session therefore produces exactly one logout: the session store is
cleared and the ``on_logout`` callback (typically "show the login screen")
runs once, no matter how many in-flight requests fail together.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

import httpx

from littlewatch.session.store import SessionStore

logger = logging.getLogger("littlewatch.auth")

UNAUTHORIZED_STATUS_CODES: frozenset[int] = frozenset({401, 403})


class UnauthorizedHandler:
    """Single logout-and-redirect action shared by all API calls.

    Args:
        store:     Session store to clear on logout.
        on_logout: Optional callback(reason) run once per logout.  May be a
                   coroutine function.
    """

    def __init__(
        self,
        store: SessionStore,
        on_logout: Callable[[str], Any] | None = None,
    ) -> None:
        self._store = store
        self._on_logout = on_logout
        self._logged_out = False

    @property
    def logged_out(self) -> bool:
        return self._logged_out

    def reset(self) -> None:
        """Re-arm the handler after a successful login."""
        self._logged_out = False

    async def __call__(self, response: httpx.Response) -> None:
        """Handle a rejected response to an authenticated call."""
        if response.status_code in UNAUTHORIZED_STATUS_CODES:
            logger.warning(
                "%s %s rejected with %d",
                response.request.method,
                response.request.url.path,
                response.status_code,
            )
            await self.logout(f"HTTP {response.status_code}")

    async def logout(self, reason: str) -> None:
        """Clear the session and notify the UI.  Idempotent until ``reset()``."""
        if self._logged_out:
            return
        self._logged_out = True
        self._store.clear()
        logger.info("Logged out: %s", reason)

        if self._on_logout is None:
            return
        result = self._on_logout(reason)
        if inspect.isawaitable(result):
            await result
