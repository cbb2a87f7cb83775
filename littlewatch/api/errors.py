"""Exception hierarchy for the LittleWatch client.

Network and transport failures are expected to be logged and retried by the
poller or the Socket.IO transport.  Authentication failures are routed
through :class:`littlewatch.api.auth.UnauthorizedHandler` before they are
raised here.
"""

from __future__ import annotations


class LittleWatchError(Exception):
    """Base class for every error raised by the client."""


class NetworkError(LittleWatchError):
    """The request never produced an HTTP response (connect error, timeout)."""


class AuthenticationError(LittleWatchError):
    """The backend rejected the bearer token (HTTP 401 / 403)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApiResponseError(LittleWatchError):
    """The backend answered with a non-2xx status other than 401 / 403."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(LittleWatchError):
    """The body was not JSON, reported ``success: false``, or lacked fields."""


class ChannelTransportError(LittleWatchError):
    """The realtime channel could not open its transport."""


class NotLoggedInError(AuthenticationError):
    """An authenticated call was attempted with no stored session."""
