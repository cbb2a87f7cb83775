"""REST access to the LittleWatch backend.

Modules:
    client — LittleWatchClient, one method per backend endpoint
    auth   — UnauthorizedHandler, the single logout-on-401/403 action
    models — Pydantic payload models
    errors — Exception hierarchy
"""

from littlewatch.api.auth import UnauthorizedHandler
from littlewatch.api.client import LittleWatchClient
from littlewatch.api.errors import (
    ApiResponseError,
    AuthenticationError,
    ChannelTransportError,
    LittleWatchError,
    MalformedResponseError,
    NetworkError,
    NotLoggedInError,
)

__all__ = [
    "LittleWatchClient",
    "UnauthorizedHandler",
    "LittleWatchError",
    "NetworkError",
    "AuthenticationError",
    "NotLoggedInError",
    "ApiResponseError",
    "MalformedResponseError",
    "ChannelTransportError",
]
