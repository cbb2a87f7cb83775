"""Durable session storage.

The session is the only piece of client state that survives a restart.  It
is written as a small JSON document and passed explicitly to every service
that needs the user id, token or device serial; nothing reads it from a
global.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import jwt as pyjwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("littlewatch.session")


class Session(BaseModel):
    """Authenticated user context.

    Attributes:
        user_id:       Backend user identifier (opaque).
        auth_token:    Bearer credential sent on every REST call.
        device_serial: Serial of the linked band, ``None`` until one is linked.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    user_id: str
    auth_token: str = Field(repr=False)
    device_serial: str | None = None

    @property
    def token_expires_at(self) -> datetime | None:
        """UTC expiry read from the token's ``exp`` claim, if it has one.

        The signature is not verified; the backend stays the authority on
        validity.  Tokens that are not JWTs simply have no known expiry.
        """
        try:
            claims = pyjwt.decode(
                self.auth_token,
                options={"verify_signature": False, "verify_exp": False},
            )
        except pyjwt.InvalidTokenError:
            return None
        exp = claims.get("exp")
        if exp is None:
            return None
        return datetime.fromtimestamp(int(exp), tz=timezone.utc)

    def is_expired(self, now: datetime | None = None) -> bool:
        expires_at = self.token_expires_at
        if expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= expires_at

    def with_device(self, device_serial: str | None) -> "Session":
        return self.model_copy(update={"device_serial": device_serial})


class SessionStore:
    """JSON-file backed store for the single active :class:`Session`.

    Usage::

        store = SessionStore(settings.session_store_path)
        store.set(Session(user_id="42", auth_token=token))
        session = store.get()
        store.clear()
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> Session | None:
        """Return the stored session, or ``None`` when logged out.

        A corrupt file is treated as logged out and logged, never raised.
        """
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return Session.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self._path, exc)
            return None

    def set(self, session: Session) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(session.model_dump_json(), encoding="utf-8")
        tmp.replace(self._path)
        logger.debug("Session stored for user %s", session.user_id)

    def clear(self) -> None:
        """Remove the session entirely.  Safe to call when already cleared."""
        try:
            self._path.unlink()
        except FileNotFoundError:
            return
        logger.info("Session cleared")
