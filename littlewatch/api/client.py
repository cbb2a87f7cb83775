"""REST client for the LittleWatch backend.

Wraps every endpoint the mobile app calls.  The bearer token comes from the
:class:`~littlewatch.session.store.Session` the client was given, never from
shared storage, and every 401/403 is routed through one
:class:`~littlewatch.api.auth.UnauthorizedHandler`.

Usage::

    async with LittleWatchClient(settings, session=store.get(),
                                 unauthorized=handler) as api:
        profile = await api.get_profile()
        latest = await api.get_latest_vitals(profile.device_serial)
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from littlewatch.api.auth import UNAUTHORIZED_STATUS_CODES, UnauthorizedHandler
from littlewatch.api.errors import (
    ApiResponseError,
    AuthenticationError,
    LittleWatchError,
    MalformedResponseError,
    NetworkError,
    NotLoggedInError,
)
from littlewatch.api.models import (
    CurrentSleep,
    LatestVitals,
    Notification,
    Profile,
    VitalsHistory,
)
from littlewatch.config import Settings, get_settings
from littlewatch.session.store import Session

logger = logging.getLogger("littlewatch.api")

ModelT = TypeVar("ModelT", bound=BaseModel)


class LittleWatchClient:
    """Async client for the LittleWatch REST API.

    Args:
        settings:     Client settings (base URL, timeout).
        session:      Authenticated session context, ``None`` before login.
        unauthorized: Shared unauthorized handler.  Runs on every 401/403 to an
                      authenticated call; login and signup failures never
                      log the user out.
        transport:    Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session: Session | None = None,
        unauthorized: UnauthorizedHandler | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.session = session
        self._unauthorized = unauthorized
        self._http = httpx.AsyncClient(
            base_url=self._settings.api_base_url,
            timeout=self._settings.request_timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "LittleWatchClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Session:
        """Authenticate and adopt the resulting session.

        The caller is responsible for persisting the returned session.
        """
        body = await self._request(
            "POST",
            "/auth/login",
            json={"email": email, "password": password},
            authenticated=False,
        )
        data = body.get("data") or {}
        token = body.get("token") or data.get("token")
        user = body.get("user") or data.get("user") or {}
        user_id = user.get("id") or data.get("user_id") or user.get("user_id")
        if not token or user_id is None:
            raise MalformedResponseError("Login response is missing token or user id")

        session = Session(
            user_id=str(user_id),
            auth_token=token,
            device_serial=user.get("device_serial") or data.get("device_serial"),
        )
        self.session = session
        if self._unauthorized:
            self._unauthorized.reset()
        logger.info("Logged in as user %s", session.user_id)
        return session

    async def signup(self, name: str, email: str, password: str) -> dict[str, Any]:
        body = await self._request(
            "POST",
            "/user/signup",
            json={"name": name, "email": email, "password": password},
            authenticated=False,
        )
        return body.get("data") or {}

    async def logout(self) -> None:
        """Tell the backend, then clear the session locally.

        The server call is best effort: a failure there must not keep the
        user logged in on this device.
        """
        if self.session is not None:
            try:
                await self._request("POST", "/user/logout")
            except LittleWatchError as exc:
                logger.warning("Server logout failed, clearing locally: %s", exc)
        self.session = None
        if self._unauthorized:
            await self._unauthorized.logout("user logout")

    # ------------------------------------------------------------------
    # User
    # ------------------------------------------------------------------

    async def get_profile(self) -> Profile:
        body = await self._request("GET", "/user/profile")
        return self._parse(Profile, self._require_data(body, "/user/profile"), "/user/profile")

    async def update_profile(self, **changes: Any) -> None:
        if changes:
            await self._request("PUT", "/user/profile", json=changes)

    async def update_fcm_token(self, fcm_token: str) -> None:
        await self._request("PUT", "/user/fcm-token", json={"fcmToken": fcm_token})

    async def update_notification_settings(self, enabled: bool) -> None:
        await self._request(
            "PUT",
            "/user/notification-settings",
            json={"notificationEnabled": enabled},
        )

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self._request(
            "PUT",
            "/user/change-password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    async def link_device(self, device_serial: str) -> None:
        await self._request("POST", "/devices/link", json={"device_serial": device_serial})

    async def unlink_device(self) -> None:
        await self._request("POST", "/devices/unlink")

    # ------------------------------------------------------------------
    # Vitals
    # ------------------------------------------------------------------

    async def get_latest_vitals(self, device_serial: str) -> LatestVitals:
        path = f"/vitals/latest-by-serial/{device_serial}"
        body = await self._request("GET", path)
        return self._parse(LatestVitals, self._require_data(body, path), path)

    async def get_vitals_history(
        self,
        device_serial: str,
        *,
        period: str,
        page: int,
        limit: int,
    ) -> VitalsHistory:
        path = f"/vitals/history-by-serial/{device_serial}"
        body = await self._request(
            "GET", path, params={"period": period, "page": page, "limit": limit}
        )
        return self._parse(VitalsHistory, self._require_data(body, path), path)

    async def get_sleep_data(self, device_serial: str, days: int = 7) -> list[dict[str, Any]]:
        body = await self._request(
            "GET", f"/vitals/sleep/data/{device_serial}", params={"days": days}
        )
        return body.get("data") or []

    async def get_sleep_statistics(
        self, device_serial: str, days: int = 7
    ) -> dict[str, Any] | None:
        body = await self._request(
            "GET", f"/vitals/sleep/statistics/{device_serial}", params={"days": days}
        )
        return body.get("data") or None

    async def get_current_sleep(self, device_serial: str) -> CurrentSleep:
        path = f"/vitals/sleep/current/{device_serial}"
        body = await self._request("GET", path)
        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise MalformedResponseError(f"{path}: 'data' is not an object")
        return self._parse(
            CurrentSleep,
            {**data, "is_sleeping": bool(body.get("isSleeping", data.get("is_sleeping")))},
            path,
        )

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def list_notifications(self) -> list[Notification]:
        body = await self._request("GET", "/notifications")
        items = body.get("data") or []
        if not isinstance(items, list):
            raise MalformedResponseError("/notifications: 'data' is not a list")
        return [self._parse(Notification, item, "/notifications") for item in items]

    async def mark_notification_read(self, notification_id: int | str) -> None:
        await self._request("PUT", f"/notifications/{notification_id}/read")

    async def mark_all_notifications_read(self) -> None:
        await self._request("PUT", "/notifications/read-all")

    async def clear_notifications(self) -> None:
        await self._request("DELETE", "/notifications/clear-all")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> dict[str, Any]:
        """Send a request and return the decoded ``{success, ...}`` envelope.

        Raises:
            NotLoggedInError:       authenticated call with no session.
            NetworkError:           no HTTP response (connect error, timeout).
            AuthenticationError:    401 / 403; on authenticated calls, after the handler has run.
            ApiResponseError:       any other non-2xx status.
            MalformedResponseError: non-JSON body or ``success`` not true.
        """
        headers: dict[str, str] = {}
        if authenticated:
            if self.session is None:
                if self._unauthorized:
                    await self._unauthorized.logout("no session")
                raise NotLoggedInError(f"{method} {path} requires a session")
            headers["Authorization"] = f"Bearer {self.session.auth_token}"

        try:
            response = await self._http.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        if response.status_code in UNAUTHORIZED_STATUS_CODES:
            if authenticated and self._unauthorized:
                await self._unauthorized(response)
            raise AuthenticationError(
                f"{method} {path} was rejected", status_code=response.status_code
            )

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiResponseError(
                message or f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        if not isinstance(body, dict):
            raise MalformedResponseError(f"{method} {path}: response is not a JSON object")
        if body.get("success") is not True:
            raise MalformedResponseError(
                body.get("message") or f"{method} {path}: success is false"
            )
        return body

    @staticmethod
    def _require_data(body: dict[str, Any], path: str) -> dict[str, Any]:
        data = body.get("data")
        if not isinstance(data, dict):
            raise MalformedResponseError(f"{path}: response has no 'data' object")
        return data

    @staticmethod
    def _parse(model: type[ModelT], data: Any, path: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise MalformedResponseError(f"{path}: unexpected payload: {exc}") from exc
