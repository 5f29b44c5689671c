"""Auth provider clients.

Each browser session owns one client, mirroring the browser SDK of a
hosted auth service: the client holds the current remote session and
notifies subscribers when it changes.
"""

import enum
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """The auth provider rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthEvent(enum.StrEnum):
    signed_in = "SIGNED_IN"
    signed_out = "SIGNED_OUT"
    token_refreshed = "TOKEN_REFRESHED"


@dataclass
class RemoteSession:
    """A session issued by the auth provider."""

    user_id: str
    email: str | None
    access_token: str
    refresh_token: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


AuthListener = Callable[[AuthEvent, RemoteSession | None], None]


class AuthClient(ABC):
    """Abstract base for auth provider clients."""

    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []
        self.session: RemoteSession | None = None

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: AuthEvent, session: RemoteSession | None) -> None:
        for cb in list(self._listeners):
            try:
                cb(event, session)
            except Exception:
                logger.exception("Auth listener failed on %s", event)

    @abstractmethod
    async def get_session(self) -> RemoteSession | None:
        """Resolve the current session, restoring it if possible."""

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> RemoteSession:
        """Sign in; raises AuthError when rejected."""

    @abstractmethod
    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> None:
        """Register a new account with user metadata."""

    @abstractmethod
    async def sign_out(self) -> None:
        """End the remote session."""

    async def close(self) -> None:
        """Release connections held by the client."""


class OfflineAuthClient(AuthClient):
    """Used when no auth provider is configured: every remote call is rejected."""

    async def get_session(self) -> RemoteSession | None:
        return None

    async def sign_in_with_password(self, email: str, password: str) -> RemoteSession:
        raise AuthError("Auth provider not configured")

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> None:
        raise AuthError("Auth provider not configured")

    async def sign_out(self) -> None:
        if self.session is not None:
            self.session = None
            self._emit(AuthEvent.signed_out, None)


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(data, dict):
        for key in ("error_description", "msg", "message", "error"):
            if data.get(key):
                return str(data[key])
    return f"HTTP {resp.status_code}"


def _session_from_payload(data: dict[str, Any]) -> RemoteSession:
    user = data.get("user") or {}
    return RemoteSession(
        user_id=str(user.get("id", "")),
        email=user.get("email"),
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token"),
        metadata=dict(user.get("user_metadata") or {}),
    )


class SupabaseAuthClient(AuthClient):
    """GoTrue (Supabase Auth) REST client.

    A refresh token from an earlier browser visit lets ``get_session``
    restore the remote session without a new password sign-in.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        refresh_token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self.url = url.rstrip("/")
        self._pending_refresh = refresh_token
        self._client = httpx.AsyncClient(
            base_url=f"{self.url}/auth/v1",
            headers={"apikey": api_key},
            timeout=timeout,
            transport=transport,
        )

    @property
    def refresh_token(self) -> str | None:
        if self.session is not None:
            return self.session.refresh_token
        return self._pending_refresh

    async def get_session(self) -> RemoteSession | None:
        if self.session is not None:
            return self.session
        if not self._pending_refresh:
            return None
        token, self._pending_refresh = self._pending_refresh, None
        try:
            data = await self._post(
                "/token", params={"grant_type": "refresh_token"}, json={"refresh_token": token}
            )
        except AuthError as e:
            logger.info("Stored session could not be restored: %s", e.message)
            return None
        self.session = _session_from_payload(data)
        self._emit(AuthEvent.token_refreshed, self.session)
        return self.session

    async def sign_in_with_password(self, email: str, password: str) -> RemoteSession:
        data = await self._post(
            "/token", params={"grant_type": "password"}, json={"email": email, "password": password}
        )
        self.session = _session_from_payload(data)
        self._emit(AuthEvent.signed_in, self.session)
        return self.session

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> None:
        await self._post("/signup", json={"email": email, "password": password, "data": metadata})

    async def sign_out(self) -> None:
        session, self.session = self.session, None
        self._pending_refresh = None
        try:
            if session is not None:
                await self._post(
                    "/logout", headers={"Authorization": f"Bearer {session.access_token}"}
                )
        finally:
            self._emit(AuthEvent.signed_out, None)

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await self._client.post(path, **kwargs)
        except httpx.HTTPError as e:
            raise AuthError(str(e) or type(e).__name__) from e
        if resp.is_error:
            raise AuthError(_error_message(resp), status_code=resp.status_code)
        if resp.status_code == 204 or not resp.content:
            return {}
        data = resp.json()
        return data if isinstance(data, dict) else {}
