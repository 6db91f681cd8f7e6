"""PerioLifts authentication against the PocketBase users collection."""

import base64
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx

from periolifts_mcp.periolifts.exceptions import AuthenticationError, NetworkError, TokenExpiredError

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
MIN_PASSWORD_LENGTH = 8

AuthListener = Callable[[str | None, dict | None], None]


def decode_token_expiry(token: str) -> datetime | None:
    """Read the ``exp`` claim from a JWT without verifying it."""
    try:
        payload = token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload))
        return datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
    except (IndexError, KeyError, ValueError, TypeError):
        return None


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return default
    if not isinstance(data, dict):
        return default
    return data.get("message") or default


class PocketBaseAuth:
    """Auth store for a PocketBase users collection.

    Holds the bearer token and the authenticated user record, and notifies
    listeners whenever either changes.
    """

    def __init__(self, base_url: str = "http://localhost:8090", timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token: str | None = None
        self.record: dict | None = None
        self.token_expiry: datetime | None = None
        self._listeners: list[AuthListener] = []

    @property
    def user_id(self) -> str | None:
        return self.record.get("id") if self.record else None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user_id is not None

    @property
    def is_token_expired(self) -> bool:
        if not self.token_expiry:
            return True
        return datetime.now(timezone.utc) >= (self.token_expiry - timedelta(minutes=5))

    def add_listener(self, listener: AuthListener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _collection_url(self, action: str) -> str:
        return f"{self.base_url}/api/collections/{USERS_COLLECTION}/{action}"

    async def _post(self, url: str, headers: dict | None = None, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise NetworkError(f"Could not reach {self.base_url}: {e}") from e

    async def login(self, email: str, password: str) -> None:
        response = await self._post(
            self._collection_url("auth-with-password"),
            json={"identity": email, "password": password},
        )

        if response.status_code != 200:
            message = _error_message(response, "Authentication failed")
            raise AuthenticationError(f"Login failed: {message}")

        self._update(response.json())
        logger.info("Authenticated as user %s", self.user_id)

    async def refresh(self) -> None:
        if not self.token:
            raise AuthenticationError("No token available to refresh")

        response = await self._post(
            self._collection_url("auth-refresh"),
            headers=self.get_auth_header(),
        )

        if response.status_code != 200:
            raise TokenExpiredError("Failed to refresh token")

        self._update(response.json())
        logger.debug("Refreshed token for user %s", self.user_id)

    async def sign_up(self, email: str, password: str, name: str = "", password_confirm: str | None = None) -> None:
        """Create a user account and log into it."""
        if password_confirm is not None and password_confirm != password:
            raise AuthenticationError("Passwords do not match")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthenticationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

        response = await self._post(
            self._collection_url("records"),
            json={
                "email": email,
                "password": password,
                "passwordConfirm": password,
                "name": name,
            },
        )

        if response.status_code not in (200, 201):
            message = _error_message(response, "Sign up failed")
            raise AuthenticationError(f"Sign up failed: {message}")

        await self.login(email, password)

    def clear(self) -> None:
        user_id = self.user_id
        self.token = None
        self.record = None
        self.token_expiry = None
        self._notify()
        if user_id:
            logger.info("Signed out user %s", user_id)

    def _update(self, data: dict) -> None:
        self.token = data["token"]
        self.record = data.get("record") or self.record
        self.token_expiry = decode_token_expiry(self.token)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.token, self.record)

    def get_auth_header(self) -> dict[str, str]:
        if not self.token:
            raise AuthenticationError("Not authenticated")
        return {"Authorization": f"Bearer {self.token}"}

    def to_dict(self) -> dict:
        return {
            "base_url": self.base_url,
            "token": self.token,
            "record": self.record,
        }

    @classmethod
    def from_dict(cls, data: dict, timeout: float = 30) -> "PocketBaseAuth":
        auth = cls(data.get("base_url") or "http://localhost:8090", timeout=timeout)
        auth.token = data.get("token")
        auth.record = data.get("record")
        if auth.token:
            auth.token_expiry = decode_token_expiry(auth.token)
        return auth
