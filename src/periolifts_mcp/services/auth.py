"""Account operations returning Result values."""

import logging

from periolifts_mcp.periolifts.client import PocketBaseClient
from periolifts_mcp.periolifts.exceptions import AuthenticationError
from periolifts_mcp.services.errors import service_call
from periolifts_mcp.services.result import AppError
from periolifts_mcp.services.validation import validate_email

logger = logging.getLogger(__name__)


def _friendly_auth_message(message: str) -> str:
    lowered = message.lower()
    if "failed to authenticate" in lowered or "invalid login credentials" in lowered or "invalid credentials" in lowered:
        return "Invalid email or password. Please try again."
    if "already exists" in lowered or "email_already_exists" in lowered or "must be unique" in lowered:
        return "An account with this email already exists."
    return message


class AuthService:
    """Sign in, sign up and sign out against the PocketBase users collection."""

    def __init__(self, client: PocketBaseClient):
        self._client = client

    @property
    def is_authenticated(self) -> bool:
        return self._client.is_authenticated

    @property
    def current_user(self) -> dict | None:
        return self._client.auth.record

    @service_call("sign_in")
    async def sign_in(self, email: str, password: str) -> dict:
        validate_email(email)
        if not password:
            raise AppError.validation("Password cannot be empty")
        try:
            await self._client.login(email.strip(), password)
        except AuthenticationError as e:
            raise AppError.authentication(_friendly_auth_message(str(e))) from e
        return self._client.auth.record or {}

    @service_call("sign_up")
    async def sign_up(self, email: str, password: str, name: str = "", password_confirm: str | None = None) -> dict:
        validate_email(email)
        await self._client.sign_up(email.strip(), password, name=name, password_confirm=password_confirm)
        return self._client.auth.record or {}

    def sign_out(self) -> None:
        self._client.logout()
