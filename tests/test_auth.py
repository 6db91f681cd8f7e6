"""
Unit tests for PocketBaseAuth.

Covers token expiry decoding, login/refresh/sign up against a patched
httpx.AsyncClient, listener notification and state round trips.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from periolifts_mcp.periolifts.auth import PocketBaseAuth, decode_token_expiry
from periolifts_mcp.periolifts.exceptions import AuthenticationError, NetworkError, TokenExpiredError
from tests.conftest import make_jwt


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _response(status_code: int, payload: dict) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


def _patched_post(mock_client_class, *, return_value=None, side_effect=None) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.post = AsyncMock(return_value=return_value, side_effect=side_effect)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    mock_client_class.return_value = mock_client
    return mock_client


@pytest.fixture
def auth():
    """Auth store for a test PocketBase instance."""
    return PocketBaseAuth("http://pb.test/", timeout=5)


@pytest.fixture
def login_payload():
    """Body returned by auth-with-password."""
    return {"token": make_jwt(), "record": {"id": "user-1", "email": "lifter@example.com"}}


# ---------------------------------------------------------------------------
# Token expiry
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestTokenExpiry:
    def test_decodes_exp_claim(self):
        expiry = decode_token_expiry(make_jwt(3600))

        assert expiry is not None
        assert timedelta(minutes=59) < expiry - datetime.now(timezone.utc) <= timedelta(hours=1)

    def test_garbage_token_has_no_expiry(self):
        assert decode_token_expiry("not-a-jwt") is None

    def test_token_inside_refresh_margin_counts_as_expired(self, auth):
        auth.token = make_jwt(120)
        auth.token_expiry = decode_token_expiry(auth.token)

        assert auth.is_token_expired is True

    def test_fresh_token_is_not_expired(self, auth):
        auth.token = make_jwt(3600)
        auth.token_expiry = decode_token_expiry(auth.token)

        assert auth.is_token_expired is False


# ---------------------------------------------------------------------------
# Login and refresh
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestLogin:
    @pytest.mark.asyncio
    async def test_login_stores_token_and_record(self, auth, login_payload):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _patched_post(mock_client_class, return_value=_response(200, login_payload))

            await auth.login("lifter@example.com", "secret-password")

        url = mock_client.post.call_args.args[0]
        assert url == "http://pb.test/api/collections/users/auth-with-password"
        assert mock_client.post.call_args.kwargs["json"] == {
            "identity": "lifter@example.com",
            "password": "secret-password",
        }
        assert auth.is_authenticated
        assert auth.user_id == "user-1"
        assert auth.get_auth_header() == {"Authorization": f"Bearer {login_payload['token']}"}

    @pytest.mark.asyncio
    async def test_login_failure_raises_authentication_error(self, auth):
        with patch("httpx.AsyncClient") as mock_client_class:
            _patched_post(mock_client_class, return_value=_response(400, {"message": "Failed to authenticate."}))

            with pytest.raises(AuthenticationError, match="Failed to authenticate"):
                await auth.login("lifter@example.com", "wrong")

        assert not auth.is_authenticated

    @pytest.mark.asyncio
    async def test_non_object_error_body_uses_default_message(self, auth):
        with patch("httpx.AsyncClient") as mock_client_class:
            _patched_post(mock_client_class, return_value=_response(400, ["unexpected"]))

            with pytest.raises(AuthenticationError, match="Login failed: Authentication failed"):
                await auth.login("lifter@example.com", "wrong")

    @pytest.mark.asyncio
    async def test_connection_error_raises_network_error(self, auth):
        with patch("httpx.AsyncClient") as mock_client_class:
            _patched_post(mock_client_class, side_effect=httpx.ConnectError("Connection refused"))

            with pytest.raises(NetworkError):
                await auth.login("lifter@example.com", "secret-password")

    @pytest.mark.asyncio
    async def test_refresh_failure_raises_token_expired(self, auth, login_payload):
        auth._update(login_payload)

        with patch("httpx.AsyncClient") as mock_client_class:
            _patched_post(mock_client_class, return_value=_response(401, {}))

            with pytest.raises(TokenExpiredError):
                await auth.refresh()

    @pytest.mark.asyncio
    async def test_refresh_without_token_raises(self, auth):
        with pytest.raises(AuthenticationError, match="No token"):
            await auth.refresh()


# ---------------------------------------------------------------------------
# Sign up
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestSignUp:
    @pytest.mark.asyncio
    async def test_mismatched_passwords_rejected_before_request(self, auth):
        with patch("httpx.AsyncClient") as mock_client_class:
            with pytest.raises(AuthenticationError, match="do not match"):
                await auth.sign_up("new@example.com", "password123", password_confirm="password124")

        mock_client_class.assert_not_called()

    @pytest.mark.asyncio
    async def test_short_password_rejected(self, auth):
        with pytest.raises(AuthenticationError, match="at least 8"):
            await auth.sign_up("new@example.com", "short")

    @pytest.mark.asyncio
    async def test_sign_up_creates_user_then_logs_in(self, auth, login_payload):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _patched_post(mock_client_class, side_effect=[
                _response(200, {"id": "user-1"}),
                _response(200, login_payload),
            ])

            await auth.sign_up("new@example.com", "password123", name="New")

        urls = [call.args[0] for call in mock_client.post.call_args_list]
        assert urls == [
            "http://pb.test/api/collections/users/records",
            "http://pb.test/api/collections/users/auth-with-password",
        ]
        assert auth.user_id == "user-1"


# ---------------------------------------------------------------------------
# Listeners and persistence
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestAuthState:
    def test_listeners_see_changes_until_removed(self, auth, login_payload):
        seen = []
        remove = auth.add_listener(lambda token, record: seen.append((token, record)))

        auth._update(login_payload)
        remove()
        auth.clear()

        assert seen == [(login_payload["token"], login_payload["record"])]

    def test_clear_signs_out(self, auth, login_payload):
        auth._update(login_payload)
        auth.clear()

        assert not auth.is_authenticated
        with pytest.raises(AuthenticationError):
            auth.get_auth_header()

    def test_round_trips_through_dict(self, auth, login_payload):
        auth._update(login_payload)

        restored = PocketBaseAuth.from_dict(auth.to_dict())

        assert restored.user_id == "user-1"
        assert restored.token_expiry == auth.token_expiry
