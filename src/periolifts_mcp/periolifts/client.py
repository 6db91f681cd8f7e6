"""PerioLifts PocketBase API client."""

import logging

import httpx

from periolifts_mcp.periolifts.auth import PocketBaseAuth
from periolifts_mcp.periolifts.exceptions import APIError, AuthenticationError, NetworkError
from periolifts_mcp.periolifts.models import RecordList

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8090"


class PocketBaseClient:
    """Client for the PocketBase records API used by PerioLifts."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 30, auth: PocketBaseAuth | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._auth = auth or PocketBaseAuth(self.base_url, timeout=timeout)

    @property
    def auth(self) -> PocketBaseAuth:
        return self._auth

    @property
    def is_authenticated(self) -> bool:
        return self._auth.is_authenticated

    @property
    def user_id(self) -> str | None:
        return self._auth.user_id

    async def login(self, email: str, password: str) -> None:
        await self._auth.login(email, password)

    async def sign_up(self, email: str, password: str, name: str = "", password_confirm: str | None = None) -> None:
        await self._auth.sign_up(email, password, name=name, password_confirm=password_confirm)

    def logout(self) -> None:
        self._auth.clear()

    async def _ensure_authenticated(self) -> None:
        if not self._auth.is_authenticated:
            raise AuthenticationError("Not authenticated. Call login() first.")
        if self._auth.is_token_expired:
            await self._auth.refresh()

    async def _request(self, method: str, path: str, *, authenticated: bool = True, **kwargs) -> dict:
        if authenticated:
            await self._ensure_authenticated()

        url = f"{self.base_url}{path}"
        headers = self._auth.get_auth_header() if authenticated else {}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=headers, **kwargs)

                if response.status_code == 401 and authenticated:
                    await self._auth.refresh()
                    response = await client.request(
                        method,
                        url,
                        headers=self._auth.get_auth_header(),
                        **kwargs,
                    )
        except httpx.RequestError as e:
            raise NetworkError(f"Request to {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                data = response.json()
            except ValueError:
                data = {}
            message = data.get("message") if isinstance(data, dict) else None
            raise APIError(
                f"API request failed: {message or response.text}",
                status_code=response.status_code,
                data=data if isinstance(data, dict) else {},
            )

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    # --- Records ---

    @staticmethod
    def _records_path(collection: str, record_id: str | None = None) -> str:
        path = f"/api/collections/{collection}/records"
        return f"{path}/{record_id}" if record_id else path

    async def list_records(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 30,
        filter: str | None = None,
        sort: str | None = None,
        expand: str | None = None,
    ) -> RecordList:
        """Fetch one page of records from a collection."""
        params: dict = {"page": page, "perPage": per_page}
        if filter:
            params["filter"] = filter
        if sort:
            params["sort"] = sort
        if expand:
            params["expand"] = expand

        data = await self._request("GET", self._records_path(collection), params=params)
        return RecordList.model_validate(data)

    async def get_full_list(
        self,
        collection: str,
        filter: str | None = None,
        sort: str | None = None,
        expand: str | None = None,
        batch: int = 200,
    ) -> list[dict]:
        """Fetch every record matching the filter, walking all pages."""
        items: list[dict] = []
        page = 1

        while True:
            result = await self.list_records(
                collection, page=page, per_page=batch, filter=filter, sort=sort, expand=expand,
            )
            items.extend(result.items)
            if len(result.items) < batch or page >= result.total_pages:
                break
            page += 1

        return items

    async def get_first(self, collection: str, filter: str, sort: str | None = None) -> dict | None:
        result = await self.list_records(collection, page=1, per_page=1, filter=filter, sort=sort)
        return result.items[0] if result.items else None

    async def get_record(self, collection: str, record_id: str, expand: str | None = None) -> dict:
        params = {"expand": expand} if expand else None
        return await self._request("GET", self._records_path(collection, record_id), params=params)

    async def create_record(self, collection: str, data: dict, expand: str | None = None) -> dict:
        params = {"expand": expand} if expand else None
        return await self._request("POST", self._records_path(collection), params=params, json=data)

    async def update_record(self, collection: str, record_id: str, data: dict, expand: str | None = None) -> dict:
        params = {"expand": expand} if expand else None
        return await self._request("PATCH", self._records_path(collection, record_id), params=params, json=data)

    async def delete_record(self, collection: str, record_id: str) -> None:
        await self._request("DELETE", self._records_path(collection, record_id))

    async def health(self) -> bool:
        try:
            data = await self._request("GET", "/api/health", authenticated=False)
        except (APIError, NetworkError) as e:
            logger.warning("Health check failed: %s", e)
            return False
        return data.get("code") == 200

    def get_auth_state(self) -> dict:
        return self._auth.to_dict()

    def restore_auth_state(self, state: dict) -> None:
        self._auth = PocketBaseAuth.from_dict(state, timeout=self.timeout)
