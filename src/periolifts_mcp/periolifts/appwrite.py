"""Appwrite databases client, an alternative storage backend for PerioLifts."""

import json
import logging
import uuid

import httpx

from periolifts_mcp.periolifts.exceptions import APIError, AuthenticationError, NetworkError

logger = logging.getLogger(__name__)


class Query:
    """Builders for Appwrite JSON query strings."""

    @staticmethod
    def _build(method: str, attribute: str | None = None, values: list | None = None) -> str:
        query: dict = {"method": method}
        if attribute is not None:
            query["attribute"] = attribute
        if values is not None:
            query["values"] = values
        return json.dumps(query)

    @classmethod
    def equal(cls, attribute: str, value) -> str:
        return cls._build("equal", attribute, value if isinstance(value, list) else [value])

    @classmethod
    def greater_than_equal(cls, attribute: str, value) -> str:
        return cls._build("greaterThanEqual", attribute, [value])

    @classmethod
    def less_than_equal(cls, attribute: str, value) -> str:
        return cls._build("lessThanEqual", attribute, [value])

    @classmethod
    def search(cls, attribute: str, value: str) -> str:
        return cls._build("search", attribute, [value])

    @classmethod
    def order_desc(cls, attribute: str) -> str:
        return cls._build("orderDesc", attribute)

    @classmethod
    def limit(cls, value: int) -> str:
        return cls._build("limit", values=[value])

    @classmethod
    def offset(cls, value: int) -> str:
        return cls._build("offset", values=[value])


def normalize_document(doc: dict) -> dict:
    """Map Appwrite system attributes onto the record field names used by the models."""
    data = {k: v for k, v in doc.items() if not k.startswith("$")}
    data["id"] = doc.get("$id", "")
    if "$createdAt" in doc:
        data["created"] = doc["$createdAt"]
    if "$updatedAt" in doc:
        data["updated"] = doc["$updatedAt"]
    return data


class AppwriteClient:
    """Client for the Appwrite databases REST API, authenticated with a user JWT."""

    def __init__(self, endpoint: str, project_id: str, database_id: str, jwt: str | None = None, timeout: float = 30):
        self.endpoint = endpoint.rstrip("/")
        self.project_id = project_id
        self.database_id = database_id
        self.jwt = jwt
        self.timeout = timeout
        self._user_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.jwt)

    def _headers(self) -> dict[str, str]:
        if not self.jwt:
            raise AuthenticationError("Not authenticated. An Appwrite JWT is required.")
        return {
            "X-Appwrite-Project": self.project_id,
            "X-Appwrite-JWT": self.jwt,
        }

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, f"{self.endpoint}{path}", headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise NetworkError(f"Request to {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                data = response.json()
            except ValueError:
                data = {}
            raise APIError(
                f"API request failed: {data.get('message') or response.text}",
                status_code=response.status_code,
                data=data,
            )

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def get_account(self) -> str:
        """Return the id of the user the JWT belongs to."""
        if self._user_id is None:
            data = await self._request("GET", "/account")
            self._user_id = data["$id"]
        return self._user_id

    def _documents_path(self, collection_id: str, document_id: str | None = None) -> str:
        path = f"/databases/{self.database_id}/collections/{collection_id}/documents"
        return f"{path}/{document_id}" if document_id else path

    async def list_documents(self, collection_id: str, queries: list[str] | None = None) -> list[dict]:
        params = [("queries[]", q) for q in queries or []]
        data = await self._request("GET", self._documents_path(collection_id), params=params)
        return [normalize_document(doc) for doc in data.get("documents", [])]

    async def get_document(self, collection_id: str, document_id: str) -> dict:
        data = await self._request("GET", self._documents_path(collection_id, document_id))
        return normalize_document(data)

    async def create_document(self, collection_id: str, data: dict, document_id: str | None = None) -> dict:
        body = {"documentId": document_id or uuid.uuid4().hex[:20], "data": data}
        result = await self._request("POST", self._documents_path(collection_id), json=body)
        return normalize_document(result)

    async def update_document(self, collection_id: str, document_id: str, data: dict) -> dict:
        result = await self._request("PATCH", self._documents_path(collection_id, document_id), json={"data": data})
        return normalize_document(result)

    async def delete_document(self, collection_id: str, document_id: str) -> None:
        await self._request("DELETE", self._documents_path(collection_id, document_id))
