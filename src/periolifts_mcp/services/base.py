"""Shared plumbing for the PocketBase backed services."""

import logging

from periolifts_mcp.periolifts.client import PocketBaseClient
from periolifts_mcp.services.result import AppError

logger = logging.getLogger(__name__)


class BaseService:
    """Base class for services over one PocketBase collection."""

    collection: str = ""
    # Human readable name used in error messages, e.g. "workout history".
    resource_name: str = "records"
    owner_field: str = "user_id"

    def __init__(self, client: PocketBaseClient):
        self._client = client

    def _require_user_id(self) -> str:
        if not self._client.is_authenticated:
            raise AppError.authentication(f"Authentication required to access {self.resource_name}")
        user_id = self._client.user_id
        if not user_id:
            raise AppError.authentication("User ID not available")
        return user_id

    def _ensure_owner(self, record: dict, user_id: str, action: str) -> None:
        if record.get(self.owner_field) != user_id:
            raise AppError.permission(f"You can only {action} your own {self.resource_name}")

    async def _list_window(
        self,
        limit: int,
        offset: int,
        filter: str | None = None,
        sort: str | None = None,
        expand: str | None = None,
    ) -> list[dict]:
        """Fetch ``limit`` records starting at ``offset`` using page based requests.

        An offset that is not a multiple of ``limit`` spans two pages.
        """
        page = offset // limit + 1
        skip = offset % limit

        result = await self._client.list_records(
            self.collection, page=page, per_page=limit, filter=filter, sort=sort, expand=expand,
        )
        items = list(result.items)
        if skip and len(items) == limit:
            following = await self._client.list_records(
                self.collection, page=page + 1, per_page=limit, filter=filter, sort=sort, expand=expand,
            )
            items.extend(following.items)
        return items[skip:skip + limit]

    async def _get_owned(self, record_id: str, user_id: str, action: str = "access", expand: str | None = None) -> dict:
        record = await self._client.get_record(self.collection, record_id, expand=expand)
        self._ensure_owner(record, user_id, action)
        return record
