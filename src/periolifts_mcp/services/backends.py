"""Storage backends for workout history and workout sessions.

PocketBase is the primary store. Appwrite is supported as an alternative
with the same method names, and the choice is made once when the app is
assembled.
"""

import logging
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from periolifts_mcp.periolifts.appwrite import AppwriteClient, Query
from periolifts_mcp.periolifts.client import PocketBaseClient
from periolifts_mcp.periolifts.filters import format_datetime
from periolifts_mcp.periolifts.models import SessionStatus, WorkoutHistoryEntry, WorkoutHistoryStats, WorkoutSession
from periolifts_mcp.services.errors import service_call
from periolifts_mcp.services.history import WorkoutHistoryService, calculate_history_stats, month_start
from periolifts_mcp.services.result import AppError, Result
from periolifts_mcp.services.sessions import WorkoutSessionService
from periolifts_mcp.services.validation import (
    require_id, validate_date_range, validate_history_entry, validate_limit, validate_session,
)
from periolifts_mcp.settings import Settings

logger = logging.getLogger(__name__)

STATS_BATCH = 100


@runtime_checkable
class WorkoutHistoryBackend(Protocol):
    async def get_workout_history(
        self,
        limit: int = 20,
        offset: int = 0,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        status: SessionStatus | None = None,
        exercise_name: str | None = None,
        workout_name: str | None = None,
    ) -> Result[list[WorkoutHistoryEntry]]: ...

    async def get_workout_history_entry(self, history_id: str) -> Result[WorkoutHistoryEntry]: ...

    async def create_workout_history(self, entry: WorkoutHistoryEntry) -> Result[WorkoutHistoryEntry]: ...

    async def update_workout_history(self, entry: WorkoutHistoryEntry) -> Result[WorkoutHistoryEntry]: ...

    async def delete_workout_history(self, history_id: str) -> Result[None]: ...

    async def get_workout_history_stats(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> Result[WorkoutHistoryStats]: ...


@runtime_checkable
class WorkoutSessionBackend(Protocol):
    async def get_workout_sessions(
        self,
        limit: int = 20,
        offset: int = 0,
        status: SessionStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> Result[list[WorkoutSession]]: ...

    async def get_workout_session(self, session_id: str) -> Result[WorkoutSession]: ...

    async def create_workout_session(self, session: WorkoutSession) -> Result[WorkoutSession]: ...

    async def update_workout_session(self, session: WorkoutSession) -> Result[WorkoutSession]: ...

    async def delete_workout_session(self, session_id: str) -> Result[None]: ...


class _AppwriteCollection:
    """Owner-scoped document access shared by the Appwrite backends."""

    resource_name = "records"

    def __init__(self, client: AppwriteClient, collection_id: str):
        self._client = client
        self._collection_id = collection_id

    async def _require_user_id(self) -> str:
        if not self._client.is_authenticated:
            raise AppError.authentication(f"Authentication required to access {self.resource_name}")
        return await self._client.get_account()

    async def _get_owned(self, document_id: str, user_id: str, action: str = "access") -> dict:
        document = await self._client.get_document(self._collection_id, document_id)
        if document.get("user_id") != user_id:
            raise AppError.permission(f"You can only {action} your own {self.resource_name}")
        return document

    async def _list(self, queries: list[str], limit: int, offset: int, order_by: str) -> list[dict]:
        queries = queries + [Query.order_desc(order_by), Query.limit(limit), Query.offset(offset)]
        return await self._client.list_documents(self._collection_id, queries)


class AppwriteWorkoutHistoryBackend(_AppwriteCollection):
    resource_name = "workout history"

    @service_call("appwrite.get_workout_history")
    async def get_workout_history(
        self,
        limit: int = 20,
        offset: int = 0,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        status: SessionStatus | None = None,
        exercise_name: str | None = None,
        workout_name: str | None = None,
    ) -> list[WorkoutHistoryEntry]:
        validate_limit(limit, offset)
        validate_date_range(start_date, end_date)
        user_id = await self._require_user_id()

        queries = [Query.equal("user_id", user_id)]
        if start_date:
            queries.append(Query.greater_than_equal("started_at", format_datetime(start_date)))
        if end_date:
            queries.append(Query.less_than_equal("completed_at", format_datetime(end_date)))
        if status is not None:
            queries.append(Query.equal("status", SessionStatus.parse(status).value))
        if workout_name and workout_name.strip():
            queries.append(Query.search("name", workout_name.strip()))

        if exercise_name and exercise_name.strip():
            return await self._matching_exercise(queries, exercise_name.strip().lower(), limit, offset)

        documents = await self._list(queries, limit, offset, "completed_at")
        return [WorkoutHistoryEntry.from_record(doc) for doc in documents]

    async def _matching_exercise(
        self, queries: list[str], needle: str, limit: int, offset: int
    ) -> list[WorkoutHistoryEntry]:
        """Scan server batches and return matches ``offset`` to ``offset + limit``.

        The exercise filter runs here rather than on the server, so ``offset``
        counts matching entries, not server documents.
        """
        matches: list[WorkoutHistoryEntry] = []
        skipped = 0
        server_offset = 0
        while len(matches) < limit:
            batch = await self._list(queries, STATS_BATCH, server_offset, "completed_at")
            server_offset += len(batch)
            for doc in batch:
                entry = WorkoutHistoryEntry.from_record(doc)
                if not any(needle in x.exercise_name.lower() for x in entry.exercises):
                    continue
                if skipped < offset:
                    skipped += 1
                    continue
                matches.append(entry)
                if len(matches) == limit:
                    break
            if len(batch) < STATS_BATCH:
                break
        return matches

    @service_call("appwrite.get_workout_history_entry")
    async def get_workout_history_entry(self, history_id: str) -> WorkoutHistoryEntry:
        history_id = require_id(history_id, "History")
        user_id = await self._require_user_id()
        return WorkoutHistoryEntry.from_record(await self._get_owned(history_id, user_id))

    @service_call("appwrite.create_workout_history")
    async def create_workout_history(self, entry: WorkoutHistoryEntry) -> WorkoutHistoryEntry:
        user_id = await self._require_user_id()
        validate_history_entry(entry)
        data = entry.model_copy(update={"user_id": user_id}).to_record()
        return WorkoutHistoryEntry.from_record(await self._client.create_document(self._collection_id, data))

    @service_call("appwrite.update_workout_history")
    async def update_workout_history(self, entry: WorkoutHistoryEntry) -> WorkoutHistoryEntry:
        history_id = require_id(entry.id, "History")
        user_id = await self._require_user_id()
        validate_history_entry(entry)
        await self._get_owned(history_id, user_id, "update")
        data = entry.model_copy(update={"user_id": user_id}).to_record()
        return WorkoutHistoryEntry.from_record(
            await self._client.update_document(self._collection_id, history_id, data)
        )

    @service_call("appwrite.delete_workout_history")
    async def delete_workout_history(self, history_id: str) -> None:
        history_id = require_id(history_id, "History")
        user_id = await self._require_user_id()
        await self._get_owned(history_id, user_id, "delete")
        await self._client.delete_document(self._collection_id, history_id)

    @service_call("appwrite.get_workout_history_stats")
    async def get_workout_history_stats(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> WorkoutHistoryStats:
        validate_date_range(start_date, end_date)
        user_id = await self._require_user_id()
        now = datetime.now(timezone.utc)
        start_date = start_date or month_start(now)

        queries = [
            Query.equal("user_id", user_id),
            Query.greater_than_equal("completed_at", format_datetime(start_date)),
        ]
        if end_date:
            queries.append(Query.less_than_equal("completed_at", format_datetime(end_date)))

        documents: list[dict] = []
        while True:
            batch = await self._list(queries, STATS_BATCH, len(documents), "completed_at")
            documents.extend(batch)
            if len(batch) < STATS_BATCH:
                break

        return calculate_history_stats(
            [WorkoutHistoryEntry.from_record(doc) for doc in documents],
            user_id,
            period_start=start_date,
            period_end=end_date or now,
        )


class AppwriteWorkoutSessionBackend(_AppwriteCollection):
    resource_name = "workout sessions"

    @service_call("appwrite.get_workout_sessions")
    async def get_workout_sessions(
        self,
        limit: int = 20,
        offset: int = 0,
        status: SessionStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[WorkoutSession]:
        validate_limit(limit, offset)
        validate_date_range(start_date, end_date)
        user_id = await self._require_user_id()

        queries = [Query.equal("user_id", user_id)]
        if status is not None:
            queries.append(Query.equal("status", SessionStatus.parse(status).value))
        if start_date:
            queries.append(Query.greater_than_equal("scheduled_date", format_datetime(start_date)))
        if end_date:
            queries.append(Query.less_than_equal("scheduled_date", format_datetime(end_date)))

        documents = await self._list(queries, limit, offset, "$createdAt")
        return [WorkoutSession.from_record(doc) for doc in documents]

    @service_call("appwrite.get_workout_session")
    async def get_workout_session(self, session_id: str) -> WorkoutSession:
        session_id = require_id(session_id, "Workout session")
        user_id = await self._require_user_id()
        return WorkoutSession.from_record(await self._get_owned(session_id, user_id))

    @service_call("appwrite.create_workout_session")
    async def create_workout_session(self, session: WorkoutSession) -> WorkoutSession:
        validate_session(session)
        user_id = await self._require_user_id()
        data = session.model_copy(update={"user_id": user_id}).to_record()
        return WorkoutSession.from_record(await self._client.create_document(self._collection_id, data))

    @service_call("appwrite.update_workout_session")
    async def update_workout_session(self, session: WorkoutSession) -> WorkoutSession:
        session_id = require_id(session.id, "Workout session")
        validate_session(session)
        user_id = await self._require_user_id()
        await self._get_owned(session_id, user_id, "update")
        data = session.model_copy(update={"user_id": user_id}).to_record()
        return WorkoutSession.from_record(
            await self._client.update_document(self._collection_id, session_id, data)
        )

    @service_call("appwrite.delete_workout_session")
    async def delete_workout_session(self, session_id: str) -> None:
        session_id = require_id(session_id, "Workout session")
        user_id = await self._require_user_id()
        await self._get_owned(session_id, user_id, "delete")
        await self._client.delete_document(self._collection_id, session_id)


def build_appwrite_client(settings: Settings) -> AppwriteClient:
    if not settings.appwrite_project_id or not settings.appwrite_database_id:
        raise ValueError(
            "PERIOLIFTS_APPWRITE_PROJECT_ID and PERIOLIFTS_APPWRITE_DATABASE_ID must be set for the appwrite backend."
        )
    return AppwriteClient(
        endpoint=settings.appwrite_endpoint,
        project_id=settings.appwrite_project_id,
        database_id=settings.appwrite_database_id,
        jwt=settings.appwrite_jwt,
        timeout=settings.request_timeout,
    )


def build_history_backend(
    settings: Settings,
    client: PocketBaseClient,
    appwrite: AppwriteClient | None = None,
) -> WorkoutHistoryBackend:
    if settings.backend == "appwrite":
        appwrite = appwrite or build_appwrite_client(settings)
        logger.info("Using Appwrite for workout history")
        return AppwriteWorkoutHistoryBackend(appwrite, settings.appwrite_history_collection_id)
    return WorkoutHistoryService(client)


def build_session_backend(
    settings: Settings,
    client: PocketBaseClient,
    appwrite: AppwriteClient | None = None,
) -> WorkoutSessionBackend:
    if settings.backend == "appwrite":
        appwrite = appwrite or build_appwrite_client(settings)
        logger.info("Using Appwrite for workout sessions")
        return AppwriteWorkoutSessionBackend(appwrite, settings.appwrite_sessions_collection_id)
    return WorkoutSessionService(client)
