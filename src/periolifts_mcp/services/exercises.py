"""Exercise library service."""

import logging

from periolifts_mcp.periolifts.filters import combine_filters, escape, user_filter
from periolifts_mcp.periolifts.models import Exercise
from periolifts_mcp.services.base import BaseService
from periolifts_mcp.services.errors import service_call
from periolifts_mcp.services.result import AppError
from periolifts_mcp.services.validation import require_id, validate_exercise, validate_pagination

logger = logging.getLogger(__name__)

BUILT_IN_FILTER = 'user_id = ""'


class ExerciseService(BaseService):
    """Built-in and custom exercises in the ``exercises`` collection.

    Built-in exercises have an empty ``user_id`` and are read only. Custom
    exercises belong to the user who created them.
    """

    collection = "exercises"
    resource_name = "custom exercises"

    def _visible_filter(self) -> str:
        if self._client.is_authenticated and self._client.user_id:
            return f"{BUILT_IN_FILTER} || {user_filter(self._client.user_id)}"
        return BUILT_IN_FILTER

    async def _list(
        self,
        category: str | None = None,
        is_custom: bool | None = None,
        muscle_group: str | None = None,
        search_query: str | None = None,
        page: int = 1,
        per_page: int = 50,
        user_only: bool = False,
    ) -> list[Exercise]:
        validate_pagination(page, per_page)

        filters = []
        if category:
            filters.append(f'category = "{escape(category)}"')
        if muscle_group:
            filters.append(f'muscle_groups ~ "{escape(muscle_group)}"')
        if is_custom is True or (is_custom is None and user_only):
            filters.append(user_filter(self._require_user_id()))
        elif is_custom is False:
            filters.append(BUILT_IN_FILTER)
        else:
            filters.append(self._visible_filter())
        if search_query and search_query.strip():
            q = escape(search_query.strip())
            filters.append(f'name ~ "{q}" || description ~ "{q}"')

        result = await self._client.list_records(
            self.collection,
            page=page,
            per_page=per_page,
            filter=combine_filters(*filters),
            sort="name",
        )
        return [Exercise.from_record(item) for item in result.items]

    @service_call("get_exercises")
    async def get_exercises(
        self,
        category: str | None = None,
        is_custom: bool | None = None,
        muscle_group: str | None = None,
        search_query: str | None = None,
        page: int = 1,
        per_page: int = 50,
        user_only: bool = False,
    ) -> list[Exercise]:
        return await self._list(category, is_custom, muscle_group, search_query, page, per_page, user_only)

    @service_call("get_exercises_batch")
    async def get_exercises_batch(self, exercise_ids: list[str]) -> dict[str, Exercise]:
        """Fetch several exercises in one request, keyed by id."""
        ids = [i for i in dict.fromkeys(exercise_ids) if i]
        if not ids:
            return {}
        filter = " || ".join(f'id = "{escape(i)}"' for i in ids)
        result = await self._client.list_records(self.collection, page=1, per_page=len(ids), filter=filter)
        exercises = [Exercise.from_record(item) for item in result.items]
        return {e.id: e for e in exercises}

    @service_call("get_exercise")
    async def get_exercise(self, exercise_id: str) -> Exercise:
        exercise_id = require_id(exercise_id, "Exercise")
        return Exercise.from_record(await self._client.get_record(self.collection, exercise_id))

    @service_call("create_exercise")
    async def create_exercise(self, exercise: Exercise) -> Exercise:
        user_id = self._require_user_id()
        validate_exercise(exercise)
        data = exercise.model_copy(update={"user_id": user_id, "is_custom": True}).to_record()
        record = await self._client.create_record(self.collection, data)
        logger.info("Created custom exercise %s", record.get("id"))
        return Exercise.from_record(record)

    async def _fetch_custom(self, exercise_id: str, action: str) -> Exercise:
        exercise_id = require_id(exercise_id, "Exercise")
        user_id = self._require_user_id()
        existing = Exercise.from_record(await self._client.get_record(self.collection, exercise_id))
        if existing.is_built_in:
            verb = "updated" if action == "update" else "deleted"
            raise AppError.permission(f"Built-in exercises cannot be {verb}")
        if existing.user_id != user_id:
            raise AppError.permission(f"You can only {action} your own custom exercises")
        return existing

    @service_call("update_exercise")
    async def update_exercise(self, exercise: Exercise) -> Exercise:
        if not exercise.id:
            raise AppError.validation("Exercise ID is required for updates")
        existing = await self._fetch_custom(exercise.id, "update")
        validate_exercise(exercise)
        data = exercise.model_copy(update={"user_id": existing.user_id, "is_custom": True}).to_record()
        record = await self._client.update_record(self.collection, exercise.id, data)
        return Exercise.from_record(record)

    @service_call("delete_exercise")
    async def delete_exercise(self, exercise_id: str) -> None:
        existing = await self._fetch_custom(exercise_id, "delete")
        await self._client.delete_record(self.collection, existing.id)

    @service_call("search_exercises")
    async def search_exercises(self, query: str, page: int = 1, per_page: int = 50) -> list[Exercise]:
        if not query or not query.strip():
            raise AppError.validation("Search query cannot be empty")
        return await self._list(search_query=query, page=page, per_page=per_page)

    @service_call("get_exercise_categories")
    async def get_categories(self) -> list[str]:
        exercises = await self._list(per_page=100)
        return sorted({e.category for e in exercises if e.category})

    @service_call("get_muscle_groups")
    async def get_muscle_groups(self) -> list[str]:
        exercises = await self._list(per_page=100)
        return sorted({group for e in exercises for group in e.muscle_groups})
