"""Workout template service."""

import logging
from datetime import datetime, timezone

from periolifts_mcp.periolifts.filters import combine_filters, escape, format_datetime, user_filter
from periolifts_mcp.periolifts.models import Workout
from periolifts_mcp.services.base import BaseService
from periolifts_mcp.services.errors import service_call
from periolifts_mcp.services.result import Result
from periolifts_mcp.services.validation import require_id, validate_pagination, validate_workout

logger = logging.getLogger(__name__)


class WorkoutService(BaseService):
    """CRUD over the ``workouts`` collection. Records use camelCase field names."""

    collection = "workouts"
    resource_name = "workouts"
    owner_field = "userId"

    @service_call("get_workouts")
    async def get_workouts(
        self,
        page: int = 1,
        per_page: int = 50,
        search_query: str | None = None,
        user_only: bool = True,
    ) -> list[Workout]:
        validate_pagination(page, per_page)
        user_id = self._require_user_id()

        filters = []
        if user_only:
            filters.append(user_filter(user_id, self.owner_field))
        if search_query and search_query.strip():
            filters.append(f'name ~ "{escape(search_query.strip())}"')

        result = await self._client.list_records(
            self.collection,
            page=page,
            per_page=per_page,
            filter=combine_filters(*filters),
            sort="-created",
        )
        return [Workout.from_record(item) for item in result.items]

    async def get_user_workouts(
        self,
        page: int = 1,
        per_page: int = 50,
        search_query: str | None = None,
    ) -> Result[list[Workout]]:
        return await self.get_workouts(page=page, per_page=per_page, search_query=search_query, user_only=True)

    @service_call("get_workout")
    async def get_workout(self, workout_id: str) -> Workout:
        workout_id = require_id(workout_id, "Workout")
        user_id = self._require_user_id()
        record = await self._get_owned(workout_id, user_id)
        return Workout.from_record(record)

    @service_call("create_workout")
    async def create_workout(self, workout: Workout) -> Workout:
        validate_workout(workout)
        user_id = self._require_user_id()

        data = workout.model_copy(update={"user_id": user_id}).to_record()
        record = await self._client.create_record(self.collection, data)
        logger.info("Created workout %s", record.get("id"))
        return Workout.from_record(record)

    @service_call("update_workout")
    async def update_workout(self, workout_id: str, workout: Workout) -> Workout:
        workout_id = require_id(workout_id, "Workout")
        validate_workout(workout)
        user_id = self._require_user_id()
        await self._get_owned(workout_id, user_id, "update")

        data = workout.model_copy(update={"user_id": user_id}).to_record()
        record = await self._client.update_record(self.collection, workout_id, data)
        return Workout.from_record(record)

    @service_call("delete_workout")
    async def delete_workout(self, workout_id: str) -> None:
        workout_id = require_id(workout_id, "Workout")
        user_id = self._require_user_id()
        await self._get_owned(workout_id, user_id, "delete")
        await self._client.delete_record(self.collection, workout_id)

    @service_call("get_last_completed_workout_date")
    async def get_last_completed_workout_date(self) -> datetime | None:
        user_id = self._require_user_id()
        record = await self._client.get_first(
            self.collection,
            filter=combine_filters(
                user_filter(user_id, self.owner_field),
                "isCompleted = true",
                'completedDate != ""',
            ),
            sort="-completedDate",
        )
        if record is None:
            return None
        return Workout.from_record(record).completed_date

    @service_call("get_upcoming_workouts")
    async def get_upcoming_workouts(self, limit: int = 3) -> list[Workout]:
        """Incomplete workouts scheduled from now on, soonest first."""
        validate_pagination(1, limit)
        user_id = self._require_user_id()
        now = format_datetime(datetime.now(timezone.utc))

        result = await self._client.list_records(
            self.collection,
            page=1,
            per_page=limit,
            filter=combine_filters(
                user_filter(user_id, self.owner_field),
                "isCompleted = false",
                f'scheduledDate >= "{now}"',
            ),
            sort="scheduledDate",
        )
        return [Workout.from_record(item) for item in result.items]
