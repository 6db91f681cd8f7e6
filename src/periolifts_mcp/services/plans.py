"""Workout plan service."""

import logging
from datetime import date

from periolifts_mcp.periolifts.filters import combine_filters, date_key, escape, user_filter
from periolifts_mcp.periolifts.models import WorkoutPlan
from periolifts_mcp.services.base import BaseService
from periolifts_mcp.services.errors import service_call
from periolifts_mcp.services.validation import require_id, validate_pagination, validate_plan

logger = logging.getLogger(__name__)


class WorkoutPlanService(BaseService):
    """CRUD and scheduling over the ``workout_plans`` collection."""

    collection = "workout_plans"
    resource_name = "workout plans"

    @service_call("get_workout_plans")
    async def get_workout_plans(
        self,
        search_query: str | None = None,
        page: int = 1,
        per_page: int = 50,
        active_only: bool = False,
        user_id: str | None = None,
    ) -> list[WorkoutPlan]:
        validate_pagination(page, per_page)
        current_user = self._require_user_id()

        filters = [user_filter(user_id or current_user)]
        if active_only:
            filters.append("is_active = true")
        if search_query and search_query.strip():
            q = escape(search_query.strip())
            filters.append(f'name ~ "{q}" || description ~ "{q}"')

        result = await self._client.list_records(
            self.collection,
            page=page,
            per_page=per_page,
            filter=combine_filters(*filters),
            sort="-created",
        )
        return [WorkoutPlan.from_record(item) for item in result.items]

    async def _fetch_plan(self, plan_id: str, action: str = "access") -> WorkoutPlan:
        plan_id = require_id(plan_id, "Workout plan")
        user_id = self._require_user_id()
        record = await self._get_owned(plan_id, user_id, action)
        return WorkoutPlan.from_record(record)

    async def _save_plan(self, plan: WorkoutPlan) -> WorkoutPlan:
        plan_id = require_id(plan.id, "Workout plan")
        validate_plan(plan)
        user_id = self._require_user_id()
        await self._get_owned(plan_id, user_id, "update")
        record = await self._client.update_record(self.collection, plan_id, plan.to_record())
        return WorkoutPlan.from_record(record)

    async def _active_plans(self) -> list[WorkoutPlan]:
        user_id = self._require_user_id()
        items = await self._client.get_full_list(
            self.collection,
            filter=combine_filters(user_filter(user_id), "is_active = true"),
            sort="-created",
        )
        return [WorkoutPlan.from_record(item) for item in items]

    @service_call("get_workout_plan")
    async def get_workout_plan(self, plan_id: str) -> WorkoutPlan:
        return await self._fetch_plan(plan_id)

    @service_call("create_workout_plan")
    async def create_workout_plan(self, plan: WorkoutPlan) -> WorkoutPlan:
        validate_plan(plan)
        user_id = self._require_user_id()
        data = plan.model_copy(update={"user_id": user_id}).to_record()
        record = await self._client.create_record(self.collection, data)
        logger.info("Created workout plan %s", record.get("id"))
        return WorkoutPlan.from_record(record)

    @service_call("update_workout_plan")
    async def update_workout_plan(self, plan: WorkoutPlan) -> WorkoutPlan:
        return await self._save_plan(plan)

    @service_call("delete_workout_plan")
    async def delete_workout_plan(self, plan_id: str) -> None:
        plan = await self._fetch_plan(plan_id, "delete")
        await self._client.delete_record(self.collection, plan.id)

    @service_call("get_active_plans")
    async def get_active_plans(self) -> list[WorkoutPlan]:
        return await self._active_plans()

    @service_call("has_active_plans_with_future_workouts")
    async def has_active_plans_with_future_workouts(self, today: date | None = None) -> bool:
        today_key = date_key(today or date.today())
        return any(key > today_key for plan in await self._active_plans() for key in plan.schedule)

    @service_call("get_plans_for_date")
    async def get_plans_for_date(self, day: date) -> list[WorkoutPlan]:
        return [plan for plan in await self._active_plans() if plan.get_workouts_for_date(day)]

    @service_call("activate_plan")
    async def activate_plan(self, plan_id: str) -> WorkoutPlan:
        plan = await self._fetch_plan(plan_id, "update")
        return await self._save_plan(plan.model_copy(update={"is_active": True}))

    @service_call("deactivate_plan")
    async def deactivate_plan(self, plan_id: str) -> WorkoutPlan:
        plan = await self._fetch_plan(plan_id, "update")
        return await self._save_plan(plan.model_copy(update={"is_active": False}))

    @service_call("add_workout_to_date")
    async def add_workout_to_date(self, plan_id: str, day: date, workout_id: str) -> WorkoutPlan:
        workout_id = require_id(workout_id, "Workout")
        plan = await self._fetch_plan(plan_id, "update")
        return await self._save_plan(plan.add_workout_to_date(day, workout_id))

    @service_call("remove_workout_from_date")
    async def remove_workout_from_date(self, plan_id: str, day: date, workout_id: str) -> WorkoutPlan:
        workout_id = require_id(workout_id, "Workout")
        plan = await self._fetch_plan(plan_id, "update")
        return await self._save_plan(plan.remove_workout_from_date(day, workout_id))

    @service_call("get_workout_ids_for_date")
    async def get_workout_ids_for_date(self, day: date) -> list[str]:
        ids: list[str] = []
        for plan in await self._active_plans():
            for workout_id in plan.get_workouts_for_date(day):
                if workout_id not in ids:
                    ids.append(workout_id)
        return ids
