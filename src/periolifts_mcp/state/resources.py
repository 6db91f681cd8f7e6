"""List notifiers and filters for each PerioLifts resource."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from periolifts_mcp.periolifts.models import (
    Exercise, SessionStatus, Workout, WorkoutHistoryEntry, WorkoutPlan, WorkoutSession,
)
from periolifts_mcp.services.backends import WorkoutHistoryBackend, WorkoutSessionBackend
from periolifts_mcp.services.exercises import ExerciseService
from periolifts_mcp.services.plans import WorkoutPlanService
from periolifts_mcp.services.result import Result
from periolifts_mcp.services.workouts import WorkoutService
from periolifts_mcp.state.notifier import NotifierFamily, ResourceNotifier


class _Filter(BaseModel):
    model_config = ConfigDict(frozen=True)


class WorkoutTemplatesFilter(_Filter):
    search_query: str | None = None
    user_only: bool = True
    page: int = 1
    per_page: int = 50


class ExercisesFilter(_Filter):
    category: str | None = None
    is_custom: bool | None = None
    muscle_group: str | None = None
    search_query: str | None = None
    page: int = 1
    per_page: int = 50


class WorkoutPlansFilter(_Filter):
    search_query: str | None = None
    active_only: bool = False
    page: int = 1
    per_page: int = 50


class WorkoutSessionsFilter(_Filter):
    status: SessionStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = 20
    offset: int = 0


class WorkoutHistoryFilter(_Filter):
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: SessionStatus | None = None
    exercise_name: str | None = None
    workout_name: str | None = None
    limit: int = 20
    offset: int = 0


def _page_for(first_page: int, offset: int, per_page: int) -> int:
    return first_page + offset // per_page


class WorkoutTemplatesNotifier(ResourceNotifier[Workout, WorkoutTemplatesFilter]):
    def __init__(self, service: WorkoutService, filter: WorkoutTemplatesFilter):
        super().__init__(filter, page_size=filter.per_page)
        self._service = service

    async def fetch_page(self, offset: int, limit: int) -> Result[list[Workout]]:
        return await self._service.get_workouts(
            page=_page_for(self.filter.page, offset, limit),
            per_page=limit,
            search_query=self.filter.search_query,
            user_only=self.filter.user_only,
        )

    async def create_item(self, item: Workout) -> Result[Workout]:
        return await self._service.create_workout(item)

    async def update_item(self, item: Workout) -> Result[Workout]:
        return await self._service.update_workout(item.id, item)

    async def delete_item(self, item_id: str) -> Result[None]:
        return await self._service.delete_workout(item_id)


class ExercisesNotifier(ResourceNotifier[Exercise, ExercisesFilter]):
    def __init__(self, service: ExerciseService, filter: ExercisesFilter):
        super().__init__(filter, page_size=filter.per_page)
        self._service = service

    async def fetch_page(self, offset: int, limit: int) -> Result[list[Exercise]]:
        return await self._service.get_exercises(
            category=self.filter.category,
            is_custom=self.filter.is_custom,
            muscle_group=self.filter.muscle_group,
            search_query=self.filter.search_query,
            page=_page_for(self.filter.page, offset, limit),
            per_page=limit,
        )

    async def create_item(self, item: Exercise) -> Result[Exercise]:
        return await self._service.create_exercise(item)

    async def update_item(self, item: Exercise) -> Result[Exercise]:
        return await self._service.update_exercise(item)

    async def delete_item(self, item_id: str) -> Result[None]:
        return await self._service.delete_exercise(item_id)


class WorkoutPlansNotifier(ResourceNotifier[WorkoutPlan, WorkoutPlansFilter]):
    insert_at_head = True

    def __init__(self, service: WorkoutPlanService, filter: WorkoutPlansFilter):
        super().__init__(filter, page_size=filter.per_page)
        self._service = service

    async def fetch_page(self, offset: int, limit: int) -> Result[list[WorkoutPlan]]:
        return await self._service.get_workout_plans(
            search_query=self.filter.search_query,
            page=_page_for(self.filter.page, offset, limit),
            per_page=limit,
            active_only=self.filter.active_only,
        )

    async def create_item(self, item: WorkoutPlan) -> Result[WorkoutPlan]:
        return await self._service.create_workout_plan(item)

    async def update_item(self, item: WorkoutPlan) -> Result[WorkoutPlan]:
        return await self._service.update_workout_plan(item)

    async def delete_item(self, item_id: str) -> Result[None]:
        return await self._service.delete_workout_plan(item_id)


class WorkoutSessionsNotifier(ResourceNotifier[WorkoutSession, WorkoutSessionsFilter]):
    insert_at_head = True

    def __init__(self, backend: WorkoutSessionBackend, filter: WorkoutSessionsFilter):
        super().__init__(filter, page_size=filter.limit)
        self._backend = backend

    async def fetch_page(self, offset: int, limit: int) -> Result[list[WorkoutSession]]:
        return await self._backend.get_workout_sessions(
            limit=limit,
            offset=self.filter.offset + offset,
            status=self.filter.status,
            start_date=self.filter.start_date,
            end_date=self.filter.end_date,
        )

    async def create_item(self, item: WorkoutSession) -> Result[WorkoutSession]:
        return await self._backend.create_workout_session(item)

    async def update_item(self, item: WorkoutSession) -> Result[WorkoutSession]:
        return await self._backend.update_workout_session(item)

    async def delete_item(self, item_id: str) -> Result[None]:
        return await self._backend.delete_workout_session(item_id)


class WorkoutHistoryNotifier(ResourceNotifier[WorkoutHistoryEntry, WorkoutHistoryFilter]):
    insert_at_head = True

    def __init__(self, backend: WorkoutHistoryBackend, filter: WorkoutHistoryFilter):
        super().__init__(filter, page_size=filter.limit)
        self._backend = backend

    async def fetch_page(self, offset: int, limit: int) -> Result[list[WorkoutHistoryEntry]]:
        return await self._backend.get_workout_history(
            limit=limit,
            offset=self.filter.offset + offset,
            start_date=self.filter.start_date,
            end_date=self.filter.end_date,
            status=self.filter.status,
            exercise_name=self.filter.exercise_name,
            workout_name=self.filter.workout_name,
        )

    async def create_item(self, item: WorkoutHistoryEntry) -> Result[WorkoutHistoryEntry]:
        return await self._backend.create_workout_history(item)

    async def update_item(self, item: WorkoutHistoryEntry) -> Result[WorkoutHistoryEntry]:
        return await self._backend.update_workout_history(item)

    async def delete_item(self, item_id: str) -> Result[None]:
        return await self._backend.delete_workout_history(item_id)


def workout_templates_family(service: WorkoutService) -> NotifierFamily[WorkoutTemplatesFilter, WorkoutTemplatesNotifier]:
    return NotifierFamily(lambda f: WorkoutTemplatesNotifier(service, f))


def exercises_family(service: ExerciseService) -> NotifierFamily[ExercisesFilter, ExercisesNotifier]:
    return NotifierFamily(lambda f: ExercisesNotifier(service, f))


def workout_plans_family(service: WorkoutPlanService) -> NotifierFamily[WorkoutPlansFilter, WorkoutPlansNotifier]:
    return NotifierFamily(lambda f: WorkoutPlansNotifier(service, f))


def workout_sessions_family(backend: WorkoutSessionBackend) -> NotifierFamily[WorkoutSessionsFilter, WorkoutSessionsNotifier]:
    return NotifierFamily(lambda f: WorkoutSessionsNotifier(backend, f))


def workout_history_family(backend: WorkoutHistoryBackend) -> NotifierFamily[WorkoutHistoryFilter, WorkoutHistoryNotifier]:
    return NotifierFamily(lambda f: WorkoutHistoryNotifier(backend, f))
