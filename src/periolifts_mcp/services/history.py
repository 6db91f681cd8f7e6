"""Workout history service."""

import logging
from datetime import datetime, timezone

from periolifts_mcp.periolifts.filters import combine_filters, escape, format_datetime, user_filter
from periolifts_mcp.periolifts.models import (
    ExerciseProgress, SessionStatus, WorkoutHistoryEntry, WorkoutHistoryStats,
)
from periolifts_mcp.services.base import BaseService
from periolifts_mcp.services.errors import service_call
from periolifts_mcp.services.validation import (
    require_id, validate_date_range, validate_history_entry, validate_limit,
)

logger = logging.getLogger(__name__)

HISTORY_SORT = "-completed_at,-started_at,-created"
MAX_RECENT = 50


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def calculate_history_stats(
    entries: list[WorkoutHistoryEntry],
    user_id: str,
    period_start: datetime,
    period_end: datetime,
) -> WorkoutHistoryStats:
    completed = [e for e in entries if e.status is SessionStatus.COMPLETED]

    frequency: dict[str, int] = {}
    progress: dict[str, dict] = {}
    for entry in completed:
        for exercise in entry.exercises:
            frequency[exercise.exercise_name] = frequency.get(exercise.exercise_name, 0) + 1
            done = [s for s in exercise.sets if s.completed]
            item = progress.setdefault(exercise.exercise_id, {
                "exercise_id": exercise.exercise_id,
                "exercise_name": exercise.exercise_name,
                "max_weight": 0.0,
                "weights": [],
                "total_reps": 0,
                "total_volume": 0.0,
            })
            item["max_weight"] = max(item["max_weight"], exercise.max_weight)
            item["weights"].extend(s.weight for s in done)
            item["total_reps"] += sum(s.reps for s in done)
            item["total_volume"] += exercise.total_volume

    exercise_progress = []
    for item in progress.values():
        weights = item.pop("weights")
        item["average_weight"] = sum(weights) / len(weights) if weights else 0.0
        exercise_progress.append(ExerciseProgress(**item))

    return WorkoutHistoryStats(
        user_id=user_id,
        period_start=period_start,
        period_end=period_end,
        total_workouts=len(entries),
        completed_workouts=len(completed),
        total_duration=sum(e.duration for e in entries if e.duration is not None),
        total_weight_lifted=sum(e.total_weight_lifted for e in completed),
        exercise_frequency=frequency,
        exercise_progress=exercise_progress,
    )


class WorkoutHistoryService(BaseService):
    """Performed workouts stored in the ``workout_history`` collection."""

    collection = "workout_history"
    resource_name = "workout history"

    @service_call("get_workout_history")
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
        user_id = self._require_user_id()

        filters = [user_filter(user_id)]
        if start_date:
            filters.append(f'started_at >= "{format_datetime(start_date)}"')
        if end_date:
            filters.append(f'completed_at <= "{format_datetime(end_date)}"')
        if status is not None:
            filters.append(f'status = "{SessionStatus.parse(status).value}"')
        if exercise_name and exercise_name.strip():
            filters.append(f'exercises ~ "{escape(exercise_name.strip())}"')
        if workout_name and workout_name.strip():
            filters.append(f'name ~ "{escape(workout_name.strip())}"')

        items = await self._list_window(limit, offset, filter=combine_filters(*filters), sort=HISTORY_SORT)
        return [WorkoutHistoryEntry.from_record(item) for item in items]

    @service_call("get_workout_history_entry")
    async def get_workout_history_entry(self, history_id: str) -> WorkoutHistoryEntry:
        history_id = require_id(history_id, "History")
        user_id = self._require_user_id()
        return WorkoutHistoryEntry.from_record(await self._get_owned(history_id, user_id))

    @service_call("create_workout_history")
    async def create_workout_history(self, entry: WorkoutHistoryEntry) -> WorkoutHistoryEntry:
        user_id = self._require_user_id()
        validate_history_entry(entry)
        data = entry.model_copy(update={"user_id": user_id}).to_record()
        record = await self._client.create_record(self.collection, data)
        logger.info("Recorded workout history %s", record.get("id"))
        return WorkoutHistoryEntry.from_record(record)

    @service_call("update_workout_history")
    async def update_workout_history(self, entry: WorkoutHistoryEntry) -> WorkoutHistoryEntry:
        history_id = require_id(entry.id, "History")
        user_id = self._require_user_id()
        validate_history_entry(entry)
        await self._get_owned(history_id, user_id, "update")
        data = entry.model_copy(update={"user_id": user_id}).to_record()
        record = await self._client.update_record(self.collection, history_id, data)
        return WorkoutHistoryEntry.from_record(record)

    @service_call("delete_workout_history")
    async def delete_workout_history(self, history_id: str) -> None:
        history_id = require_id(history_id, "History")
        user_id = self._require_user_id()
        await self._get_owned(history_id, user_id, "delete")
        await self._client.delete_record(self.collection, history_id)

    @service_call("get_workout_history_stats")
    async def get_workout_history_stats(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> WorkoutHistoryStats:
        validate_date_range(start_date, end_date)
        user_id = self._require_user_id()
        now = datetime.now(timezone.utc)
        start_date = start_date or month_start(now)

        filters = [user_filter(user_id), f'completed_at >= "{format_datetime(start_date)}"']
        if end_date:
            filters.append(f'completed_at <= "{format_datetime(end_date)}"')

        items = await self._client.get_full_list(
            self.collection, filter=combine_filters(*filters), sort="-completed_at",
        )
        entries = [WorkoutHistoryEntry.from_record(item) for item in items]
        return calculate_history_stats(
            entries,
            user_id,
            period_start=start_date,
            period_end=end_date or now,
        )

    @service_call("get_recent_workouts")
    async def get_recent_workouts(self, limit: int = 10) -> list[WorkoutHistoryEntry]:
        validate_limit(limit, max_limit=MAX_RECENT)
        user_id = self._require_user_id()
        result = await self._client.list_records(
            self.collection, page=1, per_page=limit, filter=user_filter(user_id), sort=HISTORY_SORT,
        )
        return [WorkoutHistoryEntry.from_record(item) for item in result.items]
