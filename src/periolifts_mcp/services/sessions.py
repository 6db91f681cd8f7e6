"""Workout session service."""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from periolifts_mcp.periolifts.filters import combine_filters, format_datetime, user_filter
from periolifts_mcp.periolifts.models import (
    SessionExercise, SessionSet, SessionStatus, Workout, WorkoutSession, WorkoutSessionStats,
)
from periolifts_mcp.services.base import BaseService
from periolifts_mcp.services.errors import service_call
from periolifts_mcp.services.result import AppError
from periolifts_mcp.services.validation import require_id, validate_date_range, validate_limit, validate_session

logger = logging.getLogger(__name__)

STATS_PERIOD = timedelta(days=30)


def session_from_workout(workout: Workout, scheduled_date: datetime | None = None) -> WorkoutSession:
    """Build a planned session whose targets are the template's sets."""
    exercises = []
    for exercise in workout.exercises:
        sets = [
            SessionSet(
                set_id=uuid.uuid4().hex[:15],
                set_number=i + 1,
                target_reps=s.reps,
                target_weight=s.weight,
                rest_time=s.rest_time,
            )
            for i, s in enumerate(exercise.sets)
        ]
        exercises.append(SessionExercise(
            exercise_id=exercise.exercise_id,
            exercise_name=exercise.exercise_name,
            sets=sets,
            target_sets=len(sets),
        ))
    return WorkoutSession(
        name=workout.name,
        description=workout.description,
        exercises=exercises,
        scheduled_date=scheduled_date,
    )


class WorkoutSessionService(BaseService):
    """Scheduled and live workout sessions in the ``workout_sessions`` collection."""

    collection = "workout_sessions"
    resource_name = "workout sessions"

    def _filter(
        self,
        user_id: str,
        status: SessionStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> str:
        filters = [user_filter(user_id)]
        if status is not None:
            filters.append(f'status = "{SessionStatus.parse(status).value}"')
        if start_date:
            filters.append(f'scheduled_date >= "{format_datetime(start_date)}"')
        if end_date:
            filters.append(f'scheduled_date <= "{format_datetime(end_date)}"')
        return combine_filters(*filters)

    async def _fetch(self, session_id: str, action: str = "access") -> WorkoutSession:
        session_id = require_id(session_id, "Workout session")
        user_id = self._require_user_id()
        record = await self._get_owned(session_id, user_id, action)
        return WorkoutSession.from_record(record)

    async def _save(self, session: WorkoutSession) -> WorkoutSession:
        session_id = require_id(session.id, "Workout session")
        user_id = self._require_user_id()
        await self._get_owned(session_id, user_id, "update")
        data = session.model_copy(update={"user_id": user_id}).to_record()
        record = await self._client.update_record(self.collection, session_id, data)
        return WorkoutSession.from_record(record)

    async def _list(self, limit, offset, status=None, start_date=None, end_date=None) -> list[WorkoutSession]:
        validate_limit(limit, offset)
        validate_date_range(start_date, end_date)
        user_id = self._require_user_id()
        items = await self._list_window(
            limit,
            offset,
            filter=self._filter(user_id, status, start_date, end_date),
            sort="-created",
        )
        return [WorkoutSession.from_record(item) for item in items]

    @service_call("get_workout_sessions")
    async def get_workout_sessions(
        self,
        limit: int = 20,
        offset: int = 0,
        status: SessionStatus | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[WorkoutSession]:
        return await self._list(limit, offset, status, start_date, end_date)

    @service_call("get_workout_session")
    async def get_workout_session(self, session_id: str) -> WorkoutSession:
        return await self._fetch(session_id)

    @service_call("create_workout_session")
    async def create_workout_session(self, session: WorkoutSession) -> WorkoutSession:
        validate_session(session)
        user_id = self._require_user_id()
        data = session.model_copy(update={"user_id": user_id}).to_record()
        record = await self._client.create_record(self.collection, data)
        logger.info("Created workout session %s", record.get("id"))
        return WorkoutSession.from_record(record)

    @service_call("update_workout_session")
    async def update_workout_session(self, session: WorkoutSession) -> WorkoutSession:
        validate_session(session)
        return await self._save(session)

    @service_call("delete_workout_session")
    async def delete_workout_session(self, session_id: str) -> None:
        session = await self._fetch(session_id, "delete")
        await self._client.delete_record(self.collection, session.id)

    @service_call("start_workout_session")
    async def start_workout_session(self, session_id: str) -> WorkoutSession:
        session = await self._fetch(session_id, "update")
        if session.is_completed:
            raise AppError.validation("Cannot start a completed workout session")
        return await self._save(session.model_copy(update={
            "status": SessionStatus.IN_PROGRESS,
            "started_at": session.started_at or datetime.now(timezone.utc),
        }))

    @service_call("complete_workout_session")
    async def complete_workout_session(self, session_id: str) -> WorkoutSession:
        session = await self._fetch(session_id, "update")
        if session.is_completed:
            raise AppError.validation("Workout session is already completed")
        now = datetime.now(timezone.utc)
        return await self._save(session.model_copy(update={
            "status": SessionStatus.COMPLETED,
            "started_at": session.started_at or now,
            "completed_at": now,
        }))

    @service_call("resume_workout_session")
    async def resume_workout_session(self, session_id: str) -> WorkoutSession:
        session = await self._fetch(session_id)
        if not session.is_in_progress:
            raise AppError.validation("Cannot resume a workout that is not in progress")
        return session

    @service_call("update_set_data")
    async def update_set_data(
        self,
        session_id: str,
        exercise_id: str,
        set_id: str,
        updated_set: SessionSet,
    ) -> WorkoutSession:
        session = await self._fetch(session_id, "update")

        exercise_index = next(
            (i for i, e in enumerate(session.exercises) if e.exercise_id == exercise_id), None,
        )
        if exercise_index is None:
            raise AppError.not_found("Exercise not found in workout session")

        exercise = session.exercises[exercise_index]
        set_index = next((i for i, s in enumerate(exercise.sets) if s.set_id == set_id), None)
        if set_index is None:
            raise AppError.not_found("Set not found in exercise")

        sets = list(exercise.sets)
        sets[set_index] = updated_set
        exercises = list(session.exercises)
        exercises[exercise_index] = exercise.model_copy(update={"sets": sets})
        return await self._save(session.model_copy(update={"exercises": exercises}))

    @service_call("get_workout_stats")
    async def get_workout_stats(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> WorkoutSessionStats:
        """Aggregate sessions scheduled in the period, by default the last 30 days."""
        end = end_date or datetime.now(timezone.utc)
        start = start_date or end - STATS_PERIOD
        validate_date_range(start, end)
        user_id = self._require_user_id()

        items = await self._client.get_full_list(
            self.collection,
            filter=self._filter(user_id, start_date=start, end_date=end),
            sort="-created",
        )
        sessions = [WorkoutSession.from_record(item) for item in items]
        completed = [s for s in sessions if s.is_completed]

        workout_minutes = 0
        total_sets = 0
        total_weight = 0.0
        for session in completed:
            if session.duration is not None:
                workout_minutes += int(session.duration.total_seconds() // 60)
            for exercise in session.exercises:
                for s in exercise.sets:
                    if s.completed and s.actual_weight is not None and s.actual_reps is not None:
                        total_sets += 1
                        total_weight += s.actual_weight * s.actual_reps

        return WorkoutSessionStats(
            total_sessions=len(sessions),
            completed_sessions=len(completed),
            total_workout_time=workout_minutes,
            total_sets=total_sets,
            total_weight_lifted=total_weight,
            period_start=start,
            period_end=end,
        )

    @service_call("get_workout_history")
    async def get_workout_history(
        self,
        limit: int = 20,
        offset: int = 0,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[WorkoutSession]:
        return await self._list(limit, offset, SessionStatus.COMPLETED, start_date, end_date)

    @service_call("create_session_from_template")
    async def create_session_from_template(
        self,
        workout: Workout,
        scheduled_date: datetime | None = None,
    ) -> WorkoutSession:
        user_id = self._require_user_id()
        session = session_from_workout(workout, scheduled_date)
        validate_session(session)
        data = session.model_copy(update={"user_id": user_id}).to_record()
        record = await self._client.create_record(self.collection, data)
        return WorkoutSession.from_record(record)

    @service_call("get_active_workout_session")
    async def get_active_workout_session(self) -> WorkoutSession | None:
        sessions = await self._list(1, 0, SessionStatus.IN_PROGRESS)
        return sessions[0] if sessions else None
