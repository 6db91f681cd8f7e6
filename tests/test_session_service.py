"""
Unit tests for WorkoutSessionService.
"""

from datetime import datetime, timedelta, timezone

import pytest

from periolifts_mcp.periolifts.models import SessionSet, SessionStatus
from periolifts_mcp.services.result import ErrorType
from periolifts_mcp.services.sessions import WorkoutSessionService, session_from_workout
from tests.conftest import OTHER_USER_ID, TEST_USER_ID


def _session(**overrides) -> dict:
    record = {
        "id": "s1",
        "user_id": TEST_USER_ID,
        "name": "Push Day",
        "status": "planned",
        "exercises": [{
            "exerciseId": "bench",
            "exerciseName": "Bench Press",
            "sets": [
                {"setId": "a", "setNumber": 1, "targetReps": 5, "targetWeight": 80},
                {"setId": "b", "setNumber": 2, "targetReps": 5, "targetWeight": 80},
            ],
        }],
    }
    record.update(overrides)
    return record


@pytest.fixture
def service(fake_client):
    fake_client.seed("workout_sessions", [_session()])
    return WorkoutSessionService(fake_client)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_sets_status_and_start_time(self, service, fake_client):
        result = await service.start_workout_session("s1")

        assert result.value.status is SessionStatus.IN_PROGRESS
        assert result.value.started_at is not None
        _, _, _, data = fake_client.calls_to("update_record")[0]
        assert data["status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_complete_then_complete_again(self, service):
        first = await service.complete_workout_session("s1")
        second = await service.complete_workout_session("s1")

        assert first.value.is_completed
        assert first.value.completed_at >= first.value.started_at
        assert second.error.message == "Workout session is already completed"

    @pytest.mark.asyncio
    async def test_cannot_start_completed_session(self, fake_client):
        fake_client.seed("workout_sessions", [_session(id="done", status="completed")])

        result = await WorkoutSessionService(fake_client).start_workout_session("done")

        assert result.error.message == "Cannot start a completed workout session"

    @pytest.mark.asyncio
    async def test_resume_requires_in_progress(self, service):
        result = await service.resume_workout_session("s1")

        assert result.error.message == "Cannot resume a workout that is not in progress"

    @pytest.mark.asyncio
    async def test_other_users_session_is_forbidden(self, service, fake_client):
        fake_client.seed("workout_sessions", [_session(id="s2", user_id=OTHER_USER_ID)])

        result = await service.delete_workout_session("s2")

        assert result.error.type is ErrorType.PERMISSION
        assert fake_client.calls_to("delete_record") == []


# ---------------------------------------------------------------------------
# Set data
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestSetData:
    @pytest.mark.asyncio
    async def test_replaces_matching_set(self, service):
        done = SessionSet(set_id="b", set_number=2, target_reps=5, target_weight=80, actual_reps=4, completed=True)

        result = await service.update_set_data("s1", "bench", "b", done)

        sets = result.value.exercises[0].sets
        assert sets[1].actual_reps == 4
        assert not sets[0].completed

    @pytest.mark.asyncio
    async def test_unknown_exercise(self, service):
        result = await service.update_set_data("s1", "squat", "a", SessionSet(set_id="a", set_number=1, target_reps=5))

        assert result.error.type is ErrorType.NOT_FOUND
        assert result.error.message == "Exercise not found in workout session"

    @pytest.mark.asyncio
    async def test_unknown_set(self, service):
        result = await service.update_set_data("s1", "bench", "zzz", SessionSet(set_id="zzz", set_number=9, target_reps=5))

        assert result.error.message == "Set not found in exercise"


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestQueries:
    @pytest.mark.asyncio
    async def test_offset_spanning_two_pages(self, fake_client):
        fake_client.seed("workout_sessions", [_session(id=f"s{i}") for i in range(6)])
        service = WorkoutSessionService(fake_client)

        result = await service.get_workout_sessions(limit=4, offset=2)

        assert [s.id for s in result.value] == ["s2", "s3", "s4", "s5"]
        pages = [params["page"] for _, _, params in fake_client.calls_to("list_records")]
        assert pages == [1, 2]

    @pytest.mark.asyncio
    async def test_history_filters_completed(self, service, fake_client):
        await service.get_workout_history()

        _, _, params = fake_client.calls_to("list_records")[0]
        assert params["filter"] == '(user_id = "user-1") && (status = "completed")'

    @pytest.mark.asyncio
    async def test_negative_offset_rejected(self, service, fake_client):
        result = await service.get_workout_sessions(offset=-1)

        assert result.error.message == "Offset cannot be negative"
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_stats(self, fake_client):
        start = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)
        fake_client.seed("workout_sessions", [
            _session(
                id="done",
                status="completed",
                started_at=start.isoformat(),
                completed_at=(start + timedelta(minutes=50)).isoformat(),
                exercises=[{
                    "exerciseId": "bench",
                    "exerciseName": "Bench Press",
                    "sets": [
                        {"setId": "a", "setNumber": 1, "targetReps": 5, "actualReps": 5, "actualWeight": 80, "completed": True},
                        {"setId": "b", "setNumber": 2, "targetReps": 5, "completed": True},
                    ],
                }],
            ),
            _session(id="todo"),
        ])

        result = await WorkoutSessionService(fake_client).get_workout_stats()

        stats = result.value
        assert stats.total_sessions == 2
        assert stats.completed_sessions == 1
        assert stats.total_workout_time == 50
        assert stats.total_sets == 1
        assert stats.total_weight_lifted == 400
        assert stats.completion_rate == 50.0
        assert stats.period_end - stats.period_start == timedelta(days=30)


@pytest.mark.unit
class TestTemplates:
    def test_session_targets_copy_template_sets(self, workout):
        session = session_from_workout(workout)

        assert session.name == "Push Day"
        assert [len(e.sets) for e in session.exercises] == [2, 1]
        bench = session.exercises[0]
        assert bench.target_sets == 2
        assert [s.set_number for s in bench.sets] == [1, 2]
        assert bench.sets[0].target_weight == 80.0
        assert bench.sets[0].rest_time == 120
        assert len({s.set_id for s in bench.sets}) == 2

    @pytest.mark.asyncio
    async def test_create_from_template_owned_by_user(self, fake_client, workout):
        result = await WorkoutSessionService(fake_client).create_session_from_template(workout)

        _, collection, data = fake_client.calls_to("create_record")[0]
        assert collection == "workout_sessions"
        assert data["user_id"] == TEST_USER_ID
        assert data["status"] == "planned"
        assert result.value.total_sets == 3
