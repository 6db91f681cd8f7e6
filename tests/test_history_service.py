"""
Unit tests for WorkoutHistoryService and history statistics.
"""

from datetime import datetime, timedelta, timezone

import pytest

from periolifts_mcp.periolifts.models import SessionStatus, WorkoutHistoryEntry
from periolifts_mcp.services.history import HISTORY_SORT, WorkoutHistoryService, calculate_history_stats
from periolifts_mcp.services.result import ErrorType
from tests.conftest import OTHER_USER_ID, TEST_USER_ID

START = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


def _entry(**overrides) -> dict:
    record = {
        "id": "h1",
        "user_id": TEST_USER_ID,
        "name": "Push Day",
        "status": "completed",
        "started_at": START.isoformat(),
        "completed_at": (START + timedelta(minutes=45)).isoformat(),
        "duration": 2700,
        "total_weight_lifted": 800,
        "exercises": [{
            "exerciseId": "bench",
            "exerciseName": "Bench Press",
            "sets": [
                {"reps": 5, "weight": 80, "completed": True},
                {"reps": 5, "weight": 90, "completed": True},
                {"reps": 5, "weight": 100},
            ],
        }],
    }
    record.update(overrides)
    return record


@pytest.fixture
def service(fake_client):
    fake_client.seed("workout_history", [_entry()])
    return WorkoutHistoryService(fake_client)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestHistoryQueries:
    @pytest.mark.asyncio
    async def test_filter_contents(self, service, fake_client):
        await service.get_workout_history(
            start_date=START,
            end_date=START + timedelta(days=7),
            status=SessionStatus.COMPLETED,
            exercise_name=" Bench ",
            workout_name="Push",
        )

        _, collection, params = fake_client.calls_to("list_records")[0]
        assert collection == "workout_history"
        assert params["sort"] == HISTORY_SORT
        assert params["filter"] == (
            '(user_id = "user-1")'
            ' && (started_at >= "2026-10-01 09:00:00.000Z")'
            ' && (completed_at <= "2026-10-08 09:00:00.000Z")'
            ' && (status = "completed")'
            ' && (exercises ~ "Bench")'
            ' && (name ~ "Push")'
        )

    @pytest.mark.asyncio
    async def test_recent_workouts_limit(self, service, fake_client):
        too_many = await service.get_recent_workouts(limit=51)
        ok = await service.get_recent_workouts(limit=50)

        assert too_many.error.message == "Limit must be between 1 and 50"
        assert [e.id for e in ok.value] == ["h1"]
        assert len(fake_client.calls_to("list_records")) == 1

    @pytest.mark.asyncio
    async def test_entry_of_other_user_is_forbidden(self, service, fake_client):
        fake_client.seed("workout_history", [_entry(id="h2", user_id=OTHER_USER_ID)])

        result = await service.get_workout_history_entry("h2")

        assert result.error.type is ErrorType.PERMISSION

    @pytest.mark.asyncio
    async def test_create_rejects_completion_before_start(self, service, fake_client):
        entry = WorkoutHistoryEntry(name="Push", started_at=START, completed_at=START - timedelta(minutes=1))

        result = await service.create_workout_history(entry)

        assert result.error.type is ErrorType.VALIDATION
        assert fake_client.calls_to("create_record") == []

    @pytest.mark.asyncio
    async def test_create_omits_missing_timestamps(self, service, fake_client):
        await service.create_workout_history(WorkoutHistoryEntry(name="Pull"))

        _, _, data = fake_client.calls_to("create_record")[0]
        assert data["user_id"] == TEST_USER_ID
        assert "started_at" not in data
        assert "duration" not in data


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestHistoryStats:
    def test_aggregates_completed_entries(self):
        entries = [
            WorkoutHistoryEntry.from_record(_entry()),
            WorkoutHistoryEntry.from_record(_entry(id="h2", status="in_progress", duration=600, total_weight_lifted=50)),
        ]

        stats = calculate_history_stats(entries, TEST_USER_ID, START, START + timedelta(days=30))

        assert stats.total_workouts == 2
        assert stats.completed_workouts == 1
        assert stats.total_duration == 3300
        assert stats.total_weight_lifted == 800
        assert stats.exercise_frequency == {"Bench Press": 1}
        progress = stats.exercise_progress[0]
        assert progress.max_weight == 90
        assert progress.average_weight == 85
        assert progress.total_reps == 10
        assert progress.total_volume == 5 * 80 + 5 * 90
        assert stats.completion_rate == 50.0

    def test_empty_period(self):
        stats = calculate_history_stats([], TEST_USER_ID, START, START)

        assert stats.completion_rate == 0.0
        assert stats.average_duration == 0
        assert stats.exercise_progress == []

    @pytest.mark.asyncio
    async def test_service_defaults_to_month_to_date(self, service, fake_client):
        result = await service.get_workout_history_stats()

        assert result.value.period_start.day == 1
        assert result.value.completed_workouts == 1
        _, _, params = fake_client.calls_to("get_full_list")[0]
        assert params["filter"].startswith('(user_id = "user-1") && (completed_at >= "')
        assert "-01 00:00:00.000Z" in params["filter"]
