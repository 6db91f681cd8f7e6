"""
Unit tests for the per-resource notifiers wired to real services.
"""

import pytest

from periolifts_mcp.periolifts.models import Workout, WorkoutExercise, WorkoutPlan, WorkoutSet
from periolifts_mcp.services.history import WorkoutHistoryService
from periolifts_mcp.services.plans import WorkoutPlanService
from periolifts_mcp.services.result import ErrorType
from periolifts_mcp.services.workouts import WorkoutService
from periolifts_mcp.state.notifier import DataState
from periolifts_mcp.state.resources import (
    WorkoutHistoryFilter,
    WorkoutPlansFilter,
    WorkoutTemplatesFilter,
    workout_history_family,
    workout_plans_family,
    workout_templates_family,
)
from tests.conftest import TEST_USER_ID, workout_record


def _single_exercise() -> WorkoutExercise:
    return WorkoutExercise(exercise_id="squat", exercise_name="Back Squat", sets=[WorkoutSet(reps=5, weight=100)])


@pytest.mark.unit
class TestFilters:
    def test_filters_are_hashable_values(self):
        assert WorkoutTemplatesFilter(search_query="push") == WorkoutTemplatesFilter(search_query="push")
        assert hash(WorkoutPlansFilter(active_only=True)) == hash(WorkoutPlansFilter(active_only=True))

    def test_filters_are_frozen(self):
        with pytest.raises(Exception):
            WorkoutHistoryFilter().limit = 5


@pytest.mark.unit
class TestWorkoutTemplates:
    @pytest.mark.asyncio
    async def test_pages_map_to_page_numbers(self, fake_client):
        fake_client.seed("workouts", [workout_record(id=f"w{i}") for i in range(3)])
        family = workout_templates_family(WorkoutService(fake_client))
        notifier = family.get(WorkoutTemplatesFilter(per_page=2))

        await notifier.initialize()
        await notifier.load_more()

        assert [w.id for w in notifier.items] == ["w0", "w1", "w2"]
        pages = [params["page"] for _, _, params in fake_client.calls_to("list_records")]
        assert pages == [1, 2]
        assert not notifier.has_more

    @pytest.mark.asyncio
    async def test_empty_name_rejected_before_any_request(self, fake_client):
        notifier = workout_templates_family(WorkoutService(fake_client)).get(WorkoutTemplatesFilter())
        await notifier.initialize()
        calls = len(fake_client.calls)

        result = await notifier.create(Workout(name="", exercises=[_single_exercise()]))

        assert result.error.type is ErrorType.VALIDATION
        assert "cannot be empty" in result.error.message
        assert len(fake_client.calls) == calls

    @pytest.mark.asyncio
    async def test_created_workout_appended_with_id(self, fake_client):
        fake_client.seed("workouts", [workout_record()])
        notifier = workout_templates_family(WorkoutService(fake_client)).get(WorkoutTemplatesFilter())
        await notifier.initialize()

        result = await notifier.create(Workout(name="Leg Day", exercises=[_single_exercise()]))

        assert result.is_success
        assert result.value.id
        assert len(notifier.items) == 2
        assert notifier.items[-1].id == result.value.id
        assert notifier.items[-1].user_id == TEST_USER_ID

    @pytest.mark.asyncio
    async def test_delete_shrinks_list_by_one(self, fake_client):
        fake_client.seed("workouts", [workout_record(id=f"w{i}") for i in range(3)])
        notifier = workout_templates_family(WorkoutService(fake_client)).get(WorkoutTemplatesFilter())
        await notifier.initialize()

        await notifier.delete("w1")

        assert [w.id for w in notifier.items] == ["w0", "w2"]

    @pytest.mark.asyncio
    async def test_delete_through_notifier(self, fake_client):
        fake_client.seed("workouts", [workout_record()])
        notifier = workout_templates_family(WorkoutService(fake_client)).get(WorkoutTemplatesFilter())
        await notifier.initialize()

        await notifier.delete("w1")

        assert notifier.state == DataState([])
        assert fake_client.records("workouts") == []


@pytest.mark.unit
class TestWorkoutPlans:
    @pytest.mark.asyncio
    async def test_new_plan_goes_first(self, fake_client):
        fake_client.seed("workout_plans", [{"id": "p1", "user_id": TEST_USER_ID, "name": "Old"}])
        notifier = workout_plans_family(WorkoutPlanService(fake_client)).get(WorkoutPlansFilter())
        await notifier.initialize()

        await notifier.create(WorkoutPlan(name="New"))

        assert [p.name for p in notifier.items] == ["New", "Old"]


@pytest.mark.unit
class TestWorkoutHistory:
    @pytest.mark.asyncio
    async def test_offset_added_to_filter_offset(self, fake_client):
        fake_client.seed("workout_history", [
            {"id": f"h{i}", "user_id": TEST_USER_ID, "name": "Push"} for i in range(5)
        ])
        backend = WorkoutHistoryService(fake_client)
        notifier = workout_history_family(backend).get(WorkoutHistoryFilter(limit=2, offset=1))

        await notifier.initialize()

        assert [e.id for e in notifier.items] == ["h1", "h2"]
