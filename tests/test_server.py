"""
Unit tests for the MCP tools, run against the in-memory PocketBase fake.
"""

from unittest.mock import patch

import pytest

from periolifts_mcp import server
from periolifts_mcp.app import build_app
from periolifts_mcp.services.result import AppError
from tests.conftest import TEST_USER_ID, workout_record


@pytest.fixture
def app(test_settings, fake_client):
    """Patch the server's app with one built over the fake client."""
    fake_client.seed("workouts", [workout_record()])
    app = build_app(test_settings, client=fake_client)
    with patch.object(server, "_app", app):
        yield app


@pytest.mark.unit
class TestErrors:
    def test_format_error(self):
        assert server.format_error(AppError.not_found("Workout not found")) == "Error (NotFoundError): Workout not found"

    @pytest.mark.asyncio
    async def test_validation_failure_rendered(self, app):
        result = await server.list_workouts(page=0)

        assert result == "Error (ValidationError): Page number must be greater than 0"

    @pytest.mark.asyncio
    async def test_missing_credentials(self, test_settings, anonymous_client):
        settings = test_settings.model_copy(update={"email": None})
        with patch.object(server, "_app", build_app(settings, client=anonymous_client)):
            result = await server.list_workouts()

        assert result.startswith("Error (AuthenticationError): PERIOLIFTS_EMAIL and PERIOLIFTS_PASSWORD")

    @pytest.mark.asyncio
    async def test_logs_in_with_configured_credentials(self, test_settings, anonymous_client):
        with patch.object(server, "_app", build_app(test_settings, client=anonymous_client)):
            await server.list_workouts()

        assert anonymous_client.calls[0] == ("login", "lifter@example.com")


@pytest.mark.unit
class TestWorkoutTools:
    @pytest.mark.asyncio
    async def test_list_workouts(self, app):
        result = await server.list_workouts()

        assert "## Push Day (id: w1)" in result
        assert "Bench Press: 176.4 lbs x 5, 176.4 lbs x 5" in result

    @pytest.mark.asyncio
    async def test_create_workout(self, app, fake_client):
        result = await server.create_workout(
            "Pull Day",
            [{"exercise_id": "row", "exercise_name": "Row", "sets": [{"reps": 8, "weight": 60}]}],
        )

        assert result.startswith("Created workout **Pull Day**")
        _, _, data = fake_client.calls_to("create_record")[0]
        assert data["userId"] == TEST_USER_ID

    @pytest.mark.asyncio
    async def test_create_workout_with_bad_sets(self, app):
        result = await server.create_workout("Pull Day", [{"exercise_id": "row", "exercise_name": "Row", "sets": [{}]}])

        assert result.startswith("Error (ValidationError): Invalid workout")

    @pytest.mark.asyncio
    async def test_delete_workout(self, app, fake_client):
        assert await server.delete_workout("w1") == "Deleted workout w1."
        assert fake_client.records("workouts") == []


@pytest.mark.unit
class TestOtherTools:
    @pytest.mark.asyncio
    async def test_empty_history(self, app):
        assert await server.get_workout_history(since_days=7) == "No workout history found."

    @pytest.mark.asyncio
    async def test_plans_for_bad_date(self, app):
        result = await server.get_plans_for_date("next tuesday")

        assert result == "Error (ValidationError): Date must be in YYYY-MM-DD format"

    @pytest.mark.asyncio
    async def test_search_exercises(self, app, fake_client):
        fake_client.seed("exercises", [{"id": "sq", "name": "Squat", "category": "strength", "muscle_groups": "quads"}])

        result = await server.search_exercises("squat")

        assert "- **Squat** (id: sq) [strength, quads]" in result

    @pytest.mark.asyncio
    async def test_preferences_round_trip(self, app):
        assert await server.set_preference("use_metric_system", "true") == "Set use_metric_system to True."
        assert await server.convert_weight(80) == "80.00 kg"
        assert "weights in kg" in await server.get_preferences()

    @pytest.mark.asyncio
    async def test_unknown_preference(self, app):
        result = await server.set_preference("theme", "dark")

        assert result == "Error (ValidationError): Unknown preference: theme"

    @pytest.mark.asyncio
    async def test_invalid_preference_value(self, app):
        result = await server.set_preference("default_rest_time_seconds", "soon")

        assert result == "Error (ValidationError): Invalid value for default_rest_time_seconds: soon"
