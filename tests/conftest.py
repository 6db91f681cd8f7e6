"""
Shared fixtures for PerioLifts tests.
"""

import base64
import json
import time
from typing import Any, Dict

import pytest

from periolifts_mcp.periolifts.models import Workout
from periolifts_mcp.settings import Settings
from tests.fakes import FakePocketBaseClient


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TEST_USER_ID = "user-1"
OTHER_USER_ID = "user-2"


def make_jwt(exp_offset: int = 3600) -> str:
    """Build an unsigned JWT whose ``exp`` claim is ``exp_offset`` seconds from now."""

    def encode(part: Dict[str, Any]) -> str:
        return base64.urlsafe_b64encode(json.dumps(part).encode()).decode().rstrip("=")

    return f"{encode({'alg': 'HS256'})}.{encode({'exp': int(time.time()) + exp_offset})}.signature"


def workout_record(**overrides) -> Dict[str, Any]:
    """A workouts collection record as PocketBase returns it."""
    record = {
        "id": "w1",
        "userId": TEST_USER_ID,
        "name": "Push Day",
        "description": "",
        "scheduledDate": "2026-10-01 09:00:00.000Z",
        "exercises": [
            {
                "exerciseId": "bench",
                "exerciseName": "Bench Press",
                "sets": [
                    {"reps": 5, "weight": 80.0, "restTime": 120},
                    {"reps": 5, "weight": 80.0, "restTime": 120},
                ],
            },
            {
                "exerciseId": "ohp",
                "exerciseName": "Overhead Press",
                "sets": [{"reps": 8, "weight": 40.0, "restTime": 90}],
            },
        ],
        "isCompleted": False,
        "isInProgress": False,
        "created": "2026-09-30 10:00:00.000Z",
        "updated": "2026-09-30 10:00:00.000Z",
    }
    record.update(overrides)
    return record


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_client() -> FakePocketBaseClient:
    """Fake PocketBase client signed in as TEST_USER_ID."""
    return FakePocketBaseClient(user_id=TEST_USER_ID)


@pytest.fixture
def anonymous_client() -> FakePocketBaseClient:
    """Fake PocketBase client with nobody signed in."""
    return FakePocketBaseClient(user_id=None)


@pytest.fixture
def workout() -> Workout:
    """Two exercise workout template: bench 2x5, press 1x8."""
    return Workout.from_record(workout_record())


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing preferences at a temporary file."""
    return Settings(
        _env_file=None,
        pocketbase_url="http://pb.test",
        email="lifter@example.com",
        password="secret-password",
        preferences_path=tmp_path / "preferences.json",
    )
