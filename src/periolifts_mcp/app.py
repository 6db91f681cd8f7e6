"""Assembles the client, services and state holders from settings."""

import logging
from dataclasses import dataclass, field

from periolifts_mcp.periolifts.appwrite import AppwriteClient
from periolifts_mcp.periolifts.client import PocketBaseClient
from periolifts_mcp.periolifts.models import Workout
from periolifts_mcp.services.auth import AuthService
from periolifts_mcp.services.backends import (
    WorkoutHistoryBackend, WorkoutSessionBackend, build_appwrite_client,
    build_history_backend, build_session_backend,
)
from periolifts_mcp.services.exercises import ExerciseService
from periolifts_mcp.services.plans import WorkoutPlanService
from periolifts_mcp.services.schedule import WorkoutScheduleService
from periolifts_mcp.services.sessions import WorkoutSessionService
from periolifts_mcp.services.workouts import WorkoutService
from periolifts_mcp.settings import Settings
from periolifts_mcp.state.notifier import NotifierFamily
from periolifts_mcp.state.preferences import PreferencesStore, RestTimeSettings, UnitsSettings
from periolifts_mcp.state.resources import (
    exercises_family, workout_history_family, workout_plans_family,
    workout_sessions_family, workout_templates_family,
)
from periolifts_mcp.state.rest_timer import RestTimer
from periolifts_mcp.state.tracking import WorkoutTrackingController

logger = logging.getLogger(__name__)


@dataclass
class App:
    settings: Settings
    client: PocketBaseClient
    auth: AuthService
    workouts: WorkoutService
    plans: WorkoutPlanService
    sessions: WorkoutSessionService
    exercises: ExerciseService
    schedule: WorkoutScheduleService
    history_backend: WorkoutHistoryBackend
    session_backend: WorkoutSessionBackend
    preferences: PreferencesStore
    units: UnitsSettings
    rest_time: RestTimeSettings
    rest_timer: RestTimer
    workout_templates: NotifierFamily
    exercise_lists: NotifierFamily
    workout_plans: NotifierFamily
    workout_sessions: NotifierFamily
    workout_history: NotifierFamily
    trackers: dict[str, WorkoutTrackingController] = field(default_factory=dict)

    def start_tracking(self, workout: Workout) -> WorkoutTrackingController:
        """Create (or return) the tracker for a workout, wired to the rest timer."""
        key = workout.id or workout.name
        controller = self.trackers.get(key)
        if controller is None:
            controller = WorkoutTrackingController(workout, self.workouts)
            controller.subscribe(self.rest_timer.on_set_completed)
            self.trackers[key] = controller
        return controller

    def stop_tracking(self, workout_id: str) -> None:
        self.trackers.pop(workout_id, None)
        self.rest_timer.skip()


def build_app(settings: Settings, client: PocketBaseClient | None = None, appwrite: AppwriteClient | None = None) -> App:
    client = client or PocketBaseClient(settings.pocketbase_url, timeout=settings.request_timeout)
    if settings.backend == "appwrite" and appwrite is None:
        appwrite = build_appwrite_client(settings)

    workouts = WorkoutService(client)
    plans = WorkoutPlanService(client)
    exercises = ExerciseService(client)
    history_backend = build_history_backend(settings, client, appwrite)
    session_backend = build_session_backend(settings, client, appwrite)

    preferences = PreferencesStore(settings.preferences_path)
    rest_time = RestTimeSettings(preferences)

    logger.debug("Built app for %s using the %s backend", settings.pocketbase_url, settings.backend)
    return App(
        settings=settings,
        client=client,
        auth=AuthService(client),
        workouts=workouts,
        plans=plans,
        sessions=WorkoutSessionService(client),
        exercises=exercises,
        schedule=WorkoutScheduleService(client),
        history_backend=history_backend,
        session_backend=session_backend,
        preferences=preferences,
        units=UnitsSettings(preferences),
        rest_time=rest_time,
        rest_timer=RestTimer(rest_time),
        workout_templates=workout_templates_family(workouts),
        exercise_lists=exercises_family(exercises),
        workout_plans=workout_plans_family(plans),
        workout_sessions=workout_sessions_family(session_backend),
        workout_history=workout_history_family(history_backend),
    )
