from periolifts_mcp.services.result import AppError, ErrorType, Failure, Result, Success
from periolifts_mcp.services.auth import AuthService
from periolifts_mcp.services.workouts import WorkoutService
from periolifts_mcp.services.plans import WorkoutPlanService
from periolifts_mcp.services.sessions import WorkoutSessionService
from periolifts_mcp.services.history import WorkoutHistoryService
from periolifts_mcp.services.exercises import ExerciseService
from periolifts_mcp.services.schedule import WorkoutScheduleService
from periolifts_mcp.services.backends import (
    WorkoutHistoryBackend, WorkoutSessionBackend,
    AppwriteWorkoutHistoryBackend, AppwriteWorkoutSessionBackend,
    build_history_backend, build_session_backend,
)

__all__ = [
    "AppError", "ErrorType", "Failure", "Result", "Success",
    "AuthService", "WorkoutService", "WorkoutPlanService", "WorkoutSessionService",
    "WorkoutHistoryService", "ExerciseService", "WorkoutScheduleService",
    "WorkoutHistoryBackend", "WorkoutSessionBackend",
    "AppwriteWorkoutHistoryBackend", "AppwriteWorkoutSessionBackend",
    "build_history_backend", "build_session_backend",
]
