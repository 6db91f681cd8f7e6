from periolifts_mcp.periolifts.client import PocketBaseClient
from periolifts_mcp.periolifts.auth import PocketBaseAuth
from periolifts_mcp.periolifts.appwrite import AppwriteClient
from periolifts_mcp.periolifts.models import (
    Exercise, Workout, WorkoutExercise, WorkoutSet, WorkoutProgress,
    WorkoutPlan, WorkoutSession, SessionExercise, SessionSet, SessionStatus,
    WorkoutSessionStats, WorkoutHistoryEntry, HistoryExercise, HistorySet,
    WorkoutHistoryStats, CalendarEvent, RecordList,
)
from periolifts_mcp.periolifts.exceptions import (
    PerioLiftsError, AuthenticationError, TokenExpiredError, APIError, NetworkError,
)

__all__ = [
    "PocketBaseClient", "PocketBaseAuth", "AppwriteClient",
    "Exercise", "Workout", "WorkoutExercise", "WorkoutSet", "WorkoutProgress",
    "WorkoutPlan", "WorkoutSession", "SessionExercise", "SessionSet", "SessionStatus",
    "WorkoutSessionStats", "WorkoutHistoryEntry", "HistoryExercise", "HistorySet",
    "WorkoutHistoryStats", "CalendarEvent", "RecordList",
    "PerioLiftsError", "AuthenticationError", "TokenExpiredError", "APIError", "NetworkError",
]
