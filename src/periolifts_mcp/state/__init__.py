from periolifts_mcp.state.notifier import (
    DataState, ErrorState, ListState, LoadingState, NotifierFamily, ResourceNotifier,
)
from periolifts_mcp.state.resources import (
    WorkoutTemplatesFilter, ExercisesFilter, WorkoutPlansFilter, WorkoutSessionsFilter, WorkoutHistoryFilter,
    WorkoutTemplatesNotifier, ExercisesNotifier, WorkoutPlansNotifier, WorkoutSessionsNotifier,
    WorkoutHistoryNotifier,
)
from periolifts_mcp.state.tracking import (
    ExerciseStatus, SetCompleted, TrackingState, WorkoutCompleted, WorkoutTrackingController, WorkoutView,
)
from periolifts_mcp.state.rest_timer import RestTimer, RestTimerState
from periolifts_mcp.state.preferences import Preferences, PreferencesStore, RestTimeSettings, UnitsSettings

__all__ = [
    "DataState", "ErrorState", "ListState", "LoadingState", "NotifierFamily", "ResourceNotifier",
    "WorkoutTemplatesFilter", "ExercisesFilter", "WorkoutPlansFilter", "WorkoutSessionsFilter",
    "WorkoutHistoryFilter", "WorkoutTemplatesNotifier", "ExercisesNotifier", "WorkoutPlansNotifier",
    "WorkoutSessionsNotifier", "WorkoutHistoryNotifier",
    "ExerciseStatus", "SetCompleted", "TrackingState", "WorkoutCompleted", "WorkoutTrackingController",
    "WorkoutView", "RestTimer", "RestTimerState",
    "Preferences", "PreferencesStore", "RestTimeSettings", "UnitsSettings",
]
