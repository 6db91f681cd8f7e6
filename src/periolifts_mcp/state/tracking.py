"""Set-by-set tracking of a workout in progress.

The controller holds an immutable :class:`TrackingState` and replaces it on
every change. Completing a set or the whole workout is also published as an
event, which is how the rest timer learns when to start.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Union

from periolifts_mcp.periolifts.models import Workout, WorkoutExercise, WorkoutProgress, WorkoutSet
from periolifts_mcp.services.result import ErrorType, Failure, Result
from periolifts_mcp.services.workouts import WorkoutService

logger = logging.getLogger(__name__)

MAX_WEIGHT = 999.0
MIN_REPS = 1
MAX_REPS = 999


class WorkoutView(str, Enum):
    EXERCISE_SELECTION = "exercise_selection"
    EXERCISE_TRACKING = "exercise_tracking"


class ExerciseStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SetCompleted:
    exercise_index: int
    set_index: int
    rest_time: int | None = None


@dataclass(frozen=True)
class WorkoutCompleted:
    workout: Workout


TrackingEvent = Union[SetCompleted, WorkoutCompleted]


def _copy_sets(workout: Workout) -> list[list[WorkoutSet]]:
    return [[s.model_copy() for s in exercise.sets] for exercise in workout.exercises]


def first_open_set(done: list[bool]) -> int:
    for i, completed in enumerate(done):
        if not completed:
            return i
    return max(len(done) - 1, 0)


def exercise_statuses(exercise_count: int, completed_sets: list[list[bool]]) -> list[ExerciseStatus]:
    statuses = []
    for i in range(exercise_count):
        done = completed_sets[i] if i < len(completed_sets) else []
        if done and all(done):
            statuses.append(ExerciseStatus.COMPLETED)
        elif any(done):
            statuses.append(ExerciseStatus.IN_PROGRESS)
        else:
            statuses.append(ExerciseStatus.NOT_STARTED)
    return statuses


def _fits(workout: Workout, rows: list[list]) -> bool:
    return len(rows) == len(workout.exercises) and all(
        len(row) == len(e.sets) for row, e in zip(rows, workout.exercises)
    )


@dataclass(frozen=True)
class TrackingState:
    workout: Workout
    completed_sets: list[list[bool]]
    modified_sets: list[list[WorkoutSet]]
    exercise_statuses: list[ExerciseStatus]
    current_view: WorkoutView = WorkoutView.EXERCISE_SELECTION
    current_exercise_index: int = 0
    current_set_index: int = 0
    selected_exercise_index: int | None = None
    selected_set_index: int | None = None
    workout_start_time: datetime | None = field(default_factory=lambda: datetime.now(timezone.utc))
    is_workout_completed: bool = False
    is_loading: bool = False
    error: str | None = None

    @classmethod
    def initial(cls, workout: Workout) -> "TrackingState":
        return cls(
            workout=workout,
            completed_sets=[[False] * len(e.sets) for e in workout.exercises],
            modified_sets=_copy_sets(workout),
            exercise_statuses=[ExerciseStatus.NOT_STARTED] * len(workout.exercises),
        )

    @classmethod
    def from_progress(cls, workout: Workout, progress: WorkoutProgress) -> "TrackingState":
        """Restore a saved position. Falls back to the template for whatever the progress lacks."""
        completed = [list(sets) for sets in progress.completed_sets]
        if not _fits(workout, completed):
            completed = [[False] * len(e.sets) for e in workout.exercises]
        modified = [[s.model_copy() for s in sets] for sets in progress.modified_sets]
        if not _fits(workout, modified):
            modified = _copy_sets(workout)

        # The workout may have changed since the progress was saved.
        exercise_index = progress.current_exercise_index
        if not 0 <= exercise_index < len(completed):
            exercise_index = 0
        set_index = progress.current_set_index
        if completed and not 0 <= set_index < len(completed[exercise_index]):
            set_index = first_open_set(completed[exercise_index])

        return cls(
            workout=workout,
            current_view=WorkoutView.EXERCISE_TRACKING,
            current_exercise_index=exercise_index,
            current_set_index=set_index,
            selected_exercise_index=exercise_index,
            completed_sets=completed,
            modified_sets=modified,
            exercise_statuses=exercise_statuses(len(workout.exercises), completed),
        )

    @property
    def has_current_set(self) -> bool:
        ex, st = self.current_exercise_index, self.current_set_index
        return 0 <= ex < len(self.modified_sets) and 0 <= st < len(self.modified_sets[ex])

    @property
    def current_exercise(self) -> WorkoutExercise:
        return self.workout.exercises[self.current_exercise_index]

    @property
    def current_set(self) -> WorkoutSet:
        return self.modified_sets[self.current_exercise_index][self.current_set_index]

    @property
    def is_current_set_completed(self) -> bool:
        return self.completed_sets[self.current_exercise_index][self.current_set_index]

    @property
    def total_completed_sets(self) -> int:
        return sum(sum(1 for done in sets if done) for sets in self.completed_sets)

    @property
    def total_sets(self) -> int:
        return sum(len(e.sets) for e in self.workout.exercises)

    @property
    def progress_percentage(self) -> float:
        if self.total_sets == 0:
            return 0.0
        return self.total_completed_sets / self.total_sets * 100

    @property
    def all_exercises_completed(self) -> bool:
        return all(status == ExerciseStatus.COMPLETED for status in self.exercise_statuses)

    def to_workout_progress(self) -> WorkoutProgress:
        return WorkoutProgress(
            current_exercise_index=self.current_exercise_index,
            current_set_index=self.current_set_index,
            completed_sets=[list(sets) for sets in self.completed_sets],
            modified_sets=[list(sets) for sets in self.modified_sets],
            last_saved_at=datetime.now(timezone.utc),
        )

    def workout_with_modified_sets(self) -> Workout:
        exercises = [
            WorkoutExercise(
                exercise_id=exercise.exercise_id,
                exercise_name=exercise.exercise_name,
                sets=list(self.modified_sets[i]),
            )
            for i, exercise in enumerate(self.workout.exercises)
        ]
        return self.workout.model_copy(update={"exercises": exercises})


def _parse_float(value: str) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_int(value: str) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _clamp(value, low, high):
    return max(low, min(high, value))


class WorkoutTrackingController:
    """Drives one workout from exercise selection to completion."""

    def __init__(self, workout: Workout, workout_service: WorkoutService):
        self._service = workout_service
        if workout.is_in_progress and workout.progress is not None:
            self._state = TrackingState.from_progress(workout, workout.progress)
        else:
            self._state = TrackingState.initial(workout)
        self._listeners: list[Callable[[TrackingEvent], None]] = []

    @property
    def state(self) -> TrackingState:
        return self._state

    def subscribe(self, listener: Callable[[TrackingEvent], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: TrackingEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _set(self, **changes) -> None:
        self._state = replace(self._state, **changes)

    # --- Navigation ---

    def select_exercise(self, exercise_index: int) -> None:
        if not 0 <= exercise_index < len(self._state.workout.exercises):
            return
        self._set(
            current_view=WorkoutView.EXERCISE_TRACKING,
            current_exercise_index=exercise_index,
            current_set_index=self._first_open_set(exercise_index),
            selected_exercise_index=exercise_index,
            selected_set_index=None,
        )

    def return_to_exercise_selection(self) -> None:
        self._set(current_view=WorkoutView.EXERCISE_SELECTION, selected_set_index=None)

    def select_set(self, set_index: int) -> None:
        if self._state.selected_set_index == set_index:
            self._set(selected_set_index=None)
        else:
            self._set(selected_set_index=set_index)

    def on_page_changed(self, exercise_index: int) -> None:
        if not 0 <= exercise_index < len(self._state.workout.exercises):
            return
        self._set(
            current_exercise_index=exercise_index,
            current_set_index=self._first_open_set(exercise_index),
            selected_set_index=None,
        )

    def _first_open_set(self, exercise_index: int) -> int:
        return first_open_set(self._state.completed_sets[exercise_index])

    # --- Set editing ---

    def _replace_set(self, exercise_index: int, set_index: int, **changes) -> None:
        sets = self._state.modified_sets
        if not 0 <= exercise_index < len(sets) or not 0 <= set_index < len(sets[exercise_index]):
            return
        modified = [list(row) for row in sets]
        modified[exercise_index][set_index] = modified[exercise_index][set_index].model_copy(update=changes)
        self._set(modified_sets=modified)

    def update_weight(self, value: str) -> None:
        self.update_weight_for_set(value, self._state.current_set_index)

    def update_reps(self, value: str) -> None:
        self.update_reps_for_set(value, self._state.current_set_index)

    def update_weight_for_set(self, value: str, set_index: int, exercise_index: int | None = None) -> None:
        exercise_index = self._state.current_exercise_index if exercise_index is None else exercise_index
        weight = _parse_float(value)
        if weight is None:
            return
        self._replace_set(exercise_index, set_index, weight=_clamp(weight, 0.0, MAX_WEIGHT))

    def update_reps_for_set(self, value: str, set_index: int, exercise_index: int | None = None) -> None:
        exercise_index = self._state.current_exercise_index if exercise_index is None else exercise_index
        reps = _parse_int(value)
        if reps is None:
            return
        self._replace_set(exercise_index, set_index, reps=_clamp(reps, MIN_REPS, MAX_REPS))

    def adjust_weight(self, delta: float) -> None:
        s = self._state
        if not s.has_current_set:
            return
        weight = _clamp(s.current_set.weight + delta, 0.0, MAX_WEIGHT)
        self._replace_set(s.current_exercise_index, s.current_set_index, weight=weight)

    def adjust_reps(self, delta: int) -> None:
        s = self._state
        if not s.has_current_set:
            return
        reps = _clamp(s.current_set.reps + delta, MIN_REPS, MAX_REPS)
        self._replace_set(s.current_exercise_index, s.current_set_index, reps=reps)

    # --- Completion ---

    def complete_set(self) -> None:
        s = self._state
        ex, st = s.current_exercise_index, s.current_set_index
        if not 0 <= ex < len(s.completed_sets) or not 0 <= st < len(s.completed_sets[ex]):
            return

        completed = [list(row) for row in s.completed_sets]
        completed[ex][st] = True
        self._set(
            completed_sets=completed,
            exercise_statuses=exercise_statuses(len(s.workout.exercises), completed),
        )
        finished = s.modified_sets[ex][st]
        self._emit(SetCompleted(exercise_index=ex, set_index=st, rest_time=finished.rest_time))

        if st + 1 < len(completed[ex]):
            modified = [list(row) for row in self._state.modified_sets]
            modified[ex][st + 1] = modified[ex][st + 1].model_copy(
                update={"reps": finished.reps, "weight": finished.weight}
            )
            self._set(modified_sets=modified, current_set_index=st + 1, selected_set_index=None)
        elif self._state.all_exercises_completed:
            self._finish_locally()
        else:
            self.return_to_exercise_selection()

    def _finish_locally(self) -> None:
        self._set(is_workout_completed=True, current_view=WorkoutView.EXERCISE_SELECTION)
        self._emit(WorkoutCompleted(self._completed_workout()))

    def _completed_workout(self) -> Workout:
        return self._state.workout_with_modified_sets().model_copy(update={
            "is_completed": True,
            "completed_date": datetime.now(timezone.utc),
            "is_in_progress": False,
            "progress": None,
        })

    async def _persist(self, workout: Workout) -> Result[Workout]:
        # Workouts without an owner were generated from a plan and are not stored yet.
        if not workout.user_id or not workout.id:
            return await self._service.create_workout(workout)
        result = await self._service.update_workout(workout.id, workout)
        if isinstance(result, Failure) and result.error.type == ErrorType.NOT_FOUND:
            logger.info("Workout %s no longer exists, creating it", workout.id)
            return await self._service.create_workout(workout)
        return result

    async def save_progress(self) -> Result[Workout]:
        """Store the current position so the workout can be resumed later."""
        self._set(is_loading=True, error=None)
        workout = self._state.workout_with_modified_sets().model_copy(update={
            "is_in_progress": True,
            "progress": self._state.to_workout_progress(),
        })
        result = await self._persist(workout)
        if result.is_success:
            self._set(is_loading=False, workout=result.value)
        else:
            self._set(is_loading=False, error=f"Error saving progress: {result.error.message}")
        return result

    async def complete_workout(self) -> Result[Workout]:
        """Mark the workout finished and store it, even if some sets were skipped."""
        self._set(is_loading=True, error=None)
        workout = self._completed_workout()
        result = await self._persist(workout)
        if result.is_success:
            already_done = self._state.is_workout_completed
            self._set(is_loading=False, is_workout_completed=True, workout=result.value)
            if not already_done:
                self._emit(WorkoutCompleted(result.value))
        else:
            self._set(is_loading=False, error=f"Error saving workout: {result.error.message}")
        return result

    @property
    def workout_duration(self) -> timedelta:
        start = self._state.workout_start_time
        if start is None:
            return timedelta(0)
        return datetime.now(timezone.utc) - start

    def clear_error(self) -> None:
        self._set(error=None)
