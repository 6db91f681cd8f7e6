"""PerioLifts data models."""

import json
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


def _now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a PocketBase/Appwrite timestamp, returning None for empty values."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip().replace(" ", "T", 1)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _timestamp_or_now(value: Any) -> datetime:
    return parse_timestamp(value) or _now()


def _seconds(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    return int(value)


Timestamp = Annotated[datetime, BeforeValidator(_timestamp_or_now)]
OptionalTimestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]
Seconds = Annotated[int | None, BeforeValidator(_seconds)]


class Record(BaseModel):
    """Fields shared by every stored record."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    created: Timestamp = Field(default_factory=_now)
    updated: Timestamp = Field(default_factory=_now)

    @property
    def is_persisted(self) -> bool:
        return bool(self.id)

    @classmethod
    def from_record(cls, data: dict):
        return cls.model_validate(data)

    def to_record(self) -> dict:
        """Payload for create/update calls; server managed fields are left out."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"id", "created", "updated"},
        )


class RecordList(BaseModel):
    """One page of a PocketBase list response."""
    model_config = ConfigDict(populate_by_name=True)

    page: int = 1
    per_page: int = Field(default=30, alias="perPage")
    total_items: int = Field(default=0, alias="totalItems")
    total_pages: int = Field(default=0, alias="totalPages")
    items: list[dict] = []


# --- Exercises ---


class Exercise(Record):
    """An exercise in the library, either built in or user created."""
    name: str
    category: str = ""
    description: str = ""
    muscle_groups: list[str] = []
    image_url: str | None = None
    video_url: str | None = None
    is_custom: bool = False
    user_id: str = ""

    @field_validator("muscle_groups", mode="before")
    @classmethod
    def _split_muscle_groups(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @property
    def is_built_in(self) -> bool:
        return not self.is_custom and not self.user_id


# --- Workouts (templates) ---


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class WorkoutSet(_CamelModel):
    """A planned set within a workout template."""
    reps: int
    weight: float = 0.0
    rest_time: Seconds = None

    @property
    def volume(self) -> float:
        return self.weight * self.reps


class WorkoutExercise(_CamelModel):
    """An exercise entry within a workout template."""
    exercise_id: str
    exercise_name: str
    sets: list[WorkoutSet] = []


class WorkoutProgress(_CamelModel):
    """Saved position of an in-progress workout."""
    current_exercise_index: int = 0
    current_set_index: int = 0
    completed_sets: list[list[bool]] = []
    modified_sets: list[list[WorkoutSet]] = []
    last_saved_at: OptionalTimestamp = None


class Workout(Record):
    """A workout template owned by a user."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    user_id: str = ""
    name: str
    description: str = ""
    scheduled_date: Timestamp = Field(default_factory=_now)
    exercises: list[WorkoutExercise] = []
    is_completed: bool = False
    completed_date: OptionalTimestamp = None
    is_in_progress: bool = False
    progress: WorkoutProgress | None = None

    @field_validator("progress", mode="before")
    @classmethod
    def _decode_progress(cls, value):
        if value == "":
            return None
        if isinstance(value, str):
            return json.loads(value)
        return value

    @field_serializer("progress")
    def _encode_progress(self, progress: WorkoutProgress | None):
        if progress is None:
            return None
        return json.dumps(progress.model_dump(mode="json", by_alias=True))

    @property
    def exercise_count(self) -> int:
        return len(self.exercises)

    @property
    def total_sets(self) -> int:
        return sum(len(e.sets) for e in self.exercises)

    @property
    def total_volume(self) -> float:
        return sum(s.volume for e in self.exercises for s in e.sets)

    def to_record(self) -> dict:
        data = super().to_record()
        if self.completed_date is None:
            data.pop("completedDate", None)
        if self.progress is None:
            data.pop("progress", None)
        return data


# --- Plans ---


class WorkoutPlan(Record):
    """A training plan mapping calendar dates to workout ids."""
    user_id: str = ""
    name: str
    description: str = ""
    start_date: Timestamp = Field(default_factory=_now)
    schedule: dict[str, list[str]] = {}
    is_active: bool = True

    @field_validator("schedule", mode="before")
    @classmethod
    def _decode_schedule(cls, value):
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            value = json.loads(value)
        return {key: [str(v) for v in ids] for key, ids in value.items()}

    def get_workouts_for_date(self, day: date) -> list[str]:
        return list(self.schedule.get(day.strftime("%Y-%m-%d"), []))

    def add_workout_to_date(self, day: date, workout_id: str) -> "WorkoutPlan":
        key = day.strftime("%Y-%m-%d")
        schedule = {k: list(v) for k, v in self.schedule.items()}
        ids = schedule.setdefault(key, [])
        if workout_id not in ids:
            ids.append(workout_id)
        return self.model_copy(update={"schedule": schedule})

    def remove_workout_from_date(self, day: date, workout_id: str) -> "WorkoutPlan":
        key = day.strftime("%Y-%m-%d")
        schedule = {k: list(v) for k, v in self.schedule.items()}
        ids = [i for i in schedule.get(key, []) if i != workout_id]
        if ids:
            schedule[key] = ids
        else:
            schedule.pop(key, None)
        return self.model_copy(update={"schedule": schedule})

    @property
    def all_workout_ids(self) -> set[str]:
        return {wid for ids in self.schedule.values() for wid in ids}

    @property
    def date_range(self) -> tuple[date, date] | None:
        if not self.schedule:
            return None
        days = sorted(date.fromisoformat(k) for k in self.schedule)
        return days[0], days[-1]


# --- Sessions ---


class SessionStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: Any) -> "SessionStatus":
        if isinstance(value, cls):
            return value
        text = str(value or "").lower()
        if text in ("in_progress", "inprogress"):
            return cls.IN_PROGRESS
        if text == "completed":
            return cls.COMPLETED
        return cls.PLANNED


Status = Annotated[SessionStatus, BeforeValidator(SessionStatus.parse)]


class SessionSet(_CamelModel):
    """A set inside a live workout session, with target and actual values."""
    set_id: str
    set_number: int
    target_reps: int
    target_weight: float = 0.0
    actual_reps: int | None = None
    actual_weight: float | None = None
    completed: bool = False
    rest_time: Seconds = None

    @property
    def volume(self) -> float:
        if not self.completed:
            return 0.0
        reps = self.actual_reps if self.actual_reps is not None else self.target_reps
        weight = self.actual_weight if self.actual_weight is not None else self.target_weight
        return reps * weight


class SessionExercise(_CamelModel):
    exercise_id: str
    exercise_name: str
    sets: list[SessionSet] = []
    target_sets: int | None = None
    target_reps: int | None = None
    target_weight: float | None = None

    @property
    def is_completed(self) -> bool:
        return all(s.completed for s in self.sets)

    @property
    def completed_sets(self) -> int:
        return sum(1 for s in self.sets if s.completed)


class WorkoutSession(Record):
    """A scheduled or performed workout session."""
    user_id: str = ""
    name: str
    description: str = ""
    status: Status = SessionStatus.PLANNED
    exercises: list[SessionExercise] = []
    scheduled_date: OptionalTimestamp = None
    started_at: OptionalTimestamp = None
    completed_at: OptionalTimestamp = None
    notes: str = ""

    @property
    def is_completed(self) -> bool:
        return self.status is SessionStatus.COMPLETED

    @property
    def is_in_progress(self) -> bool:
        return self.status is SessionStatus.IN_PROGRESS

    @property
    def duration(self) -> timedelta | None:
        if self.started_at and self.completed_at:
            return self.completed_at - self.started_at
        return None

    @property
    def total_sets(self) -> int:
        return sum(len(e.sets) for e in self.exercises)

    @property
    def completed_sets(self) -> int:
        return sum(e.completed_sets for e in self.exercises)

    @property
    def progress_percentage(self) -> float:
        total = self.total_sets
        return (self.completed_sets / total) * 100 if total else 0.0

    @property
    def total_volume(self) -> float:
        return sum(s.volume for e in self.exercises for s in e.sets)

    def to_record(self) -> dict:
        data = super().to_record()
        for key in ("scheduled_date", "started_at", "completed_at"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class WorkoutSessionStats(BaseModel):
    """Aggregates over the sessions in a period. Workout time is in minutes."""
    total_sessions: int = 0
    completed_sessions: int = 0
    total_workout_time: int = 0
    total_sets: int = 0
    total_weight_lifted: float = 0.0
    period_start: datetime
    period_end: datetime

    @property
    def completion_rate(self) -> float:
        if not self.total_sessions:
            return 0.0
        return self.completed_sessions / self.total_sessions * 100

    @property
    def average_workout_time(self) -> float:
        if not self.completed_sessions:
            return 0.0
        return self.total_workout_time / self.completed_sessions


# --- History ---


class HistorySet(_CamelModel):
    reps: int
    weight: float = 0.0
    rest_time: Seconds = None
    completed: bool = False

    @property
    def volume(self) -> float:
        return self.weight * self.reps if self.completed else 0.0


class HistoryExercise(_CamelModel):
    exercise_id: str
    exercise_name: str
    sets: list[HistorySet] = []

    @property
    def completed_sets(self) -> int:
        return sum(1 for s in self.sets if s.completed)

    @property
    def total_volume(self) -> float:
        return sum(s.volume for s in self.sets)

    @property
    def max_weight(self) -> float:
        return max((s.weight for s in self.sets if s.completed), default=0.0)

    @property
    def average_weight(self) -> float:
        weights = [s.weight for s in self.sets if s.completed]
        return sum(weights) / len(weights) if weights else 0.0


class WorkoutHistoryEntry(Record):
    """A record of a performed workout."""
    user_id: str = ""
    name: str
    status: Status = SessionStatus.COMPLETED
    scheduled_date: OptionalTimestamp = None
    started_at: OptionalTimestamp = None
    completed_at: OptionalTimestamp = None
    duration: Seconds = None
    exercises: list[HistoryExercise] = []
    total_sets: int = 0
    total_reps: int = 0
    total_weight_lifted: float = 0.0
    notes: str = ""

    @property
    def volume(self) -> float:
        return sum(e.total_volume for e in self.exercises)

    @property
    def completion_percentage(self) -> float:
        total = sum(len(e.sets) for e in self.exercises)
        if not total:
            return 0.0
        return sum(e.completed_sets for e in self.exercises) / total * 100

    @property
    def max_weight(self) -> float:
        return max((e.max_weight for e in self.exercises), default=0.0)

    @property
    def average_weight(self) -> float:
        weights = [s.weight for e in self.exercises for s in e.sets if s.completed]
        return sum(weights) / len(weights) if weights else 0.0

    def to_record(self) -> dict:
        data = super().to_record()
        for key in ("scheduled_date", "started_at", "completed_at", "duration"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class ExerciseProgress(BaseModel):
    exercise_id: str
    exercise_name: str
    max_weight: float = 0.0
    average_weight: float = 0.0
    total_reps: int = 0
    total_volume: float = 0.0


class WorkoutHistoryStats(BaseModel):
    """Aggregates over the history entries in a period."""
    user_id: str
    period_start: datetime
    period_end: datetime
    total_workouts: int = 0
    completed_workouts: int = 0
    total_duration: int = 0
    total_weight_lifted: float = 0.0
    exercise_frequency: dict[str, int] = {}
    exercise_progress: list[ExerciseProgress] = []

    @property
    def completion_rate(self) -> float:
        if not self.total_workouts:
            return 0.0
        return self.completed_workouts / self.total_workouts * 100

    @property
    def average_duration(self) -> int:
        if not self.completed_workouts:
            return 0
        return self.total_duration // self.completed_workouts


# --- Calendar ---


class CalendarEvent(Record):
    """A workout (or rest day) placed on a plan's calendar."""
    plan_id: str
    workout_id: str = ""
    scheduled_date: Timestamp = Field(default_factory=_now)
    day_of_week: str = ""
    sort_order: int = 0
    is_rest_day: bool = False
    notes: str | None = None
    calendar_color: str | None = None
    is_completed: bool | None = None
    completion_date: OptionalTimestamp = None
    plan_name: str | None = None
    plan_description: str | None = None

    @classmethod
    def from_record(cls, data: dict) -> "CalendarEvent":
        plan = (data.get("expand") or {}).get("plan_id") or {}
        if plan:
            data = {**data, "plan_name": plan.get("name"), "plan_description": plan.get("description")}
        return cls.model_validate(data)

    def to_record(self) -> dict:
        data = super().to_record()
        data.pop("plan_name", None)
        data.pop("plan_description", None)
        return {k: v for k, v in data.items() if v is not None}
