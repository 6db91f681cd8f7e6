"""Local input validation. Every check raises ``AppError`` of type ValidationError."""

import re
from datetime import date, datetime, timedelta, timezone
from urllib.parse import urlparse

from periolifts_mcp.periolifts.models import (
    CalendarEvent, Exercise, Workout, WorkoutHistoryEntry, WorkoutPlan, WorkoutSession, parse_timestamp,
)
from periolifts_mcp.services.result import AppError

MAX_NAME_LENGTH = 100
MAX_TEXT_LENGTH = 1000
MAX_PER_PAGE = 100
MAX_REPS = 1000

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DAYS_OF_WEEK = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def validate_pagination(page: int, per_page: int, max_per_page: int = MAX_PER_PAGE) -> None:
    if page < 1:
        raise AppError.validation("Page number must be greater than 0")
    if per_page < 1 or per_page > max_per_page:
        raise AppError.validation(f"Items per page must be between 1 and {max_per_page}")


def validate_limit(limit: int, offset: int = 0, max_limit: int = MAX_PER_PAGE) -> None:
    if limit < 1 or limit > max_limit:
        raise AppError.validation(f"Limit must be between 1 and {max_limit}")
    if offset < 0:
        raise AppError.validation("Offset cannot be negative")


def require_id(value: str | None, label: str) -> str:
    if not value or not value.strip():
        raise AppError.validation(f"{label} ID cannot be empty")
    return value.strip()


def validate_name(name: str | None, label: str) -> None:
    if not name or not name.strip():
        raise AppError.validation(f"{label} name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise AppError.validation(f"{label} name cannot exceed {MAX_NAME_LENGTH} characters")


def validate_text(value: str | None, label: str) -> None:
    if value and len(value) > MAX_TEXT_LENGTH:
        raise AppError.validation(f"{label} cannot exceed {MAX_TEXT_LENGTH} characters")


def validate_time_order(started_at: datetime | None, completed_at: datetime | None) -> None:
    started_at, completed_at = parse_timestamp(started_at), parse_timestamp(completed_at)
    if started_at and completed_at and completed_at < started_at:
        raise AppError.validation("Completion time cannot be before start time")


def validate_date_range(start: date | datetime | None, end: date | datetime | None) -> None:
    # Dates count as midnight UTC and naive datetimes as UTC.
    start, end = parse_timestamp(start), parse_timestamp(end)
    if start and end and end < start:
        raise AppError.validation("End date must be after or equal to start date")


def validate_scheduled_date(scheduled: datetime | None) -> None:
    scheduled = parse_timestamp(scheduled)
    if scheduled and scheduled < datetime.now(timezone.utc) - timedelta(days=365):
        raise AppError.validation("Scheduled date cannot be more than one year in the past")


def validate_set_values(reps: int, weight: float | None) -> None:
    if reps < 0 or reps > MAX_REPS:
        raise AppError.validation(f"Set reps must be between 0 and {MAX_REPS}")
    if weight is not None and weight < 0:
        raise AppError.validation("Set weight cannot be negative")


def validate_url(value: str | None, label: str) -> None:
    if not value:
        return
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise AppError.validation(f"{label} must be a valid http or https URL")


def validate_email(email: str | None) -> None:
    if not email or not EMAIL_RE.match(email.strip()):
        raise AppError.validation("Please enter a valid email address")


# --- Entities ---


def validate_workout(workout: Workout) -> None:
    validate_name(workout.name, "Workout")
    validate_text(workout.description, "Description")
    if not workout.exercises:
        raise AppError.validation("Workout must contain at least one exercise")
    for exercise in workout.exercises:
        require_id(exercise.exercise_id, "Exercise")
        if not exercise.exercise_name.strip():
            raise AppError.validation("Exercise name cannot be empty")
        for s in exercise.sets:
            validate_set_values(s.reps, s.weight)


def validate_history_entry(entry: WorkoutHistoryEntry) -> None:
    validate_name(entry.name, "Workout")
    validate_text(entry.notes, "Notes")
    validate_time_order(entry.started_at, entry.completed_at)
    validate_scheduled_date(entry.scheduled_date)
    for exercise in entry.exercises:
        require_id(exercise.exercise_id, "Exercise")
        if not exercise.exercise_name.strip():
            raise AppError.validation("Exercise name cannot be empty")
        for s in exercise.sets:
            validate_set_values(s.reps, s.weight)


def validate_session(session: WorkoutSession) -> None:
    validate_name(session.name, "Workout")
    validate_text(session.description, "Description")
    validate_text(session.notes, "Notes")
    validate_time_order(session.started_at, session.completed_at)
    validate_scheduled_date(session.scheduled_date)
    for exercise in session.exercises:
        require_id(exercise.exercise_id, "Exercise")
        for s in exercise.sets:
            validate_set_values(s.target_reps, s.target_weight)


def validate_exercise(exercise: Exercise) -> None:
    validate_name(exercise.name, "Exercise")
    if not exercise.category.strip():
        raise AppError.validation("Exercise category cannot be empty")
    if not exercise.muscle_groups:
        raise AppError.validation("At least one muscle group must be specified")
    if len(exercise.description) > MAX_TEXT_LENGTH:
        raise AppError.validation("Exercise description is too long")
    validate_url(exercise.image_url, "Image URL")
    validate_url(exercise.video_url, "Video URL")


def validate_plan(plan: WorkoutPlan) -> None:
    validate_name(plan.name, "Plan")
    validate_text(plan.description, "Description")
    for key in plan.schedule:
        if not DATE_KEY_RE.match(key):
            raise AppError.validation(f"Invalid schedule date '{key}', expected YYYY-MM-DD")


def validate_calendar_event(event: CalendarEvent) -> None:
    require_id(event.plan_id, "Plan")
    if not event.is_rest_day:
        require_id(event.workout_id, "Workout")
    if event.day_of_week and event.day_of_week.lower() not in DAYS_OF_WEEK:
        raise AppError.validation(f"Invalid day of week: {event.day_of_week}")
    if event.sort_order < 0:
        raise AppError.validation("Sort order cannot be negative")
    validate_text(event.notes, "Notes")
    if event.calendar_color and not COLOR_RE.match(event.calendar_color):
        raise AppError.validation("Calendar color must be a hex color like #RRGGBB")
