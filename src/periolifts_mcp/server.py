"""PerioLifts MCP Server."""

import functools
import logging
from datetime import date, datetime, timedelta, timezone

from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError

from periolifts_mcp.app import App, build_app
from periolifts_mcp.periolifts.models import Workout
from periolifts_mcp.services.result import AppError, Result
from periolifts_mcp.settings import get_settings

logger = logging.getLogger(__name__)

mcp = FastMCP("periolifts")
_app: App | None = None


def get_app() -> App:
    global _app
    if _app is None:
        _app = build_app(get_settings())
    return _app


def format_error(error: AppError) -> str:
    return f"Error ({error.type.value}): {error.message}"


def _unwrap(result: Result):
    if not result.is_success:
        raise result.error
    return result.value


def _renders_errors(func):
    """Turn an AppError raised inside a tool into its markdown error line."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> str:
        try:
            return await func(*args, **kwargs)
        except AppError as e:
            return format_error(e)

    return wrapper


async def _ensure_login() -> App:
    """Auto-login using settings if not already authenticated."""
    app = get_app()
    if app.auth.is_authenticated:
        return app

    settings = app.settings
    if not settings.email or not settings.password:
        raise AppError.authentication(
            "PERIOLIFTS_EMAIL and PERIOLIFTS_PASSWORD environment variables must be set."
        )
    _unwrap(await app.auth.sign_in(settings.email, settings.password))
    return app


def _days_ago(days: int) -> datetime:
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return today - timedelta(days=days)


@mcp.tool()
@_renders_errors
async def list_workouts(search: str | None = None, page: int = 1, per_page: int = 20) -> str:
    """List the user's workout templates.

    Args:
        search: Only return workouts whose name contains this text.
        page: Page number, starting at 1.
        per_page: Workouts per page (1-100).
    """
    app = await _ensure_login()
    workouts = _unwrap(await app.workouts.get_workouts(page=page, per_page=per_page, search_query=search))

    if not workouts:
        return "No workouts found."

    lines = []
    for w in workouts:
        status = " (completed)" if w.is_completed else " (in progress)" if w.is_in_progress else ""
        lines.append(f"## {w.name}{status} (id: {w.id})")
        lines.append(
            f"Scheduled: {w.scheduled_date:%Y-%m-%d} | Exercises: {w.exercise_count} | "
            f"Sets: {w.total_sets} | Volume: {app.units.format_weight(w.total_volume, 0)}"
        )
        for exercise in w.exercises:
            lines.append(f"  {exercise.exercise_name}: " + ", ".join(
                f"{app.units.format_weight(s.weight)} x {s.reps}" for s in exercise.sets
            ))
        lines.append("")

    return "\n".join(lines)


@mcp.tool()
@_renders_errors
async def create_workout(name: str, exercises: list[dict], description: str = "") -> str:
    """Create a workout template.

    Args:
        name: Workout name.
        exercises: Exercises in order, each with "exercise_id", "exercise_name" and
            "sets" (a list of {"reps", "weight", "rest_time"}; weight in kg, rest in seconds).
        description: Optional description.
    """
    app = await _ensure_login()
    try:
        workout = Workout.model_validate({"name": name, "description": description, "exercises": exercises})
    except ValidationError as e:
        raise AppError.validation(f"Invalid workout: {e.errors()[0]['msg']}") from e
    created = _unwrap(await app.workouts.create_workout(workout))
    return f"Created workout **{created.name}** (id: {created.id}) with {created.exercise_count} exercises."


@mcp.tool()
@_renders_errors
async def delete_workout(workout_id: str) -> str:
    """Delete one of the user's workout templates.

    Args:
        workout_id: The workout ID (from list_workouts).
    """
    app = await _ensure_login()
    _unwrap(await app.workouts.delete_workout(workout_id))
    return f"Deleted workout {workout_id}."


@mcp.tool()
@_renders_errors
async def get_workout_history(
    since_days: int | None = None,
    limit: int = 20,
    offset: int = 0,
    exercise_name: str | None = None,
) -> str:
    """Fetch performed workouts, most recent first.

    Args:
        since_days: Only return workouts from the last N days. Omit for all workouts.
        limit: Maximum number of entries to return (1-100).
        offset: Number of entries to skip.
        exercise_name: Only return workouts containing this exercise.
    """
    app = await _ensure_login()
    start = _days_ago(since_days) if since_days is not None else None
    entries = _unwrap(await app.history_backend.get_workout_history(
        limit=limit, offset=offset, start_date=start, exercise_name=exercise_name,
    ))

    if not entries:
        return "No workout history found."

    lines = []
    for entry in entries:
        when = entry.completed_at or entry.started_at or entry.created
        duration = f" ({entry.duration // 60}min)" if entry.duration else ""
        lines.append(f"## {entry.name} ({when:%Y-%m-%d %H:%M}){duration}")
        lines.append(
            f"Status: {entry.status.value} | Volume: {app.units.format_weight(entry.volume, 0)} | "
            f"Completion: {entry.completion_percentage:.0f}%"
        )
        for exercise in entry.exercises:
            lines.append(f"  {exercise.exercise_name}: " + ", ".join(
                f"{app.units.format_weight(s.weight)} x {s.reps}" + ("" if s.completed else " (skipped)")
                for s in exercise.sets
            ))
        lines.append("")

    return "\n".join(lines)


@mcp.tool()
@_renders_errors
async def get_workout_history_stats(since_days: int = 30) -> str:
    """Summarize workout history over a period.

    Args:
        since_days: Length of the period in days, ending today (default 30).
    """
    app = await _ensure_login()
    stats = _unwrap(await app.history_backend.get_workout_history_stats(start_date=_days_ago(since_days)))

    lines = [
        f"# History {stats.period_start:%Y-%m-%d} to {stats.period_end:%Y-%m-%d}",
        f"Workouts: {stats.total_workouts} ({stats.completed_workouts} completed, "
        f"{stats.completion_rate:.0f}%)",
        f"Average duration: {stats.average_duration // 60} min",
        f"Total lifted: {app.units.format_weight(stats.total_weight_lifted, 0)}",
    ]
    if stats.exercise_progress:
        lines.append("\n## Exercises")
        for progress in sorted(stats.exercise_progress, key=lambda p: -stats.exercise_frequency.get(p.exercise_name, 0)):
            count = stats.exercise_frequency.get(progress.exercise_name, 0)
            lines.append(
                f"- **{progress.exercise_name}**: {count}x, max {app.units.format_weight(progress.max_weight)}, "
                f"{progress.total_reps} reps"
            )
    return "\n".join(lines)


@mcp.tool()
@_renders_errors
async def get_session_stats(since_days: int = 30) -> str:
    """Summarize workout sessions over a period.

    Args:
        since_days: Length of the period in days, ending now (default 30).
    """
    app = await _ensure_login()
    stats = _unwrap(await app.sessions.get_workout_stats(start_date=_days_ago(since_days)))
    return "\n".join([
        f"# Sessions {stats.period_start:%Y-%m-%d} to {stats.period_end:%Y-%m-%d}",
        f"Sessions: {stats.total_sessions} ({stats.completed_sessions} completed, {stats.completion_rate:.0f}%)",
        f"Workout time: {stats.total_workout_time} min (average {stats.average_workout_time:.0f} min)",
        f"Sets: {stats.total_sets} | Lifted: {app.units.format_weight(stats.total_weight_lifted, 0)}",
    ])


@mcp.tool()
@_renders_errors
async def list_plans(search: str | None = None, active_only: bool = False) -> str:
    """List the user's workout plans.

    Args:
        search: Only return plans whose name or description contains this text.
        active_only: Only return active plans.
    """
    app = await _ensure_login()
    plans = _unwrap(await app.plans.get_workout_plans(search_query=search, active_only=active_only))

    if not plans:
        return "No workout plans found."

    lines = [f"Found {len(plans)} plans:\n"]
    for p in plans:
        status = "active" if p.is_active else "inactive"
        span = p.date_range
        dates = f", {span[0]} to {span[1]}" if span else ""
        desc = f": {p.description}" if p.description else ""
        lines.append(f"- **{p.name}** (id: {p.id}, {status}, {len(p.all_workout_ids)} workouts{dates}){desc}")
    return "\n".join(lines)


@mcp.tool()
@_renders_errors
async def get_plans_for_date(day: str) -> str:
    """Show which active plans schedule workouts on a date.

    Args:
        day: Date in YYYY-MM-DD format.
    """
    app = await _ensure_login()
    try:
        target = date.fromisoformat(day)
    except ValueError:
        raise AppError.validation("Date must be in YYYY-MM-DD format")

    plans = _unwrap(await app.plans.get_plans_for_date(target))
    if not plans:
        return f"Nothing scheduled on {target}."

    lines = [f"# {target}"]
    for p in plans:
        ids = ", ".join(p.get_workouts_for_date(target))
        lines.append(f"- **{p.name}** (id: {p.id}): workouts {ids}")
    return "\n".join(lines)


@mcp.tool()
@_renders_errors
async def list_exercises(
    category: str | None = None,
    muscle_group: str | None = None,
    custom_only: bool = False,
    page: int = 1,
    per_page: int = 50,
) -> str:
    """List built-in exercises and the user's custom exercises.

    Args:
        category: Only return exercises in this category.
        muscle_group: Only return exercises targeting this muscle group.
        custom_only: Only return the user's custom exercises.
        page: Page number, starting at 1.
        per_page: Exercises per page (1-100).
    """
    app = await _ensure_login()
    exercises = _unwrap(await app.exercises.get_exercises(
        category=category,
        muscle_group=muscle_group,
        is_custom=True if custom_only else None,
        page=page,
        per_page=per_page,
    ))
    return _format_exercises(exercises)


@mcp.tool()
@_renders_errors
async def search_exercises(query: str) -> str:
    """Search exercises by name.

    Args:
        query: Text to look for in exercise names.
    """
    app = await _ensure_login()
    return _format_exercises(_unwrap(await app.exercises.search_exercises(query)))


def _format_exercises(exercises) -> str:
    if not exercises:
        return "No exercises found."

    lines = [f"Found {len(exercises)} exercises:\n"]
    for ex in exercises:
        tags = [ex.category] if ex.category else []
        tags.extend(ex.muscle_groups)
        if ex.is_custom:
            tags.append("custom")
        suffix = f" [{', '.join(tags)}]" if tags else ""
        lines.append(f"- **{ex.name}** (id: {ex.id}){suffix}")
    return "\n".join(lines)


@mcp.tool()
@_renders_errors
async def get_calendar_events(start: str, end: str, plan_id: str | None = None) -> str:
    """Fetch scheduled workouts between two dates (inclusive).

    Args:
        start: First date, YYYY-MM-DD.
        end: Last date, YYYY-MM-DD.
        plan_id: Only return events from this plan.
    """
    app = await _ensure_login()
    try:
        start_date, end_date = date.fromisoformat(start), date.fromisoformat(end)
    except ValueError:
        raise AppError.validation("Dates must be in YYYY-MM-DD format")

    events = _unwrap(await app.schedule.get_calendar_events(start_date, end_date, plan_id=plan_id))
    if not events:
        return "No scheduled workouts in this period."

    lines = []
    current_day = None
    for e in events:
        day = e.scheduled_date.date()
        if day != current_day:
            lines.append(f"\n## {day} ({e.day_of_week or day.strftime('%A').lower()})")
            current_day = day
        label = "Rest day" if e.is_rest_day else f"Workout {e.workout_id}"
        done = " (done)" if e.is_completed else ""
        plan = f" from {e.plan_name}" if e.plan_name else ""
        lines.append(f"- {label}{plan}{done} (event id: {e.id})")
    return "\n".join(lines).lstrip()


@mcp.tool()
@_renders_errors
async def get_preferences() -> str:
    """Show local unit and rest timer preferences."""
    app = get_app()
    prefs = app.preferences.get()
    return "\n".join([
        f"- use_metric_system: {prefs.use_metric_system} (weights in {app.units.weight_unit})",
        f"- use_default_rest_time: {prefs.use_default_rest_time}",
        f"- default_rest_time_seconds: {prefs.default_rest_time_seconds}",
    ])


@mcp.tool()
@_renders_errors
async def set_preference(key: str, value: str) -> str:
    """Change a local preference.

    Args:
        key: One of use_metric_system, use_default_rest_time, default_rest_time_seconds.
        value: New value ("true"/"false" for flags, seconds for the rest time).
    """
    app = get_app()
    try:
        app.preferences.set_value(key, value)
    except KeyError:
        raise AppError.validation(f"Unknown preference: {key}")
    except ValueError as e:
        raise AppError.validation(f"Invalid value for {key}: {value}") from e
    return f"Set {key} to {app.preferences.get_value(key)}."


@mcp.tool()
@_renders_errors
async def convert_weight(kg: float) -> str:
    """Convert a stored (kg) weight to the user's display unit.

    Args:
        kg: Weight in kilograms.
    """
    return get_app().units.format_weight(kg, 2)


def main():
    logging.basicConfig(level=get_settings().log_level.upper())
    mcp.run()


if __name__ == "__main__":
    main()
