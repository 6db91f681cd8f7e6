"""Calendar view over plan schedules."""

import logging
from datetime import date, datetime, timedelta

from periolifts_mcp.periolifts.filters import combine_filters, escape, format_datetime, user_filter
from periolifts_mcp.periolifts.models import CalendarEvent
from periolifts_mcp.services.base import BaseService
from periolifts_mcp.services.errors import service_call
from periolifts_mcp.services.result import AppError, Result
from periolifts_mcp.services.validation import (
    COLOR_RE, DAYS_OF_WEEK, require_id, validate_calendar_event, validate_date_range, validate_text,
)

logger = logging.getLogger(__name__)

MAX_EVENTS = 500
EVENT_SORT = "scheduled_date,sort_order"


class WorkoutScheduleService(BaseService):
    """Calendar events in ``workout_plan_schedules``.

    Events are owned through their plan, so every query filters on
    ``plan_id.user_id`` and expands the plan for its name and description.
    """

    collection = "workout_plan_schedules"
    resource_name = "calendar events"

    def _owner_filters(self, user_id: str) -> list[str]:
        return [user_filter(user_id, "plan_id.user_id"), "plan_id.is_active = true"]

    def _ensure_owner(self, record: dict, user_id: str, action: str) -> None:
        plan = (record.get("expand") or {}).get("plan_id") or {}
        if plan.get("user_id") != user_id:
            raise AppError.permission(f"You can only {action} your own {self.resource_name}")

    @service_call("get_calendar_events")
    async def get_calendar_events(
        self,
        start_date: date | datetime,
        end_date: date | datetime,
        plan_id: str | None = None,
        per_page: int = MAX_EVENTS,
    ) -> list[CalendarEvent]:
        validate_date_range(start_date, end_date)
        if per_page < 1 or per_page > MAX_EVENTS:
            raise AppError.validation(f"Items per page must be between 1 and {MAX_EVENTS}")
        user_id = self._require_user_id()

        filters = self._owner_filters(user_id)
        filters.append(f'scheduled_date >= "{format_datetime(start_date)}"')
        filters.append(f'scheduled_date <= "{format_datetime(_end_of_day(end_date))}"')
        if plan_id:
            filters.append(f'plan_id = "{escape(plan_id)}"')

        result = await self._client.list_records(
            self.collection,
            page=1,
            per_page=per_page,
            filter=combine_filters(*filters),
            sort=EVENT_SORT,
            expand="plan_id",
        )
        return [CalendarEvent.from_record(item) for item in result.items]

    async def get_events_for_date(self, day: date, plan_id: str | None = None) -> Result[list[CalendarEvent]]:
        return await self.get_calendar_events(day, day, plan_id=plan_id)

    @service_call("update_event_status")
    async def update_event_status(
        self,
        schedule_id: str,
        is_completed: bool | None = None,
        completion_date: datetime | None = None,
        notes: str | None = None,
        calendar_color: str | None = None,
    ) -> CalendarEvent:
        schedule_id = require_id(schedule_id, "Schedule")
        user_id = self._require_user_id()

        data: dict = {}
        if is_completed is not None:
            data["is_completed"] = is_completed
        if completion_date is not None:
            data["completion_date"] = format_datetime(completion_date)
        if notes is not None:
            validate_text(notes, "Notes")
            data["notes"] = notes
        if calendar_color is not None:
            if not COLOR_RE.match(calendar_color):
                raise AppError.validation("Calendar color must be a hex color like #RRGGBB")
            data["calendar_color"] = calendar_color
        if not data:
            raise AppError.validation("No update fields provided", {"schedule_id": schedule_id})

        await self._get_owned(schedule_id, user_id, "update", expand="plan_id")
        record = await self._client.update_record(self.collection, schedule_id, data, expand="plan_id")
        return CalendarEvent.from_record(record)

    @service_call("create_calendar_event")
    async def create_calendar_event(self, event: CalendarEvent) -> CalendarEvent:
        user_id = self._require_user_id()
        validate_calendar_event(event)
        plan = await self._client.get_record("workout_plans", event.plan_id)
        if plan.get("user_id") != user_id:
            raise AppError.permission("You can only schedule workouts in your own plans")
        record = await self._client.create_record(self.collection, event.to_record(), expand="plan_id")
        return CalendarEvent.from_record(record)

    @service_call("delete_calendar_event")
    async def delete_calendar_event(self, schedule_id: str) -> None:
        schedule_id = require_id(schedule_id, "Schedule")
        user_id = self._require_user_id()
        await self._get_owned(schedule_id, user_id, "delete", expand="plan_id")
        await self._client.delete_record(self.collection, schedule_id)

    @service_call("get_events_by_day_of_week")
    async def get_events_by_day_of_week(
        self,
        day_of_week: str,
        start_date: date | datetime | None = None,
        end_date: date | datetime | None = None,
        plan_id: str | None = None,
    ) -> list[CalendarEvent]:
        if day_of_week.lower() not in DAYS_OF_WEEK:
            raise AppError.validation("Invalid day of week", {"day_of_week": day_of_week})
        validate_date_range(start_date, end_date)
        user_id = self._require_user_id()

        filters = self._owner_filters(user_id)
        filters.append(f'day_of_week = "{day_of_week.lower()}"')
        if start_date:
            filters.append(f'scheduled_date >= "{format_datetime(start_date)}"')
        if end_date:
            filters.append(f'scheduled_date <= "{format_datetime(_end_of_day(end_date))}"')
        if plan_id:
            filters.append(f'plan_id = "{escape(plan_id)}"')

        items = await self._client.get_full_list(
            self.collection, filter=combine_filters(*filters), sort=EVENT_SORT, expand="plan_id",
        )
        return [CalendarEvent.from_record(item) for item in items]


def _end_of_day(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day) + timedelta(days=1, microseconds=-1)
