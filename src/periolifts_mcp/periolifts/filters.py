"""Helpers for building PocketBase filter expressions."""

from datetime import date, datetime, timezone


def escape(value: str) -> str:
    """Make a user supplied string safe to embed in a quoted filter literal."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\r", " ")
        .replace("\n", " ")
    )


def user_filter(user_id: str, field: str = "user_id") -> str:
    return f'{field} = "{escape(user_id)}"'


def combine_filters(*filters: str | None) -> str:
    """AND together the non-empty filters, each wrapped in parentheses."""
    parts = [f"({f})" for f in filters if f]
    return " && ".join(parts)


def format_datetime(value: datetime | date) -> str:
    """Render a timestamp the way PocketBase stores it (UTC, space separated)."""
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d %H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def date_key(value: date | datetime) -> str:
    return value.strftime("%Y-%m-%d")
