"""Classification of transport failures into AppError values."""

import functools
import logging
from typing import Awaitable, Callable, ParamSpec, TypeVar

import httpx

from periolifts_mcp.periolifts.exceptions import APIError, AuthenticationError, NetworkError
from periolifts_mcp.services.result import AppError, Failure, Result, Success

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def extract_message(data: dict | None) -> str:
    """Pull the most useful message out of a PocketBase error body.

    Field level errors win over the top level message, e.g.
    ``{"data": {"name": {"message": "Cannot be blank."}}}`` becomes
    ``"name: Cannot be blank."``.
    """
    if not data:
        return ""
    fields = data.get("data")
    if isinstance(fields, dict):
        messages = [
            f"{field}: {err['message']}"
            for field, err in fields.items()
            if isinstance(err, dict) and err.get("message")
        ]
        if messages:
            return ", ".join(messages)
        if isinstance(fields.get("message"), str):
            return fields["message"]
    message = data.get("message")
    return message if isinstance(message, str) else ""


def from_status(status_code: int | None, message: str, data: dict | None = None, original: BaseException | None = None) -> AppError:
    status = status_code or 0
    details = {"status_code": status, "response": data or {}}

    if status == 400:
        return AppError.validation(message or "Invalid request data", details)
    if status == 401:
        return AppError.authentication(message or "Authentication required", details)
    if status == 403:
        return AppError.permission(message or "Permission denied", details)
    if status == 404:
        return AppError.not_found(message or "Resource not found", details)
    if 400 < status < 500:
        return AppError.validation(message or "Client error", details)
    if status >= 500:
        return AppError.server(message or "Server error", details, original)
    return AppError.network(message or "Network error", details, original)


def to_app_error(exc: BaseException) -> AppError:
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, APIError):
        return from_status(exc.status_code, extract_message(exc.data), exc.data, exc)
    if isinstance(exc, AuthenticationError):
        error = AppError.authentication(str(exc))
        error.original = exc
        return error
    if isinstance(exc, (NetworkError, httpx.RequestError)):
        return AppError.network(str(exc) or "Network error", original=exc)
    return AppError.unknown(str(exc) or "Unknown error occurred", original=exc)


def service_call(operation: str) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[Result[T]]]]:
    """Run a service coroutine and return its outcome as a Result.

    Anything the coroutine raises is classified with :func:`to_app_error`
    and logged; nothing propagates to the caller.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[Result[T]]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
            try:
                return Success(await func(*args, **kwargs))
            except Exception as e:
                error = to_app_error(e)
                logger.warning("%s failed: %s", operation, error)
                return Failure(error)

        return wrapper

    return decorator
