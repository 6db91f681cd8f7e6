"""Result values returned by the service layer instead of raised exceptions."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")


class ErrorType(str, Enum):
    VALIDATION = "ValidationError"
    AUTHENTICATION = "AuthenticationError"
    NETWORK = "NetworkError"
    SERVER = "ServerError"
    NOT_FOUND = "NotFoundError"
    PERMISSION = "PermissionError"
    UNKNOWN = "UnknownError"


class AppError(Exception):
    """A classified, user presentable failure."""

    def __init__(
        self,
        message: str,
        type: ErrorType = ErrorType.UNKNOWN,
        details: dict | None = None,
        original: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.type = type
        self.details = details or {}
        self.original = original

    def __str__(self) -> str:
        return f"{self.type.value}: {self.message}"

    def __repr__(self) -> str:
        return f"AppError({self.message!r}, type={self.type.value})"

    @classmethod
    def validation(cls, message: str, details: dict | None = None) -> "AppError":
        return cls(message, ErrorType.VALIDATION, details)

    @classmethod
    def authentication(cls, message: str = "Authentication required", details: dict | None = None) -> "AppError":
        return cls(message, ErrorType.AUTHENTICATION, details)

    @classmethod
    def network(cls, message: str = "Network error", details: dict | None = None, original: BaseException | None = None) -> "AppError":
        return cls(message, ErrorType.NETWORK, details, original)

    @classmethod
    def server(cls, message: str = "Server error", details: dict | None = None, original: BaseException | None = None) -> "AppError":
        return cls(message, ErrorType.SERVER, details, original)

    @classmethod
    def not_found(cls, message: str = "Resource not found", details: dict | None = None) -> "AppError":
        return cls(message, ErrorType.NOT_FOUND, details)

    @classmethod
    def permission(cls, message: str = "Permission denied", details: dict | None = None) -> "AppError":
        return cls(message, ErrorType.PERMISSION, details)

    @classmethod
    def unknown(cls, message: str = "Unknown error occurred", original: BaseException | None = None) -> "AppError":
        return cls(message, ErrorType.UNKNOWN, original=original)


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None

    def map(self, func: Callable[[T], U]) -> "Result[U]":
        return Success(func(self.value))

    def flat_map(self, func: Callable[[T], "Result[U]"]) -> "Result[U]":
        return func(self.value)

    def get_or_raise(self) -> T:
        return self.value

    def get_or_default(self, default: Any) -> T:
        return self.value

    def get_or_else(self, func: Callable[[AppError], T]) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    error: AppError

    @property
    def is_success(self) -> bool:
        return False

    @property
    def value(self) -> None:
        return None

    def map(self, func: Callable) -> "Failure":
        return self

    def flat_map(self, func: Callable) -> "Failure":
        return self

    def get_or_raise(self):
        raise self.error

    def get_or_default(self, default: U) -> U:
        return default

    def get_or_else(self, func: Callable[[AppError], U]) -> U:
        return func(self.error)


Result = Union[Success[T], Failure]
