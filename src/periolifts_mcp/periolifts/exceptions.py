"""PerioLifts transport exceptions."""


class PerioLiftsError(Exception):
    """Base exception for PerioLifts errors."""
    pass


class AuthenticationError(PerioLiftsError):
    """Raised when authentication fails."""
    pass


class TokenExpiredError(AuthenticationError):
    """Raised when the authentication token has expired and cannot be refreshed."""
    pass


class APIError(PerioLiftsError):
    """Raised when the backend answers with an error status."""

    def __init__(self, message: str, status_code: int | None = None, data: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.data = data or {}


class NetworkError(PerioLiftsError):
    """Raised when the backend cannot be reached."""
    pass
