"""Custom exceptions for lecture-to-quiz API errors."""
from typing import Optional


class QuizAPIError(Exception):
    """Base exception for lecture-to-quiz API errors.

    Transport-level failures only show the caller's fallback text; the
    underlying detail is meant for the log.
    """

    def __init__(self, message: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def user_message(self, fallback: str) -> str:
        """Text that may be shown to the user for this error."""
        return fallback


class RequestRejectedError(QuizAPIError):
    """Server answered with success=false or an explicit error message."""

    def user_message(self, fallback: str) -> str:
        return self.message or fallback


class AuthenticationError(RequestRejectedError):
    """Invalid credentials or expired token (HTTP 401)."""
    pass


class NetworkError(QuizAPIError):
    """Network connectivity issues or timeouts."""
    pass


class ServerError(QuizAPIError):
    """Non-2xx response without an error message."""
    pass


class InvalidResponseError(QuizAPIError):
    """API returned unexpected response format."""
    pass
