"""bugboard exception hierarchy."""

from __future__ import annotations


class BugBoardError(Exception):
    """Base exception for all bugboard errors."""


class ConfigError(BugBoardError):
    """Raised when the configuration is invalid or cannot be read."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file does not exist."""


class ApiError(BugBoardError):
    """Raised when a call to the remote bug store fails.

    ``status_code`` is the HTTP status for non-2xx responses and ``None``
    for transport failures (connection refused, timeout, bad JSON).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FetchError(ApiError):
    """Raised when the full item set cannot be loaded."""


class UpdateError(ApiError):
    """Raised when a column change is rejected or cannot be delivered."""


class InvalidMoveError(BugBoardError, ValueError):
    """Raised when a move does not match the current board."""
