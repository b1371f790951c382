from __future__ import annotations


class StatehubError(Exception):
    """Base error for statehub."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, **details: object) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(StatehubError):
    """Account or notification does not exist."""

    code = "NOT_FOUND"


class InvalidArgumentError(StatehubError):
    """Malformed input or a violated action precondition."""

    code = "INVALID_ARGUMENT"


class ConflictError(StatehubError):
    """Optimistic-concurrency check failed on an account write."""

    code = "CONFLICT"


class UnavailableError(StatehubError):
    """Backing store I/O failure."""

    code = "SERVICE_UNAVAILABLE"
