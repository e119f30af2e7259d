"""Governance error taxonomy.

Services raise these; the web layer maps them to responses. None of them is
retried by the core.
"""

from datetime import datetime


class GovernanceError(Exception):
    """Base exception for governance operations."""

    error = "governance_error"
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(GovernanceError):
    """Malformed or contradictory input; the client must resubmit."""

    error = "validation_error"
    status_code = 400


class NotFoundError(GovernanceError):
    """Referenced entity is absent or not accessible to the requester."""

    error = "not_found"
    status_code = 404


class ConflictError(GovernanceError):
    """Uniqueness or one-way transition violated."""

    error = "conflict"
    status_code = 409


class ConcurrencyError(GovernanceError):
    """Concurrent modification detected."""

    error = "concurrent_modification"
    status_code = 409


class LockedError(GovernanceError):
    """Action blocked by a live freeze, cooldown or lock."""

    error = "locked"
    status_code = 423

    def __init__(self, message: str, unlock_at: datetime | None = None):
        super().__init__(message)
        self.unlock_at = unlock_at


class RateLimitError(GovernanceError):
    """Abuse guard tripped."""

    error = "rate_limited"
    status_code = 429


class TooEarlyError(GovernanceError):
    """Lock attempted before the discussion window elapsed."""

    error = "too_early"
    status_code = 425

    def __init__(self, message: str, available_at: datetime):
        super().__init__(message)
        self.available_at = available_at
