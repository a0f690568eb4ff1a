"""
Error types raised by the analytics store.

Every error carries a stable ``kind`` so callers can map it to their own
responses (HTTP status codes, CLI exit codes).
"""

from typing import Optional


class AnalyticsError(Exception):
    """Base class for errors surfaced to analytics callers."""
    kind = "analytics_error"


class ValidationError(AnalyticsError):
    """Raised when an event is malformed or out of range. Nothing is stored."""
    kind = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class PolicyError(AnalyticsError):
    """Raised when an operation is disabled by deployment policy."""
    kind = "policy_error"
