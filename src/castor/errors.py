"""Library error hierarchy for castor.

These are raised when castor itself is misused (bad settings, bad handler
declarations). Domain failures raised by guarded operations are
:class:`castor.failure.Failure` values and never inherit from these.
"""

from __future__ import annotations


class CastorError(Exception):
    """Base exception for all castor library errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        """Return the message with the hint appended when present."""
        msg = super().__str__()
        return f"{msg}. {self.hint}" if self.hint else msg


class ConfigurationError(CastorError):
    """Settings, kind or handler declarations are invalid."""


class InvariantViolationError(CastorError):
    """A castor invariant was violated (for example a cyclic cause chain)."""
