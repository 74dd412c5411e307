"""Error taxonomy for catalog loading and check evaluation."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when the check catalog violates its integrity invariants."""


class EvaluationError(Exception):
    """Base class for per-check problems absorbed into a skipped result."""


class MissingData(EvaluationError):
    """A fact required by a check is absent from the snapshot."""

    def __init__(self, message: str, *, field_name: str | None = None) -> None:
        super().__init__(message)
        self.field_name = field_name


class Inconclusive(EvaluationError):
    """Facts are present but do not settle the check either way."""


class MalformedInput(EvaluationError):
    """A snapshot field exists but does not have the expected shape."""
