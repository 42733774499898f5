"""Exception types raised by the structural analysis engine."""

from typing import Any, Optional


class ValidationError(ValueError):
    """Raised when a claim, claim set or Markush structure violates an invariant.

    Attributes:
        field: Name of the offending field (e.g. "depends_on", "symbol").
        value: The offending value, when one exists.
    """

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


class MatcherError(RuntimeError):
    """Raised when the molecule matching backend fails."""
