"""Error types raised while building a trial sequence.

Every error records the operation that failed (origin), what it was doing at
the time (context) and the underlying problem (error), so the host protocol
can log a single readable line.
"""
from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class TrialHandlerError(Exception):
    """Base class for construction-time failures of a TrialHandler."""

    origin: str
    context: str
    error: Any = None

    def __str__(self):
        if self.error is None:
            return f"{self.origin}: {self.context}"
        return f"{self.origin}: {self.context}: {self.error}"


class InvalidConditionTableError(TrialHandlerError):
    """The trial list is neither a list of rows, nothing, nor a resource name."""


class ResourceImportError(TrialHandlerError):
    """A condition resource could not be read or parsed."""


class UnknownOrderingPolicyError(TrialHandlerError):
    """The requested trial ordering method does not exist."""
