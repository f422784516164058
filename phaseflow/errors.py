# phaseflow/errors.py
"""
Error taxonomy for phaseflow.

Every failure the engine surfaces derives from PhaseflowError, which carries
a stable machine-readable code and an optional suggestion for the caller.
"""

from datetime import datetime


class PhaseflowError(Exception):
    """Base class for all engine errors."""

    code = "PHASEFLOW"

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def format(self) -> str:
        """Format error for CLI output."""
        lines = [f"Error: {self.message}"]
        if self.suggestion:
            lines.append(f"Suggestion: {self.suggestion}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
        }


class ParseError(PhaseflowError):
    """Persisted roadmap document is malformed."""

    code = "PARSE"

    def __init__(
        self,
        message: str,
        line: int | None = None,
        section: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        location = []
        if section:
            location.append(f"section '{section}'")
        if line is not None:
            location.append(f"line {line}")
        full = f"{message} ({', '.join(location)})" if location else message
        super().__init__(full, suggestion)
        self.line = line
        self.section = section

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"line": self.line, "section": self.section})
        return data


class PreconditionFailed(PhaseflowError):
    """Operation is valid in principle but its preconditions do not hold."""

    code = "PRECONDITION"


class InvalidState(PhaseflowError):
    """Operation is not allowed in the target's current lifecycle state."""

    code = "STATE"


class NotFound(PhaseflowError):
    """Unknown phase, task, backlog item or archive entry."""

    code = "NOT_FOUND"

    def __init__(self, what: str, suggestion: str | None = None) -> None:
        super().__init__(f"{what} not found", suggestion)
        self.what = what


class ValidationError(PhaseflowError):
    """Document invariant or input validation failure."""

    code = "VALIDATION"


class LockError(PhaseflowError):
    """Concurrent-access contention on the roadmap store."""

    code = "LOCK"


class LockHeld(LockError):
    """Another owner holds a fresh lock and did not release it in time."""

    code = "LOCK_HELD"

    def __init__(self, owner: str, acquired_at: datetime, timeout: float) -> None:
        super().__init__(
            f"Roadmap is locked by {owner} since {acquired_at.isoformat()} "
            f"(waited {timeout:.1f}s)",
            "Retry once the other command finishes",
        )
        self.owner = owner
        self.acquired_at = acquired_at


class StaleLock(LockError):
    """Lock is older than the staleness threshold."""

    code = "STALE_LOCK"

    def __init__(self, owner: str, acquired_at: datetime, age_seconds: float) -> None:
        super().__init__(
            f"Stale lock held by {owner} since {acquired_at.isoformat()} "
            f"({age_seconds:.0f}s old)",
            "Run 'phaseflow unlock --force' if that process is gone",
        )
        self.owner = owner
        self.acquired_at = acquired_at
        self.age_seconds = age_seconds


class StorageIOError(PhaseflowError):
    """Archive or roadmap write failed."""

    code = "IO"
