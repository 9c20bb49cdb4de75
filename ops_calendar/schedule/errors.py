"""Schedule error types."""
from __future__ import annotations

from typing import List, Optional


class ScheduleError(RuntimeError):
    """Base class for schedule engine errors."""


class ValidationError(ScheduleError):
    """Raised when a manual event request is missing or has invalid fields.

    Always raised before anything is written to the Schedule store.
    """

    def __init__(self, problems: List[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "Invalid event")


class PolicyError(ScheduleError):
    """Raised when an actor attempts a mutation the event's source forbids."""

    def __init__(self, message: str, *, source_kind: Optional[str] = None) -> None:
        self.source_kind = source_kind
        super().__init__(message)


class ScopeError(ScheduleError):
    """Raised when a viewer drills into a member outside their team."""


class EventNotFound(ScheduleError):
    """Raised when a manual entry to delete no longer exists."""


class SourceUnavailable(ScheduleError):
    """Raised by a store or adapter that cannot reach its backing data."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"{source} source unavailable: {reason}")


class LeadLookupError(SourceUnavailable):
    """Raised in strict mode when a follow-up's lead name cannot be resolved."""

    def __init__(self, lead_id: str) -> None:
        self.lead_id = lead_id
        super().__init__("crm", f"lead {lead_id} could not be resolved")
