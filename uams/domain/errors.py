"""Exceptions raised by the scheduling core and its store adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uams.domain.models import ClashReport


class SchedulingError(Exception):
    """Base class for every scheduling failure."""


class InvalidInterval(SchedulingError):
    """A candidate slot whose start is not strictly before its end."""

    def __init__(self, start: object, end: object) -> None:
        super().__init__(f"start time {start} must be before end time {end}")
        self.start = start
        self.end = end


class StoreUnavailable(SchedulingError):
    """The event store could not be read or written.

    A clash check that hits this error has NOT verified the slot.
    """


class EventNotFound(SchedulingError):
    def __init__(self, kind: str, event_id: str) -> None:
        super().__init__(f"{kind} {event_id} not found")
        self.kind = kind
        self.event_id = event_id


class ClashDetectedError(SchedulingError):
    """Raised when a write is refused because the slot clashes."""

    def __init__(self, report: ClashReport) -> None:
        super().__init__(report.summary())
        self.report = report
