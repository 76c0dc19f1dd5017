"""Domain events emitted when the timetable changes."""

from __future__ import annotations

from pydantic import BaseModel

from uams.domain.models import ClashReport, EventKind


class EventScheduled(BaseModel):
    """Fired when a new lecture or exam is persisted."""

    kind: EventKind
    event_id: str


class EventRescheduled(BaseModel):
    """Fired after an existing event is edited and saved."""

    kind: EventKind
    event_id: str
    changed_fields: list[str]


class EventCancelled(BaseModel):
    """Fired when an event is deleted; no clash re-check follows."""

    kind: EventKind
    event_id: str


class ClashDetected(BaseModel):
    """Fired when a write is refused because the slot clashes.

    ``event_id`` is set only when the refused write was an edit.
    """

    kind: EventKind
    event_id: str | None = None
    report: ClashReport
