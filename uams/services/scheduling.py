"""Create, edit and cancel timetable events behind a clash check."""

from __future__ import annotations

import asyncio

from uams.core.logging_config import get_logger
from uams.domain.bus import EventBus
from uams.domain.errors import ClashDetectedError, EventNotFound
from uams.domain.events import (
    ClashDetected,
    EventCancelled,
    EventRescheduled,
    EventScheduled,
)
from uams.domain.models import (
    ClashCandidate,
    ClashReport,
    EventChanges,
    EventKind,
    ExamDraft,
    ExcludeRef,
    Exam,
    Lecture,
    LectureDraft,
)
from uams.repos.base import EventStore
from uams.services.conflicts import check_clash

logger = get_logger(__name__)

_REQUIRED_FIELDS = ("date", "start_time", "end_time")
_EXAM_ONLY_FIELDS = ("exam_category", "exam_status")


class SchedulingService:
    """Validates every create/update against the timetable before writing.

    Check-and-write runs under one lock per service instance, so two writes
    through the same process cannot both pass validation for one slot. Writes
    from other processes are not serialised.
    """

    def __init__(self, store: EventStore, bus: EventBus) -> None:
        self.store = store
        self.bus = bus
        self._write_lock = asyncio.Lock()

    async def check(
        self, candidate: ClashCandidate, exclude: ExcludeRef | None = None
    ) -> ClashReport:
        return await check_clash(self.store, candidate, exclude)

    async def get(self, kind: EventKind, event_id: str) -> Lecture | Exam:
        event = await self.store.get_event(kind, event_id)
        if event is None:
            raise EventNotFound(kind, event_id)
        return event

    async def schedule(self, draft: LectureDraft | ExamDraft) -> Lecture | Exam:
        async with self._write_lock:
            report = await check_clash(self.store, ClashCandidate.from_event(draft))
            if report.has_clashes:
                self.bus.publish(ClashDetected(kind=draft.kind, report=report))
                raise ClashDetectedError(report)
            event = await self.store.insert_event(
                draft.kind, draft.model_dump(exclude={"kind"})
            )

        self.bus.publish(EventScheduled(kind=event.kind, event_id=event.id))
        return event

    async def reschedule(
        self, kind: EventKind, event_id: str, changes: EventChanges
    ) -> Lecture | Exam:
        updates = changes.model_dump(exclude_unset=True)
        for name in _REQUIRED_FIELDS:
            if name in updates and updates[name] is None:
                del updates[name]
        if kind == EventKind.LECTURE:
            for name in _EXAM_ONLY_FIELDS:
                updates.pop(name, None)

        async with self._write_lock:
            stored = await self.get(kind, event_id)
            merged = stored.model_copy(update=updates)
            report = await check_clash(
                self.store,
                ClashCandidate.from_event(merged),
                exclude=ExcludeRef(kind=kind, id=stored.id),
            )
            if report.has_clashes:
                self.bus.publish(
                    ClashDetected(kind=kind, event_id=stored.id, report=report)
                )
                raise ClashDetectedError(report)
            updated = await self.store.update_event(kind, stored.id, updates)
            if updated is None:
                raise EventNotFound(kind, event_id)

        self.bus.publish(
            EventRescheduled(kind=kind, event_id=updated.id, changed_fields=sorted(updates))
        )
        return updated

    async def cancel(self, kind: EventKind, event_id: str) -> None:
        """Delete an event. Remaining events are not re-checked."""
        if not await self.store.delete_event(kind, event_id):
            raise EventNotFound(kind, event_id)
        self.bus.publish(EventCancelled(kind=kind, event_id=str(event_id)))
