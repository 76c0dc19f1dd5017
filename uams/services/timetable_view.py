"""Calendar listing of every scheduled lecture and exam."""

from __future__ import annotations

import asyncio

from uams.domain.models import CalendarEntry, EventKind, Exam, Lecture
from uams.repos.base import EventStore


def _title(event: Lecture | Exam) -> str:
    if event.kind == EventKind.LECTURE:
        return f"Lecture: {event.course_id}" if event.course_id else "Lecture"
    if event.course_id:
        return f"Exam: {event.course_id}"
    if event.exam_category:
        return f"Exam ({event.exam_category})"
    return "Exam"


def to_calendar_entry(event: Lecture | Exam) -> CalendarEntry:
    return CalendarEntry(
        kind=event.kind,
        id=event.id,
        title=_title(event),
        start=event.starts_at(),
        end=event.ends_at(),
        event=event,
    )


async def build_calendar(store: EventStore) -> list[CalendarEntry]:
    """Return lectures then exams, each ordered by date and start time."""
    lectures, exams = await asyncio.gather(
        store.list_events(EventKind.LECTURE),
        store.list_events(EventKind.EXAM),
    )
    return [to_calendar_entry(e) for e in [*lectures, *exams]]
