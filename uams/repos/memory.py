"""In-memory repositories for scheduled events and their timelines."""

from __future__ import annotations

import datetime as dt
from typing import Any

from uams.domain.models import (
    EventKind,
    Exam,
    ExamCategory,
    ExamStatus,
    Lecture,
    TimelineEntry,
)

_MODELS: dict[EventKind, type[Lecture] | type[Exam]] = {
    EventKind.LECTURE: Lecture,
    EventKind.EXAM: Exam,
}


class InMemoryEventStore:
    """Dict-backed lecture and exam tables, keyed by id.

    Ids are sequential integers (as text) per table, like serial primary keys.
    """

    def __init__(self) -> None:
        self._tables: dict[EventKind, dict[str, Lecture | Exam]] = {
            kind: {} for kind in EventKind
        }
        self._last_ids = {kind: 0 for kind in EventKind}

    def clear(self) -> None:
        for table in self._tables.values():
            table.clear()
        self._last_ids = {kind: 0 for kind in EventKind}

    def add(self, event: Lecture | Exam) -> None:
        """Store an already-built event as-is (seeding and tests)."""
        self._tables[event.kind][event.id] = event
        if event.id.isdigit():
            self._last_ids[event.kind] = max(self._last_ids[event.kind], int(event.id))

    async def fetch_events_on_date(
        self, kind: EventKind, on_date: dt.date
    ) -> list[Lecture | Exam]:
        return [e for e in self._tables[kind].values() if e.date == on_date]

    async def list_events(self, kind: EventKind) -> list[Lecture | Exam]:
        return sorted(self._tables[kind].values(), key=lambda e: (e.date, e.start_time))

    async def get_event(self, kind: EventKind, event_id: str) -> Lecture | Exam | None:
        return self._tables[kind].get(str(event_id))

    async def insert_event(self, kind: EventKind, fields: dict[str, Any]) -> Lecture | Exam:
        self._last_ids[kind] += 1
        event_id = str(self._last_ids[kind])
        event = _MODELS[kind](**{**fields, "id": event_id, "kind": kind})
        self._tables[kind][event_id] = event
        return event

    async def update_event(
        self, kind: EventKind, event_id: str, fields: dict[str, Any]
    ) -> Lecture | Exam | None:
        stored = self._tables[kind].get(str(event_id))
        if stored is None:
            return None
        updated = _MODELS[kind](**{**stored.model_dump(), **fields})
        self._tables[kind][updated.id] = updated
        return updated

    async def delete_event(self, kind: EventKind, event_id: str) -> bool:
        return self._tables[kind].pop(str(event_id), None) is not None

    async def aclose(self) -> None:
        pass


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []

    def add(self, entry: TimelineEntry) -> None:
        self._entries.append(entry)

    def list_for_event(self, kind: EventKind, event_id: str) -> list[TimelineEntry]:
        return sorted(
            [
                e
                for e in self._entries
                if e.event_kind == kind and e.event_id == str(event_id)
            ],
            key=lambda e: e.timestamp,
        )


# ---------------------------------------------------------------------------
# Seed data – a small day of teaching useful for clash testing
# ---------------------------------------------------------------------------


def _seed_events(store: InMemoryEventStore) -> None:
    today = dt.date.today()
    tomorrow = today + dt.timedelta(days=1)

    store.add(
        Lecture(
            id="1",
            date=today,
            start_time=dt.time(9, 0),
            end_time=dt.time(10, 0),
            venue_id="H_01",
            lecturer_id="2407",
            course_id="IT1010",
        )
    )
    store.add(
        Lecture(
            id="2",
            date=today,
            start_time=dt.time(10, 0),
            end_time=dt.time(12, 0),
            venue_id="H_02",
            lecturer_id="2411",
            course_id="IT1020",
        )
    )
    store.add(
        Exam(
            id="1",
            date=tomorrow,
            start_time=dt.time(13, 30),
            end_time=dt.time(15, 30),
            venue_id="H_01",
            lecturer_id="2407",
            course_id="IT1010",
            exam_category=ExamCategory.MID,
            exam_status=ExamStatus.PROPER,
        )
    )


def create_event_store(seed: bool = False) -> InMemoryEventStore:
    """Return an InMemoryEventStore, optionally pre-loaded with sample data."""
    store = InMemoryEventStore()
    if seed:
        _seed_events(store)
    return store
