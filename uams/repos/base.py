"""Interface every event store implements."""

from __future__ import annotations

import datetime as dt
from typing import Any, Protocol

from uams.domain.models import EventKind, Exam, Lecture


class EventStore(Protocol):
    """Table-scoped access to the lecture and exam timetables.

    Implementations raise ``StoreUnavailable`` when data cannot be read or
    written; an empty list always means "nothing found", never "could not
    check".
    """

    async def fetch_events_on_date(
        self, kind: EventKind, on_date: dt.date
    ) -> list[Lecture | Exam]: ...

    async def list_events(self, kind: EventKind) -> list[Lecture | Exam]: ...

    async def get_event(self, kind: EventKind, event_id: str) -> Lecture | Exam | None: ...

    async def insert_event(self, kind: EventKind, fields: dict[str, Any]) -> Lecture | Exam: ...

    async def update_event(
        self, kind: EventKind, event_id: str, fields: dict[str, Any]
    ) -> Lecture | Exam | None: ...

    async def delete_event(self, kind: EventKind, event_id: str) -> bool: ...

    async def aclose(self) -> None: ...
