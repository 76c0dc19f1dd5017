"""
Supabase-backed event store for the lecture and exam timetables.

Tables (column names as they exist in the hosted database):

    classtimetable  classtimetableid, date, starttime, endtime, vid, lid, cid
    examtimetable   examtimetableid, date, starttime, endtime, vid, lid, cid,
                    examcategory, Status

Older deployments name the primary key column ``id``. When the configured
key column is reported missing, the store retries with the fallback column
and, once that query succeeds, keeps using it for the rest of its lifetime.
"""

from __future__ import annotations

import asyncio
import datetime as dt
from typing import Any, Callable

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import AsyncClient, acreate_client

from uams.core.config import Settings
from uams.core.logging_config import get_logger
from uams.domain.errors import StoreUnavailable
from uams.domain.models import EventKind, Exam, Lecture

logger = get_logger(__name__)

_COMMON_COLUMNS = "date, starttime, endtime, vid, lid, cid"
_EXAM_COLUMNS = f"{_COMMON_COLUMNS}, examcategory, Status"

# model field -> table column
_COLUMN_NAMES = {
    "date": "date",
    "start_time": "starttime",
    "end_time": "endtime",
    "venue_id": "vid",
    "lecturer_id": "lid",
    "course_id": "cid",
    "exam_category": "examcategory",
    "exam_status": "Status",
}

_MISSING_COLUMN_CODE = "42703"


def _names_missing_column(exc: APIError, column: str) -> bool:
    message = exc.message or ""
    missing = exc.code == _MISSING_COLUMN_CODE or "does not exist" in message
    return missing and column in message


def _to_column_value(value: Any) -> Any:
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    return value


def fields_to_row(fields: dict[str, Any]) -> dict[str, Any]:
    """Map model field names/values to a table row payload."""
    return {
        _COLUMN_NAMES[name]: _to_column_value(value)
        for name, value in fields.items()
        if name in _COLUMN_NAMES
    }


def row_to_event(kind: EventKind, row: dict[str, Any], pk: str) -> Lecture | Exam:
    """Build a Lecture/Exam from a table row; raises ValidationError if unreadable."""
    data = {
        "id": row.get(pk, row.get("id")),
        "date": row.get("date"),
        "start_time": row.get("starttime"),
        "end_time": row.get("endtime"),
        "venue_id": row.get("vid"),
        "lecturer_id": row.get("lid"),
        "course_id": row.get("cid"),
    }
    if kind == EventKind.LECTURE:
        return Lecture(**data)
    return Exam(
        **data,
        exam_category=row.get("examcategory") or None,
        exam_status=row.get("Status") or None,
    )


class SupabaseEventStore:
    def __init__(self, settings: Settings, client: AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client
        self._tables = {
            EventKind.LECTURE: settings.lecture_table,
            EventKind.EXAM: settings.exam_table,
        }
        self._pks = {
            EventKind.LECTURE: settings.lecture_pk,
            EventKind.EXAM: settings.exam_pk,
        }
        self._fallback_pk = settings.fallback_pk
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> AsyncClient:
        if self._client is not None:
            return self._client
        async with self._client_lock:
            # Concurrent fetches may have queued on the lock behind the creator
            if self._client is None:
                if not self._settings.uses_supabase:
                    raise StoreUnavailable("Supabase URL and key are not configured")
                self._client = await acreate_client(
                    self._settings.supabase_url, self._settings.supabase_anon_key
                )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP session of the client, if one was created."""
        client, self._client = self._client, None
        if client is not None:
            await client.postgrest.aclose()

    def pk_for(self, kind: EventKind) -> str:
        return self._pks[kind]

    def _columns(self, kind: EventKind, pk: str) -> str:
        columns = _EXAM_COLUMNS if kind == EventKind.EXAM else _COMMON_COLUMNS
        return f"{pk}, {columns}"

    def _unavailable(self, kind: EventKind, exc: APIError) -> StoreUnavailable:
        table = self._tables[kind]
        logger.error("Query on %s failed: %s", table, exc.message)
        return StoreUnavailable(f"query on {table} failed: {exc.message}")

    async def _execute(
        self, kind: EventKind, build: Callable[[Any, str], Any], pk: str
    ) -> list[dict[str, Any]]:
        client = await self._get_client()
        table = self._tables[kind]
        try:
            response = await build(client.table(table), pk).execute()
        except httpx.HTTPError as exc:
            logger.error("Could not reach Supabase for %s: %s", table, exc)
            raise StoreUnavailable(f"could not reach the database for {table}") from exc
        return response.data or []

    async def _run(self, kind: EventKind, build: Callable[[Any, str], Any]) -> list[dict[str, Any]]:
        """Execute ``build(table_query, pk)`` and return the response rows.

        When the error names the configured key column as missing, retries
        once with the fallback column and keeps it only if that succeeds.
        Every data-access failure becomes StoreUnavailable.
        """
        pk = self._pks[kind]
        try:
            return await self._execute(kind, build, pk)
        except APIError as exc:
            if not (pk != self._fallback_pk and _names_missing_column(exc, pk)):
                raise self._unavailable(kind, exc) from exc

        logger.info(
            "Column %s.%s missing, retrying with %s",
            self._tables[kind],
            pk,
            self._fallback_pk,
        )
        try:
            rows = await self._execute(kind, build, self._fallback_pk)
        except APIError as exc:
            raise self._unavailable(kind, exc) from exc
        self._pks[kind] = self._fallback_pk
        return rows

    def _parse_strict(self, kind: EventKind, rows: list[dict[str, Any]]) -> list[Lecture | Exam]:
        try:
            return [row_to_event(kind, row, self._pks[kind]) for row in rows]
        except ValidationError as exc:
            raise StoreUnavailable(
                f"unreadable row in {self._tables[kind]}: {exc.error_count()} errors"
            ) from exc

    async def fetch_events_on_date(
        self, kind: EventKind, on_date: dt.date
    ) -> list[Lecture | Exam]:
        rows = await self._run(
            kind,
            lambda q, pk: q.select(self._columns(kind, pk)).eq("date", on_date.isoformat()),
        )
        # An unreadable row cannot be checked, so the whole fetch fails
        return self._parse_strict(kind, rows)

    async def list_events(self, kind: EventKind) -> list[Lecture | Exam]:
        rows = await self._run(
            kind,
            lambda q, pk: q.select(self._columns(kind, pk)).order("date").order("starttime"),
        )
        events: list[Lecture | Exam] = []
        for row in rows:
            try:
                events.append(row_to_event(kind, row, self._pks[kind]))
            except ValidationError:
                logger.warning("Skipping unreadable %s row: %r", self._tables[kind], row)
        return events

    async def get_event(self, kind: EventKind, event_id: str) -> Lecture | Exam | None:
        rows = await self._run(
            kind, lambda q, pk: q.select(self._columns(kind, pk)).eq(pk, event_id)
        )
        if not rows:
            return None
        return self._parse_strict(kind, rows[:1])[0]

    async def insert_event(self, kind: EventKind, fields: dict[str, Any]) -> Lecture | Exam:
        row = fields_to_row(fields)
        rows = await self._run(kind, lambda q, pk: q.insert(row))
        if not rows:
            raise StoreUnavailable(f"insert into {self._tables[kind]} returned no row")
        return self._parse_strict(kind, rows[:1])[0]

    async def update_event(
        self, kind: EventKind, event_id: str, fields: dict[str, Any]
    ) -> Lecture | Exam | None:
        row = fields_to_row(fields)
        if not row:
            return await self.get_event(kind, event_id)
        rows = await self._run(kind, lambda q, pk: q.update(row).eq(pk, event_id))
        if not rows:
            return None
        return self._parse_strict(kind, rows[:1])[0]

    async def delete_event(self, kind: EventKind, event_id: str) -> bool:
        rows = await self._run(kind, lambda q, pk: q.delete().eq(pk, event_id))
        return bool(rows)
