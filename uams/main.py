"""FastAPI application — entry point for the timetable scheduling service."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from uams.core.config import Settings, get_settings
from uams.core.logging_config import get_logger, setup_logging
from uams.domain.bus import EventBus
from uams.domain.errors import (
    ClashDetectedError,
    EventNotFound,
    InvalidInterval,
    SchedulingError,
    StoreUnavailable,
)
from uams.domain.handlers import HandlerRegistry
from uams.domain.models import (
    CalendarEntry,
    CheckClashRequest,
    ClashErrorDetail,
    ClashReport,
    EventChanges,
    EventKind,
    ExamDraft,
    LectureDraft,
    ScheduledEvent,
    TimelineEntry,
)
from uams.repos.base import EventStore
from uams.repos.memory import TimelineRepository, create_event_store
from uams.repos.supabase_store import SupabaseEventStore
from uams.services.scheduling import SchedulingService
from uams.services.timetable_view import build_calendar

settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger(__name__)


def build_event_store(settings: Settings) -> EventStore:
    if settings.uses_supabase:
        logger.info("Using Supabase event store at %s", settings.supabase_url)
        return SupabaseEventStore(settings)
    logger.info("Supabase not configured, using in-memory event store")
    return create_event_store(seed=settings.seed_demo_data)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await event_store.aclose()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
event_store = build_event_store(settings)
timeline_repo = TimelineRepository()
handler_registry = HandlerRegistry(bus=event_bus, timeline_repo=timeline_repo)
scheduler = SchedulingService(store=event_store, bus=event_bus)


def _to_http_error(exc: SchedulingError) -> HTTPException:
    if isinstance(exc, ClashDetectedError):
        detail = ClashErrorDetail(message=exc.report.summary(), clashes=exc.report.clashes)
        return HTTPException(status_code=409, detail=detail.model_dump(mode="json", by_alias=True))
    if isinstance(exc, EventNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidInterval):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, StoreUnavailable):
        return HTTPException(
            status_code=503,
            detail="Could not verify the timetable right now; nothing was saved.",
        )
    return HTTPException(status_code=400, detail=str(exc))


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/clashes/check", response_model=ClashReport)
async def check_clashes(body: CheckClashRequest) -> ClashReport:
    """Report clashes for a proposed slot without writing anything."""
    try:
        return await scheduler.check(body.candidate, body.exclude)
    except SchedulingError as exc:
        raise _to_http_error(exc) from exc


@app.post("/lectures", response_model=ScheduledEvent, status_code=201)
async def schedule_lecture(draft: LectureDraft) -> ScheduledEvent:
    try:
        return await scheduler.schedule(draft)
    except SchedulingError as exc:
        raise _to_http_error(exc) from exc


@app.post("/exams", response_model=ScheduledEvent, status_code=201)
async def schedule_exam(draft: ExamDraft) -> ScheduledEvent:
    try:
        return await scheduler.schedule(draft)
    except SchedulingError as exc:
        raise _to_http_error(exc) from exc


@app.get("/timetable", response_model=list[CalendarEntry])
async def get_timetable() -> list[CalendarEntry]:
    """Return every lecture and exam as calendar entries."""
    try:
        return await build_calendar(event_store)
    except SchedulingError as exc:
        raise _to_http_error(exc) from exc


@app.get("/events/{kind}/{event_id}", response_model=ScheduledEvent)
async def get_event(kind: EventKind, event_id: str) -> ScheduledEvent:
    try:
        return await scheduler.get(kind, event_id)
    except SchedulingError as exc:
        raise _to_http_error(exc) from exc


@app.patch("/events/{kind}/{event_id}", response_model=ScheduledEvent)
async def reschedule_event(
    kind: EventKind, event_id: str, changes: EventChanges
) -> ScheduledEvent:
    """Edit an event; it is re-checked against every other event."""
    try:
        return await scheduler.reschedule(kind, event_id, changes)
    except SchedulingError as exc:
        raise _to_http_error(exc) from exc


@app.delete("/events/{kind}/{event_id}")
async def cancel_event(kind: EventKind, event_id: str) -> dict:
    try:
        await scheduler.cancel(kind, event_id)
    except SchedulingError as exc:
        raise _to_http_error(exc) from exc
    return {"status": "deleted"}


@app.get("/events/{kind}/{event_id}/history", response_model=list[TimelineEntry])
def get_event_history(kind: EventKind, event_id: str) -> list[TimelineEntry]:
    return timeline_repo.list_for_event(kind, event_id)
