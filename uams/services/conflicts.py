"""Clash detection for proposed lecture and exam slots."""

from __future__ import annotations

import asyncio
from typing import Any

from uams.core.logging_config import get_logger
from uams.domain.errors import InvalidInterval, StoreUnavailable
from uams.domain.models import (
    Clash,
    ClashCandidate,
    ClashReport,
    ClashType,
    EventKind,
    ExcludeRef,
    Exam,
    Lecture,
)
from uams.repos.base import EventStore

logger = get_logger(__name__)


def overlaps(a_start: Any, a_end: Any, b_start: Any, b_end: Any) -> bool:
    """Return True when two intervals on the same day intersect.

    Overlap rule: a_start < b_end AND b_start < a_end.
    Exact boundary touches (a_end == b_start) are NOT considered clashes.
    """
    return a_start < b_end and b_start < a_end


def _same_resource(ours: str | None, theirs: str | None) -> bool:
    # An unassigned venue/lecturer never clashes with anything.
    return bool(ours) and bool(theirs) and ours == theirs


async def _fetch_same_day(store: EventStore, candidate: ClashCandidate) -> list[Lecture | Exam]:
    try:
        lectures, exams = await asyncio.gather(
            store.fetch_events_on_date(EventKind.LECTURE, candidate.date),
            store.fetch_events_on_date(EventKind.EXAM, candidate.date),
        )
    except StoreUnavailable:
        logger.warning("Clash check for %s aborted: event store unavailable", candidate.date)
        raise
    except Exception as exc:
        logger.error("Clash check for %s failed while reading events: %s", candidate.date, exc)
        raise StoreUnavailable(f"could not read events on {candidate.date}: {exc}") from exc
    return [*lectures, *exams]


async def check_clash(
    store: EventStore,
    candidate: ClashCandidate,
    exclude: ExcludeRef | None = None,
) -> ClashReport:
    """Report every same-day event sharing a venue or lecturer with *candidate*.

    Lectures are reported before exams, each in store order. One existing
    event may appear twice, once per matching resource. Course ids are not
    compared. Raises ``InvalidInterval`` for a candidate whose start is not
    before its end and ``StoreUnavailable`` when the store cannot be read.
    """
    if candidate.start_time >= candidate.end_time:
        raise InvalidInterval(candidate.start_time, candidate.end_time)

    existing = await _fetch_same_day(store, candidate)
    if exclude is not None:
        existing = [e for e in existing if not exclude.matches(e)]

    start, end = candidate.starts_at(), candidate.ends_at()
    clashes: list[Clash] = []
    for event in existing:
        if not overlaps(start, end, event.starts_at(), event.ends_at()):
            continue
        if _same_resource(candidate.venue_id, event.venue_id):
            clashes.append(Clash(type=ClashType.VENUE, event=event))
        if _same_resource(candidate.lecturer_id, event.lecturer_id):
            clashes.append(Clash(type=ClashType.LECTURER, event=event))

    logger.debug(
        "Checked %s %s-%s against %d events: %d clashes",
        candidate.date,
        candidate.start_time,
        candidate.end_time,
        len(existing),
        len(clashes),
    )
    return ClashReport(clashes=clashes)
