"""Domain event handlers — wired up at application startup."""

from __future__ import annotations

from uams.core.logging_config import get_logger
from uams.domain.bus import EventBus
from uams.domain.events import (
    ClashDetected,
    EventCancelled,
    EventRescheduled,
    EventScheduled,
)
from uams.domain.models import TimelineEntry, TimelineEntryType
from uams.repos.memory import TimelineRepository

logger = get_logger(__name__)


class HandlerRegistry:
    """Records every timetable change in the timeline and the log."""

    def __init__(self, bus: EventBus, timeline_repo: TimelineRepository) -> None:
        self.bus = bus
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(EventScheduled, self.on_event_scheduled)
        self.bus.subscribe(EventRescheduled, self.on_event_rescheduled)
        self.bus.subscribe(EventCancelled, self.on_event_cancelled)
        self.bus.subscribe(ClashDetected, self.on_clash_detected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_event_scheduled(self, event: EventScheduled) -> None:
        logger.info("Scheduled %s %s", event.kind, event.event_id)
        self.timeline_repo.add(
            TimelineEntry(
                event_kind=event.kind,
                event_id=event.event_id,
                type=TimelineEntryType.SCHEDULED,
            )
        )

    def on_event_rescheduled(self, event: EventRescheduled) -> None:
        logger.info(
            "Rescheduled %s %s (%s)",
            event.kind,
            event.event_id,
            ", ".join(event.changed_fields) or "no changes",
        )
        self.timeline_repo.add(
            TimelineEntry(
                event_kind=event.kind,
                event_id=event.event_id,
                type=TimelineEntryType.RESCHEDULED,
                payload={"changed_fields": event.changed_fields},
            )
        )

    def on_event_cancelled(self, event: EventCancelled) -> None:
        logger.info("Cancelled %s %s", event.kind, event.event_id)
        self.timeline_repo.add(
            TimelineEntry(
                event_kind=event.kind,
                event_id=event.event_id,
                type=TimelineEntryType.CANCELLED,
            )
        )

    def on_clash_detected(self, event: ClashDetected) -> None:
        logger.warning("Refused %s write: %s", event.kind, event.report.summary())

        # New events have no id yet, so only edits get a timeline entry
        if event.event_id is None:
            return
        self.timeline_repo.add(
            TimelineEntry(
                event_kind=event.kind,
                event_id=event.event_id,
                type=TimelineEntryType.CLASH_REJECTED,
                payload={
                    "clashes": [
                        {"type": c.type, "kind": c.event.kind, "id": c.event.id}
                        for c in event.report.clashes
                    ]
                },
            )
        )
