"""Domain models for lecture and exam scheduling."""

from __future__ import annotations

import datetime as dt
import uuid
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class EventKind(StrEnum):
    LECTURE = "lecture"
    EXAM = "exam"


class ExamCategory(StrEnum):
    MID = "Mid"
    FINAL = "Final"
    PRACTICAL = "Practical"
    ASSIGNMENT = "Assignment"


class ExamStatus(StrEnum):
    PROPER = "Proper"
    REPEAT = "Repeat"


class ClashType(StrEnum):
    VENUE = "VENUE"
    LECTURER = "LECTURER"

    @property
    def label(self) -> str:
        return self.value.lower()


class TimelineEntryType(StrEnum):
    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"
    CLASH_REJECTED = "clash_rejected"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def normalise_identifier(value: Any) -> str | None:
    """Coerce a venue/lecturer/course/event id to a string, blanks to None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ---------------------------------------------------------------------------
# Scheduled events
# ---------------------------------------------------------------------------


class _Slot(BaseModel):
    """A date, a time interval and the resources it occupies."""

    date: dt.date
    start_time: dt.time
    end_time: dt.time
    venue_id: str | None = None
    lecturer_id: str | None = None
    course_id: str | None = None

    @field_validator("venue_id", "lecturer_id", "course_id", mode="before")
    @classmethod
    def _normalise_ids(cls, value: Any) -> str | None:
        return normalise_identifier(value)

    def starts_at(self) -> dt.datetime:
        return dt.datetime.combine(self.date, self.start_time)

    def ends_at(self) -> dt.datetime:
        return dt.datetime.combine(self.date, self.end_time)


class _StoredEvent(_Slot):
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> str:
        text = normalise_identifier(value)
        if text is None:
            raise ValueError("event id must not be empty")
        return text


class Lecture(_StoredEvent):
    kind: Literal[EventKind.LECTURE] = EventKind.LECTURE


class Exam(_StoredEvent):
    kind: Literal[EventKind.EXAM] = EventKind.EXAM
    exam_category: ExamCategory | None = None
    exam_status: ExamStatus | None = None


# Stored intervals are taken as-is, even when start >= end.
ScheduledEvent = Annotated[Union[Lecture, Exam], Field(discriminator="kind")]


class ExcludeRef(BaseModel):
    """Identity of an existing event that must not clash with itself."""

    kind: EventKind
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> str:
        text = normalise_identifier(value)
        if text is None:
            raise ValueError("exclude id must not be empty")
        return text

    def matches(self, event: Lecture | Exam) -> bool:
        return self.kind == event.kind and self.id == event.id


class ClashCandidate(_Slot):
    """A proposed slot to validate before it is written."""

    @classmethod
    def from_event(cls, event: _Slot) -> ClashCandidate:
        return cls(
            date=event.date,
            start_time=event.start_time,
            end_time=event.end_time,
            venue_id=event.venue_id,
            lecturer_id=event.lecturer_id,
            course_id=event.course_id,
        )


# ---------------------------------------------------------------------------
# Clash reports
# ---------------------------------------------------------------------------


class Clash(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: ClashType
    event: ScheduledEvent = Field(alias="with")

    def describe(self) -> str:
        ev = self.event
        return (
            f"{ev.kind} {ev.id} on {ev.date.isoformat()} "
            f"{ev.start_time:%H:%M}-{ev.end_time:%H:%M}"
        )


class ClashReport(BaseModel):
    clashes: list[Clash] = Field(default_factory=list)

    @property
    def has_clashes(self) -> bool:
        return bool(self.clashes)

    def types(self) -> list[ClashType]:
        """Distinct clash types in the order they were first reported."""
        seen: list[ClashType] = []
        for clash in self.clashes:
            if clash.type not in seen:
                seen.append(clash.type)
        return seen

    def summary(self) -> str:
        if not self.clashes:
            return "No clashes."
        kinds = ", ".join(t.label for t in self.types())
        groups = []
        for clash_type in self.types():
            described = ", ".join(
                c.describe() for c in self.clashes if c.type == clash_type
            )
            groups.append(f"{clash_type.label} with {described}")
        return f"Clash detected ({kinds}): " + "; ".join(groups)


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


class TimelineEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    event_kind: EventKind
    event_id: str
    timestamp: dt.datetime = Field(default_factory=_utcnow)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


class CalendarEntry(BaseModel):
    kind: EventKind
    id: str
    title: str
    start: dt.datetime
    end: dt.datetime
    event: ScheduledEvent


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class _Draft(_Slot):
    @model_validator(mode="after")
    def _end_after_start(self) -> _Draft:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class LectureDraft(_Draft):
    kind: Literal[EventKind.LECTURE] = EventKind.LECTURE


class ExamDraft(_Draft):
    kind: Literal[EventKind.EXAM] = EventKind.EXAM
    exam_category: ExamCategory = ExamCategory.MID
    exam_status: ExamStatus = ExamStatus.PROPER


class EventChanges(BaseModel):
    """Partial update of a scheduled event; unset fields are left alone."""

    date: dt.date | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    venue_id: str | None = None
    lecturer_id: str | None = None
    course_id: str | None = None
    exam_category: ExamCategory | None = None
    exam_status: ExamStatus | None = None

    @field_validator("venue_id", "lecturer_id", "course_id", mode="before")
    @classmethod
    def _normalise_ids(cls, value: Any) -> str | None:
        return normalise_identifier(value)


class CheckClashRequest(BaseModel):
    candidate: ClashCandidate
    exclude: ExcludeRef | None = None


class ClashErrorDetail(BaseModel):
    message: str
    clashes: list[Clash]
