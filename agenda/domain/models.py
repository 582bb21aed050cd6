"""Domain models for the agenda and curriculum ordering engines."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from agenda.domain.errors import MutationFailed


class ItemKind(StrEnum):
    COURSE = "course"
    SUPPORT_ACTIVITY = "supportActivity"
    OTHER = "other"


class MutationState(StrEnum):
    IDLE = "idle"
    APPLYING = "applying"
    PERSISTING = "persisting"
    COMMITTED = "committed"
    ROLLING_BACK = "rolling_back"


class TimelineEntryType(StrEnum):
    APPLIED = "applied"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    CONFLICT_DETECTED = "conflict_detected"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Scheduled items
# ---------------------------------------------------------------------------


class CourseDetails(BaseModel):
    kind: Literal["course"] = "course"
    course_id: str | None = None
    module_ids: list[str] = Field(default_factory=list)


class SupportActivityDetails(BaseModel):
    kind: Literal["supportActivity"] = "supportActivity"
    activity_id: str | None = None
    activity_type: str | None = None


class OtherDetails(BaseModel):
    kind: Literal["other"] = "other"
    icon: str | None = None


ItemDetails = Annotated[
    Union[CourseDetails, SupportActivityDetails, OtherDetails],
    Field(discriminator="kind"),
]


class ScheduledItem(BaseModel):
    """An agenda entry occupying the half-open interval ``[start, end)``.

    Descriptive fields the engine does not know about are kept as extras and
    written back unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(default_factory=_new_id)
    title: str = ""
    start: datetime
    end: datetime
    all_day: bool = Field(default=False, alias="allDay")
    group_ids: set[str] = Field(default_factory=set, alias="groupIds")
    color: str | None = None
    details: ItemDetails = Field(default_factory=OtherDetails)

    @field_validator("start", "end")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        """Naive times are taken as UTC so every item compares with every other."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _end_after_start(self) -> ScheduledItem:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    @property
    def kind(self) -> ItemKind:
        return ItemKind(self.details.kind)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def covered_days(self) -> list[date]:
        """Calendar days touched by ``[start, end)``."""
        first = self.start.date()
        last = max(first, (self.end - timedelta(microseconds=1)).date())
        return [first + timedelta(days=i) for i in range((last - first).days + 1)]

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ScheduledItem:
        return cls.model_validate(record)


# ---------------------------------------------------------------------------
# Ordered items
# ---------------------------------------------------------------------------


class OrderedItem(BaseModel):
    """A course module or activity positioned inside its parent scope."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(default_factory=_new_id)
    parent_id: str = Field(alias="parentId")
    order: int
    title: str = ""

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> OrderedItem:
        return cls.model_validate(record)


# ---------------------------------------------------------------------------
# Slots and business hours
# ---------------------------------------------------------------------------


class BusinessHours(BaseModel):
    start_hour: int = 8
    end_hour: int = 18
    granularity_minutes: int = 60

    @classmethod
    def extended(cls, granularity_minutes: int = 60) -> BusinessHours:
        return cls(start_hour=6, end_hour=22, granularity_minutes=granularity_minutes)


class Slot(BaseModel):
    label: str
    hour: int
    minute: int = 0
    start: datetime
    occupant: ScheduledItem | None = None


# ---------------------------------------------------------------------------
# Remote store results and mutation outcomes
# ---------------------------------------------------------------------------


class StoreResult(BaseModel):
    """What a remote store call resolved to."""

    ok: bool = True
    status_code: int = 200
    data: Any = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.ok and 200 <= self.status_code < 300


class MutationOutcome(BaseModel):
    """Result of one optimistic mutation.

    ``ok=True`` carries ``new_state``; ``ok=False`` carries ``error`` and the
    ``reverted_state`` that local state was restored to.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    target: str
    new_state: Any = None
    error: MutationFailed | None = None
    reverted_state: Any = None


class TimelineEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    target: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class ReorderRequest(BaseModel):
    source_index: int
    target_index: int
    refresh: bool = False


class RescheduleRequest(BaseModel):
    start: datetime
    end: datetime


class DropRequest(BaseModel):
    day: date
    hour: int = Field(ge=0, le=23)


class ShiftRequest(BaseModel):
    days: int


class ItemPatch(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: str | None = None
    color: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    all_day: bool | None = Field(default=None, alias="allDay")
    group_ids: set[str] | None = Field(default=None, alias="groupIds")


class OrderedItemCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str = ""


class ConflictsResponse(BaseModel):
    ids: list[str]
    pairs: list[tuple[str, str]] = Field(default_factory=list)


class NextAvailableResponse(BaseModel):
    start: datetime
    end: datetime
