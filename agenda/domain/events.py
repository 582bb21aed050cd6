"""Domain events emitted during the optimistic mutation lifecycle."""

from __future__ import annotations

from pydantic import BaseModel


class MutationEvent(BaseModel):
    """Common shape of every lifecycle event for one mutation target."""

    target: str
    label: str = ""


class MutationApplied(MutationEvent):
    """Fired once the proposed state is visible locally, before persisting."""


class MutationCommitted(MutationEvent):
    """Fired when the remote write succeeded and the snapshot was dropped."""


class MutationRolledBack(MutationEvent):
    """Fired after local state was restored because the remote write failed."""

    error: str


class ConflictDetected(BaseModel):
    """Fired when a settled schedule mutation leaves its item overlapping others."""

    item_id: str
    conflicting_item_ids: list[str]
