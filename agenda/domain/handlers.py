"""Bus handlers keeping the conflict set and mutation timeline current."""

from __future__ import annotations

import logging

from agenda.domain.bus import EventBus
from agenda.domain.events import (
    ConflictDetected,
    MutationApplied,
    MutationCommitted,
    MutationRolledBack,
)
from agenda.domain.models import TimelineEntry, TimelineEntryType
from agenda.repos.memory import ConflictRepository, ScheduleRepository, TimelineRepository
from agenda.services.conflicts import conflicts_with, find_conflicts

logger = logging.getLogger(__name__)

ITEM_PREFIX = "item:"


class HandlerRegistry:
    """Wires mutation lifecycle handlers to the bus.

    Keeps the conflict set in step with the local agenda after every settled
    mutation (committed or rolled back) and records a timeline per target.
    """

    def __init__(
        self,
        bus: EventBus,
        schedule_repo: ScheduleRepository,
        conflict_repo: ConflictRepository,
        timeline_repo: TimelineRepository,
    ) -> None:
        self.bus = bus
        self.schedule_repo = schedule_repo
        self.conflict_repo = conflict_repo
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(MutationApplied, self.on_mutation_applied)
        self.bus.subscribe(MutationCommitted, self.on_mutation_committed)
        self.bus.subscribe(MutationRolledBack, self.on_mutation_rolled_back)
        self.bus.subscribe(ConflictDetected, self.on_conflict_detected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_mutation_applied(self, event: MutationApplied) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                target=event.target,
                type=TimelineEntryType.APPLIED,
                payload={"label": event.label},
            )
        )

    def on_mutation_committed(self, event: MutationCommitted) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                target=event.target,
                type=TimelineEntryType.COMMITTED,
                payload={"label": event.label},
            )
        )
        if event.target.startswith(ITEM_PREFIX):
            self.recompute_conflicts(event.target.removeprefix(ITEM_PREFIX))

    def on_mutation_rolled_back(self, event: MutationRolledBack) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                target=event.target,
                type=TimelineEntryType.ROLLED_BACK,
                payload={"label": event.label, "error": event.error},
            )
        )
        if event.target.startswith(ITEM_PREFIX):
            self.recompute_conflicts()

    def on_conflict_detected(self, event: ConflictDetected) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                target=ITEM_PREFIX + event.item_id,
                type=TimelineEntryType.CONFLICT_DETECTED,
                payload={"conflicting_item_ids": event.conflicting_item_ids},
            )
        )

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def recompute_conflicts(self, item_id: str | None = None) -> set[str]:
        """Rebuild the conflict set from the local agenda.

        When *item_id* names an item that now conflicts, ``ConflictDetected``
        is published with the ids it collides with.
        """
        ids = find_conflicts(self.schedule_repo.intervals)
        self.conflict_repo.replace(ids)
        logger.debug("Conflict set now holds %d item(s)", len(ids))

        if item_id is not None and item_id in ids:
            item = self.schedule_repo.get(item_id)
            if item is not None:
                others = conflicts_with(item, self.schedule_repo.list_all())
                self.bus.publish(
                    ConflictDetected(
                        item_id=item_id,
                        conflicting_item_ids=sorted(other.id for other in others),
                    )
                )
        return ids
