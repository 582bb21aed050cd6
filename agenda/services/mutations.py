"""Optimistic commands for agenda items and ordered course content.

Every command follows the same pattern: compute the new local state (raising
validation errors before anything changes), then hand snapshot/apply/
persist/restore callables to the shared coordinator.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from agenda.domain.errors import ItemNotFound, MutationInProgress, RemoteStoreError
from agenda.domain.models import ItemPatch, MutationOutcome, OrderedItem, ScheduledItem, StoreResult
from agenda.repos.base import RemoteStore
from agenda.repos.memory import OrderedItemRepository, ScheduleRepository
from agenda.services import reschedule as timing
from agenda.services.coordinator import OptimisticMutationCoordinator
from agenda.services.reorder import compute_reorder, renumber

logger = logging.getLogger(__name__)


def item_target(item_id: str) -> str:
    return f"item:{item_id}"


def scope_target(parent_id: str) -> str:
    return f"scope:{parent_id}"


def _record_diff(before: dict[str, Any], after: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in after.items() if before.get(key) != value}


# ---------------------------------------------------------------------------
# Agenda items
# ---------------------------------------------------------------------------


class ScheduleCommands:
    """Reschedule, edit, create and delete agenda items optimistically."""

    def __init__(
        self,
        repo: ScheduleRepository,
        store: RemoteStore,
        coordinator: OptimisticMutationCoordinator,
    ) -> None:
        self.repo = repo
        self.store = store
        self.coordinator = coordinator

    def _require(self, item_id: str) -> ScheduledItem:
        item = self.repo.get(item_id)
        if item is None:
            raise ItemNotFound(item_id)
        return item

    async def reschedule(self, item_id: str, start: datetime, end: datetime) -> MutationOutcome:
        current = self._require(item_id)
        return await self._replace(current, timing.reschedule(current, start, end), "reschedule")

    async def drop_on_hour(self, item_id: str, day: date, hour: int) -> MutationOutcome:
        current = self._require(item_id)
        return await self._replace(current, timing.move_to_slot(current, day, hour), "drop")

    async def shift_days(self, item_id: str, days: int) -> MutationOutcome:
        current = self._require(item_id)
        return await self._replace(current, timing.shift_days(current, days), "shift")

    async def resize(self, item_id: str, end: datetime) -> MutationOutcome:
        current = self._require(item_id)
        return await self._replace(current, timing.resize(current, end), "resize")

    async def update(self, item_id: str, patch: ItemPatch | dict[str, Any]) -> MutationOutcome:
        """Apply a colour, title, time or detail edit."""
        current = self._require(item_id)
        if not isinstance(patch, ItemPatch):
            patch = ItemPatch.model_validate(patch)
        changes = patch.model_dump(exclude_unset=True)
        return await self._replace(current, timing.with_changes(current, changes), "update")

    async def create(self, item: ScheduledItem) -> MutationOutcome:
        """Show *item* immediately and swap in the server-assigned id on commit."""
        local_id = item.id

        def on_commit(result: StoreResult) -> ScheduledItem:
            if not isinstance(result, StoreResult) or not result.data:
                return item
            stored = ScheduledItem.from_record(result.data)
            self.repo.put(local_id, None)
            self.repo.add(stored)
            return stored

        return await self.coordinator.run(
            item_target(local_id),
            snapshot=lambda: self.repo.get(local_id),
            apply=lambda: self._put(local_id, item),
            persist=lambda: self.store.create_item(item.to_record()),
            restore=lambda saved: self.repo.put(local_id, saved),
            on_commit=on_commit,
            label="create",
        )

    async def delete(self, item_id: str) -> MutationOutcome:
        self._require(item_id)
        return await self.coordinator.run(
            item_target(item_id),
            snapshot=lambda: self.repo.get(item_id),
            apply=lambda: self._put(item_id, None),
            persist=lambda: self.store.delete_item(item_id),
            restore=lambda saved: self.repo.put(item_id, saved),
            label="delete",
        )

    async def _replace(self, current: ScheduledItem, updated: ScheduledItem, label: str) -> MutationOutcome:
        patch = _record_diff(current.to_record(), updated.to_record())
        return await self.coordinator.run(
            item_target(current.id),
            snapshot=lambda: self.repo.get(current.id),
            apply=lambda: self._put(current.id, updated),
            persist=lambda: self.store.update_item(current.id, patch),
            restore=lambda saved: self.repo.put(current.id, saved),
            label=label,
        )

    def _put(self, item_id: str, item: ScheduledItem | None) -> ScheduledItem | None:
        self.repo.put(item_id, item)
        return item


# ---------------------------------------------------------------------------
# Ordered course content
# ---------------------------------------------------------------------------


class OrderedCommands:
    """Reorder, create and delete modules/activities inside one parent scope."""

    def __init__(
        self,
        repo: OrderedItemRepository,
        store: RemoteStore,
        coordinator: OptimisticMutationCoordinator,
    ) -> None:
        self.repo = repo
        self.store = store
        self.coordinator = coordinator

    async def reorder(
        self,
        parent_id: str,
        source_index: int,
        target_index: int,
        *,
        refresh: bool = False,
    ) -> MutationOutcome:
        """Move one item of *parent_id* and persist the new scope order.

        The new order is computed from the scope's current committed order and
        written in one call, so the store never holds a half-applied move.
        With *refresh* the scope is re-read from the store after commit.
        """
        target = scope_target(parent_id)
        current = self.repo.list_scope(parent_id)
        reordered = compute_reorder(current, source_index, target_index)

        before = {item.id: item.order for item in current}
        changed = [item for item in reordered if before[item.id] != item.order]
        if not changed:
            if self.coordinator.is_busy(target):
                raise MutationInProgress(target)
            return MutationOutcome(ok=True, target=target, new_state=current)

        return await self.coordinator.run(
            target,
            snapshot=lambda: self.repo.list_scope(parent_id),
            apply=lambda: self._replace_scope(parent_id, reordered),
            persist=lambda: self.store.write_scope_order(parent_id, [i.id for i in reordered]),
            restore=lambda saved: self.repo.replace_scope(parent_id, saved),
            on_commit=(lambda _: self.refresh(parent_id)) if refresh else None,
            label="reorder",
        )

    async def create(self, item: OrderedItem) -> MutationOutcome:
        """Append *item* at the end of its scope."""
        parent_id = item.parent_id
        local_id = item.id
        appended = item.model_copy(update={"order": len(self.repo.list_scope(parent_id)) + 1})

        def on_commit(result: StoreResult) -> list[OrderedItem]:
            if isinstance(result, StoreResult) and result.data:
                self.repo.delete(local_id)
                self.repo.add(OrderedItem.from_record(result.data))
            return self.repo.list_scope(parent_id)

        def apply() -> list[OrderedItem]:
            self.repo.add(appended)
            return self.repo.list_scope(parent_id)

        return await self.coordinator.run(
            scope_target(parent_id),
            snapshot=lambda: self.repo.list_scope(parent_id),
            apply=apply,
            persist=lambda: self.store.create_item(appended.to_record()),
            restore=lambda saved: self.repo.replace_scope(parent_id, saved),
            on_commit=on_commit,
            label="create",
        )

    async def delete(self, item_id: str) -> MutationOutcome:
        """Remove an item and close the gap it leaves in its scope."""
        item = self.repo.get(item_id)
        if item is None:
            raise ItemNotFound(item_id)
        parent_id = item.parent_id
        current = self.repo.list_scope(parent_id)
        remaining = renumber(i for i in current if i.id != item_id)

        return await self.coordinator.run(
            scope_target(parent_id),
            snapshot=lambda: current,
            apply=lambda: self._replace_scope(parent_id, remaining),
            persist=lambda: self.store.write_scope_order(
                parent_id, [i.id for i in remaining], removed_ids=[item_id]
            ),
            restore=lambda saved: self.repo.replace_scope(parent_id, saved),
            label="delete",
        )

    async def refresh(self, parent_id: str) -> list[OrderedItem]:
        """Replace the local scope with the store's records, if it answers."""
        try:
            result = await self.store.list_items(parent_id)
        except RemoteStoreError as exc:
            logger.warning("Could not refresh %s: %s", parent_id, exc)
            return self.repo.list_scope(parent_id)
        if not result.succeeded:
            logger.warning("Could not refresh %s: %s", parent_id, result.error)
            return self.repo.list_scope(parent_id)
        try:
            fetched = [OrderedItem.from_record(r) for r in result.data or []]
        except ValidationError as exc:
            logger.warning("Ignoring unreadable records for %s: %s", parent_id, exc)
            return self.repo.list_scope(parent_id)
        self.repo.replace_scope(parent_id, fetched)
        return self.repo.list_scope(parent_id)

    def _replace_scope(self, parent_id: str, items: list[OrderedItem]) -> list[OrderedItem]:
        self.repo.replace_scope(parent_id, items)
        return self.repo.list_scope(parent_id)
