"""In-memory repositories for local agenda state and a fake remote store."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Iterable, Sequence
from typing import Any

from agenda.domain.errors import RemoteStoreError
from agenda.domain.models import OrderedItem, ScheduledItem, StoreResult, TimelineEntry
from agenda.services.intervals import IntervalSet


class ScheduleRepository:
    """Local copy of the agenda, kept in an ``IntervalSet``."""

    def __init__(self) -> None:
        self._items = IntervalSet()

    @property
    def intervals(self) -> IntervalSet:
        return self._items

    def add(self, item: ScheduledItem) -> None:
        self._items.add(item)

    def get(self, item_id: str) -> ScheduledItem | None:
        return self._items.get(item_id)

    def list_all(self) -> list[ScheduledItem]:
        return list(self._items)

    def delete(self, item_id: str) -> None:
        self._items.remove(item_id)

    def put(self, item_id: str, item: ScheduledItem | None) -> None:
        """Set the entry for *item_id*; ``None`` removes it."""
        self._items.remove(item_id)
        if item is not None:
            self._items.add(item)

    def clear(self) -> None:
        self._items = IntervalSet()


class OrderedItemRepository:
    """Local copy of course modules and activities, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, OrderedItem] = {}

    def add(self, item: OrderedItem) -> None:
        self._store[item.id] = item

    def get(self, item_id: str) -> OrderedItem | None:
        return self._store.get(item_id)

    def list_all(self) -> list[OrderedItem]:
        return list(self._store.values())

    def list_scope(self, parent_id: str) -> list[OrderedItem]:
        """Items of one scope sorted by ``order``."""
        return sorted(
            (item for item in self._store.values() if item.parent_id == parent_id),
            key=lambda item: item.order,
        )

    def replace_scope(self, parent_id: str, items: Iterable[OrderedItem]) -> None:
        """Drop every item of *parent_id* and store *items* in its place."""
        for item_id in [i.id for i in self._store.values() if i.parent_id == parent_id]:
            del self._store[item_id]
        for item in items:
            self._store[item.id] = item

    def delete(self, item_id: str) -> None:
        self._store.pop(item_id, None)

    def clear(self) -> None:
        self._store.clear()


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []

    def add(self, entry: TimelineEntry) -> None:
        self._entries.append(entry)

    def list_for_target(self, target: str) -> list[TimelineEntry]:
        return sorted(
            [e for e in self._entries if e.target == target],
            key=lambda e: e.timestamp,
        )


class ConflictRepository:
    """Holds the conflict-id set derived from the current local agenda."""

    def __init__(self) -> None:
        self._ids: set[str] = set()

    def replace(self, ids: set[str]) -> set[str]:
        """Store the new set and return the ids that were not conflicting before."""
        added = ids - self._ids
        self._ids = set(ids)
        return added

    def ids(self) -> set[str]:
        return set(self._ids)

    def clear(self) -> None:
        self._ids.clear()


# ---------------------------------------------------------------------------
# Fake remote store
# ---------------------------------------------------------------------------


class InMemoryRemoteStore:
    """Dict-backed stand-in for the authoritative store.

    Assigns its own ids on create, can be told to fail the next calls, and
    can hold every call in flight until released.
    """

    scope_keys = ("parentId", "projectId")

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self._ids = itertools.count(1)
        self._failures: list[tuple[int, bool]] = []
        self._gate: asyncio.Event | None = None
        self.calls: list[tuple[str, Any]] = []

    # -- test controls -----------------------------------------------------

    def seed(self, records: Iterable[dict[str, Any]]) -> None:
        for record in records:
            self._records[record["id"]] = dict(record)

    def fail_next(self, count: int = 1, *, status_code: int = 500, raise_error: bool = False) -> None:
        """Make the next *count* calls fail with *status_code* (or raise)."""
        self._failures.extend([(status_code, raise_error)] * count)

    def hold(self) -> None:
        self._gate = asyncio.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()
            self._gate = None

    def get(self, item_id: str) -> dict[str, Any] | None:
        record = self._records.get(item_id)
        return dict(record) if record is not None else None

    # -- RemoteStore -------------------------------------------------------

    async def create_item(self, item: dict[str, Any]) -> StoreResult:
        failure = await self._enter("create", item)
        if failure is not None:
            return failure
        record = dict(item)
        record["id"] = f"srv-{next(self._ids)}"
        self._records[record["id"]] = record
        return StoreResult(status_code=201, data=dict(record))

    async def update_item(self, item_id: str, patch: dict[str, Any]) -> StoreResult:
        failure = await self._enter("update", (item_id, patch))
        if failure is not None:
            return failure
        record = self._records.get(item_id)
        if record is None:
            return StoreResult(ok=False, status_code=404, error=f"{item_id} not found")
        record.update(patch)
        return StoreResult(data=dict(record))

    async def delete_item(self, item_id: str) -> StoreResult:
        failure = await self._enter("delete", item_id)
        if failure is not None:
            return failure
        if self._records.pop(item_id, None) is None:
            return StoreResult(ok=False, status_code=404, error=f"{item_id} not found")
        return StoreResult(status_code=204)

    async def list_items(self, scope_id: str) -> StoreResult:
        failure = await self._enter("list", scope_id)
        if failure is not None:
            return failure
        records = [
            dict(record)
            for record in self._records.values()
            if any(record.get(key) == scope_id for key in self.scope_keys)
        ]
        return StoreResult(data=records)

    async def write_scope_order(
        self,
        scope_id: str,
        ordered_ids: Sequence[str],
        *,
        removed_ids: Sequence[str] = (),
    ) -> StoreResult:
        failure = await self._enter("write_order", (scope_id, list(ordered_ids), list(removed_ids)))
        if failure is not None:
            return failure
        missing = [i for i in [*ordered_ids, *removed_ids] if i not in self._records]
        if missing:
            return StoreResult(ok=False, status_code=404, error=f"{', '.join(missing)} not found")
        for item_id in removed_ids:
            del self._records[item_id]
        for position, item_id in enumerate(ordered_ids, start=1):
            self._records[item_id]["order"] = position
        return StoreResult(data=[dict(self._records[i]) for i in ordered_ids])

    async def _enter(self, operation: str, payload: Any) -> StoreResult | None:
        self.calls.append((operation, payload))
        if self._gate is not None:
            await self._gate.wait()
        else:
            await asyncio.sleep(0)
        if not self._failures:
            return None
        status_code, raise_error = self._failures.pop(0)
        if raise_error:
            raise RemoteStoreError(f"{operation} failed", status_code=status_code)
        return StoreResult(ok=False, status_code=status_code, error=f"{operation} failed")
