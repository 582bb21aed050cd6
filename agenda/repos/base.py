"""Interface of the remote store the coordinator persists to."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from agenda.domain.models import StoreResult


class RemoteStore(Protocol):
    """Calls against the authoritative store.

    Per-item create/update/delete/list plus one bulk write that sets the
    order of a whole scope.

    Implementations either return a ``StoreResult`` or raise. Any result
    that did not succeed is treated as a failed write.
    """

    async def create_item(self, item: dict[str, Any]) -> StoreResult: ...

    async def update_item(self, item_id: str, patch: dict[str, Any]) -> StoreResult: ...

    async def delete_item(self, item_id: str) -> StoreResult: ...

    async def list_items(self, scope_id: str) -> StoreResult: ...

    async def write_scope_order(
        self,
        scope_id: str,
        ordered_ids: Sequence[str],
        *,
        removed_ids: Sequence[str] = (),
    ) -> StoreResult:
        """Set the whole order of one scope in a single write.

        *ordered_ids* receive orders 1..N in sequence and *removed_ids* are
        deleted. Either everything is written or nothing is.
        """
        ...
