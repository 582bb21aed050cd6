"""Service for reordering course modules and activities after a drag and drop."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from agenda.domain.errors import InvalidIndex
from agenda.domain.models import OrderedItem


def compute_reorder(
    sequence: Sequence[OrderedItem],
    source_index: int,
    target_index: int,
) -> list[OrderedItem]:
    """Move the item at *source_index* to the insertion point *target_index*.

    *target_index* is an insertion point in the original sequence, so
    ``len(sequence)`` means "after the last item". Dropping an item onto its
    own position or the slot right after it leaves the sequence as it was.
    Any real move renumbers ``order`` densely from 1, whatever the input
    numbering was. The input items are never modified.
    """
    length = len(sequence)
    if not 0 <= source_index < length:
        raise InvalidIndex(source_index, length, name="source_index")
    if not 0 <= target_index <= length:
        raise InvalidIndex(target_index, length, name="target_index")

    if not can_drop(source_index, target_index):
        return list(sequence)

    reordered = list(sequence)
    moved = reordered.pop(source_index)
    if source_index < target_index:
        target_index -= 1
    reordered.insert(target_index, moved)
    return renumber(reordered)


def can_drop(source_index: int, drop_index: int) -> bool:
    """Return False for the two drop zones that would not move the item."""
    return drop_index != source_index and drop_index != source_index + 1


def resolve_drop_index(anchor_index: int | None, *, length: int | None = None) -> int:
    """Translate a drop zone into an insertion point.

    Drop zones sit between cards: the leading zone has no anchor (``None`` or
    ``-1``) and maps to 0, every other zone follows the card at
    *anchor_index* and maps to ``anchor_index + 1``. Passing only *length*
    addresses the trailing zone after the last card.
    """
    if anchor_index is None:
        return 0 if length is None else length
    if anchor_index < 0:
        return 0
    return anchor_index + 1


def renumber(items: Iterable[OrderedItem]) -> list[OrderedItem]:
    return [
        item if item.order == position else item.model_copy(update={"order": position})
        for position, item in enumerate(items, start=1)
    ]


def is_dense(items: Iterable[OrderedItem]) -> bool:
    orders = sorted(item.order for item in items)
    return orders == list(range(1, len(orders) + 1))


def scope_items(items: Iterable[OrderedItem], parent_id: str) -> list[OrderedItem]:
    """Items of one parent scope in display order."""
    return sorted(
        (item for item in items if item.parent_id == parent_id),
        key=lambda item: item.order,
    )


def reorder_scope(
    items: Sequence[OrderedItem],
    parent_id: str,
    source_index: int,
    target_index: int,
) -> list[OrderedItem]:
    """Reorder the items of *parent_id* and return the full list.

    Indices address the scope's items in ``order`` order. Items belonging to
    other scopes are returned untouched and in their original positions.
    """
    reordered = {
        item.id: item
        for item in compute_reorder(scope_items(items, parent_id), source_index, target_index)
    }
    return [reordered.get(item.id, item) if item.parent_id == parent_id else item for item in items]
