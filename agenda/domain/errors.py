"""Error taxonomy shared by the ordering and scheduling engines."""

from __future__ import annotations


class AgendaError(Exception):
    """Base class for every error raised by the engines."""


class InvalidIndex(AgendaError, IndexError):
    """Raised when a reorder request references a position outside the sequence."""

    def __init__(self, index: int, length: int, *, name: str = "index") -> None:
        super().__init__(f"{name} {index} is out of range for a sequence of {length} items")
        self.index = index
        self.length = length


class InvalidRange(AgendaError, ValueError):
    """Raised when a business-hours window is empty or malformed."""


class MutationInProgress(AgendaError):
    """Raised when a target already has a mutation applying or persisting."""

    def __init__(self, target: str) -> None:
        super().__init__(f"A mutation is already in flight for {target}")
        self.target = target


class MutationFailed(AgendaError):
    """The remote write behind an optimistic mutation failed.

    Local state has already been restored by the time this is reported.
    """

    def __init__(self, target: str, cause: BaseException | str) -> None:
        super().__init__(f"Mutation of {target} failed: {cause}")
        self.target = target
        self.cause = cause


class RemoteStoreError(AgendaError):
    """Raised by remote stores when a call cannot be completed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ItemNotFound(AgendaError, LookupError):
    """Raised when a mutation names an item the local state does not hold."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"{item_id} not found")
        self.item_id = item_id
