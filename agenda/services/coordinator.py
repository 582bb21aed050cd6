"""Optimistic local mutations backed by a remote write, with rollback on failure."""

from __future__ import annotations

import asyncio
import copy
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from agenda.domain.bus import EventBus
from agenda.domain.errors import MutationFailed, MutationInProgress, RemoteStoreError
from agenda.domain.events import MutationApplied, MutationCommitted, MutationRolledBack
from agenda.domain.models import MutationOutcome, MutationState, StoreResult

logger = logging.getLogger(__name__)


class OptimisticMutationCoordinator:
    """Runs one optimistic mutation per target at a time.

    A mutation goes ``applying -> persisting -> committed`` or, when the
    remote write fails, ``applying -> persisting -> rolling_back``; either way
    the target is idle again once :meth:`run` returns. Targets are plain
    strings such as ``"item:<id>"`` or ``"scope:<parent id>"``. Independent
    targets may be in flight at the same time.
    """

    def __init__(self, bus: EventBus | None = None) -> None:
        self._bus = bus
        self._states: dict[str, MutationState] = {}

    def state(self, target: str) -> MutationState:
        return self._states.get(target, MutationState.IDLE)

    def is_busy(self, target: str) -> bool:
        return target in self._states

    async def run(
        self,
        target: str,
        *,
        snapshot: Callable[[], Any],
        apply: Callable[[], Any],
        persist: Callable[[], Awaitable[Any]],
        restore: Callable[[Any], None],
        on_commit: Callable[[Any], Any] | None = None,
        label: str = "",
    ) -> MutationOutcome:
        """Apply locally, persist remotely, then commit or roll back.

        *snapshot* returns the pre-mutation state of the target; the
        coordinator keeps a deep copy of it. *apply* makes the change visible
        locally and returns the new state. *persist* performs the remote
        write; raising, or resolving to a ``StoreResult`` that did not
        succeed, counts as failure. *restore* receives the snapshot and must
        put local state back exactly as it was. *on_commit* gets the remote
        result and may return (or resolve to) a reconciled new state; the
        target stays busy until it has finished. A failing *on_commit* is
        logged and the applied state is kept. Failing bus handlers are logged
        and never change the outcome.

        Raises ``MutationInProgress`` if *target* already has a mutation in
        flight. Exceptions raised by *apply* propagate after the snapshot
        has been restored.
        """
        if self.is_busy(target):
            logger.info("Rejecting %s on %s: mutation already in flight", label or "mutation", target)
            raise MutationInProgress(target)

        self._states[target] = MutationState.APPLYING
        try:
            saved = copy.deepcopy(snapshot())
            try:
                new_state = apply()
            except Exception:
                restore(copy.deepcopy(saved))
                raise
            logger.debug("Applied %s on %s", label or "mutation", target)
            self._publish(MutationApplied(target=target, label=label))

            self._states[target] = MutationState.PERSISTING
            try:
                result = await persist()
            except asyncio.CancelledError:
                logger.warning("Persisting %s on %s was cancelled; restoring snapshot", label, target)
                restore(saved)
                raise
            except Exception as exc:
                return self._roll_back(target, saved, restore, exc, label)

            if isinstance(result, StoreResult) and not result.succeeded:
                cause = RemoteStoreError(
                    result.error or f"remote store answered {result.status_code}",
                    status_code=result.status_code,
                )
                return self._roll_back(target, saved, restore, cause, label)

            self._states[target] = MutationState.COMMITTED
            if on_commit is not None:
                try:
                    reconciled = on_commit(result)
                    if inspect.isawaitable(reconciled):
                        reconciled = await reconciled
                except Exception:
                    logger.warning(
                        "Reconciling %s on %s failed; keeping the applied state",
                        label or "mutation",
                        target,
                        exc_info=True,
                    )
                    reconciled = None
                if reconciled is not None:
                    new_state = reconciled
            logger.info("Committed %s on %s", label or "mutation", target)
            self._publish(MutationCommitted(target=target, label=label))
            return MutationOutcome(ok=True, target=target, new_state=new_state)
        finally:
            self._states.pop(target, None)

    def _roll_back(
        self,
        target: str,
        saved: Any,
        restore: Callable[[Any], None],
        cause: BaseException,
        label: str,
    ) -> MutationOutcome:
        self._states[target] = MutationState.ROLLING_BACK
        logger.warning("Remote write for %s on %s failed: %s", label or "mutation", target, cause)
        reverted = copy.deepcopy(saved)
        restore(saved)
        error = MutationFailed(target, cause)
        self._publish(MutationRolledBack(target=target, label=label, error=str(cause)))
        return MutationOutcome(ok=False, target=target, error=error, reverted_state=reverted)

    def _publish(self, event: Any) -> None:
        if self._bus is None:
            return
        try:
            self._bus.publish(event)
        except Exception:
            logger.warning("Handler for %s on %s failed", type(event).__name__, event.target, exc_info=True)
