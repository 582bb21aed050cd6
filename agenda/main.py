"""FastAPI application serving the agenda and course ordering engines."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, time

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from agenda.bootstrap.logging import configure_logging
from agenda.config import StoreSettings, get_settings
from agenda.domain.bus import EventBus
from agenda.domain.errors import (
    InvalidIndex,
    InvalidRange,
    ItemNotFound,
    MutationInProgress,
)
from agenda.domain.handlers import HandlerRegistry
from agenda.domain.models import (
    BusinessHours,
    ConflictsResponse,
    DropRequest,
    ItemPatch,
    MutationOutcome,
    NextAvailableResponse,
    OrderedItem,
    OrderedItemCreate,
    ReorderRequest,
    RescheduleRequest,
    ScheduledItem,
    ShiftRequest,
    Slot,
    TimelineEntry,
)
from agenda.repos.base import RemoteStore
from agenda.repos.http import HttpRemoteStore
from agenda.repos.memory import (
    ConflictRepository,
    InMemoryRemoteStore,
    OrderedItemRepository,
    ScheduleRepository,
    TimelineRepository,
)
from agenda.services.conflicts import conflict_pairs
from agenda.services.coordinator import OptimisticMutationCoordinator
from agenda.services.mutations import OrderedCommands, ScheduleCommands
from agenda.services.slots import build_slots_for, default_end, next_available_start

logger = logging.getLogger(__name__)


def _build_store(store_settings: StoreSettings) -> RemoteStore:
    if store_settings.is_remote:
        client = httpx.AsyncClient(
            base_url=store_settings.url,
            timeout=store_settings.timeout_seconds,
        )
        return HttpRemoteStore(client)
    return InMemoryRemoteStore()


# ── Singletons (created at import time for simplicity) ────────────────
settings = get_settings()

event_bus = EventBus()
schedule_repo = ScheduleRepository()
ordered_repo = OrderedItemRepository()
conflict_repo = ConflictRepository()
timeline_repo = TimelineRepository()
remote_store = _build_store(settings.store)
coordinator = OptimisticMutationCoordinator(bus=event_bus)

handler_registry = HandlerRegistry(
    bus=event_bus,
    schedule_repo=schedule_repo,
    conflict_repo=conflict_repo,
    timeline_repo=timeline_repo,
)

schedule_commands = ScheduleCommands(schedule_repo, remote_store, coordinator)
ordered_commands = OrderedCommands(ordered_repo, remote_store, coordinator)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    logger.info("Agenda engine started with %s", type(remote_store).__name__)
    yield
    if isinstance(remote_store, HttpRemoteStore):
        await remote_store.aclose()


app = FastAPI(title="Agenda Engine", lifespan=lifespan)


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(InvalidIndex)
@app.exception_handler(InvalidRange)
async def _invalid_request(_: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def _invalid_item(_: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(MutationInProgress)
async def _mutation_in_progress(_: Request, exc: MutationInProgress) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ItemNotFound)
async def _not_found(_: Request, exc: ItemNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def _settle(outcome: MutationOutcome):
    """Return the new state, or a 502 carrying the state that was restored."""
    if outcome.ok:
        return outcome.new_state
    return JSONResponse(
        status_code=502,
        content={
            "detail": str(outcome.error),
            "reverted_state": jsonable_encoder(outcome.reverted_state, by_alias=True),
        },
    )


# ── Ordered course content ────────────────────────────────────────────


@app.get("/scopes/{parent_id}/items", response_model=list[OrderedItem])
def list_scope_items(parent_id: str) -> list[OrderedItem]:
    """Return the modules or activities of one parent in display order."""
    return ordered_repo.list_scope(parent_id)


@app.post("/scopes/{parent_id}/items", response_model=list[OrderedItem], status_code=201)
async def create_scope_item(parent_id: str, body: OrderedItemCreate):
    """Append a new item to the end of the scope."""
    item = OrderedItem.model_validate({**body.model_dump(), "parentId": parent_id, "order": 0})
    return _settle(await ordered_commands.create(item))


@app.post("/scopes/{parent_id}/reorder", response_model=list[OrderedItem])
async def reorder_scope_items(parent_id: str, body: ReorderRequest):
    """Move one item of the scope after a drag and drop."""
    outcome = await ordered_commands.reorder(
        parent_id, body.source_index, body.target_index, refresh=body.refresh
    )
    return _settle(outcome)


@app.delete("/ordered-items/{item_id}", response_model=list[OrderedItem])
async def delete_ordered_item(item_id: str):
    """Delete an item and return its renumbered scope."""
    return _settle(await ordered_commands.delete(item_id))


# ── Agenda items ──────────────────────────────────────────────────────


@app.get("/events", response_model=list[ScheduledItem])
def list_events() -> list[ScheduledItem]:
    """Return every agenda item in start order."""
    return schedule_repo.list_all()


@app.post("/events", response_model=ScheduledItem, status_code=201)
async def create_event(item: ScheduledItem):
    return _settle(await schedule_commands.create(item))


@app.get("/events/{event_id}", response_model=ScheduledItem)
def get_event(event_id: str) -> ScheduledItem:
    """Return a single agenda item by id."""
    item = schedule_repo.get(event_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return item


@app.patch("/events/{event_id}", response_model=ScheduledItem)
async def update_event(event_id: str, patch: ItemPatch):
    """Edit title, colour, times or any pass-through field."""
    return _settle(await schedule_commands.update(event_id, patch))


@app.post("/events/{event_id}/reschedule", response_model=ScheduledItem)
async def reschedule_event(event_id: str, body: RescheduleRequest):
    return _settle(await schedule_commands.reschedule(event_id, body.start, body.end))


@app.post("/events/{event_id}/drop", response_model=ScheduledItem)
async def drop_event(event_id: str, body: DropRequest):
    """Drop an item on an hour slot, keeping its duration."""
    return _settle(await schedule_commands.drop_on_hour(event_id, body.day, body.hour))


@app.post("/events/{event_id}/shift", response_model=ScheduledItem)
async def shift_event(event_id: str, body: ShiftRequest):
    """Move an item to the next (``days=1``) or previous (``days=-1``) day."""
    return _settle(await schedule_commands.shift_days(event_id, body.days))


@app.delete("/events/{event_id}")
async def delete_event(event_id: str):
    outcome = await schedule_commands.delete(event_id)
    if not outcome.ok:
        return _settle(outcome)
    return {"status": "deleted", "id": event_id}


# ── Derived views ─────────────────────────────────────────────────────


@app.get("/conflicts", response_model=ConflictsResponse)
def list_conflicts() -> ConflictsResponse:
    """Return the ids of every overlapping item and the pairs they form."""
    ids = handler_registry.recompute_conflicts()
    return ConflictsResponse(
        ids=sorted(ids),
        pairs=conflict_pairs(schedule_repo.intervals),
    )


@app.get("/slots", response_model=list[Slot])
def list_slots(day: date, extended: bool = False, collapse: bool = False) -> list[Slot]:
    """Return the slot table of *day* bound to the configured business hours."""
    configured = settings.business_hours.to_business_hours()
    hours = BusinessHours.extended(configured.granularity_minutes) if extended else configured
    return build_slots_for(
        day,
        schedule_repo.list_all(),
        hours,
        collapse_covered=collapse,
    )


@app.get("/slots/next-available", response_model=NextAvailableResponse)
def suggest_next_slot(day: date, at: time = time(9, 0)) -> NextAvailableResponse:
    """Suggest start and end for a new item added to *day*."""
    start = next_available_start(day, schedule_repo.list_all(), at)
    return NextAvailableResponse(start=start, end=default_end(start))


@app.get("/timeline/{target}", response_model=list[TimelineEntry])
def get_timeline(target: str) -> list[TimelineEntry]:
    """Return the mutation timeline of a target such as ``item:<id>``."""
    return timeline_repo.list_for_target(target)
