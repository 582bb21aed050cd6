"""Remote store client speaking JSON over HTTP."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from agenda.domain.errors import RemoteStoreError
from agenda.domain.models import StoreResult

logger = logging.getLogger(__name__)


class HttpRemoteStore:
    """``RemoteStore`` backed by an ``httpx.AsyncClient``.

    The client owns the base URL, headers and timeout. Transport failures
    raise ``RemoteStoreError``; non-2xx responses are returned as failed
    ``StoreResult`` values so the coordinator rolls back either way.
    """

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http_client = http_client

    async def create_item(self, item: dict[str, Any]) -> StoreResult:
        return await self._send("POST", "/items", json=item)

    async def update_item(self, item_id: str, patch: dict[str, Any]) -> StoreResult:
        return await self._send("PATCH", f"/items/{item_id}", json=patch)

    async def delete_item(self, item_id: str) -> StoreResult:
        return await self._send("DELETE", f"/items/{item_id}")

    async def list_items(self, scope_id: str) -> StoreResult:
        return await self._send("GET", "/items", params={"scope": scope_id})

    async def write_scope_order(
        self,
        scope_id: str,
        ordered_ids: Sequence[str],
        *,
        removed_ids: Sequence[str] = (),
    ) -> StoreResult:
        payload = {"order": list(ordered_ids), "removed": list(removed_ids)}
        return await self._send("POST", f"/scopes/{scope_id}/order", json=payload)

    async def aclose(self) -> None:
        await self._http_client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> StoreResult:
        try:
            response = await self._http_client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"{method} {url} failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            logger.warning("%s %s answered %s", method, url, response.status_code)
            return StoreResult(
                ok=False,
                status_code=response.status_code,
                error=_safe_error_message(response),
            )

        data = None
        if response.content:
            try:
                data = response.json()
            except ValueError as exc:
                raise RemoteStoreError(
                    f"{method} {url} returned invalid JSON",
                    status_code=response.status_code,
                ) from exc
        return StoreResult(status_code=response.status_code, data=data)


def _safe_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        for key in ("detail", "error", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase or f"HTTP {response.status_code}"
