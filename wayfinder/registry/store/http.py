"""Remote record store backed by the registry HTTP service.

Workspace sessions run client-side, while the record store lives in the
registry service.  ``HttpRecordStore`` implements the RecordStore protocol
over the RPC-style endpoints in ``routers/workspaces.py`` so the session
does not care whether records are local or remote.

HTTP failures are translated back into the same domain exceptions the
local backends raise (404 -> ``RecordNotFoundError``, 422 ->
``CorruptRecordError``); transport errors and 5xx become
``RegistryUnavailableError``.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from wayfinder.registry.errors import (
    CorruptRecordError,
    RecordNotFoundError,
    RegistryUnavailableError,
    WorkspaceError,
)
from wayfinder.registry.models.api import WorkspaceCreate, WorkspaceUpdate
from wayfinder.registry.models.record import RecordDraft, RecordScan, WorkspaceRecord
from wayfinder.registry.store.base import is_valid_workspace_id


class HttpRecordStore:
    """RecordStore implementation that talks to a registry service.

    Pass ``client`` to reuse an existing ``httpx.AsyncClient`` (tests wire one
    to the app via ``ASGITransport``); otherwise one is created for
    ``base_url`` and closed by ``aclose``.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8400",
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._own_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()

    async def _request(self, method: str, endpoint: str, *, workspace_id: str | None = None, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, f"/api/workspaces{endpoint}", **kwargs)
        except httpx.TransportError as exc:
            logger.warning("Registry request failed: {} {} - {}", method, endpoint, exc)
            raise RegistryUnavailableError(str(exc)) from None

        if resp.status_code == httpx.codes.NOT_FOUND:
            raise RecordNotFoundError(workspace_id or endpoint)
        if resp.status_code == httpx.codes.UNPROCESSABLE_ENTITY and workspace_id is not None:
            raise CorruptRecordError(_detail(resp))
        if resp.is_server_error:
            msg = f"Registry error {resp.status_code}: {_detail(resp)}"
            raise RegistryUnavailableError(msg)
        if resp.is_error:
            raise WorkspaceError(_detail(resp))
        if resp.status_code == httpx.codes.NO_CONTENT:
            return None
        return resp.json()

    # -- Write -----------------------------------------------------------------

    async def create(self, draft: RecordDraft) -> WorkspaceRecord:
        data = await self._request("POST", "/register", json=draft.model_dump(mode="json", by_alias=True))
        return WorkspaceRecord.model_validate(data)

    async def create_skeleton(self, body: WorkspaceCreate) -> WorkspaceRecord:
        """Ask the service to generate a skeleton project and register it."""
        data = await self._request("POST", "/create", json=body.model_dump(mode="json", by_alias=True))
        return WorkspaceRecord.model_validate(data)

    async def put(self, record: WorkspaceRecord) -> WorkspaceRecord:
        data = await self._request(
            "POST",
            f"/{record.id}/put",
            workspace_id=record.id,
            json=record.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return WorkspaceRecord.model_validate(data)

    async def update(self, workspace_id: str, patch: WorkspaceUpdate) -> WorkspaceRecord:
        self._check_id(workspace_id)
        data = await self._request(
            "POST",
            f"/{workspace_id}/update",
            workspace_id=workspace_id,
            json=patch.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return WorkspaceRecord.model_validate(data)

    async def touch(self, workspace_id: str) -> WorkspaceRecord:
        self._check_id(workspace_id)
        data = await self._request("POST", f"/{workspace_id}/touch", workspace_id=workspace_id)
        return WorkspaceRecord.model_validate(data)

    # -- Read ------------------------------------------------------------------

    async def get(self, workspace_id: str) -> WorkspaceRecord:
        self._check_id(workspace_id)
        data = await self._request("GET", f"/{workspace_id}/get", workspace_id=workspace_id)
        return WorkspaceRecord.model_validate(data)

    async def list(self) -> RecordScan:
        data = await self._request("GET", "/list")
        return RecordScan.model_validate(data)

    # -- Utilities -------------------------------------------------------------

    async def delete(self, workspace_id: str) -> None:
        if not is_valid_workspace_id(workspace_id):
            return
        await self._request("POST", f"/{workspace_id}/delete", workspace_id=workspace_id)

    @staticmethod
    def _check_id(workspace_id: str) -> None:
        if not is_valid_workspace_id(workspace_id):
            raise RecordNotFoundError(workspace_id)


def _detail(resp: httpx.Response) -> str:
    try:
        return str(resp.json().get("detail", resp.text))
    except (ValueError, AttributeError):
        return resp.text
