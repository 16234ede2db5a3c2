"""Workspace registry endpoints (RPC-style).

All write operations use POST; reads use GET.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from wayfinder.registry.deps import ProjectsRoot, Store
from wayfinder.registry.errors import CorruptRecordError, RecordNotFoundError
from wayfinder.registry.managers import workspaces as manager
from wayfinder.registry.models.api import WorkspaceCreate, WorkspaceUpdate
from wayfinder.registry.models.record import RecordDraft, RecordScan, WorkspaceRecord

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


def _not_found(workspace_id: str) -> HTTPException:
    return HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Workspace '{workspace_id}' not found.")


def _corrupt(workspace_id: str, exc: CorruptRecordError) -> HTTPException:
    return HTTPException(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=f"Workspace '{workspace_id}' record is corrupt: {exc}",
    )


@router.post("/create", response_model=WorkspaceRecord, status_code=status.HTTP_201_CREATED)
async def create_workspace(body: WorkspaceCreate, store: Store, root: ProjectsRoot) -> WorkspaceRecord:
    """Generate a skeleton project on the server and register it."""
    return await manager.create_skeleton_workspace(store, root, body)


@router.post("/register", response_model=WorkspaceRecord)
async def register_workspace(body: RecordDraft, store: Store) -> WorkspaceRecord:
    """Register an imported directory (idempotent on the path hint)."""
    return await manager.register_workspace(store, body)


@router.get("/list", response_model=RecordScan)
async def list_workspaces(store: Store) -> RecordScan:
    """List all readable records; corrupt ones are reported, not returned."""
    return await manager.list_workspaces(store)


@router.get("/{workspace_id}/get", response_model=WorkspaceRecord)
async def get_workspace(workspace_id: str, store: Store) -> WorkspaceRecord:
    """Get a single workspace by ID."""
    try:
        return await manager.get_workspace(store, workspace_id)
    except RecordNotFoundError:
        raise _not_found(workspace_id) from None
    except CorruptRecordError as exc:
        raise _corrupt(workspace_id, exc) from None


@router.post("/{workspace_id}/update", response_model=WorkspaceRecord)
async def update_workspace(workspace_id: str, body: WorkspaceUpdate, store: Store) -> WorkspaceRecord:
    """Partially update a workspace (rename, description, settings)."""
    try:
        return await manager.update_workspace(store, workspace_id, body)
    except RecordNotFoundError:
        raise _not_found(workspace_id) from None
    except CorruptRecordError as exc:
        raise _corrupt(workspace_id, exc) from None


@router.post("/{workspace_id}/put", response_model=WorkspaceRecord)
async def put_workspace(workspace_id: str, body: WorkspaceRecord, store: Store) -> WorkspaceRecord:
    """Replace a record with a repaired copy."""
    try:
        return await manager.replace_workspace(store, workspace_id, body)
    except RecordNotFoundError:
        raise _not_found(workspace_id) from None
    except CorruptRecordError:
        # Overwriting is exactly how a corrupt record gets repaired.
        return await store.put(body)
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from None


@router.post("/{workspace_id}/touch", response_model=WorkspaceRecord)
async def touch_workspace(workspace_id: str, store: Store) -> WorkspaceRecord:
    """Refresh ``modified`` and ``lastAccessed``."""
    try:
        return await manager.touch_workspace(store, workspace_id)
    except RecordNotFoundError:
        raise _not_found(workspace_id) from None
    except CorruptRecordError as exc:
        raise _corrupt(workspace_id, exc) from None


@router.post("/{workspace_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(workspace_id: str, store: Store) -> None:
    """Delete a workspace by ID.  Absent records count as already deleted."""
    await manager.delete_workspace(store, workspace_id)
