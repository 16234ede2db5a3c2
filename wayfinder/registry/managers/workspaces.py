"""Workspace registry operations.

Encapsulates the business logic behind the registry endpoints: idempotent
registration, skeleton-project creation, partial updates and deletion.
Functions accept a ``RecordStore`` as their first parameter and raise
domain exceptions, never HTTP exceptions.
"""

from __future__ import annotations

import re
import uuid
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger

from wayfinder.registry.models.api import WorkspaceCreate, WorkspaceUpdate
from wayfinder.registry.models.enums import ProjectType
from wayfinder.registry.models.record import RecordDraft, RecordScan, WorkspaceRecord
from wayfinder.registry.store.base import RecordStore

SKELETON_GITIGNORE = "node_modules\n.next\n.env\n.env.local\n"


def projects_root(data_root: str | Path, prefix: str | None = None) -> Path:
    """Directory holding server-generated projects: ``{data_root}/{prefix}/projects``."""
    base = Path(data_root)
    if prefix:
        base = base / prefix
    return base / "projects"


def _slugify(name: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9._-]+", "-", name.strip()).strip("-.").lower()
    return slug or "workspace"


async def register_workspace(store: RecordStore, draft: RecordDraft) -> WorkspaceRecord:
    """Register an imported directory.  Idempotent on the path hint."""
    return await store.create(draft)


async def create_skeleton_workspace(store: RecordStore, root: Path, body: WorkspaceCreate) -> WorkspaceRecord:
    """Generate a skeleton project under ``root`` and register it.

    Layout::

        {root}/{slug}-{suffix}/
            src/
            public/
            README.md
            .gitignore
    """
    directory = root / f"{_slugify(body.name)}-{uuid.uuid4().hex[:8]}"
    await to_thread.run_sync(partial(_write_skeleton, directory, body.name, body.description))
    logger.info("Skeleton project created: {}", directory)

    draft = RecordDraft(
        path=str(directory),
        name=body.name,
        description=body.description,
        type=ProjectType.UNKNOWN,
    )
    return await store.create(draft)


async def list_workspaces(store: RecordStore) -> RecordScan:
    return await store.list()


async def get_workspace(store: RecordStore, workspace_id: str) -> WorkspaceRecord:
    """Get a workspace by ID.  Raises ``RecordNotFoundError`` if missing."""
    return await store.get(workspace_id)


async def update_workspace(store: RecordStore, workspace_id: str, body: WorkspaceUpdate) -> WorkspaceRecord:
    """Partially update a workspace.  Raises ``RecordNotFoundError`` if missing."""
    record = await store.update(workspace_id, body)
    logger.info("Workspace updated: {} (fields={})", workspace_id, sorted(body.model_fields_set))
    return record


async def replace_workspace(store: RecordStore, workspace_id: str, record: WorkspaceRecord) -> WorkspaceRecord:
    """Overwrite a stored record with a repaired copy.

    The id in the body must match the target; only existing records can be
    replaced.  Raises ``RecordNotFoundError`` otherwise.
    """
    if record.id != workspace_id:
        msg = f"Record id {record.id!r} does not match {workspace_id!r}"
        raise ValueError(msg)
    await store.get(workspace_id)
    return await store.put(record)


async def touch_workspace(store: RecordStore, workspace_id: str) -> WorkspaceRecord:
    return await store.touch(workspace_id)


async def delete_workspace(store: RecordStore, workspace_id: str) -> None:
    """Delete a workspace record.  Deleting an absent record is not an error."""
    await store.delete(workspace_id)
    logger.info("Workspace deleted: {}", workspace_id)


# -- Sync helpers (run in thread pool) -----------------------------------------


def _write_skeleton(directory: Path, name: str, description: str | None) -> None:
    (directory / "src").mkdir(parents=True)
    (directory / "public").mkdir()
    readme = f"# {name}\n\n{description or 'Welcome to your new workspace!'}\n"
    (directory / "README.md").write_text(readme, encoding="utf-8")
    (directory / ".gitignore").write_text(SKELETON_GITIGNORE, encoding="utf-8")
