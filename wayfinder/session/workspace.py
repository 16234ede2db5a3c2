"""Workspace session facade.

``WorkspaceSession`` is the boundary the editor collaborators talk to.  It
owns the session's handle cache and reconciler, reaches the record store
either in-process or over HTTP, and only ever raises ``WorkspaceError``
subclasses.

Usage::

    async with open_session(provider=TerminalCapabilityProvider()) as session:
        listing = await session.list_workspaces()
        handle = await session.open_workspace(listing.workspaces[0].id)
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from functools import partial
from typing import Any

from loguru import logger

from wayfinder.registry.detector import detect_from_handle
from wayfinder.registry.errors import (
    AbortedError,
    PermissionDeniedError,
    RegistryUnavailableError,
    WorkspaceNotOpenError,
)
from wayfinder.registry.gitinfo import DEFAULT_GIT_TIMEOUT, read_git_snapshot
from wayfinder.registry.managers.workspaces import create_skeleton_workspace, projects_root
from wayfinder.registry.models.api import (
    FileEntry,
    WorkspaceCreate,
    WorkspaceListing,
    WorkspaceSummary,
    WorkspaceUpdate,
)
from wayfinder.registry.models.enums import GrantOutcome, ListingStatus, PermissionState
from wayfinder.registry.models.record import LocalIndexEntry, RecordDraft, WorkspaceRecord
from wayfinder.registry.settings import WayfinderSettings, get_settings
from wayfinder.registry.store.base import RecordStore
from wayfinder.session import fileops
from wayfinder.session.capability import DirectoryHandle
from wayfinder.session.handles import HandleCache
from wayfinder.session.local_index import LocalIndex
from wayfinder.session.provider import IMPORT_GUIDANCE, CapabilityProvider, TerminalCapabilityProvider
from wayfinder.session.reconcile import Reconciler

SkeletonCreator = Callable[[WorkspaceCreate], Awaitable[WorkspaceRecord]]


class WorkspaceSession:
    def __init__(
        self,
        store: RecordStore,
        index: LocalIndex,
        provider: CapabilityProvider,
        *,
        skeleton_creator: SkeletonCreator | None = None,
        cache: HandleCache | None = None,
        git_timeout: float = DEFAULT_GIT_TIMEOUT,
    ) -> None:
        self.store = store
        self.index = index
        self.provider = provider
        self.cache = cache or HandleCache()
        self.reconciler = Reconciler(store, index, self.cache, provider)
        self._skeleton_creator = skeleton_creator
        self._git_timeout = git_timeout

    # -- Workspaces ------------------------------------------------------------

    async def list_workspaces(self) -> WorkspaceListing:
        """Reconcile all stores and return the workspaces usable right now."""
        report = await self.reconciler.reconcile()
        if report.resolved:
            status = ListingStatus.OK
        elif report.all_access_lost:
            status = ListingStatus.ACCESS_LOST
        else:
            status = ListingStatus.EMPTY
        return WorkspaceListing(
            workspaces=[WorkspaceSummary.from_record(r) for r in report.resolved],
            status=status,
        )

    async def import_workspace(self) -> WorkspaceRecord:
        """Ask the user for a directory, detect it and register it.

        Importing an already registered directory returns the existing record.
        """
        async with self.reconciler.prompt_lock:
            result = await self.provider.request_directory(IMPORT_GUIDANCE)
        if result.outcome == GrantOutcome.ABORTED:
            raise AbortedError
        if not result.granted:
            raise PermissionDeniedError
        handle = result.handle
        async with self.reconciler.prompt_lock:
            state = await handle.request_permission()
        if state != PermissionState.GRANTED:
            raise PermissionDeniedError

        detection = await detect_from_handle(handle)
        git = None
        if detection.has_git and handle.local_path is not None:
            git = await read_git_snapshot(handle.local_path, timeout=self._git_timeout)

        path_hint = str(handle.local_path) if handle.local_path is not None else handle.name
        draft = RecordDraft(
            path=path_hint,
            name=handle.name,
            type=detection.type,
            project_files=detection.project_files,
            git=git,
        )
        record = await self.store.create(draft)

        async with self.reconciler.lock_for(record.id):
            self.cache.put(record.id, handle)
            await self.index.put(record.id, LocalIndexEntry(name=handle.name, kind=handle.kind))
        logger.info("Imported workspace {} from {}", record.id, path_hint)
        return record

    async def create_workspace(self, name: str, description: str | None = None) -> WorkspaceRecord:
        """Create a skeleton project on the registry side and remember it locally.

        The new directory is not granted yet; the first open prompts for it.
        """
        if self._skeleton_creator is None:
            msg = "No registry is configured to create workspaces"
            raise RegistryUnavailableError(msg)
        record = await self._skeleton_creator(WorkspaceCreate(name=name, description=description))
        async with self.reconciler.lock_for(record.id):
            await self.index.put(record.id, LocalIndexEntry(name=_basename(record.path)))
        return record

    async def open_workspace(self, workspace_id: str) -> DirectoryHandle | None:
        """Return a granted handle for the workspace, or ``None``."""
        return await self.reconciler.open(workspace_id)

    async def update_workspace(self, workspace_id: str, patch: WorkspaceUpdate | dict[str, Any]) -> WorkspaceRecord:
        if isinstance(patch, dict):
            patch = WorkspaceUpdate.model_validate(patch)
        return await self.store.update(workspace_id, patch)

    async def delete_workspace(self, workspace_id: str) -> None:
        """Remove the workspace from every store.  Absent ids are fine."""
        async with self.reconciler.lock_for(workspace_id):
            await self.store.delete(workspace_id)
            await self.index.remove(workspace_id)
            self.cache.evict(workspace_id)
        logger.info("Deleted workspace {}", workspace_id)

    # -- Files -----------------------------------------------------------------

    async def _handle(self, workspace_id: str) -> DirectoryHandle:
        handle = self.cache.get(workspace_id)
        if handle is None:
            raise WorkspaceNotOpenError(f"Workspace {workspace_id!r} is not open")
        if await handle.query_permission() == PermissionState.GRANTED:
            return handle
        async with self.reconciler.prompt_lock:
            state = await handle.request_permission()
        if state != PermissionState.GRANTED:
            self.cache.evict(workspace_id)
            raise PermissionDeniedError(f"Access to workspace {workspace_id!r} was revoked")
        return handle

    async def list_files(self, workspace_id: str, path: str = "") -> list[FileEntry]:
        return await fileops.list_tree(await self._handle(workspace_id), path)

    async def read_file(self, workspace_id: str, path: str) -> str:
        return await fileops.read_file(await self._handle(workspace_id), path)

    async def write_file(self, workspace_id: str, path: str, content: str) -> None:
        await fileops.write_file(await self._handle(workspace_id), path, content)

    async def make_directory(self, workspace_id: str, path: str) -> None:
        await fileops.make_directory(await self._handle(workspace_id), path)

    async def delete_entry(self, workspace_id: str, path: str) -> None:
        await fileops.remove_entry(await self._handle(workspace_id), path)

    async def move_entry(self, workspace_id: str, source: str, target_dir: str) -> str:
        """Move a file or directory into another directory; returns the new path."""
        return await fileops.move_entry(await self._handle(workspace_id), source, target_dir)


def _basename(path: str) -> str:
    return path.rstrip("/\\").replace("\\", "/").rsplit("/", 1)[-1]


@asynccontextmanager
async def open_session(
    settings: WayfinderSettings | None = None,
    provider: CapabilityProvider | None = None,
) -> AsyncIterator[WorkspaceSession]:
    """Build a session from settings.

    With ``registry_url`` set, records live behind the registry service and
    skeleton projects are created there.  Otherwise the session uses the
    local record store under ``data_root`` directly.
    """
    settings = settings or get_settings()
    provider = provider or TerminalCapabilityProvider()
    index = LocalIndex(settings.local_index_path)

    if settings.registry_url:
        from wayfinder.registry.store.http import HttpRecordStore

        store = HttpRecordStore(settings.registry_url)
        try:
            yield WorkspaceSession(
                store,
                index,
                provider,
                skeleton_creator=store.create_skeleton,
                git_timeout=settings.git_timeout,
            )
        finally:
            await store.aclose()
        return

    from wayfinder.registry.app import create_record_store

    local_store = create_record_store(settings)
    root = projects_root(settings.data_root, settings.data_prefix)
    yield WorkspaceSession(
        local_store,
        index,
        provider,
        skeleton_creator=partial(create_skeleton_workspace, local_store, root),
        git_timeout=settings.git_timeout,
    )
