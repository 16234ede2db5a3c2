"""Reconciliation of the record store, local index and handle cache.

Runs on every listing and every open.  Each workspace id is classified as:

- **resolved**: a usable, permission-granted handle is cached;
- **unresolved**: access could not be re-established this pass (prompt
  denied or aborted), all stores are left untouched;
- **orphaned**: there is no way back to the directory (it is gone, nothing
  remembers it, or the user picked a different directory); the id is removed
  from the record store, the local index and the handle cache.

Per-id work is serialized with one ``asyncio.Lock`` per id, unrelated ids run
concurrently.  Provider prompts are serialized by one session-wide lock, so
the user sees one prompt at a time.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from wayfinder.registry.errors import CorruptRecordError, RecordNotFoundError, WorkspaceError
from wayfinder.registry.models.enums import PermissionState, Resolution
from wayfinder.registry.models.record import LocalIndexEntry, WorkspaceRecord
from wayfinder.session.provider import restore_guidance

if TYPE_CHECKING:
    from wayfinder.registry.store.base import RecordStore
    from wayfinder.session.capability import DirectoryHandle
    from wayfinder.session.handles import HandleCache
    from wayfinder.session.local_index import LocalIndex
    from wayfinder.session.provider import CapabilityProvider


@dataclass
class ReconcileReport:
    """Result of one full reconciliation pass.

    ``resolved`` keeps record store order.  ``scanned`` counts every record the
    pass started from, corrupt ones included.  ``all_access_lost`` is set when
    the store held workspaces but none could be reached, even if they were
    all orphaned along the way.
    """

    scanned: int = 0
    resolved: list[WorkspaceRecord] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)

    @property
    def all_access_lost(self) -> bool:
        return not self.resolved and self.scanned > 0


class Reconciler:
    def __init__(
        self,
        store: RecordStore,
        index: LocalIndex,
        cache: HandleCache,
        provider: CapabilityProvider,
    ) -> None:
        self._store = store
        self._index = index
        self._cache = cache
        self._provider = provider
        self._id_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.prompt_lock = asyncio.Lock()

    def lock_for(self, workspace_id: str) -> asyncio.Lock:
        return self._id_locks[workspace_id]

    # -- Full pass -------------------------------------------------------------

    async def reconcile(self) -> ReconcileReport:
        """Validate every registered workspace and clean up the other stores."""
        scan = await self._store.list()
        report = ReconcileReport(scanned=len(scan.records) + len(scan.corrupt))

        for workspace_id in scan.corrupt:
            async with self.lock_for(workspace_id):
                await self._orphan(workspace_id, "record is corrupt")
            report.orphaned.append(workspace_id)

        repaired = set(scan.repaired)
        results = await asyncio.gather(*(self._reconcile_one(r, r.id in repaired) for r in scan.records))
        for record, (resolution, current) in zip(scan.records, results, strict=True):
            if resolution == Resolution.RESOLVED and current is not None:
                report.resolved.append(current)
            elif resolution == Resolution.ORPHANED:
                report.orphaned.append(record.id)
            else:
                report.unresolved.append(record.id)

        known = set(scan.ids) - set(report.orphaned)
        await self._sweep(known)

        logger.info(
            "Reconciled {} workspace(s): {} resolved, {} unresolved, {} orphaned",
            report.scanned,
            len(report.resolved),
            len(report.unresolved),
            len(report.orphaned),
        )
        return report

    async def _reconcile_one(
        self, record: WorkspaceRecord, repaired: bool
    ) -> tuple[Resolution, WorkspaceRecord | None]:
        try:
            async with self.lock_for(record.id):
                return await self._resolve_locked(record, repaired)
        except Exception:
            logger.exception("Reconciliation of workspace {} failed; leaving it unresolved", record.id)
            return Resolution.UNRESOLVED, None

    async def _sweep(self, known: set[str]) -> None:
        """Drop cache and index entries whose record no longer exists."""
        dangling = (set(self._cache.ids()) | set(await self._index.all())) - known
        for workspace_id in sorted(dangling):
            async with self.lock_for(workspace_id):
                try:
                    await self._store.get(workspace_id)
                except RecordNotFoundError:
                    pass
                except CorruptRecordError:
                    # Left for the next pass, which deletes it through the scan.
                    continue
                else:
                    # Registered after this pass listed the store.
                    continue
                logger.debug("Dropping dangling entries for {}", workspace_id)
                self._cache.evict(workspace_id)
                await self._index.remove(workspace_id)

    # -- Single id -------------------------------------------------------------

    async def open(self, workspace_id: str) -> DirectoryHandle | None:
        """Resolve one workspace for use.

        Returns the granted handle, or ``None`` when the id has no record, was
        orphaned, or access could not be re-established.  Unexpected failures
        are logged and leave the workspace unresolved.
        """
        async with self.lock_for(workspace_id):
            try:
                record = await self._store.get(workspace_id)
            except RecordNotFoundError:
                self._cache.evict(workspace_id)
                await self._index.remove(workspace_id)
                return None
            except CorruptRecordError:
                await self._orphan(workspace_id, "record is corrupt")
                return None

            try:
                resolution, _ = await self._resolve_locked(record, repaired=False)
            except WorkspaceError:
                raise
            except Exception:
                logger.exception("Opening workspace {} failed; leaving it unresolved", workspace_id)
                return None
            if resolution != Resolution.RESOLVED:
                return None
            return self._cache.get(workspace_id)

    async def _resolve_locked(
        self, record: WorkspaceRecord, repaired: bool
    ) -> tuple[Resolution, WorkspaceRecord | None]:
        """Classify one record.  Caller holds the id lock."""
        workspace_id = record.id

        # 1. Live handle from this session.
        handle = self._cache.get(workspace_id)
        if handle is not None:
            if not await handle.is_reachable():
                await self._orphan(workspace_id, "directory is gone")
                return Resolution.ORPHANED, None
            if await self._ensure_permission(handle):
                if await self._index.get(workspace_id) is None:
                    await self._index.put(workspace_id, LocalIndexEntry(name=handle.name, kind=handle.kind))
                return Resolution.RESOLVED, await self._commit(record, repaired)
            self._cache.evict(workspace_id)

        # 2. Remembered directory: ask the user to grant it again.
        descriptor = await self._index.get(workspace_id)
        if descriptor is None:
            await self._orphan(workspace_id, "no handle and no local index entry")
            return Resolution.ORPHANED, None

        async with self.prompt_lock:
            result = await self._provider.request_directory(restore_guidance(descriptor.name))
        if not result.granted:
            logger.info("Access to workspace {} not restored ({})", workspace_id, result.outcome)
            return Resolution.UNRESOLVED, None

        # 3. Granted: it must be the same directory, with read-write access.
        handle = result.handle
        if handle.name != descriptor.name:
            await self._orphan(workspace_id, f"selected {handle.name!r} instead of {descriptor.name!r}")
            return Resolution.ORPHANED, None
        if not await self._ensure_permission(handle):
            logger.info("Permission for workspace {} was not granted", workspace_id)
            return Resolution.UNRESOLVED, None

        self._cache.put(workspace_id, handle)
        await self._index.put(workspace_id, LocalIndexEntry(name=descriptor.name, kind=descriptor.kind))
        return Resolution.RESOLVED, await self._commit(record, repaired)

    async def _ensure_permission(self, handle: DirectoryHandle) -> bool:
        if await handle.query_permission() == PermissionState.GRANTED:
            return True
        async with self.prompt_lock:
            return await handle.request_permission() == PermissionState.GRANTED

    async def _commit(self, record: WorkspaceRecord, repaired: bool) -> WorkspaceRecord:
        """Persist a repair (if any) and refresh ``last_accessed``."""
        if repaired:
            logger.info("Persisting repaired record {}", record.id)
            return await self._store.put(record.touched())
        return await self._store.touch(record.id)

    async def _orphan(self, workspace_id: str, reason: str) -> None:
        logger.warning("Removing orphaned workspace {}: {}", workspace_id, reason)
        await self._store.delete(workspace_id)
        await self._index.remove(workspace_id)
        self._cache.evict(workspace_id)
