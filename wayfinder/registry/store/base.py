"""Record store interface for workspace metadata.

The record store is the single source of truth for workspace *existence*.
Each workspace is one JSON document keyed by its id; every operation is a
whole-record read-modify-write of that one document, so writers to
different records never conflict and writers to the same record race
last-write-wins.

The interface is async so the local filesystem, S3 and remote (HTTP)
backends are interchangeable behind the workspace session.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import uuid
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from loguru import logger

from wayfinder.registry.errors import CorruptRecordError
from wayfinder.registry.models.api import WorkspaceUpdate
from wayfinder.registry.models.record import (
    RecordDraft,
    RecordScan,
    WorkspaceRecord,
    default_settings,
    repair_record,
    utcnow,
)

_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,128}")


@runtime_checkable
class RecordStore(Protocol):
    """Async protocol for reading and writing workspace records.

    Storage layout (keyed by workspace id)::

        {root}/workspaces/{workspace_id}.json
    """

    async def create(self, draft: RecordDraft) -> WorkspaceRecord:
        """Register a workspace.

        Idempotent on the path hint: when a record with the same normalized
        path exists, it is returned with ``last_accessed`` refreshed instead
        of creating a duplicate.
        """
        ...

    async def get(self, workspace_id: str) -> WorkspaceRecord:
        """Read one record.  Raises ``RecordNotFoundError`` or ``CorruptRecordError``."""
        ...

    async def list(self) -> RecordScan:
        """Read all records, skipping (and flagging) corrupt ones."""
        ...

    async def update(self, workspace_id: str, patch: WorkspaceUpdate) -> WorkspaceRecord:
        """Apply a partial update.  Raises ``RecordNotFoundError`` if missing."""
        ...

    async def put(self, record: WorkspaceRecord) -> WorkspaceRecord:
        """Overwrite a whole record (used to persist repairs)."""
        ...

    async def touch(self, workspace_id: str) -> WorkspaceRecord:
        """Refresh ``modified`` / ``last_accessed``.  Raises ``RecordNotFoundError``."""
        ...

    async def delete(self, workspace_id: str) -> None:
        """Delete a record.  No-op if not found."""
        ...


def normalize_path_hint(path: str) -> str:
    """Normalize a path hint for duplicate detection.

    Relative hints are taken relative to the user's home directory, the
    same way browser-granted directories (known by name only) are
    registered.
    """
    expanded = os.path.expanduser(path)
    if not os.path.isabs(expanded):
        expanded = os.path.join(os.path.expanduser("~"), expanded)
    return os.path.normpath(expanded)


def apply_patch(record: WorkspaceRecord, patch: WorkspaceUpdate) -> WorkspaceRecord:
    """Return ``record`` with the explicitly-set fields of ``patch`` applied and timestamps refreshed."""
    changes = patch.model_dump(exclude_unset=True)
    # Only description may be cleared; a null name/settings/recent_files means "unchanged".
    changes = {k: v for k, v in changes.items() if v is not None or k == "description"}
    if "settings" in changes:
        changes["settings"] = patch.settings
    return record.model_copy(update=changes).touched()


def parse_record_document(workspace_id: str, text: str) -> tuple[WorkspaceRecord, bool]:
    """Parse one stored document keyed by ``workspace_id``.

    The storage key is authoritative for the id: a document whose inner id
    is missing or disagrees with its key is repaired to match.  Raises
    ``CorruptRecordError`` when the document cannot be reconstructed.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Record {workspace_id!r} is not valid JSON: {exc}"
        raise CorruptRecordError(msg) from None

    rekeyed = False
    if isinstance(raw, dict) and raw.get("id") not in (None, "", workspace_id):
        raw = {**raw, "id": workspace_id}
        rekeyed = True
    record, repaired = repair_record(raw, fallback_id=workspace_id)
    return record, repaired or rekeyed


def is_valid_workspace_id(workspace_id: str) -> bool:
    """Reject ids that could escape the store layout (path separators, dots)."""
    return bool(_ID_PATTERN.fullmatch(workspace_id))


def build_scan(documents: Iterable[tuple[str, str]]) -> RecordScan:
    """Parse ``(workspace_id, text)`` pairs into a scan, newest first."""
    scan = RecordScan()
    for workspace_id, text in documents:
        try:
            record, repaired = parse_record_document(workspace_id, text)
        except CorruptRecordError as exc:
            logger.warning("Skipping corrupt workspace record {}: {}", workspace_id, exc)
            scan.corrupt.append(workspace_id)
            continue
        scan.records.append(record)
        if repaired:
            scan.repaired.append(workspace_id)
    scan.records.sort(key=lambda r: r.created, reverse=True)
    return scan


class DocumentRecordStore:
    """Shared write path for stores that keep one whole document per id.

    Subclasses provide ``get``, ``list`` and ``_write``.  Path-hint duplicate
    detection is serialized within this process.
    """

    def __init__(self) -> None:
        self._create_lock = asyncio.Lock()

    async def get(self, workspace_id: str) -> WorkspaceRecord:
        raise NotImplementedError

    async def list(self) -> RecordScan:
        raise NotImplementedError

    async def _write(self, record: WorkspaceRecord) -> None:
        raise NotImplementedError

    async def create(self, draft: RecordDraft) -> WorkspaceRecord:
        path_hint = normalize_path_hint(draft.path)
        async with self._create_lock:
            scan = await self.list()
            for existing in scan.records:
                if normalize_path_hint(existing.path) == path_hint:
                    refreshed = existing.model_copy(update={"last_accessed": utcnow()})
                    await self._write(refreshed)
                    logger.info("Workspace already registered: {} ({})", existing.id, path_hint)
                    return refreshed

            record = WorkspaceRecord(
                id=uuid.uuid4().hex,
                path=path_hint,
                name=draft.name or "",
                description=draft.description,
                type=draft.type,
                project_files=sorted(set(draft.project_files)),
                git=draft.git,
                settings=draft.settings or default_settings(draft.type),
            )
            await self._write(record)

        logger.info("Workspace registered: {} (name={}, type={})", record.id, record.name, record.type)
        return record

    async def put(self, record: WorkspaceRecord) -> WorkspaceRecord:
        await self._write(record)
        return record

    async def update(self, workspace_id: str, patch: WorkspaceUpdate) -> WorkspaceRecord:
        record = apply_patch(await self.get(workspace_id), patch)
        await self._write(record)
        return record

    async def touch(self, workspace_id: str) -> WorkspaceRecord:
        record = (await self.get(workspace_id)).touched()
        await self._write(record)
        return record
