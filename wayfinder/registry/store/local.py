"""Local filesystem record store.

Stores one JSON document per workspace under a data root with optional
namespace prefix::

    {data_root}/{prefix}/workspaces/{workspace_id}.json

When prefix is None, the path collapses to::

    {data_root}/workspaces/{workspace_id}.json

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path.  Each record file is an independent unit of
atomicity; concurrent writers to the same record race last-write-wins.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger

from wayfinder.registry.errors import RecordNotFoundError
from wayfinder.registry.models.record import RecordScan, WorkspaceRecord
from wayfinder.registry.store.base import (
    DocumentRecordStore,
    build_scan,
    is_valid_workspace_id,
    parse_record_document,
)


class LocalRecordStore(DocumentRecordStore):
    """Local filesystem implementation of the RecordStore protocol.

    Layout::

        {base}/workspaces/{workspace_id}.json

    Where ``base`` is ``data_root / prefix`` (or just ``data_root`` if no prefix).
    """

    def __init__(self, data_root: str | Path, prefix: str | None = None) -> None:
        super().__init__()
        base = Path(data_root)
        if prefix:
            base = base / prefix
        self._base = base / "workspaces"

    def _record_path(self, workspace_id: str) -> Path:
        if not is_valid_workspace_id(workspace_id):
            raise RecordNotFoundError(workspace_id)
        return self._base / f"{workspace_id}.json"

    # -- Write -----------------------------------------------------------------

    async def _write(self, record: WorkspaceRecord) -> None:
        path = self._record_path(record.id)
        await to_thread.run_sync(partial(atomic_write, path, record.to_json()))

    # -- Read ------------------------------------------------------------------

    async def get(self, workspace_id: str) -> WorkspaceRecord:
        path = self._record_path(workspace_id)
        try:
            text = await to_thread.run_sync(partial(_read_file, path))
        except FileNotFoundError:
            raise RecordNotFoundError(workspace_id) from None
        record, _ = parse_record_document(workspace_id, text)
        return record

    async def list(self) -> RecordScan:
        documents = await to_thread.run_sync(partial(_read_all, self._base))
        return build_scan(documents)

    # -- Utilities -------------------------------------------------------------

    async def delete(self, workspace_id: str) -> None:
        if not is_valid_workspace_id(workspace_id):
            return
        await to_thread.run_sync(partial(_unlink, self._record_path(workspace_id)))


# -- Sync helpers (run in thread pool) -----------------------------------------


def atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    Ensures readers never see a partially-written file.  The temp file is
    created in the same directory so ``os.replace`` is atomic on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _read_file(path: Path) -> str:
    """Read file contents.  Raises ``FileNotFoundError`` if missing."""
    return path.read_text(encoding="utf-8")


def _read_all(base: Path) -> list[tuple[str, str]]:
    """Read every ``*.json`` record under ``base`` as ``(workspace_id, text)``.

    Files that vanish or cannot be opened are skipped.  Files that are not
    valid UTF-8 are returned with empty text so the caller flags them as
    corrupt.
    """
    if not base.is_dir():
        return []
    documents: list[tuple[str, str]] = []
    for path in sorted(base.glob("*.json")):
        if not is_valid_workspace_id(path.stem):
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            text = ""
        except OSError as exc:
            logger.warning("Cannot read workspace record {}: {}", path, exc)
            continue
        documents.append((path.stem, text))
    return documents


def _unlink(path: Path) -> None:
    """Remove a file.  No-op if it doesn't exist."""
    path.unlink(missing_ok=True)
