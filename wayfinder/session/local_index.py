"""Client-local index of granted directories.

A small JSON file mapping workspace id to a descriptor::

    {
      "5d0c...": {"name": "proj-a", "kind": "directory", "timestamp": "..."}
    }

The index survives session restarts but carries no access: an entry only
means "this directory was granted once, ask the user for it by this name".
It is a disposable cache, so an unreadable file is treated as empty.
Writes are atomic (temp file + rename) and serialized within the process.
"""

from __future__ import annotations

import asyncio
import json
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger
from pydantic import ValidationError

from wayfinder.registry.models.record import LocalIndexEntry
from wayfinder.registry.store.local import atomic_write


class LocalIndex:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, workspace_id: str) -> LocalIndexEntry | None:
        return (await self.all()).get(workspace_id)

    async def all(self) -> dict[str, LocalIndexEntry]:
        return await to_thread.run_sync(partial(_load, self._path))

    async def put(self, workspace_id: str, entry: LocalIndexEntry) -> None:
        async with self._lock:
            entries = await self.all()
            entries[workspace_id] = entry
            await self._save(entries)

    async def remove(self, workspace_id: str) -> bool:
        """Drop an entry.  Returns ``False`` if there was none."""
        async with self._lock:
            entries = await self.all()
            if entries.pop(workspace_id, None) is None:
                return False
            await self._save(entries)
            return True

    async def _save(self, entries: dict[str, LocalIndexEntry]) -> None:
        document = {key: entry.model_dump(mode="json", by_alias=True) for key, entry in entries.items()}
        await to_thread.run_sync(partial(atomic_write, self._path, json.dumps(document, indent=2)))


# -- Sync helpers (run in thread pool) -----------------------------------------


def _load(path: Path) -> dict[str, LocalIndexEntry]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Local index {} is unreadable, treating as empty: {}", path, exc)
        return {}
    if not isinstance(raw, dict):
        logger.warning("Local index {} is not a JSON object, treating as empty", path)
        return {}

    entries: dict[str, LocalIndexEntry] = {}
    for key, value in raw.items():
        try:
            entries[key] = LocalIndexEntry.model_validate(value)
        except ValidationError:
            logger.warning("Dropping malformed local index entry {}", key)
    return entries
