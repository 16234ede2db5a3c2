"""Shared fixtures for workspace session tests."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path

import pytest

from wayfinder.registry.models import LocalIndexEntry, RecordDraft, WorkspaceRecord
from wayfinder.registry.store.local import LocalRecordStore
from wayfinder.session.local_index import LocalIndex


@pytest.fixture
def remember(store: LocalRecordStore, index: LocalIndex) -> Callable[..., Awaitable[WorkspaceRecord]]:
    """Factory: register ``directory`` as a previous session left it.

    The record exists and (unless ``indexed=False``) the local index holds a
    descriptor, but no handle is cached, so the next pass must prompt.
    """

    async def _remember(directory: Path, *, indexed: bool = True) -> WorkspaceRecord:
        record = await store.create(RecordDraft(path=str(directory)))
        if indexed:
            await index.put(record.id, LocalIndexEntry(name=directory.name))
        return record

    return _remember
