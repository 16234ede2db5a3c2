"""Shared test fixtures.

Every store lives under ``tmp_path``: records in ``data/``, the client-local
index in ``client/`` and project directories in ``home/``.  Settings are
re-read from a clean ``WAYFINDER_*`` environment for each test.

Directory prompts are answered by ``ScriptedProvider``, which replays a
queue of answers and records every prompt it was shown.
"""

from __future__ import annotations

import asyncio
import os
from collections import deque
from collections.abc import Callable, Iterator
from functools import partial
from pathlib import Path

import pytest

from wayfinder.registry.managers.workspaces import create_skeleton_workspace
from wayfinder.registry.models.enums import GrantOutcome
from wayfinder.registry.settings import get_settings
from wayfinder.registry.store.local import LocalRecordStore
from wayfinder.session.capability import GrantResult, LocalDirectoryHandle
from wayfinder.session.local_index import LocalIndex
from wayfinder.session.workspace import WorkspaceSession


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Point settings at ``tmp_path`` and invalidate the settings cache."""
    for key in list(os.environ):
        if key.startswith("WAYFINDER_") and not key.startswith("WAYFINDER_S3_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("WAYFINDER_DATA_ROOT", str(tmp_path / "data"))
    monkeypatch.setenv("WAYFINDER_CLIENT_STATE_DIR", str(tmp_path / "client"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class ScriptedProvider:
    """CapabilityProvider that replays queued answers.

    An answer is a path (granted), a ready-made handle (granted), or a
    ``GrantOutcome``.  ``answer_for(name, ...)`` queues answers for restore
    prompts naming that folder, so concurrent prompts get the right answer
    whatever order they arrive in.  Prompts past the end of a queue are
    aborted.
    """

    def __init__(self) -> None:
        self.answers: deque[object] = deque()
        self.routes: dict[str, deque[object]] = {}
        self.prompts: list[str] = []

    def grant(self, *answers: str | Path | LocalDirectoryHandle) -> ScriptedProvider:
        self.answers.extend(answers)
        return self

    def deny(self) -> ScriptedProvider:
        self.answers.append(GrantOutcome.DENIED)
        return self

    def abort(self) -> ScriptedProvider:
        self.answers.append(GrantOutcome.ABORTED)
        return self

    def answer_for(self, name: str, *answers: object) -> ScriptedProvider:
        self.routes.setdefault(name, deque()).extend(answers)
        return self

    async def request_directory(self, guidance: str) -> GrantResult:
        self.prompts.append(guidance)
        # Give concurrent callers a chance to interleave.
        await asyncio.sleep(0)
        queue = next((q for name, q in self.routes.items() if f'"{name}"' in guidance), self.answers)
        if not queue:
            return GrantResult(GrantOutcome.ABORTED)
        answer = queue.popleft()
        if isinstance(answer, GrantOutcome):
            return GrantResult(answer)
        if isinstance(answer, LocalDirectoryHandle):
            return GrantResult(GrantOutcome.GRANTED, answer)
        return GrantResult(GrantOutcome.GRANTED, LocalDirectoryHandle(answer))


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def store(tmp_path: Path) -> LocalRecordStore:
    return LocalRecordStore(tmp_path / "data")


@pytest.fixture
def index(tmp_path: Path) -> LocalIndex:
    return LocalIndex(tmp_path / "client" / "local_index.json")


@pytest.fixture
def session(store: LocalRecordStore, index: LocalIndex, provider: ScriptedProvider, tmp_path: Path) -> WorkspaceSession:
    return WorkspaceSession(
        store,
        index,
        provider,
        skeleton_creator=partial(create_skeleton_workspace, store, tmp_path / "data" / "projects"),
    )


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory: ``make_project("proj-a", {"package.json": "{}"})`` -> directory path."""

    def _make(name: str, files: dict[str, str] | None = None) -> Path:
        root = tmp_path / "home" / name
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in (files or {}).items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return root

    return _make
