"""Shared fixtures for registry service tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from wayfinder.registry.app import app
from wayfinder.registry.store.local import LocalRecordStore


@pytest.fixture
async def client(store: LocalRecordStore, tmp_path: Path) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with a ``tmp_path`` record store.

    The app lifespan does NOT run under ``ASGITransport``, so state fields
    are set here directly.
    """
    app.state.record_store = store
    app.state.projects_root = tmp_path / "data" / "projects"

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.record_store = None
    app.state.projects_root = None
