"""FastAPI dependency injection for the record store.

Usage in route handlers::

    @router.get("/list")
    async def list_workspaces(store: Store) -> RecordScan:
        ...

Dependencies raise HTTP 503 if the store was not initialised by the app
lifespan (tests set ``app.state`` fields directly).
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from wayfinder.registry.store.base import RecordStore


def get_store(request: Request) -> RecordStore:
    """Return the process-wide record store."""
    store: RecordStore | None = getattr(request.app.state, "record_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Record store not initialised.",
        )
    return store


def get_projects_root(request: Request) -> Path:
    """Return the directory where skeleton projects are generated."""
    root: Path | None = getattr(request.app.state, "projects_root", None)
    if root is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Projects root not configured.",
        )
    return root


# -- Annotated type aliases for concise route signatures ---------------------

Store = Annotated[RecordStore, Depends(get_store)]
"""Annotated dependency: the configured record store backend."""

ProjectsRoot = Annotated[Path, Depends(get_projects_root)]
"""Annotated dependency: root directory for server-generated projects."""
