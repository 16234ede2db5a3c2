"""API request / response schemas for the registry endpoints and session facade.

These thin schemas sit between HTTP (or the session boundary) and the
record store.  They are separate from ``record.py`` because they serve a
different purpose:

- **Create** schemas validate user input and provide defaults.
- **Update** schemas allow partial updates via ``exclude_unset``.
- **Summary / listing** schemas shape what collaborators see.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from wayfinder.registry.models.enums import EntryKind, ListingStatus, ProjectType
from wayfinder.registry.models.record import CamelModel, GitSnapshot, WorkspaceRecord, WorkspaceSettings

# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceCreate(CamelModel):
    """Input for creating a new server-generated skeleton workspace."""

    name: str = Field(min_length=1)
    description: str | None = None


class WorkspaceUpdate(CamelModel):
    """Partial workspace update.

    Callers should use ``body.model_dump(exclude_unset=True)`` to extract
    only the provided fields.
    """

    name: str | None = None
    description: str | None = None
    settings: WorkspaceSettings | None = None
    recent_files: list[str] | None = None


class WorkspaceSummary(CamelModel):
    """What the editor and explorer collaborators see for one workspace."""

    id: str
    name: str
    path: str
    type: ProjectType
    git: GitSnapshot | None = None
    settings: WorkspaceSettings
    last_accessed: datetime

    @classmethod
    def from_record(cls, record: WorkspaceRecord) -> WorkspaceSummary:
        return cls(
            id=record.id,
            name=record.name,
            path=record.path,
            type=record.type,
            git=record.git,
            settings=record.settings,
            last_accessed=record.last_accessed,
        )


class WorkspaceListing(CamelModel):
    """Result of ``list_workspaces``.

    ``status`` distinguishes "no workspaces exist" (``empty``) from "records
    exist but none could be reached this pass" (``access_lost``), so the
    caller can prompt for a re-import instead of showing an empty state.
    """

    workspaces: list[WorkspaceSummary] = Field(default_factory=list)
    status: ListingStatus = ListingStatus.EMPTY

    def __len__(self) -> int:
        return len(self.workspaces)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class FileEntry(CamelModel):
    """One node of a workspace file tree."""

    name: str
    path: str
    type: EntryKind
    children: list[FileEntry] | None = None
