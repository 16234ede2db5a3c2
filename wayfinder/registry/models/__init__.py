"""Data models for the workspace registry."""

from wayfinder.registry.models.api import (
    FileEntry,
    WorkspaceCreate,
    WorkspaceListing,
    WorkspaceSummary,
    WorkspaceUpdate,
)
from wayfinder.registry.models.enums import (
    EntryKind,
    GrantOutcome,
    ListingStatus,
    PermissionState,
    ProjectType,
    Resolution,
)
from wayfinder.registry.models.record import (
    GitSnapshot,
    LocalIndexEntry,
    RecordDraft,
    RecordScan,
    WorkspaceRecord,
    WorkspaceSettings,
    default_settings,
    repair_record,
)

__all__ = [
    # Enums
    "EntryKind",
    # API schemas
    "FileEntry",
    # Records
    "GitSnapshot",
    "GrantOutcome",
    "ListingStatus",
    "LocalIndexEntry",
    "PermissionState",
    "ProjectType",
    "RecordDraft",
    "RecordScan",
    "Resolution",
    "WorkspaceCreate",
    "WorkspaceListing",
    "WorkspaceRecord",
    "WorkspaceSettings",
    "WorkspaceSummary",
    "WorkspaceUpdate",
    "default_settings",
    "repair_record",
]
