"""Shared enumerations used across the registry and workspace sessions."""

from __future__ import annotations

from enum import StrEnum

# -- Records -----------------------------------------------------------------


class ProjectType(StrEnum):
    """Project kind detected at registration."""

    NODEJS = "nodejs"
    NODEJS_ESM = "nodejs-esm"
    RUST = "rust"
    GO = "go"
    PYTHON = "python"
    UNKNOWN = "unknown"


class EntryKind(StrEnum):
    FILE = "file"
    DIRECTORY = "directory"


# -- Capabilities ------------------------------------------------------------


class PermissionState(StrEnum):
    """Permission state of a directory handle."""

    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


class GrantOutcome(StrEnum):
    """Outcome of an interactive directory grant."""

    GRANTED = "granted"
    DENIED = "denied"
    ABORTED = "aborted"


# -- Reconciliation ----------------------------------------------------------


class Resolution(StrEnum):
    """Per-id classification produced by a reconciliation pass."""

    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"
    ORPHANED = "orphaned"


class ListingStatus(StrEnum):
    """Overall status of a workspace listing."""

    OK = "ok"
    EMPTY = "empty"
    ACCESS_LOST = "access_lost"
