"""Domain exceptions for the workspace registry and capability layer.

Every exception carries a ``hint``: a short, user-actionable sentence that
callers (CLI, editor collaborators) can show as-is.  Routers translate these
into HTTP errors; the session facade lets them through unchanged, so no raw
internal exception crosses the workspace boundary.
"""

from __future__ import annotations


class WorkspaceError(Exception):
    """Base class for all workspace registry errors."""

    hint = "Something went wrong with this workspace."

    def __init__(self, detail: str | None = None, *, hint: str | None = None) -> None:
        super().__init__(detail or self.hint)
        if hint is not None:
            self.hint = hint


# -- NotFound ------------------------------------------------------------------


class RecordNotFoundError(WorkspaceError, LookupError):
    """Raised when a workspace record is absent from the record store."""

    hint = "This workspace was removed."


class EntryNotFoundError(WorkspaceError, LookupError):
    """Raised when a path segment does not exist under a directory handle."""

    hint = "The file or folder does not exist."


# -- Capability ----------------------------------------------------------------


class PermissionDeniedError(WorkspaceError):
    """Raised when a capability grant is refused or has been revoked."""

    hint = "Access to the workspace folder was denied. Grant access again."


class MismatchError(WorkspaceError):
    """Raised when the granted directory is not the remembered one."""

    hint = "The selected folder does not match this workspace."


class AbortedError(WorkspaceError):
    """Raised when the user cancels an interactive prompt.

    Distinct from ``PermissionDeniedError``: nothing was refused, the user
    simply walked away.
    """

    hint = "Folder selection was cancelled."


class UnreachableError(WorkspaceError):
    """Raised when a workspace directory is confirmed gone."""

    hint = "The workspace folder no longer exists. This workspace was removed."


class WorkspaceNotOpenError(WorkspaceError):
    """Raised by file operations on a workspace without a live handle."""

    hint = "Open the workspace first."


class InvalidPathError(WorkspaceError, ValueError):
    """Raised for paths that leave the workspace root or name the wrong kind of entry."""

    hint = "That path cannot be used in this workspace folder."


class NotTextError(WorkspaceError, ValueError):
    """Raised when a file cannot be decoded as UTF-8 text."""

    hint = "The file is not a text file."


# -- Records -------------------------------------------------------------------


class CorruptRecordError(WorkspaceError):
    """Raised when a stored record cannot be reconstructed."""

    hint = "The workspace record is damaged and will be removed."


class RegistryUnavailableError(WorkspaceError):
    """Raised when the remote registry service cannot be reached."""

    hint = "The workspace registry is unavailable. Try again later."
