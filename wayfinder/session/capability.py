"""Directory capability handles.

A ``DirectoryHandle`` is an opaque, non-serializable capability rooted at a
directory.  It is only obtainable through an interactive grant (see
``wayfinder.session.provider``) and carries a permission state that can be
revoked at any time.  Every operation re-checks that state and raises
``PermissionDeniedError`` once it is lost.

``LocalDirectoryHandle`` backs the protocol with the local filesystem.  A
handle and all the child handles derived from it share one ``Grant``, so
revoking the root also revokes every subdirectory handle.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Protocol, runtime_checkable

from anyio import to_thread
from loguru import logger

from wayfinder.registry.errors import EntryNotFoundError, InvalidPathError, NotTextError, PermissionDeniedError
from wayfinder.registry.models.enums import EntryKind, GrantOutcome, PermissionState


@runtime_checkable
class DirectoryHandle(Protocol):
    """Capability over one directory.

    ``name`` is the directory's base name, the only identity a handle
    exposes.  ``local_path`` is the filesystem path when the platform
    reveals one, otherwise ``None``.
    """

    @property
    def name(self) -> str: ...

    @property
    def kind(self) -> EntryKind: ...

    @property
    def local_path(self) -> Path | None: ...

    async def query_permission(self) -> PermissionState:
        """Current permission state, without prompting."""
        ...

    async def request_permission(self) -> PermissionState:
        """Ask for read-write access; may prompt the user."""
        ...

    async def is_reachable(self) -> bool:
        """``False`` only when the directory is confirmed gone."""
        ...

    async def entries(self) -> list[tuple[str, EntryKind]]:
        """Direct children as ``(name, kind)`` pairs."""
        ...

    async def get_directory_handle(self, name: str, *, create: bool = False) -> DirectoryHandle: ...

    async def read_text(self, name: str) -> str: ...

    async def write_text(self, name: str, content: str) -> None:
        """Write a child file, creating it when missing."""
        ...

    async def remove_entry(self, name: str, *, recursive: bool = False) -> None: ...

    async def move_entry(self, name: str, target: DirectoryHandle) -> None:
        """Move child ``name`` into ``target``, a directory under the same grant."""
        ...


@dataclass
class GrantResult:
    """Outcome of an interactive directory grant.

    ``handle`` is set only when ``outcome`` is ``granted``.
    """

    outcome: GrantOutcome
    handle: DirectoryHandle | None = None

    @property
    def granted(self) -> bool:
        return self.outcome == GrantOutcome.GRANTED and self.handle is not None


class Grant:
    """Permission state shared by a root handle and its descendants.

    ``revoke(renewable=True)`` mimics a platform that forgets the grant but
    will re-grant on request; ``renewable=False`` mimics a user who refuses.
    """

    def __init__(self, state: PermissionState = PermissionState.GRANTED) -> None:
        self.state = state

    def revoke(self, *, renewable: bool = True) -> None:
        self.state = PermissionState.PROMPT if renewable else PermissionState.DENIED

    def renew(self) -> PermissionState:
        if self.state == PermissionState.PROMPT:
            self.state = PermissionState.GRANTED
        return self.state


class LocalDirectoryHandle:
    """``DirectoryHandle`` over a local directory.

    File I/O runs in worker threads via ``anyio.to_thread.run_sync``.
    """

    def __init__(self, path: str | Path, *, grant: Grant | None = None) -> None:
        self._path = Path(path).expanduser().absolute()
        self.grant = grant or Grant()

    def __repr__(self) -> str:
        return f"LocalDirectoryHandle({str(self._path)!r}, state={self.grant.state})"

    @property
    def name(self) -> str:
        return self._path.name or str(self._path)

    @property
    def kind(self) -> EntryKind:
        return EntryKind.DIRECTORY

    @property
    def local_path(self) -> Path:
        return self._path

    def revoke(self, *, renewable: bool = True) -> None:
        logger.debug("Revoking access to {} (renewable={})", self._path, renewable)
        self.grant.revoke(renewable=renewable)

    # -- Permission ------------------------------------------------------------

    async def query_permission(self) -> PermissionState:
        if self.grant.state != PermissionState.GRANTED:
            return self.grant.state
        if not await to_thread.run_sync(partial(os.access, self._path, os.R_OK | os.W_OK | os.X_OK)):
            return PermissionState.DENIED
        return PermissionState.GRANTED

    async def request_permission(self) -> PermissionState:
        self.grant.renew()
        return await self.query_permission()

    async def is_reachable(self) -> bool:
        return await to_thread.run_sync(self._path.is_dir)

    def _ensure_granted(self) -> None:
        if self.grant.state != PermissionState.GRANTED:
            msg = f"Access to {self.name!r} is {self.grant.state}"
            raise PermissionDeniedError(msg)

    def _child(self, name: str) -> Path:
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            msg = f"Invalid entry name: {name!r}"
            raise InvalidPathError(msg)
        return self._path / name

    # -- Read ------------------------------------------------------------------

    async def entries(self) -> list[tuple[str, EntryKind]]:
        self._ensure_granted()
        try:
            return await to_thread.run_sync(partial(_scan_entries, self._path))
        except FileNotFoundError:
            raise EntryNotFoundError(str(self._path)) from None

    async def get_directory_handle(self, name: str, *, create: bool = False) -> LocalDirectoryHandle:
        self._ensure_granted()
        path = self._child(name)
        await to_thread.run_sync(partial(_ensure_directory, path, create=create))
        return LocalDirectoryHandle(path, grant=self.grant)

    async def read_text(self, name: str) -> str:
        self._ensure_granted()
        path = self._child(name)
        try:
            return await to_thread.run_sync(partial(_read_text, path))
        except (FileNotFoundError, IsADirectoryError):
            raise EntryNotFoundError(f"No file named {name!r} in {self.name!r}") from None
        except UnicodeDecodeError:
            raise NotTextError(f"{name!r} is not UTF-8 text") from None

    # -- Write -----------------------------------------------------------------

    async def write_text(self, name: str, content: str) -> None:
        self._ensure_granted()
        path = self._child(name)
        try:
            await to_thread.run_sync(partial(_write_text, path, content))
        except IsADirectoryError:
            raise InvalidPathError(f"{name!r} is a directory") from None

    async def remove_entry(self, name: str, *, recursive: bool = False) -> None:
        self._ensure_granted()
        path = self._child(name)
        await to_thread.run_sync(partial(_remove, path, recursive=recursive))

    async def move_entry(self, name: str, target: DirectoryHandle) -> None:
        self._ensure_granted()
        if not isinstance(target, LocalDirectoryHandle) or target.grant is not self.grant:
            msg = f"{target.name!r} is outside this workspace"
            raise InvalidPathError(msg)
        await to_thread.run_sync(partial(_move, self._child(name), target._child(name)))


# -- Sync helpers (run in thread pool) -----------------------------------------


def _read_text(path: Path) -> str:
    # newline="" keeps CRLF and lone CR exactly as stored.
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def _scan_entries(path: Path) -> list[tuple[str, EntryKind]]:
    with os.scandir(path) as it:
        return [(e.name, EntryKind.DIRECTORY if e.is_dir() else EntryKind.FILE) for e in it]


def _ensure_directory(path: Path, *, create: bool) -> None:
    if path.is_dir():
        return
    if path.exists():
        msg = f"{path.name!r} is a file, not a directory"
        raise InvalidPathError(msg)
    if not create:
        raise EntryNotFoundError(f"No directory named {path.name!r}")
    path.mkdir(exist_ok=True)


def _remove(path: Path, *, recursive: bool) -> None:
    if path.is_dir() and not path.is_symlink():
        if recursive:
            shutil.rmtree(path)
            return
        try:
            path.rmdir()
        except OSError as exc:
            msg = f"Directory {path.name!r} is not empty"
            raise InvalidPathError(msg) from exc
        return
    try:
        path.unlink()
    except FileNotFoundError:
        raise EntryNotFoundError(f"No entry named {path.name!r}") from None


def _move(source: Path, destination: Path) -> None:
    if not source.exists() and not source.is_symlink():
        raise EntryNotFoundError(f"No entry named {source.name!r}")
    if destination.exists() or destination.is_symlink():
        msg = f"{destination.parent.name!r} already contains {destination.name!r}"
        raise InvalidPathError(msg)
    os.rename(source, destination)
