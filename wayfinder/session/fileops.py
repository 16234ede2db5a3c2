"""File operations against a granted directory handle.

Paths are ``/``-delimited and always relative to the handle root; empty
segments are ignored, so ``"src//app.py"`` and ``"/src/app.py"`` name the
same file.  ``.`` and ``..`` are rejected: the root is the only anchor and
nothing can climb above it.  Every segment is resolved through the handle
itself, which re-checks its permission on each step.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from wayfinder.registry.errors import InvalidPathError
from wayfinder.registry.models.api import FileEntry
from wayfinder.registry.models.enums import EntryKind

if TYPE_CHECKING:
    from wayfinder.session.capability import DirectoryHandle


def split_path(path: str) -> list[str]:
    """Split a workspace-relative path into segments."""
    segments = [segment for segment in path.replace("\\", "/").split("/") if segment]
    for segment in segments:
        if segment in (".", ".."):
            msg = f"Relative segment {segment!r} in {path!r}"
            raise InvalidPathError(msg)
    return segments


async def resolve_directory(handle: DirectoryHandle, segments: list[str], *, create: bool = False) -> DirectoryHandle:
    """Walk ``segments`` from ``handle``.  Raises ``EntryNotFoundError`` unless ``create``."""
    current = handle
    for segment in segments:
        current = await current.get_directory_handle(segment, create=create)
    return current


def _split_leaf(path: str) -> tuple[list[str], str]:
    segments = split_path(path)
    if not segments:
        msg = "Path must name an entry below the workspace root"
        raise InvalidPathError(msg)
    return segments[:-1], segments[-1]


# -- Read ----------------------------------------------------------------------


async def list_tree(handle: DirectoryHandle, path: str = "") -> list[FileEntry]:
    """Recursive listing: directories first, then files, each alphabetical."""
    directory = await resolve_directory(handle, split_path(path))
    return await _walk(directory, "/".join(split_path(path)))


async def _walk(directory: DirectoryHandle, prefix: str) -> list[FileEntry]:
    entries = sorted(await directory.entries(), key=lambda e: (e[1] != EntryKind.DIRECTORY, e[0].lower(), e[0]))
    nodes: list[FileEntry] = []
    for name, kind in entries:
        entry_path = f"{prefix}/{name}" if prefix else name
        if kind == EntryKind.DIRECTORY:
            child = await directory.get_directory_handle(name)
            nodes.append(FileEntry(name=name, path=entry_path, type=kind, children=await _walk(child, entry_path)))
        else:
            nodes.append(FileEntry(name=name, path=entry_path, type=kind))
    return nodes


async def read_file(handle: DirectoryHandle, path: str) -> str:
    parents, name = _split_leaf(path)
    directory = await resolve_directory(handle, parents)
    return await directory.read_text(name)


# -- Write ---------------------------------------------------------------------


async def write_file(handle: DirectoryHandle, path: str, content: str) -> None:
    """Write a text file, creating it and any missing parent directories."""
    parents, name = _split_leaf(path)
    directory = await resolve_directory(handle, parents, create=True)
    await directory.write_text(name, content)


async def make_directory(handle: DirectoryHandle, path: str) -> None:
    """Create a directory and any missing parents.  Existing ones are fine."""
    await resolve_directory(handle, split_path(path), create=True)


async def remove_entry(handle: DirectoryHandle, path: str, *, recursive: bool = True) -> None:
    parents, name = _split_leaf(path)
    directory = await resolve_directory(handle, parents)
    await directory.remove_entry(name, recursive=recursive)


async def move_entry(handle: DirectoryHandle, source: str, target_dir: str) -> str:
    """Move ``source`` into the existing directory ``target_dir``.

    Both paths are relative to the workspace root (``""`` is the root).  The
    entry keeps its name; returns its new path.
    """
    parents, name = _split_leaf(source)
    target = split_path(target_dir)
    if target == parents:
        msg = f"{source!r} is already in {target_dir or '/'!r}"
        raise InvalidPathError(msg)
    if target[: len(parents) + 1] == [*parents, name]:
        msg = f"Cannot move {source!r} into itself"
        raise InvalidPathError(msg)

    source_directory = await resolve_directory(handle, parents)
    target_directory = await resolve_directory(handle, target)
    await source_directory.move_entry(name, target_directory)
    return "/".join([*target, name])
