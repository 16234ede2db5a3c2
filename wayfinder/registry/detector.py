"""Project type detection.

Classifies a directory from a snapshot of its root-level entry names.  The
only file ever read is ``package.json``, and only to tell CommonJS from ES
module packages.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from wayfinder.registry.errors import EntryNotFoundError
from wayfinder.registry.models.enums import EntryKind, ProjectType

if TYPE_CHECKING:
    from wayfinder.session.capability import DirectoryHandle

# Root-level names that mark a project root (compared case-insensitively).
PROJECT_MARKERS: frozenset[str] = frozenset({
    "package.json",
    "cargo.toml",
    "go.mod",
    "requirements.txt",
    "pyproject.toml",
    "setup.py",
    "composer.json",
    "build.gradle",
    "pom.xml",
    ".git",
    ".svn",
    ".hg",
    ".project",
    ".idea",
    ".vscode",
})

NODE_MANIFEST = "package.json"

# First match wins.
_TYPE_PRIORITY: tuple[tuple[frozenset[str], ProjectType], ...] = (
    (frozenset({"package.json"}), ProjectType.NODEJS),
    (frozenset({"cargo.toml"}), ProjectType.RUST),
    (frozenset({"go.mod"}), ProjectType.GO),
    (frozenset({"requirements.txt", "pyproject.toml", "setup.py"}), ProjectType.PYTHON),
)


@dataclass(frozen=True)
class ProjectDetection:
    type: ProjectType = ProjectType.UNKNOWN
    project_files: list[str] = field(default_factory=list)
    has_git: bool = False


def detect_project(entry_names: Iterable[str], manifest: str | None = None) -> ProjectDetection:
    """Classify a project root from its entry names.

    ``manifest`` is the text of ``package.json`` when the caller has it; it
    only matters for Node projects, where ``"type": "module"`` selects
    ``nodejs-esm``.  Unparseable manifests fall back to plain ``nodejs``.
    """
    matched = sorted({name for name in entry_names if name.lower() in PROJECT_MARKERS})
    lowered = {name.lower() for name in matched}

    project_type = ProjectType.UNKNOWN
    for markers, candidate in _TYPE_PRIORITY:
        if lowered & markers:
            project_type = candidate
            break

    if project_type == ProjectType.NODEJS and manifest is not None and _is_esm_manifest(manifest):
        project_type = ProjectType.NODEJS_ESM

    return ProjectDetection(type=project_type, project_files=matched, has_git=".git" in lowered)


def _is_esm_manifest(manifest: str) -> bool:
    try:
        data = json.loads(manifest)
    except json.JSONDecodeError:
        logger.debug("package.json is not valid JSON; assuming CommonJS")
        return False
    return isinstance(data, dict) and data.get("type") == "module"


async def detect_from_handle(handle: DirectoryHandle) -> ProjectDetection:
    """Run ``detect_project`` against the root of a granted directory."""
    entries = await handle.entries()
    names = [name for name, _ in entries]

    manifest: str | None = None
    node_manifest = next(
        (name for name, kind in entries if name.lower() == NODE_MANIFEST and kind == EntryKind.FILE),
        None,
    )
    if node_manifest is not None:
        try:
            manifest = await handle.read_text(node_manifest)
        except EntryNotFoundError:
            manifest = None

    return detect_project(names, manifest)
