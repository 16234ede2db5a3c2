"""Workspace record model.

A workspace record is the durable, server-owned description of one
registered project root.  It is persisted as one JSON document per id with
camelCase keys::

    {
      "id": "5d0c...",
      "path": "/home/alice/src/proj-a",
      "name": "proj-a",
      "created": "...", "modified": "...", "lastAccessed": "...",
      "type": "python",
      "projectFiles": [".git", "requirements.txt"],
      "git": {"enabled": true, "branch": "main", "remote": "git@..."},
      "settings": {"formatOnSave": true, "indentSize": 4, ...},
      "recentFiles": []
    }

There is no schema version field.  Unknown keys are ignored on read and
missing optional keys are defaulted, which is what lets ``repair_record``
reconstruct incomplete documents.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from wayfinder.registry.errors import CorruptRecordError
from wayfinder.registry.models.enums import EntryKind, ProjectType

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/.git/**",
    "**/target/**",
    "**/__pycache__/**",
    "**/.pytest_cache/**",
    "**/vendor/**",
    "**/.idea/**",
    "**/.vscode/**",
)

# Fields every well-formed document carries.  A record read without one of
# these is still usable but counts as repaired.
_PERSISTED_FIELDS = frozenset({
    "name",
    "created",
    "modified",
    "last_accessed",
    "type",
    "project_files",
    "settings",
    "recent_files",
})

_TIMESTAMP_FIELDS = ("created", "modified", "last_accessed")


def utcnow() -> datetime:
    return datetime.now(UTC)


class CamelModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class GitSnapshot(CamelModel):
    """Git state captured once at registration (not kept live)."""

    enabled: bool = True
    branch: str | None = None
    remote: str | None = None


class WorkspaceSettings(CamelModel):
    """Per-workspace editor preferences."""

    format_on_save: bool = True
    indent_size: int = 2
    theme: str = "dark"
    language: str = "plaintext"
    exclude_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))


def default_settings(project_type: ProjectType | str) -> WorkspaceSettings:
    """Settings derived from the detected project type."""
    project_type = ProjectType(project_type)
    return WorkspaceSettings(
        indent_size=4 if project_type == ProjectType.PYTHON else 2,
        language="plaintext" if project_type == ProjectType.UNKNOWN else project_type.value,
    )


class WorkspaceRecord(CamelModel):
    """Durable workspace metadata (one JSON document per id)."""

    id: str = Field(min_length=1)
    path: str = Field(min_length=1)
    name: str = ""
    description: str | None = None
    created: datetime = Field(default_factory=utcnow)
    modified: datetime = Field(default_factory=utcnow)
    last_accessed: datetime = Field(default_factory=utcnow)
    type: ProjectType = ProjectType.UNKNOWN
    project_files: list[str] = Field(default_factory=list)
    git: GitSnapshot | None = None
    settings: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    recent_files: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _fill_derived_defaults(self) -> WorkspaceRecord:
        if not self.name:
            self.name = os.path.basename(self.path.rstrip("/\\")) or self.path
        if "settings" not in self.model_fields_set:
            self.settings = default_settings(self.type)
        return self

    def touched(self) -> WorkspaceRecord:
        """Copy with ``modified`` and ``last_accessed`` set to now."""
        now = utcnow()
        return self.model_copy(update={"modified": now, "last_accessed": now})

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class RecordDraft(CamelModel):
    """Metadata for a record about to be registered (id and timestamps are assigned by the store)."""

    path: str = Field(min_length=1)
    name: str | None = None
    description: str | None = None
    type: ProjectType = ProjectType.UNKNOWN
    project_files: list[str] = Field(default_factory=list)
    git: GitSnapshot | None = None
    settings: WorkspaceSettings | None = None


class RecordScan(CamelModel):
    """Result of listing the record store.

    ``repaired`` ids were readable but incomplete and have been filled in
    memory; ``corrupt`` ids could not be reconstructed and are flagged for
    deletion.
    """

    records: list[WorkspaceRecord] = Field(default_factory=list)
    repaired: list[str] = Field(default_factory=list)
    corrupt: list[str] = Field(default_factory=list)

    @property
    def ids(self) -> list[str]:
        return [r.id for r in self.records]


class LocalIndexEntry(CamelModel):
    """Client-local descriptor of a granted directory.  Carries no access."""

    name: str
    kind: EntryKind = EntryKind.DIRECTORY
    timestamp: datetime = Field(default_factory=utcnow)


def repair_record(raw: object, *, fallback_id: str | None = None) -> tuple[WorkspaceRecord, bool]:
    """Validate a stored document, repairing it where possible.

    Returns ``(record, repaired)``.  Invalid optional fields are dropped and
    re-defaulted; missing ones are defaulted.  Raises ``CorruptRecordError``
    when ``id`` or ``path`` cannot be reconstructed.  ``fallback_id`` (usually
    the file name) stands in for a missing id.
    """
    if not isinstance(raw, dict):
        msg = f"Record is not a JSON object: {type(raw).__name__}"
        raise CorruptRecordError(msg)

    data = dict(raw)
    if not data.get("id") and fallback_id:
        data["id"] = fallback_id
    for key in ("id", "path"):
        value = data.get(key)
        if not isinstance(value, str) or not value:
            msg = f"Record {data.get('id')!r} has no usable {key!r}"
            raise CorruptRecordError(msg)

    repaired = data["id"] != raw.get("id")
    while True:
        try:
            record = WorkspaceRecord.model_validate(data)
        except ValidationError as exc:
            bad = {str(err["loc"][0]) for err in exc.errors() if err["loc"]} & data.keys()
            if not bad or bad & {"id", "path"}:
                msg = f"Record {data['id']!r} failed validation: {exc}"
                raise CorruptRecordError(msg) from None
            for key in bad:
                del data[key]
            repaired = True
        else:
            break

    # Offset-less timestamps are read as UTC so records stay comparable.
    naive = {}
    for name in _TIMESTAMP_FIELDS:
        value = getattr(record, name)
        if value.tzinfo is None:
            naive[name] = value.replace(tzinfo=UTC)
    if naive:
        record = record.model_copy(update=naive)
        repaired = True

    present = {
        name for name, field in WorkspaceRecord.model_fields.items() if name in data or field.alias in data
    }
    if _PERSISTED_FIELDS - present:
        repaired = True
    return record, repaired
