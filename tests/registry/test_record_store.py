"""Unit tests for LocalRecordStore.

No service required -- uses a temporary directory.
"""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from wayfinder.registry.errors import RecordNotFoundError
from wayfinder.registry.models import ProjectType, RecordDraft, WorkspaceSettings, WorkspaceUpdate
from wayfinder.registry.store.local import LocalRecordStore


@pytest.fixture
def prefixed_store(tmp_path) -> LocalRecordStore:
    return LocalRecordStore(tmp_path / "data", prefix="alice")


def _record_file(tmp_path: Path, workspace_id: str) -> Path:
    return tmp_path / "data" / "workspaces" / f"{workspace_id}.json"


async def test_create_and_get(store: LocalRecordStore) -> None:
    record = await store.create(
        RecordDraft(path="/home/u/proj-a", type=ProjectType.PYTHON, project_files=["setup.py", ".git", "setup.py"])
    )

    assert len(record.id) == 32
    assert record.name == "proj-a"
    assert record.project_files == [".git", "setup.py"]
    assert record.settings.indent_size == 4
    assert record.settings.language == "python"

    fetched = await store.get(record.id)
    assert fetched == record


async def test_create_is_idempotent_on_path(store: LocalRecordStore) -> None:
    first = await store.create(RecordDraft(path="/home/u/proj-a"))
    second = await store.create(RecordDraft(path="/home/u/./proj-a/", name="other"))

    assert second.id == first.id
    assert second.name == "proj-a"
    assert second.last_accessed >= first.last_accessed
    assert len((await store.list()).records) == 1


async def test_relative_path_hint_is_home_relative(store: LocalRecordStore) -> None:
    record = await store.create(RecordDraft(path="proj-b"))
    assert record.path == str(Path("~/proj-b").expanduser())


async def test_record_file_is_camel_case(store: LocalRecordStore, tmp_path) -> None:
    record = await store.create(RecordDraft(path="/home/u/proj-a"))
    data = json.loads(_record_file(tmp_path, record.id).read_text())

    assert data["id"] == record.id
    assert "lastAccessed" in data
    assert "projectFiles" in data
    assert data["settings"]["excludePatterns"]
    assert "schemaVersion" not in data


async def test_get_not_found(store: LocalRecordStore) -> None:
    with pytest.raises(RecordNotFoundError):
        await store.get("missing")
    with pytest.raises(RecordNotFoundError):
        await store.get("../escape")


async def test_update_partial(store: LocalRecordStore) -> None:
    record = await store.create(RecordDraft(path="/home/u/proj-a", description="old"))

    updated = await store.update(record.id, WorkspaceUpdate(name="Project A"))
    assert updated.name == "Project A"
    assert updated.description == "old"  # unchanged
    assert updated.modified >= record.modified

    cleared = await store.update(record.id, WorkspaceUpdate(description=None))
    assert cleared.description is None

    themed = await store.update(record.id, WorkspaceUpdate(settings=WorkspaceSettings(theme="light")))
    assert themed.settings.theme == "light"
    assert (await store.get(record.id)).settings.theme == "light"


async def test_update_missing(store: LocalRecordStore) -> None:
    with pytest.raises(RecordNotFoundError):
        await store.update("missing", WorkspaceUpdate(name="x"))


async def test_touch(store: LocalRecordStore) -> None:
    record = await store.create(RecordDraft(path="/home/u/proj-a"))
    touched = await store.touch(record.id)
    assert touched.last_accessed >= record.last_accessed
    assert touched.created == record.created


async def test_delete_is_idempotent(store: LocalRecordStore) -> None:
    record = await store.create(RecordDraft(path="/home/u/proj-a"))

    await store.delete(record.id)
    with pytest.raises(RecordNotFoundError):
        await store.get(record.id)

    # Delete non-existent is a no-op.
    await store.delete(record.id)
    await store.delete("../nope")


async def test_list_newest_first(store: LocalRecordStore) -> None:
    a = await store.create(RecordDraft(path="/home/u/a"))
    b = await store.create(RecordDraft(path="/home/u/b"))
    b = await store.put(b.model_copy(update={"created": a.created + timedelta(seconds=1)}))

    scan = await store.list()
    assert scan.ids == [b.id, a.id]
    assert scan.repaired == []
    assert scan.corrupt == []


async def test_list_skips_corrupt_records(store: LocalRecordStore, tmp_path) -> None:
    good = await store.create(RecordDraft(path="/home/u/a"))
    workspaces = tmp_path / "data" / "workspaces"
    (workspaces / "badjson.json").write_text("{not json")
    (workspaces / "nopath.json").write_text(json.dumps({"id": "nopath", "name": "x"}))
    (workspaces / "array.json").write_text("[1, 2]")

    scan = await store.list()
    assert scan.ids == [good.id]
    assert sorted(scan.corrupt) == ["array", "badjson", "nopath"]


async def test_list_repairs_incomplete_records(store: LocalRecordStore, tmp_path) -> None:
    workspaces = tmp_path / "data" / "workspaces"
    workspaces.mkdir(parents=True)
    (workspaces / "old1.json").write_text(json.dumps({"path": "/home/u/legacy", "type": "rust", "git": "broken"}))

    scan = await store.list()
    assert scan.repaired == ["old1"]
    (record,) = scan.records
    assert record.id == "old1"
    assert record.name == "legacy"
    assert record.git is None
    assert record.settings.language == "rust"


async def test_list_reads_naive_timestamps_as_utc(store: LocalRecordStore, tmp_path) -> None:
    newer = await store.create(RecordDraft(path="/home/u/new"))
    workspaces = tmp_path / "data" / "workspaces"
    legacy = newer.model_dump(mode="json", by_alias=True)
    legacy.update(
        id="legacy1", path="/home/u/legacy", created="2024-01-01T00:00:00", lastAccessed="2024-01-02T00:00:00"
    )
    (workspaces / "legacy1.json").write_text(json.dumps(legacy))

    scan = await store.list()

    assert scan.ids == [newer.id, "legacy1"]
    assert scan.repaired == ["legacy1"]
    old = scan.records[1]
    assert old.created.tzinfo is not None
    assert old.created.isoformat() == "2024-01-01T00:00:00+00:00"
    assert (await store.get("legacy1")).last_accessed.utcoffset() == timedelta(0)

    # Registering another directory still works with the legacy record present.
    await store.create(RecordDraft(path="/home/u/other"))


async def test_prefix_isolation(store: LocalRecordStore, prefixed_store: LocalRecordStore, tmp_path) -> None:
    await prefixed_store.create(RecordDraft(path="/home/u/a"))

    assert (await store.list()).records == []
    assert len((await prefixed_store.list()).records) == 1
    assert (tmp_path / "data" / "alice" / "workspaces").is_dir()


async def test_no_temp_files_left(store: LocalRecordStore, tmp_path) -> None:
    record = await store.create(RecordDraft(path="/home/u/a"))
    await store.touch(record.id)

    leftovers = list((tmp_path / "data" / "workspaces").glob("*.tmp"))
    assert leftovers == []


def test_backends_share_the_write_path() -> None:
    from wayfinder.registry.store.base import DocumentRecordStore, RecordStore
    from wayfinder.registry.store.s3 import S3RecordStore

    for name in ("create", "put", "update", "touch"):
        assert getattr(S3RecordStore, name) is getattr(LocalRecordStore, name)
        assert getattr(LocalRecordStore, name) is getattr(DocumentRecordStore, name)
    assert isinstance(LocalRecordStore("unused"), RecordStore)
