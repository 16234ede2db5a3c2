"""Integration tests for S3RecordStore against a real S3 endpoint.

These tests are marked with @pytest.mark.s3 and require S3 configuration
via WAYFINDER_S3_* environment variables. They use a unique test prefix to
avoid collisions and clean up after themselves.

Required env vars:
    WAYFINDER_S3_ENDPOINT
    WAYFINDER_S3_BUCKET
    WAYFINDER_S3_ACCESS_KEY
    WAYFINDER_S3_SECRET_KEY
"""

from __future__ import annotations

import os
import uuid

import pytest

from wayfinder.registry.errors import RecordNotFoundError
from wayfinder.registry.models import RecordDraft, WorkspaceUpdate
from wayfinder.registry.store.s3 import S3RecordStore

# -- Read S3 configuration from environment -----------------------------------
_S3_ENDPOINT = os.environ.get("WAYFINDER_S3_ENDPOINT")
_S3_BUCKET = os.environ.get("WAYFINDER_S3_BUCKET")
_S3_ACCESS_KEY = os.environ.get("WAYFINDER_S3_ACCESS_KEY")
_S3_SECRET_KEY = os.environ.get("WAYFINDER_S3_SECRET_KEY")

_s3_configured = all([_S3_ENDPOINT, _S3_BUCKET, _S3_ACCESS_KEY, _S3_SECRET_KEY])
_skip_reason = (
    "S3 tests require WAYFINDER_S3_ENDPOINT, WAYFINDER_S3_BUCKET, WAYFINDER_S3_ACCESS_KEY, WAYFINDER_S3_SECRET_KEY"
)

pytestmark = [pytest.mark.s3, pytest.mark.skipif(not _s3_configured, reason=_skip_reason)]


@pytest.fixture
def s3_store() -> S3RecordStore:
    """S3 store with a unique test prefix to isolate test data."""
    assert _S3_ENDPOINT and _S3_BUCKET and _S3_ACCESS_KEY and _S3_SECRET_KEY
    test_prefix = f"test-{uuid.uuid4().hex[:8]}"
    return S3RecordStore(
        bucket=_S3_BUCKET,
        endpoint_url=_S3_ENDPOINT,
        access_key=_S3_ACCESS_KEY,
        secret_key=_S3_SECRET_KEY,
        prefix=test_prefix,
        region=os.environ.get("WAYFINDER_S3_REGION"),
    )


async def test_create_get_delete(s3_store: S3RecordStore) -> None:
    record = await s3_store.create(RecordDraft(path="/home/u/proj-a"))
    try:
        fetched = await s3_store.get(record.id)
        assert fetched.path == "/home/u/proj-a"

        again = await s3_store.create(RecordDraft(path="/home/u/proj-a"))
        assert again.id == record.id
    finally:
        await s3_store.delete(record.id)

    with pytest.raises(RecordNotFoundError):
        await s3_store.get(record.id)
    # Delete non-existent is a no-op.
    await s3_store.delete(record.id)


async def test_update_and_list(s3_store: S3RecordStore) -> None:
    record = await s3_store.create(RecordDraft(path="/home/u/proj-b"))
    try:
        updated = await s3_store.update(record.id, WorkspaceUpdate(name="B"))
        assert updated.name == "B"

        scan = await s3_store.list()
        assert scan.ids == [record.id]
        assert scan.corrupt == []
    finally:
        await s3_store.delete(record.id)
