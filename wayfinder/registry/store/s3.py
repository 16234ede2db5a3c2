"""S3 record store.

Stores one JSON object per workspace in S3 with optional namespace prefix::

    s3://{bucket}/{prefix}/workspaces/{workspace_id}.json

When prefix is None, the path collapses to::

    s3://{bucket}/workspaces/{workspace_id}.json

Uses ``anyio.to_thread.run_sync`` to run boto3 calls in the thread pool,
matching the same async pattern as LocalRecordStore.  A single PUT replaces
a whole object, so each record keeps the same last-write-wins atomicity as
the local backend.
"""

from __future__ import annotations

from functools import partial
from typing import Any

import boto3
from anyio import to_thread
from botocore.config import Config

from wayfinder.registry.errors import RecordNotFoundError
from wayfinder.registry.models.record import RecordScan, WorkspaceRecord
from wayfinder.registry.store.base import (
    DocumentRecordStore,
    build_scan,
    is_valid_workspace_id,
    parse_record_document,
)


def _create_s3_client(
    endpoint_url: str,
    access_key: str,
    secret_key: str,
    region: str | None = None,
    path_style: bool = False,
) -> Any:
    """Create a boto3 S3 client.

    Args:
        endpoint_url: S3 endpoint URL.
        access_key: AWS access key ID.
        secret_key: AWS secret access key.
        region: AWS region name (optional, some endpoints require it).
        path_style: Use path-style addressing instead of virtual-hosted.
            Required by MinIO and some S3-compatible services.
    """
    config = Config(
        request_checksum_calculation="when_required",
        response_checksum_validation="when_required",
        s3={"addressing_style": "path" if path_style else "auto"},
    )

    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=region,
        config=config,
    )


class S3RecordStore(DocumentRecordStore):
    """S3 implementation of the RecordStore protocol.

    Layout::

        s3://{bucket}/{key_prefix}workspaces/{workspace_id}.json

    Where ``key_prefix`` is ``{prefix}/`` if prefix is set, or empty string.
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        prefix: str | None = None,
        region: str | None = None,
        path_style: bool = False,
    ) -> None:
        super().__init__()
        self._bucket = bucket
        self._client = _create_s3_client(endpoint_url, access_key, secret_key, region=region, path_style=path_style)
        self._key_prefix = f"{prefix}/workspaces/" if prefix else "workspaces/"

    def _object_key(self, workspace_id: str) -> str:
        if not is_valid_workspace_id(workspace_id):
            raise RecordNotFoundError(workspace_id)
        return f"{self._key_prefix}{workspace_id}.json"

    # -- Write -----------------------------------------------------------------

    async def _write(self, record: WorkspaceRecord) -> None:
        await to_thread.run_sync(
            partial(
                self._client.put_object,
                Bucket=self._bucket,
                Key=self._object_key(record.id),
                Body=record.to_json().encode("utf-8"),
                ContentType="application/json",
            )
        )

    # -- Read ------------------------------------------------------------------

    async def get(self, workspace_id: str) -> WorkspaceRecord:
        key = self._object_key(workspace_id)
        body = await to_thread.run_sync(partial(self._get_object_body, key))
        if body is None:
            raise RecordNotFoundError(workspace_id)
        record, _ = parse_record_document(workspace_id, body)
        return record

    async def list(self) -> RecordScan:
        return build_scan(await to_thread.run_sync(self._read_all))

    def _read_all(self) -> list[tuple[str, str]]:
        documents: list[tuple[str, str]] = []
        for key in self._list_keys():
            workspace_id = key[len(self._key_prefix) : -len(".json")]
            if not is_valid_workspace_id(workspace_id):
                continue
            body = self._get_object_body(key)
            if body is not None:
                documents.append((workspace_id, body))
        return documents

    def _list_keys(self) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self._bucket, Prefix=self._key_prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []) if obj["Key"].endswith(".json"))
        return sorted(keys)

    def _get_object_body(self, key: str) -> str | None:
        """Get object and read body in the same thread.

        Reading the streaming body must happen in the same thread as
        get_object to avoid issues with chunked transfer encoding.
        Returns ``None`` if the object does not exist.
        """
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
        except self._client.exceptions.NoSuchKey:
            return None
        return resp["Body"].read().decode("utf-8", errors="replace")

    # -- Utilities -------------------------------------------------------------

    async def delete(self, workspace_id: str) -> None:
        if not is_valid_workspace_id(workspace_id):
            return
        # S3 delete is idempotent -- no error if key doesn't exist.
        await to_thread.run_sync(
            partial(self._client.delete_object, Bucket=self._bucket, Key=self._object_key(workspace_id))
        )
