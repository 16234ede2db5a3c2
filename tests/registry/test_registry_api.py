"""Tests for the registry HTTP endpoints."""

from __future__ import annotations

import json

from httpx import AsyncClient


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_workspace_full_crud(client: AsyncClient) -> None:
    """Exercise register -> get -> update -> touch -> list -> delete in one test."""
    # Register
    resp = await client.post(
        "/api/workspaces/register",
        json={"path": "/home/u/proj-a", "type": "nodejs", "projectFiles": ["package.json"]},
    )
    assert resp.status_code == 200
    ws = resp.json()
    ws_id = ws["id"]
    assert ws["name"] == "proj-a"
    assert ws["settings"]["language"] == "nodejs"
    assert "lastAccessed" in ws

    # Get
    resp = await client.get(f"/api/workspaces/{ws_id}/get")
    assert resp.status_code == 200
    assert resp.json()["id"] == ws_id

    # Update (partial -- only name)
    resp = await client.post(f"/api/workspaces/{ws_id}/update", json={"name": "Frontend"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Frontend"
    assert resp.json()["type"] == "nodejs"  # unchanged

    # Touch
    resp = await client.post(f"/api/workspaces/{ws_id}/touch")
    assert resp.status_code == 200

    # List
    resp = await client.get("/api/workspaces/list")
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()["records"]] == [ws_id]

    # Delete
    resp = await client.post(f"/api/workspaces/{ws_id}/delete")
    assert resp.status_code == 204

    resp = await client.get(f"/api/workspaces/{ws_id}/get")
    assert resp.status_code == 404

    # Deleting again is still a success.
    resp = await client.post(f"/api/workspaces/{ws_id}/delete")
    assert resp.status_code == 204


async def test_register_is_idempotent(client: AsyncClient) -> None:
    payload = {"path": "/home/u/proj-a"}
    resp1 = await client.post("/api/workspaces/register", json=payload)
    resp2 = await client.post("/api/workspaces/register", json=payload)
    assert resp1.json()["id"] == resp2.json()["id"]

    resp = await client.get("/api/workspaces/list")
    assert len(resp.json()["records"]) == 1


async def test_register_requires_path(client: AsyncClient) -> None:
    resp = await client.post("/api/workspaces/register", json={"name": "x"})
    assert resp.status_code == 422


async def test_create_skeleton(client: AsyncClient, tmp_path) -> None:
    resp = await client.post("/api/workspaces/create", json={"name": "My App", "description": "Demo"})
    assert resp.status_code == 201
    ws = resp.json()
    assert ws["name"] == "My App"
    assert ws["type"] == "unknown"

    directory = tmp_path / "data" / "projects" / ws["path"].rsplit("/", 1)[-1]
    assert directory.name.startswith("my-app-")
    assert (directory / "src").is_dir()
    assert (directory / "public").is_dir()
    assert (directory / "README.md").read_text() == "# My App\n\nDemo\n"
    assert "node_modules" in (directory / ".gitignore").read_text()


async def test_create_requires_name(client: AsyncClient) -> None:
    resp = await client.post("/api/workspaces/create", json={"name": ""})
    assert resp.status_code == 422


async def test_get_missing(client: AsyncClient) -> None:
    resp = await client.get("/api/workspaces/nope/get")
    assert resp.status_code == 404
    resp = await client.post("/api/workspaces/nope/update", json={"name": "x"})
    assert resp.status_code == 404
    resp = await client.post("/api/workspaces/nope/touch")
    assert resp.status_code == 404


async def test_corrupt_record_is_reported(client: AsyncClient, tmp_path) -> None:
    workspaces = tmp_path / "data" / "workspaces"
    workspaces.mkdir(parents=True)
    (workspaces / "broken.json").write_text("{")

    resp = await client.get("/api/workspaces/list")
    assert resp.json()["corrupt"] == ["broken"]

    resp = await client.get("/api/workspaces/broken/get")
    assert resp.status_code == 422


async def test_put_repairs_record(client: AsyncClient, tmp_path) -> None:
    workspaces = tmp_path / "data" / "workspaces"
    workspaces.mkdir(parents=True)
    (workspaces / "legacy.json").write_text(json.dumps({"path": "/home/u/legacy"}))

    resp = await client.get("/api/workspaces/list")
    assert resp.json()["repaired"] == ["legacy"]
    record = resp.json()["records"][0]

    resp = await client.post("/api/workspaces/legacy/put", json=record)
    assert resp.status_code == 200

    stored = json.loads((workspaces / "legacy.json").read_text())
    assert stored["id"] == "legacy"
    assert stored["settings"]["indentSize"] == 2

    resp = await client.get("/api/workspaces/list")
    assert resp.json()["repaired"] == []


async def test_put_rejects_mismatched_id(client: AsyncClient) -> None:
    resp = await client.post("/api/workspaces/register", json={"path": "/home/u/a"})
    record = resp.json()

    resp = await client.post("/api/workspaces/other/put", json=record)
    assert resp.status_code == 400


async def test_store_not_initialised() -> None:
    from httpx import ASGITransport

    from wayfinder.registry.app import app

    app.state.record_store = None
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get("/api/workspaces/list")
    assert resp.status_code == 503
