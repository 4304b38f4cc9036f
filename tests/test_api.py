"""Tests for the HTTP surface wired onto the services."""

from __future__ import annotations

from drive.routers import files, storage


class TestRouterStructure:
    def test_file_routes(self):
        routes = {(route.path, method) for route in files.router.routes for method in route.methods}
        assert ("/api/files", "GET") in routes
        assert ("/api/files", "POST") in routes
        assert ("/api/files", "DELETE") in routes
        assert ("/api/files/search", "GET") in routes
        assert ("/api/files/bulk", "POST") in routes
        assert ("/api/files/{file_id}", "GET") in routes
        assert ("/api/files/{file_id}", "DELETE") in routes
        assert ("/api/sync", "POST") in routes
        assert ("/api/export", "GET") in routes

    def test_storage_routes(self):
        paths = {route.path for route in storage.router.routes}
        assert paths == {
            "/api/storage/info",
            "/api/storage/integrity",
            "/api/storage/repair",
            "/api/backup",
            "/api/backups",
        }


def _upload(client, user_id="u1", name="a.png", data="data:image/png;base64,AAAA", **extra):
    return client.post("/api/files", json={"user_id": user_id, "name": name, "data": data, **extra})


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"


def test_login(client):
    ok = client.post("/api/auth/login", json={"username": "admin", "password": "password"})
    assert ok.status_code == 200
    assert ok.json()["user"] == {"username": "admin", "name": "Administrator"}

    bad = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert bad.status_code == 401
    assert bad.json()["success"] is False


def test_upload_get_list_delete_flow(client):
    created = _upload(client, uploader_name="Taras")
    assert created.status_code == 200
    file = created.json()["file"]
    assert file["created_at"] == file["modified_at"]

    fetched = client.get(f"/api/files/{file['id']}", params={"user_id": "u1"})
    assert fetched.json()["file"]["data"] == "data:image/png;base64,AAAA"

    listed = client.get("/api/files", params={"user_id": "u1"}).json()
    assert listed["count"] == 1
    assert listed["files"][0]["blob_exists"] is True

    deleted = client.delete(f"/api/files/{file['id']}", params={"user_id": "u1"})
    assert deleted.status_code == 200
    assert client.get(f"/api/files/{file['id']}", params={"user_id": "u1"}).status_code == 404


def test_unsupported_type_is_a_bad_request(client):
    response = _upload(client, name="virus.exe")
    assert response.status_code == 400
    assert "Unsupported" in response.json()["error"]


def test_missing_fields_are_a_bad_request(client):
    assert client.post("/api/files", json={"name": "a.png"}).status_code == 400
    assert client.get("/api/files").status_code == 400


def test_bulk_upload_and_clear(client):
    response = client.post(
        "/api/files/bulk",
        json={
            "user_id": "u1",
            "files": [
                {"name": "a.png", "data": "a"},
                {"name": "b.exe", "data": "b"},
                {"name": "c.js", "data": "c"},
            ],
        },
    ).json()
    assert response["total_processed"] == 3
    assert response["success_count"] == 2

    cleared = client.delete("/api/files", params={"user_id": "u1"}).json()
    assert cleared["deleted_count"] == 2


def test_search_and_export(client):
    _upload(client, name="logo.png")
    _upload(client, name="main.js", data="console.log(1)")

    found = client.get("/api/files/search", params={"user_id": "u1", "query": "LOGO"}).json()
    assert [f["name"] for f in found["files"]] == ["logo.png"]

    csv = client.get("/api/export", params={"user_id": "u1", "format": "csv"})
    assert csv.headers["content-type"].startswith("text/csv")
    assert csv.text.splitlines()[0] == "ID,Name,Type,Size,Uploader,Created,Modified"
    assert len(csv.text.splitlines()) == 3

    exported = client.get("/api/export", params={"user_id": "u1"}).json()
    assert exported["files_count"] == 2


def test_sync_and_stats(client):
    _upload(client, name="a.png", data="abc")
    synced = client.post("/api/sync", json={"user_id": "u1", "local_file_ids": ["x"]}).json()
    assert [f["data"] for f in synced["files"]] == ["abc"]
    assert synced["local_file_ids"] == ["x"]

    stats = client.get("/api/stats", params={"user_id": "u1"}).json()["stats"]
    assert stats["total_files"] == 1
    assert stats["file_types"] == {".png": 1}


def test_integrity_repair_and_backups(client, settings):
    _upload(client)
    (settings.files_dir / "stray").write_bytes(b"x")

    integrity = client.get("/api/storage/integrity").json()["integrity"]
    assert integrity["is_healthy"] is False
    assert integrity["issues"][0]["kind"] == "orphan_blob"

    repairs = client.post("/api/storage/repair").json()["repairs"]
    assert repairs["count"] == 1
    assert client.get("/api/storage/integrity").json()["integrity"]["is_healthy"] is True

    info = client.get("/api/storage/info").json()["storage"]
    assert info["physical_files"] == 1

    backup = client.post("/api/backup").json()["backup"]
    assert backup["file_count"] == 1
    listed = client.get("/api/backups").json()
    assert listed["count"] == 1
    assert listed["backups"][0]["name"] == backup["name"]


def test_bulk_upload_reports_invalid_items_individually(client):
    response = client.post(
        "/api/files/bulk",
        json={
            "user_id": "u1",
            "files": [
                {"name": "a.png", "data": "a"},
                {"name": "b.png", "id": "../x", "data": "b"},
                {"name": "", "data": "c"},
                {"name": "d.js", "data": "d"},
            ],
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total_processed"] == 4
    assert body["success_count"] == 2
    assert [r["success"] for r in body["results"]] == [True, False, False, True]
    assert body["results"][1]["name"] == "b.png"
    assert body["results"][1]["error"].startswith("id:")
    assert body["results"][2]["error"].startswith("name:")

    listed = client.get("/api/files", params={"user_id": "u1"}).json()
    assert sorted(f["name"] for f in listed["files"]) == ["a.png", "d.js"]


def test_writes_against_unreadable_catalog_are_unavailable(client, settings):
    _upload(client)
    settings.catalog_path.write_text("{broken")

    assert _upload(client, name="b.png").status_code == 503
    assert client.post("/api/storage/repair").status_code == 503
    assert settings.catalog_path.read_text() == "{broken"
