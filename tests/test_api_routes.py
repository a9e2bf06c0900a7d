"""
HTTP surface tests (local-only mode).
"""

from fastapi.testclient import TestClient

from promptpilot.core.config import CacheSettings
from promptpilot.core.container import build_container


def _create_group(client, name="Support Bot", content="You are helpful.", **extra):
    response = client.post("/groups", json={"name": name, "content": content, **extra})
    assert response.status_code == 201
    return response.json()["data"]


class TestEnvelope:
    def test_success_envelope(self, client):
        response = client.get("/groups")
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"] == []
        assert {"message", "timestamp", "request_id"} <= body.keys()

    def test_request_id_is_echoed(self, client):
        response = client.get("/groups", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"
        assert response.json()["request_id"] == "req-123"

    def test_request_id_is_generated(self, client):
        response = client.get("/groups")
        assert response.headers["X-Request-ID"]
        assert response.json()["request_id"] == response.headers["X-Request-ID"]
        assert "X-Process-Time" in response.headers

    def test_error_envelope(self, client):
        response = client.get("/groups/missing")
        body = response.json()
        assert response.status_code == 404
        assert body["success"] is False
        assert body["error"] == "NOT_FOUND"
        assert body["details"] == {"group_id": "missing"}


class TestGroups:
    def test_create_group(self, client):
        data = _create_group(client, description="desk", tags=["cs", " cs ", ""])
        assert data["name"] == "Support Bot"
        assert data["description"] == "desk"
        assert data["tags"] == ["cs"]
        assert len(data["versions"]) == 1
        version = data["versions"][0]
        assert version["status"] == "current"
        assert version["version_number"] == 1
        assert version["name"] == "v1"
        assert data["current_version_id"] == version["id"]

    def test_create_group_rejects_blank_fields(self, client):
        response = client.post("/groups", json={"name": "  ", "content": "text"})
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_INPUT"

        response = client.post("/groups", json={"name": "G"})
        assert response.status_code == 422

    def test_get_and_list(self, client):
        created = _create_group(client)
        assert client.get(f"/groups/{created['id']}").json()["data"]["id"] == created["id"]
        listed = client.get("/groups").json()["data"]
        assert [g["id"] for g in listed] == [created["id"]]

    def test_update_group(self, client):
        created = _create_group(client)
        response = client.patch(f"/groups/{created['id']}", json={"name": "Renamed", "tags": ["a"]})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed"
        assert data["tags"] == ["a"]

        assert client.patch("/groups/missing", json={"name": "x"}).status_code == 404

    def test_delete_group(self, client):
        created = _create_group(client)
        response = client.delete(f"/groups/{created['id']}")
        assert response.status_code == 200
        assert response.json()["data"] == {"id": created["id"], "deleted": True}
        assert client.get(f"/groups/{created['id']}").status_code == 404
        assert client.delete(f"/groups/{created['id']}").status_code == 404


class TestVersions:
    def test_add_and_list_versions(self, client):
        group = _create_group(client)
        response = client.post(
            f"/groups/{group['id']}/versions",
            json={"content": "Be concise.", "status": "production", "created_from": "improved"},
        )
        assert response.status_code == 201
        version = response.json()["data"]
        assert version["version_number"] == 2
        assert version["status"] == "production"
        assert version["created_from"] == "improved"

        listed = client.get(f"/groups/{group['id']}/versions").json()["data"]
        assert [v["version_number"] for v in listed] == [2, 1]

    def test_add_version_to_missing_group(self, client):
        response = client.post("/groups/missing/versions", json={"content": "x"})
        assert response.status_code == 404
        assert client.get("/groups/missing/versions").status_code == 404

    def test_add_version_with_foreign_parent(self, client):
        group = _create_group(client)
        response = client.post(
            f"/groups/{group['id']}/versions", json={"content": "x", "parent_version_id": "nope"}
        )
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_INPUT"

    def test_invalid_status_is_rejected(self, client):
        group = _create_group(client)
        version_id = group["versions"][0]["id"]
        response = client.put(f"/versions/{version_id}/status", json={"status": "archived"})
        assert response.status_code == 422

    def test_set_status_moves_current(self, client):
        group = _create_group(client)
        first_id = group["versions"][0]["id"]
        second = client.post(f"/groups/{group['id']}/versions", json={"content": "two"}).json()["data"]

        response = client.put(f"/versions/{second['id']}/status", json={"status": "current"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "current"

        assert client.get(f"/versions/{first_id}").json()["data"]["status"] == "draft"
        refreshed = client.get(f"/groups/{group['id']}").json()["data"]
        assert refreshed["current_version_id"] == second["id"]

        assert client.put("/versions/missing/status", json={"status": "draft"}).status_code == 404

    def test_update_version(self, client):
        group = _create_group(client)
        version_id = group["versions"][0]["id"]
        response = client.patch(f"/versions/{version_id}", json={"name": "Baseline"})
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Baseline"
        assert client.patch("/versions/missing", json={"name": "x"}).status_code == 404

    def test_delete_last_version_conflicts(self, client):
        group = _create_group(client)
        version_id = group["versions"][0]["id"]

        response = client.delete(f"/versions/{version_id}")
        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"
        assert client.get(f"/versions/{version_id}").status_code == 200

    def test_delete_version(self, client):
        group = _create_group(client)
        second = client.post(f"/groups/{group['id']}/versions", json={"content": "two"}).json()["data"]

        response = client.delete(f"/versions/{second['id']}")
        assert response.status_code == 200
        assert client.get(f"/versions/{second['id']}").status_code == 404
        assert client.delete(f"/versions/{second['id']}").status_code == 404


class TestQueries:
    def test_search(self, client):
        support = _create_group(client, name="Support Bot", content="You are helpful.")
        _create_group(client, name="Sales", content="Close the deal.")
        client.post(f"/groups/{support['id']}/versions", json={"content": "Be HELPFUL and brief."})

        matches = client.get("/versions/search", params={"q": "helpful"}).json()["data"]
        assert len(matches) == 2
        assert {m["group_name"] for m in matches} == {"Support Bot"}

        by_group_name = client.get("/versions/search", params={"q": "sales"}).json()["data"]
        assert [m["version"]["content"] for m in by_group_name] == ["Close the deal."]

        assert client.get("/versions/search", params={"q": ""}).status_code == 422

    def test_recent(self, client):
        group = _create_group(client)
        for i in range(3):
            client.post(f"/groups/{group['id']}/versions", json={"content": f"text {i}"})

        recent = client.get("/versions/recent", params={"limit": 2}).json()["data"]
        assert len(recent) == 2
        assert client.get("/versions/recent", params={"limit": 0}).status_code == 422


class TestStorageAndSync:
    def test_storage_usage(self, client):
        _create_group(client)
        data = client.get("/storage/usage").json()["data"]
        assert data["total_bytes"] > 0
        assert data["capacity_bytes"] == 5 * 1024 * 1024
        assert data["group_count"] == 1
        assert data["version_count"] == 1
        assert data["is_near_limit"] is False

    def test_sync_status_in_local_mode(self, client):
        response = client.get("/sync/status")
        assert response.status_code == 200
        assert response.json()["data"]["enabled"] is False

    def test_sync_triggers_need_a_remote(self, client):
        for path in ("/sync/pull", "/sync/push", "/sync/dead-letters/retry"):
            response = client.post(path)
            assert response.status_code == 503
            assert response.json()["error"] == "SERVICE_UNAVAILABLE"

    def test_full_cache_rejects_writes(self, settings, tmp_path):
        from promptpilot.app import create_app

        settings.cache = CacheSettings(directory=str(tmp_path / "tiny-cache"), capacity_bytes=64)
        app = create_app(container=build_container(settings), run_pull_worker=False)
        with TestClient(app) as tiny:
            response = tiny.post("/groups", json={"name": "Support Bot", "content": "You are helpful."})
            assert response.status_code == 507
            assert response.json()["error"] == "INSUFFICIENT_STORAGE"
            assert tiny.get("/groups").json()["data"] == []

