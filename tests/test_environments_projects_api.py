"""Tests for /api/environments and /api/projects."""

from docuhub.services.project_service import ProjectService
from tests.conftest import (
    create_api_key,
    create_api_spec,
    create_document,
    create_environment,
    create_project,
    make_project,
)


class TestEnvironments:

    def test_create_and_list_with_project_count(self, client):
        env = create_environment(client, name="Prod")
        create_project(client, environment_id=env["id"], code="A")
        create_project(client, environment_id=env["id"], code="B")

        resp = client.get("/api/environments")
        assert resp.status_code == 200
        [listed] = resp.json()
        assert listed["name"] == "Prod"
        assert listed["project_count"] == 2

    def test_update(self, client):
        env = create_environment(client)
        resp = client.put(f"/api/environments/{env['id']}", json={"name": "Staging"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Staging"
        assert resp.json()["description"] == "Production"

    def test_delete_empty_environment(self, client):
        env = create_environment(client)
        assert client.delete(f"/api/environments/{env['id']}").status_code == 204
        assert client.get(f"/api/environments/{env['id']}").status_code == 404

    def test_delete_with_projects_is_precondition_failed(self, client):
        env = create_environment(client)
        create_project(client, environment_id=env["id"])
        resp = client.delete(f"/api/environments/{env['id']}")
        assert resp.status_code == 412
        assert resp.json()["error"] == "PRECONDITION_FAILED"
        assert resp.json()["details"]["project_count"] == 1

    def test_missing_name_is_400(self, client):
        resp = client.post("/api/environments", json={"description": "x"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "VALIDATION_ERROR"


class TestProjects:

    def test_create_project(self, client):
        project = create_project(client, code="PRY")
        assert project["code"] == "PRY"
        assert project["color"] == "#6366f1"

    def test_code_longer_than_ten_is_rejected(self, client):
        env = create_environment(client)
        resp = client.post("/api/projects", json=make_project(env["id"], code="ABCDEFGHIJK"))
        assert resp.status_code == 400

    def test_code_unique_case_insensitive(self, client):
        env = create_environment(client)
        create_project(client, environment_id=env["id"], code="PRY")
        resp = client.post("/api/projects", json=make_project(env["id"], code="pry"))
        assert resp.status_code == 409

    def test_unique_index_rejects_duplicate_codes(self, client, monkeypatch):
        monkeypatch.setattr(ProjectService, "_check_code_free", lambda self, code, exclude_id=None: None)
        env = create_environment(client)
        create_project(client, environment_id=env["id"], code="PRY")
        other = create_project(client, environment_id=env["id"], code="OTHER")

        resp = client.post("/api/projects", json=make_project(env["id"], code="pry"))
        assert resp.status_code == 409
        assert resp.json()["error"] == "CONFLICT"

        resp = client.put(f"/api/projects/{other['id']}", json={"code": "Pry"})
        assert resp.status_code == 409
        assert client.get(f"/api/projects/{other['id']}").json()["code"] == "OTHER"

    def test_unknown_environment_is_404(self, client):
        resp = client.post("/api/projects", json=make_project(9999))
        assert resp.status_code == 404

    def test_list_is_paginated(self, client):
        env = create_environment(client)
        for i in range(3):
            create_project(client, environment_id=env["id"], code=f"P{i}")

        resp = client.get("/api/projects", params={"page": 2, "limit": 2})
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {
            "current_page": 2,
            "total_pages": 2,
            "total_items": 3,
            "items_per_page": 2,
            "has_next_page": False,
            "has_prev_page": True,
        }

    def test_limit_is_clamped(self, client):
        resp = client.get("/api/projects", params={"limit": 1000})
        assert resp.json()["pagination"]["items_per_page"] == 100

    def test_page_zero_is_rejected(self, client):
        assert client.get("/api/projects", params={"page": 0}).status_code == 400

    def test_filter_by_environment(self, client):
        a = create_environment(client, name="A")
        b = create_environment(client, name="B")
        create_project(client, environment_id=a["id"], code="AA")
        create_project(client, environment_id=b["id"], code="BB")

        data = client.get("/api/projects", params={"environment_id": b["id"]}).json()["data"]
        assert [p["code"] for p in data] == ["BB"]

    def test_delete_cascades_documents_and_keys_and_detaches_specs(self, client):
        project = create_project(client)
        doc = create_document(client, project["id"])
        spec = create_api_spec(client, project["id"])
        key = create_api_key(client, project_id=project["id"])

        assert client.delete(f"/api/projects/{project['id']}").status_code == 204

        assert client.get(f"/api/documents/{doc['id']}").status_code == 404
        assert client.get(f"/api/api-keys/{key['id']}").status_code == 404
        detached = client.get(f"/api/api-specs/{spec['id']}")
        assert detached.status_code == 200
        assert detached.json()["project_id"] is None


class TestOwnership:

    def test_other_user_cannot_see_or_change_project(self, client, auth_enabled, make_user):
        _, owner = make_user("Owner")
        _, other = make_user("Other")
        project = create_project(client, headers=owner)

        assert client.get(f"/api/projects/{project['id']}", headers=other).status_code == 403
        assert client.put(f"/api/projects/{project['id']}", json={"name": "X"}, headers=other).status_code == 403
        assert client.get("/api/projects", headers=other).json()["pagination"]["total_items"] == 0

    def test_missing_token_is_401(self, client, auth_enabled):
        resp = client.get("/api/environments")
        assert resp.status_code == 401
        assert resp.json()["error"] == "UNAUTHORIZED"
