"""Tests for /api/api-specs: CRUD, operation editing, history, swagger parsing and AI enhancement."""

import pytest

from docuhub.api.api_specs import get_enhancer
from docuhub.exceptions import UpstreamError
from docuhub.main import app
from docuhub.services.spec_enhancer import SpecEnhancer, missing_operations, parse_json_response
from tests.conftest import create_api_spec, create_project, make_api_spec


def _versions(client, spec_id):
    return client.get(f"/api/api-specs/{spec_id}/versions").json()


class TestApiSpecCRUD:

    def test_create_and_get(self, client):
        project = create_project(client)
        spec = create_api_spec(client, project["id"])
        assert spec["source_type"] == "json"

        resp = client.get(f"/api/api-specs/{spec['id']}")
        assert resp.status_code == 200
        assert resp.json()["spec_content"]["info"]["title"] == "Pets API"

    def test_unattached_spec(self, client):
        spec = create_api_spec(client)
        assert spec["project_id"] is None

    def test_list_reports_endpoint_counts(self, client):
        create_api_spec(client)
        [item] = client.get("/api/api-specs").json()["data"]
        assert item["endpoints_count"] == 1

    def test_paths_must_be_object(self, client):
        resp = client.post("/api/api-specs", json=make_api_spec(spec_content={"paths": []}))
        assert resp.status_code == 400

    def test_path_items_must_be_objects(self, client):
        resp = client.post("/api/api-specs", json=make_api_spec(spec_content={"paths": {"/a": None}}))
        assert resp.status_code == 400

    def test_add_operation_to_spec_with_null_paths(self, client):
        spec = create_api_spec(client, spec_content={"openapi": "3.0.0", "paths": None})
        resp = client.post(f"/api/api-specs/{spec['id']}/operations", json={"path": "/a", "method": "get"})
        assert resp.status_code == 201
        assert resp.json()["spec_content"]["paths"] == {"/a": {"get": {}}}

    def test_detach_with_null_project(self, client):
        project = create_project(client)
        spec = create_api_spec(client, project["id"])
        resp = client.put(f"/api/api-specs/{spec['id']}", json={"project_id": None})
        assert resp.json()["project_id"] is None

    def test_rename_writes_no_version(self, client):
        spec = create_api_spec(client)
        client.put(f"/api/api-specs/{spec['id']}", json={"name": "Renamed"})
        assert len(_versions(client, spec["id"])) == 1

    def test_preview(self, client):
        spec = create_api_spec(client)
        preview = client.get(f"/api/api-specs/{spec['id']}/preview").json()
        assert preview["endpoints"] == [{"path": "/pets", "method": "GET"}]
        assert preview["schemas_count"] == 1


class TestOperations:

    def test_add_operation_is_versioned(self, client):
        spec = create_api_spec(client)
        resp = client.post(f"/api/api-specs/{spec['id']}/operations", json={
            "path": "/pets",
            "method": "POST",
            "operation": {"summary": "Create pet", "responses": [{"code": "201", "description": "Created"}]},
        })
        assert resp.status_code == 201
        op = resp.json()["spec_content"]["paths"]["/pets"]["post"]
        assert op["responses"] == {"201": {"description": "Created"}}

        versions = _versions(client, spec["id"])
        assert versions[1]["change_summary"] == "Added POST /pets"
        assert versions[0]["is_current"] is True

    def test_add_existing_operation_conflicts(self, client):
        spec = create_api_spec(client)
        resp = client.post(f"/api/api-specs/{spec['id']}/operations", json={"path": "/pets", "method": "get"})
        assert resp.status_code == 409
        assert len(_versions(client, spec["id"])) == 1

    def test_move_operation(self, client):
        spec = create_api_spec(client)
        resp = client.put(f"/api/api-specs/{spec['id']}/operations", json={
            "path": "/pets", "method": "get", "new_path": "/animals",
        })
        assert resp.status_code == 200
        paths = resp.json()["spec_content"]["paths"]
        assert list(paths) == ["/animals"]

    def test_edit_missing_operation_is_404(self, client):
        spec = create_api_spec(client)
        resp = client.put(f"/api/api-specs/{spec['id']}/operations", json={"path": "/nope", "method": "get"})
        assert resp.status_code == 404

    def test_duplicate_response_codes_are_400(self, client):
        spec = create_api_spec(client)
        resp = client.post(f"/api/api-specs/{spec['id']}/operations", json={
            "path": "/pets", "method": "post",
            "operation": {"responses": [{"code": "200"}, {"code": "200"}]},
        })
        assert resp.status_code == 400

    def test_delete_missing_operation_writes_no_version(self, client):
        spec = create_api_spec(client)
        resp = client.delete(
            f"/api/api-specs/{spec['id']}/operations", params={"path": "/ghost", "method": "get"}
        )
        assert resp.status_code == 200
        assert len(_versions(client, spec["id"])) == 1

    def test_delete_operation(self, client):
        spec = create_api_spec(client)
        resp = client.delete(
            f"/api/api-specs/{spec['id']}/operations", params={"path": "/pets", "method": "get"}
        )
        assert resp.json()["spec_content"]["paths"] == {}


class TestSpecHistory:

    def test_retention_keeps_four_snapshots(self, client):
        spec = create_api_spec(client)
        for i in range(6):
            client.post(f"/api/api-specs/{spec['id']}/operations", json={"path": f"/r{i}", "method": "get"})

        versions = _versions(client, spec["id"])
        assert len(versions) == 5
        assert [v["version_number"] for v in versions[1:]] == [6, 5, 4, 3]

    def test_get_and_restore_version(self, client):
        spec = create_api_spec(client)
        client.post(f"/api/api-specs/{spec['id']}/operations", json={"path": "/owners", "method": "get"})
        v1 = _versions(client, spec["id"])[1]

        stored = client.get(f"/api/api-specs/{spec['id']}/versions/{v1['version_id']}").json()
        assert "/owners" not in stored["spec_content"]["paths"]

        restored = client.post(f"/api/api-specs/{spec['id']}/versions/{v1['version_id']}/restore").json()
        assert "/owners" not in restored["spec_content"]["paths"]
        assert _versions(client, spec["id"])[1]["change_summary"] == "Before restore to v1"

    def test_unknown_version_is_404(self, client):
        spec = create_api_spec(client)
        assert client.get(f"/api/api-specs/{spec['id']}/versions/999").status_code == 404

    def test_full_content_update_is_auto_saved(self, client):
        spec = create_api_spec(client)
        client.put(f"/api/api-specs/{spec['id']}", json={"spec_content": {"openapi": "3.0.0", "paths": {}}})
        assert _versions(client, spec["id"])[1]["change_summary"] == "Version 1 - Auto-saved"


class TestParseSwagger:

    def test_parse_endpoint(self, client):
        code = "/**\n * @swagger\n * /ping:\n *   get:\n *     summary: Ping\n */\n"
        resp = client.post("/api/api-specs/parse-swagger", json={"source_code": code, "file_name": "app.js"})
        assert resp.status_code == 200
        assert resp.json()["paths_count"] == 1

    def test_list_valued_paths_are_400(self, client):
        code = "/**\n * @swagger\n * paths:\n *   - /a\n */"
        resp = client.post("/api/api-specs/parse-swagger", json={"source_code": code})
        assert resp.status_code == 400

    def test_no_comments_is_400(self, client):
        resp = client.post("/api/api-specs/parse-swagger", json={"source_code": "let x = 1;"})
        assert resp.status_code == 400


class _FakeEnhancer:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def enhance_spec(self, spec):
        if self.error:
            raise self.error
        enhanced = dict(spec)
        enhanced["info"] = {**spec["info"], "description": "Enhanced"}
        return self.result or enhanced


@pytest.fixture()
def use_enhancer():
    def _install(enhancer):
        app.dependency_overrides[get_enhancer] = lambda: enhancer
    return _install


class TestEnhance:

    def test_enhance_replaces_spec_and_keeps_prior_version(self, client, use_enhancer):
        use_enhancer(_FakeEnhancer())
        spec = create_api_spec(client)

        resp = client.post(f"/api/api-specs/{spec['id']}/enhance")
        assert resp.status_code == 200
        assert resp.json()["spec_content"]["info"]["description"] == "Enhanced"
        assert _versions(client, spec["id"])[1]["change_summary"] == "Before AI enhancement"

    def test_upstream_failure_leaves_spec_untouched(self, client, use_enhancer):
        use_enhancer(_FakeEnhancer(error=UpstreamError("ai", "boom")))
        spec = create_api_spec(client)

        resp = client.post(f"/api/api-specs/{spec['id']}/enhance")
        assert resp.status_code == 502
        assert resp.json()["error"] == "UPSTREAM_ERROR"
        assert len(_versions(client, spec["id"])) == 1

    def test_unconfigured_enhancer_is_502(self, client):
        spec = create_api_spec(client)
        assert client.post(f"/api/api-specs/{spec['id']}/enhance").status_code == 502


class TestSpecEnhancer:

    def test_completion_is_parsed_and_checked(self, monkeypatch):
        enhancer = SpecEnhancer(model="test/model")
        monkeypatch.setattr(
            enhancer, "_complete",
            lambda messages: '```json\n{"openapi": "3.0.0", "paths": {"/pets": {"get": {"summary": "All pets",}}}}\n```',
        )
        result = enhancer.enhance_spec({"paths": {"/pets": {"get": {}}}})
        assert result["paths"]["/pets"]["get"]["summary"] == "All pets"

    def test_dropped_operation_is_rejected(self, monkeypatch):
        enhancer = SpecEnhancer(model="test/model")
        monkeypatch.setattr(enhancer, "_complete", lambda messages: '{"paths": {}}')
        with pytest.raises(UpstreamError):
            enhancer.enhance_spec({"paths": {"/pets": {"get": {}}}})

    def test_parse_rejects_non_object(self):
        with pytest.raises(UpstreamError):
            parse_json_response("[1, 2, 3]")

    def test_missing_operations(self):
        original = {"paths": {"/a": {"get": {}, "post": {}}}}
        assert missing_operations(original, {"paths": {"/a": {"get": {}}}}) == ["POST /a"]
