"""Tests for the auth module: token creation and validation, registration, login, admin routes."""

from docuhub.core import token_factory
from docuhub.core.token_factory import create_token, decode_token
from tests.conftest import (
    bearer,
    create_api_key,
    create_document,
    create_project,
    make_api_spec,
    make_environment,
)


class TestTokenFactory:

    def test_create_and_decode(self):
        token = create_token("u1", "editor", "test-secret", name="Alice")
        payload = decode_token(token, "test-secret")
        assert payload is not None
        assert payload.sub == "u1"
        assert payload.role == "editor"
        assert payload.name == "Alice"

    def test_wrong_secret_returns_none(self):
        token = create_token("u1", "editor", "correct-secret")
        assert decode_token(token, "wrong-secret") is None

    def test_expired_token_returns_none(self):
        token = create_token("u1", "editor", "secret", expires_hours=-1)
        assert decode_token(token, "secret") is None

    def test_malformed_token_returns_none(self):
        assert decode_token("not.a.token", "secret") is None
        assert decode_token("", "secret") is None

    def test_foreign_issuer_returns_none(self, monkeypatch):
        monkeypatch.setattr(token_factory, "ISSUER", "someone-else")
        token = create_token("u1", "editor", "secret")
        monkeypatch.undo()
        assert decode_token(token, "secret") is None


class TestAuthDisabledMode:
    """With AUTH_ENABLED=false every endpoint runs as the anonymous editor."""

    def test_create_without_token_succeeds(self, client):
        resp = client.post("/api/environments", json={"name": "Prod"})
        assert resp.status_code == 201

    def test_me_returns_anonymous(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["user_id"] == "anonymous"


class TestRegistrationAndLogin:

    def test_first_user_becomes_admin(self, client, auth_enabled):
        resp = client.post("/api/auth/register", json={
            "email": "Alice@Example.com", "password": "securepass", "display_name": "Alice",
        })
        assert resp.status_code == 201
        assert resp.json()["role"] == "admin"
        assert resp.json()["email"] == "alice@example.com"

    def test_later_registration_requires_admin(self, client, auth_enabled, make_user):
        make_user("Admin", role="admin")
        resp = client.post("/api/auth/register", json={
            "email": "bob@example.com", "password": "securepass", "display_name": "Bob",
        })
        assert resp.status_code == 403

    def test_admin_can_register_users(self, client, auth_enabled, make_user):
        _, headers = make_user("Admin", role="admin")
        resp = client.post("/api/auth/register", headers=headers, json={
            "email": "bob@example.com", "password": "securepass", "display_name": "Bob",
        })
        assert resp.status_code == 201
        assert resp.json()["role"] == "editor"

    def test_duplicate_email_is_409(self, client):
        body = {"email": "bob@example.com", "password": "securepass", "display_name": "Bob"}
        assert client.post("/api/auth/register", json=body).status_code == 201
        assert client.post("/api/auth/register", json=body).status_code == 409

    def test_short_password_is_400(self, client):
        resp = client.post("/api/auth/register", json={
            "email": "bob@example.com", "password": "short", "display_name": "Bob",
        })
        assert resp.status_code == 400

    def test_login_then_me(self, client, auth_enabled):
        client.post("/api/auth/register", json={
            "email": "alice@example.com", "password": "securepass", "display_name": "Alice",
        })
        resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "securepass"})
        assert resp.status_code == 200
        token = resp.json()["token"]
        assert resp.json()["user"]["display_name"] == "Alice"

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "alice@example.com"

    def test_wrong_password_is_401(self, client, auth_enabled, make_user):
        make_user("Alice")
        resp = client.post("/api/auth/login", json={"email": "user1@example.com", "password": "nope-nope"})
        assert resp.status_code == 401

    def test_missing_token_is_401(self, client, auth_enabled):
        assert client.get("/api/environments").status_code == 401

    def test_token_for_unknown_user_is_401(self, client, auth_enabled):
        assert client.get("/api/environments", headers=bearer("ghost")).status_code == 401


class TestUserManagement:

    def test_list_users_requires_admin(self, client, auth_enabled, make_user):
        make_user("Admin", role="admin")
        _, headers = make_user("Editor")
        assert client.get("/api/auth/users", headers=headers).status_code == 403

    def test_admin_changes_role(self, client, auth_enabled, make_user):
        _, admin_headers = make_user("Admin", role="admin")
        editor, _ = make_user("Editor")

        resp = client.put(f"/api/auth/users/{editor.user_id}/role", headers=admin_headers, json={"role": "viewer"})
        assert resp.status_code == 200
        assert resp.json()["role"] == "viewer"

        bad = client.put(f"/api/auth/users/{editor.user_id}/role", headers=admin_headers, json={"role": "owner"})
        assert bad.status_code == 400

    def test_deactivated_user_is_locked_out(self, client, auth_enabled, make_user):
        _, admin_headers = make_user("Admin", role="admin")
        editor, editor_headers = make_user("Editor")

        resp = client.put(f"/api/auth/users/{editor.user_id}/deactivate", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
        assert client.get("/api/environments", headers=editor_headers).status_code == 401

    def test_unknown_user_is_404(self, client, auth_enabled, make_user):
        _, admin_headers = make_user("Admin", role="admin")
        resp = client.put("/api/auth/users/nobody/deactivate", headers=admin_headers)
        assert resp.status_code == 404


class TestViewerRole:

    def test_viewer_cannot_create_content(self, client, auth_enabled, make_user):
        _, headers = make_user("Viewer", role="viewer")

        resp = client.post("/api/environments", json=make_environment(), headers=headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "FORBIDDEN"
        assert client.post("/api/api-specs", json=make_api_spec(), headers=headers).status_code == 403
        assert client.post("/api/source-control/github/connect", json={"access_token": "t"},
                           headers=headers).status_code == 403

    def test_viewer_reads_but_cannot_change_documents(self, client, auth_enabled, make_user):
        _, editor_headers = make_user("Editor")
        _, viewer_headers = make_user("Viewer", role="viewer")
        project = create_project(client, editor_headers)
        doc = create_document(client, project["id"], editor_headers)

        resp = client.get(f"/api/documents/{doc['id']}", headers=viewer_headers)
        assert resp.status_code == 200
        assert resp.json()["can_edit"] is False

        resp = client.put(f"/api/documents/{doc['id']}", json={"content": "changed"}, headers=viewer_headers)
        assert resp.status_code == 403
        assert client.delete(f"/api/documents/{doc['id']}", headers=viewer_headers).status_code == 403

    def test_demoted_editor_loses_write_access(self, client, auth_enabled, make_user):
        _, admin_headers = make_user("Admin", role="admin")
        editor, editor_headers = make_user("Editor")
        project = create_project(client, editor_headers)

        client.put(f"/api/auth/users/{editor.user_id}/role", headers=admin_headers, json={"role": "viewer"})

        resp = client.put(f"/api/projects/{project['id']}", json={"name": "Renamed"}, headers=editor_headers)
        assert resp.status_code == 403
        listed = client.get("/api/projects", headers=editor_headers).json()["data"]
        assert listed[0]["name"] == "Payments"

    def test_viewer_may_manage_own_api_keys(self, client, auth_enabled, make_user):
        _, headers = make_user("Viewer", role="viewer")
        key = create_api_key(client, headers)
        assert client.post(f"/api/api-keys/{key['id']}/revoke", headers=headers).status_code == 200
        assert client.delete(f"/api/api-keys/{key['id']}", headers=headers).status_code == 204

    def test_viewer_api_key_is_read_only(self, client, auth_enabled, make_user):
        _, headers = make_user("Viewer", role="viewer")
        key = create_api_key(client, headers)

        api_headers = {"X-API-Key": key["key"]}
        assert client.get("/api/environments", headers=api_headers).status_code == 200
        assert client.post("/api/environments", json=make_environment(), headers=api_headers).status_code == 403
