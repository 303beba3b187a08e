"""Tests for source-control connections and repository analysis, with providers faked."""

import json
from unittest.mock import MagicMock

import pytest
import requests
from cryptography.fernet import Fernet

from docuhub.api.source_control import get_source_control_service
from docuhub.exceptions import StoredCredentialError, UpstreamError, ValidationError
from docuhub.main import app
from docuhub.models import SourceControlAccount
from docuhub.services import source_control
from docuhub.services.source_control import GitHubProvider, SourceControlProvider, manifest_dependencies
from docuhub.services.source_control_service import SourceControlService
from docuhub.services.token_cipher import TokenCipher
from tests.conftest import create_project

ROUTES_JS = """
/**
 * @swagger
 * /orders:
 *   get:
 *     summary: List orders
 *     responses:
 *       200:
 *         description: OK
 */
app.get("/orders", list);
"""

FILES = {
    "package.json": json.dumps({"dependencies": {"express": "^4.18.0"}}),
    "src/routes/orders.js": ROUTES_JS,
    "src/util.js": "module.exports = {};",
    "node_modules/lib/index.js": ROUTES_JS,
    "README.md": "# shop",
}


class FakeProvider(SourceControlProvider):
    name = "github"

    def __init__(self, token, username=None, files=None):
        super().__init__(token, username)
        self.files = FILES if files is None else files

    def current_user(self):
        if self.token == "bad":
            raise UpstreamError(self.name, "Access token rejected", upstream_status=401)
        return "octocat"

    def list_repos(self):
        return [{"name": "shop", "full_name": "octocat/shop", "owner": "octocat", "default_branch": "main"}]

    def default_branch(self, owner, repo):
        return "main"

    def list_files(self, owner, repo, branch):
        return list(self.files)

    def read_file(self, owner, repo, branch, path):
        return self.files[path]


@pytest.fixture()
def fake_service(db):
    service = SourceControlService(db, factory=lambda provider, token, username: FakeProvider(token, username))
    app.dependency_overrides[get_source_control_service] = lambda: service
    return service


class TestConnection:

    def test_connect_stores_encrypted_token(self, client, db, fake_service):
        resp = client.post("/api/source-control/github/connect", json={"access_token": "ghp_secret"})
        assert resp.status_code == 200
        assert resp.json()["connected"] is True
        assert resp.json()["username"] == "octocat"

        account = db.query(SourceControlAccount).one()
        assert account.access_token_encrypted != "ghp_secret"
        assert fake_service.cipher.decrypt(account.access_token_encrypted) == "ghp_secret"

    def test_rejected_token_is_502_and_not_stored(self, client, db, fake_service):
        resp = client.post("/api/source-control/github/connect", json={"access_token": "bad"})
        assert resp.status_code == 502
        assert db.query(SourceControlAccount).count() == 0

    def test_status_and_disconnect(self, client, fake_service):
        assert client.get("/api/source-control/github/status").json()["connected"] is False
        client.post("/api/source-control/github/connect", json={"access_token": "t"})
        assert client.get("/api/source-control/github/status").json()["connected"] is True

        assert client.delete("/api/source-control/github").status_code == 204
        assert client.get("/api/source-control/github/status").json()["connected"] is False

    def test_unknown_provider_is_400(self, client, fake_service):
        assert client.get("/api/source-control/gitlab/status").status_code == 400

    def test_repos_require_connection(self, client, fake_service):
        assert client.get("/api/source-control/github/repos").status_code == 404

    def test_list_repos(self, client, fake_service):
        client.post("/api/source-control/github/connect", json={"access_token": "t"})
        repos = client.get("/api/source-control/github/repos").json()
        assert repos[0]["full_name"] == "octocat/shop"


class TestAnalyze:

    def test_analyze_creates_spec(self, client, fake_service):
        project = create_project(client)
        client.post("/api/source-control/github/connect", json={"access_token": "t"})

        resp = client.post(
            "/api/source-control/github/repos/octocat/shop/analyze",
            json={"project_id": project["id"]},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["branch"] == "main"
        assert body["frameworks"] == ["express"]
        assert body["files_scanned"] == 2
        assert body["paths_count"] == 1

        spec = body["api_spec"]
        assert spec["source_type"] == "swagger-comments"
        assert spec["project_id"] == project["id"]
        assert spec["name"] == "octocat/shop"
        assert spec["spec_content"]["info"]["title"] == "shop API"
        assert "/orders" in spec["spec_content"]["paths"]

    def test_repository_without_comments_is_rejected(self):
        provider = FakeProvider("t", files={"src/a.js": "const a = 1;"})
        with pytest.raises(ValidationError):
            provider.analyze_repo("octocat", "shop")

    def test_routes_are_inferred_without_comments(self, client, db):
        files = {
            "package.json": json.dumps({"dependencies": {"express": "^4.18.0"}}),
            "src/users.js": 'router.get("/users", list);\nrouter.post("/users", create);\nrouter.delete("/users/:id", remove);',
            "src/util.js": "module.exports = {};",
        }
        service = SourceControlService(db, factory=lambda provider, token, username: FakeProvider(token, username, files))
        app.dependency_overrides[get_source_control_service] = lambda: service
        client.post("/api/source-control/github/connect", json={"access_token": "t"})

        resp = client.post("/api/source-control/github/repos/octocat/shop/analyze", json={})
        assert resp.status_code == 201
        body = resp.json()
        assert body["source_type"] == "code-analysis"
        assert body["paths_count"] == 2
        spec = body["api_spec"]
        assert spec["source_type"] == "code-analysis"
        paths = spec["spec_content"]["paths"]
        assert sorted(paths["/users"]) == ["get", "post"]
        assert paths["/users/{id}"]["delete"]["summary"] == "Delete user"
        assert spec["spec_content"]["info"]["title"] == "shop API"
        assert "src/util.js" not in spec["source_code"]

    def test_comments_win_over_routes(self):
        result = FakeProvider("t").analyze_repo("octocat", "shop")
        assert result.source_type == "swagger-comments"
        assert result.spec["paths"]["/orders"]["get"]["summary"] == "List orders"

    def test_extension_picks_patterns_without_manifest(self):
        files = {"app/main.py": '@app.get("/items/{item_id}")\ndef read(item_id): ...\n'}
        result = FakeProvider("t", files=files).analyze_repo("octocat", "svc")
        assert result.frameworks == []
        assert list(result.spec["paths"]) == ["/items/{item_id}"]

    def test_undecryptable_token_asks_to_reconnect(self, client, db):
        other = TokenCipher(Fernet.generate_key().decode())
        db.add(SourceControlAccount(
            user_id="anonymous", provider="github", username="octocat",
            access_token_encrypted=other.encrypt("t"),
        ))
        db.commit()
        service = SourceControlService(db, factory=lambda provider, token, username: FakeProvider(token, username))
        app.dependency_overrides[get_source_control_service] = lambda: service

        resp = client.get("/api/source-control/github/repos")
        assert resp.status_code == 412
        assert "reconnect" in resp.json()["message"]
        assert resp.json()["details"]["action"] == "reconnect"
        assert client.delete("/api/source-control/github").status_code == 204


class TestProviderInterface:

    def test_incomplete_provider_cannot_be_instantiated(self):
        class Partial(SourceControlProvider):
            def current_user(self):
                return "x"

        with pytest.raises(TypeError):
            Partial("t")


class TestGitHubProvider:

    def test_network_failure_is_upstream_error(self, monkeypatch):
        monkeypatch.setattr(
            source_control.requests, "request",
            MagicMock(side_effect=requests.exceptions.ConnectionError("down")),
        )
        with pytest.raises(UpstreamError):
            GitHubProvider("t").list_repos()

    def test_unauthorized_is_upstream_error(self, monkeypatch):
        monkeypatch.setattr(source_control.requests, "request", MagicMock(return_value=MagicMock(status_code=401)))
        with pytest.raises(UpstreamError) as exc:
            GitHubProvider("t").current_user()
        assert exc.value.details["upstream_status"] == 401

    def test_reads_base64_content(self, monkeypatch):
        response = MagicMock(status_code=200)
        response.json.return_value = {"encoding": "base64", "content": "aGVsbG8="}
        request = MagicMock(return_value=response)
        monkeypatch.setattr(source_control.requests, "request", request)

        assert GitHubProvider("t", api_base="https://gh.test").read_file("o", "r", "main", "a.js") == "hello"
        method, url = request.call_args.args
        assert (method, url) == ("GET", "https://gh.test/repos/o/r/contents/a.js")
        assert request.call_args.kwargs["headers"]["Authorization"] == "Bearer t"

    def test_list_repos_follows_link_header(self, monkeypatch):
        def repo(name):
            return {"name": name, "full_name": f"octocat/{name}", "owner": {"login": "octocat"}}

        first = MagicMock(status_code=200, links={"next": {"url": "https://gh.test/user/repos?page=2"}})
        first.json.return_value = [repo("a"), repo("b")]
        second = MagicMock(status_code=200, links={})
        second.json.return_value = [repo("c")]
        request = MagicMock(side_effect=[first, second])
        monkeypatch.setattr(source_control.requests, "request", request)

        repos = GitHubProvider("t", api_base="https://gh.test").list_repos()
        assert [r["name"] for r in repos] == ["a", "b", "c"]
        assert request.call_count == 2
        assert request.call_args_list[1].args == ("GET", "https://gh.test/user/repos?page=2")
        assert request.call_args_list[1].kwargs["headers"]["Authorization"] == "Bearer t"


class TestHelpers:

    def test_requirements_dependencies(self):
        deps = manifest_dependencies("requirements.txt", "FastAPI>=0.100\n# comment\nrequests[socks]==2.0\n")
        assert deps == {"fastapi", "requests"}

    def test_candidate_filter(self):
        assert source_control.is_candidate("src/app.ts")
        assert not source_control.is_candidate("vendor/lib.php")
        assert not source_control.is_candidate("docs/readme.md")


class TestTokenCipher:

    def test_round_trip_with_explicit_key(self):
        cipher = TokenCipher(Fernet.generate_key().decode())
        assert cipher.decrypt(cipher.encrypt("token")) == "token"

    def test_other_key_cannot_decrypt(self):
        encrypted = TokenCipher(Fernet.generate_key().decode()).encrypt("token")
        with pytest.raises(StoredCredentialError):
            TokenCipher(Fernet.generate_key().decode()).decrypt(encrypted)
