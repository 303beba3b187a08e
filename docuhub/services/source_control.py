"""Source-control providers and repository analysis.

``SourceControlProvider`` is the narrow interface the rest of the app
uses: ``current_user()``, ``list_repos()`` and ``analyze_repo(owner, repo,
branch)``. GitHub and Bitbucket implementations talk to the providers'
REST APIs with ``requests``; any transport or HTTP failure becomes an
``UpstreamError`` and nothing local is modified.

Analysis walks the repository tree and fetches candidate source files.
When any of them carries ``@swagger`` comment blocks those are merged
into one OpenAPI document; otherwise route declarations of the detected
frameworks are turned into an inferred spec.
"""

import base64
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import requests

from ..core.config import settings
from ..exceptions import UpstreamError, ValidationError
from . import route_extractor, swagger_parser

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".js", ".ts", ".mjs", ".cjs", ".jsx", ".tsx", ".php", ".py")
SKIP_DIRS = ("node_modules/", "vendor/", "dist/", "build/", ".git/", "__pycache__/")

SWAGGER_SOURCE = "swagger-comments"
ROUTES_SOURCE = "code-analysis"

# Manifest dependency -> framework name.
FRAMEWORK_MARKERS = {
    "package.json": {
        "express": "express", "@nestjs/core": "nestjs", "fastify": "fastify",
        "koa": "koa", "@koa/router": "koa", "koa-router": "koa", "@hapi/hapi": "hapi", "next": "nextjs",
    },
    "composer.json": {"laravel/framework": "laravel", "symfony/framework-bundle": "symfony"},
    "requirements.txt": {"fastapi": "fastapi", "flask": "flask", "django": "django"},
}

_SWAGGER_MARKER = "@swagger"

MAX_REPOS = 1000


@dataclass
class AnalysisResult:
    spec: dict[str, Any]
    branch: str
    files_scanned: int
    frameworks: list[str] = field(default_factory=list)
    source_type: str = SWAGGER_SOURCE
    paths_count: int = 0
    schemas_count: int = 0
    source_code: str = ""


class SourceControlProvider(ABC):
    """Base class. Subclasses implement the provider-specific HTTP calls."""

    name = "base"

    def __init__(self, token: str, username: Optional[str] = None, timeout: Optional[int] = None):
        self.token = token
        self.username = username
        self.timeout = timeout or settings.source_control_timeout

    # --- interface ---

    @abstractmethod
    def current_user(self) -> str:
        ...

    @abstractmethod
    def list_repos(self) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    def default_branch(self, owner: str, repo: str) -> str:
        ...

    @abstractmethod
    def list_files(self, owner: str, repo: str, branch: str) -> list[str]:
        ...

    @abstractmethod
    def read_file(self, owner: str, repo: str, branch: str, path: str) -> str:
        ...

    def analyze_repo(self, owner: str, repo: str, branch: Optional[str] = None) -> AnalysisResult:
        """Build an OpenAPI spec for a repository.

        ``@swagger`` comments win. A repository without any is analyzed for
        route declarations of its frameworks (by file extension when no
        manifest names one).

        Raises:
            UpstreamError: the provider could not be reached or refused.
            ValidationError: neither documented endpoints nor routes were found.
        """
        branch = branch or self.default_branch(owner, repo)
        files = self.list_files(owner, repo, branch)

        frameworks = self._detect_frameworks(owner, repo, branch, files)
        candidates = [p for p in files if is_candidate(p)][: settings.analyze_max_files]
        logger.info(
            "Analyzing repository",
            extra={"provider": self.name, "repo": f"{owner}/{repo}", "branch": branch,
                   "candidates": len(candidates), "files": len(files)},
        )

        contents = {path: self.read_file(owner, repo, branch, path) for path in candidates}
        documented = [f"// File: {path}\n{text}" for path, text in contents.items() if _SWAGGER_MARKER in text]

        if documented:
            source = "\n\n".join(documented)
            parsed = swagger_parser.parse_swagger_comments(source, file_name=f"{owner}/{repo}")
            spec, source_type = parsed["spec"], SWAGGER_SOURCE
            schemas_count = parsed["schemas_count"]
        else:
            spec, source = self._spec_from_routes(owner, repo, contents, frameworks)
            source_type, schemas_count = ROUTES_SOURCE, 0

        spec["info"]["title"] = f"{repo} API"
        return AnalysisResult(
            spec=spec,
            branch=branch,
            files_scanned=len(candidates),
            frameworks=frameworks,
            source_type=source_type,
            paths_count=len(spec.get("paths") or {}),
            schemas_count=schemas_count,
            source_code=source,
        )

    # --- helpers ---

    def _spec_from_routes(
        self, owner: str, repo: str, contents: dict[str, str], frameworks: list[str]
    ) -> tuple[dict[str, Any], str]:
        routes: list[route_extractor.Route] = []
        chunks = []
        for path, text in contents.items():
            found = []
            for framework in route_extractor.frameworks_for_file(path, frameworks):
                found.extend(route_extractor.extract_routes(framework, path, text))
            if found:
                routes.extend(found)
                chunks.append(f"// File: {path}\n{text}")
        if not routes:
            raise ValidationError(
                f"No @swagger comments or route declarations found in {owner}/{repo}", field="repo"
            )
        logger.info("Inferred spec from routes",
                    extra={"repo": f"{owner}/{repo}", "routes": len(routes), "files": len(chunks)})
        return route_extractor.routes_to_spec(routes, f"{repo} API"), "\n\n".join(chunks)

    def _detect_frameworks(self, owner: str, repo: str, branch: str, files: list[str]) -> list[str]:
        found: list[str] = []
        for manifest, markers in FRAMEWORK_MARKERS.items():
            if manifest not in files:
                continue
            text = self.read_file(owner, repo, branch, manifest)
            deps = manifest_dependencies(manifest, text)
            found.extend(name for dep, name in markers.items() if dep in deps and name not in found)
        return found

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = requests.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise UpstreamError(self.name, f"Request failed: {type(e).__name__}") from e
        if response.status_code == 401:
            raise UpstreamError(self.name, "Access token rejected", upstream_status=401)
        if response.status_code == 404:
            raise UpstreamError(self.name, "Repository or resource not found", upstream_status=404)
        if response.status_code >= 400:
            raise UpstreamError(self.name, f"HTTP {response.status_code}", upstream_status=response.status_code)
        return response


def is_candidate(path: str) -> bool:
    lowered = path.lower()
    if any(part in lowered for part in SKIP_DIRS):
        return False
    return lowered.endswith(SOURCE_EXTENSIONS)


def manifest_dependencies(manifest: str, text: str) -> set[str]:
    """Dependency names declared in a package.json, composer.json or requirements.txt."""
    if manifest == "requirements.txt":
        names = set()
        for line in text.splitlines():
            line = line.split("#", 1)[0].strip()
            if line:
                names.add(re.split(r"[<>=!~\[; ]", line, maxsplit=1)[0].lower())
        return names
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Unreadable manifest %s", manifest)
        return set()
    sections = ("dependencies", "devDependencies") if manifest == "package.json" else ("require", "require-dev")
    names: set[str] = set()
    for section in sections:
        names.update((data.get(section) or {}).keys())
    return names


class GitHubProvider(SourceControlProvider):
    name = "github"

    def __init__(self, token: str, username: Optional[str] = None, timeout: Optional[int] = None,
                 api_base: Optional[str] = None):
        super().__init__(token, username, timeout)
        self.api_base = (api_base or settings.github_api_base).rstrip("/")

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _get(self, path: str, **params) -> Any:
        return self._request("GET", f"{self.api_base}{path}", headers=self._headers(), params=params or None).json()

    def _paged(self, path: str, limit: int, **params) -> list[dict]:
        """Follow the ``Link: <...>; rel="next"`` header until *limit* items are collected."""
        values: list[dict] = []
        response = self._request("GET", f"{self.api_base}{path}", headers=self._headers(), params=params or None)
        while True:
            values.extend(response.json())
            next_url = (response.links or {}).get("next", {}).get("url")
            if len(values) >= limit or not next_url:
                return values[:limit]
            response = self._request("GET", next_url, headers=self._headers())

    def current_user(self) -> str:
        return self._get("/user")["login"]

    def list_repos(self) -> list[dict[str, Any]]:
        repos = self._paged("/user/repos", limit=MAX_REPOS, per_page=100, sort="updated")
        return [
            {
                "name": r["name"],
                "full_name": r["full_name"],
                "owner": r["owner"]["login"],
                "description": r.get("description"),
                "default_branch": r.get("default_branch"),
                "private": bool(r.get("private")),
                "url": r.get("html_url"),
                "updated_at": r.get("updated_at"),
            }
            for r in repos
        ]

    def default_branch(self, owner: str, repo: str) -> str:
        return self._get(f"/repos/{owner}/{repo}").get("default_branch") or "main"

    def list_files(self, owner: str, repo: str, branch: str) -> list[str]:
        tree = self._get(f"/repos/{owner}/{repo}/git/trees/{branch}", recursive=1)
        if tree.get("truncated"):
            logger.warning("GitHub tree listing truncated", extra={"repo": f"{owner}/{repo}"})
        return [item["path"] for item in tree.get("tree", []) if item.get("type") == "blob"]

    def read_file(self, owner: str, repo: str, branch: str, path: str) -> str:
        data = self._get(f"/repos/{owner}/{repo}/contents/{path}", ref=branch)
        if data.get("encoding") == "base64":
            return base64.b64decode(data.get("content", "")).decode("utf-8", errors="replace")
        return data.get("content") or ""


class BitbucketProvider(SourceControlProvider):
    """Bitbucket Cloud. Uses basic auth when a username is given (app passwords), bearer otherwise."""

    name = "bitbucket"

    def __init__(self, token: str, username: Optional[str] = None, timeout: Optional[int] = None,
                 api_base: Optional[str] = None):
        super().__init__(token, username, timeout)
        self.api_base = (api_base or settings.bitbucket_api_base).rstrip("/")

    def _auth_kwargs(self) -> dict:
        if self.username:
            return {"auth": (self.username, self.token)}
        return {"headers": {"Authorization": f"Bearer {self.token}"}}

    def _get(self, path_or_url: str, raw: bool = False, **params):
        url = path_or_url if path_or_url.startswith("http") else f"{self.api_base}{path_or_url}"
        response = self._request("GET", url, params=params or None, **self._auth_kwargs())
        return response.text if raw else response.json()

    def _paged(self, path: str, limit: int, **params) -> list[dict]:
        values: list[dict] = []
        page = self._get(path, **params)
        while True:
            values.extend(page.get("values", []))
            if len(values) >= limit or not page.get("next"):
                return values[:limit]
            page = self._get(page["next"])

    def current_user(self) -> str:
        return self._get("/user").get("username") or self.username or ""

    def list_repos(self) -> list[dict[str, Any]]:
        repos = self._paged("/repositories", limit=MAX_REPOS, role="member", pagelen=100)
        return [
            {
                "name": r.get("name") or r["slug"],
                "full_name": r["full_name"],
                "owner": r["full_name"].split("/", 1)[0],
                "description": r.get("description"),
                "default_branch": (r.get("mainbranch") or {}).get("name"),
                "private": bool(r.get("is_private")),
                "url": ((r.get("links") or {}).get("html") or {}).get("href"),
                "updated_at": r.get("updated_on"),
            }
            for r in repos
        ]

    def default_branch(self, owner: str, repo: str) -> str:
        data = self._get(f"/repositories/{owner}/{repo}")
        return (data.get("mainbranch") or {}).get("name") or "main"

    def list_files(self, owner: str, repo: str, branch: str) -> list[str]:
        # max_depth bounds the recursive listing.
        entries = self._paged(f"/repositories/{owner}/{repo}/src/{branch}/", limit=5000,
                              max_depth=10, pagelen=100)
        return [e["path"] for e in entries if e.get("type") == "commit_file"]

    def read_file(self, owner: str, repo: str, branch: str, path: str) -> str:
        return self._get(f"/repositories/{owner}/{repo}/src/{branch}/{path}", raw=True)


PROVIDERS: dict[str, type[SourceControlProvider]] = {
    "github": GitHubProvider,
    "bitbucket": BitbucketProvider,
}


def provider_class(name: str) -> type[SourceControlProvider]:
    try:
        return PROVIDERS[name]
    except KeyError:
        raise ValidationError(f"Unsupported provider: {name}", field="provider") from None
