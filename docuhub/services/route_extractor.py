"""Route extraction for repositories without ``@swagger`` comments.

Each supported framework has a small set of regexes that find route
declarations in source text. The matches become an inferred OpenAPI
document: one operation per (path, method) with path parameters, a
generated summary, a tag per resource, a request body for write methods
and the usual error responses.

    routes = extract_routes("express", "src/users.js", source)
    spec = routes_to_spec(routes, "shop API")

Extraction is best effort. Routes assembled at runtime (string
concatenation, loops over tables) are not found.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

_Q = r"""['"`]"""
_NOT_Q = r"""[^'"`]"""

_EXPRESS_ROUTE = re.compile(
    rf"\b(?:router|app|api|server|fastify|\w+Router)\.(get|post|put|patch|delete|del)\s*\(\s*{_Q}({_NOT_Q}+){_Q}",
    re.IGNORECASE,
)
_EXPRESS_CHAINED = re.compile(
    rf"\.route\s*\(\s*{_Q}({_NOT_Q}+){_Q}\s*\)((?:\s*\.\s*(?:get|post|put|patch|delete)\s*\([^)]*\))+)",
    re.IGNORECASE,
)
_CHAINED_METHOD = re.compile(r"\.\s*(get|post|put|patch|delete)\s*\(", re.IGNORECASE)
_OBJECT_ROUTE = re.compile(
    rf"\.route\s*\(\s*\{{\s*method:\s*{_Q}(\w+){_Q}\s*,\s*(?:path|url):\s*{_Q}({_NOT_Q}+){_Q}",
    re.IGNORECASE,
)

_NEST_CONTROLLER = re.compile(rf"@Controller\s*\(\s*(?:{_Q}({_NOT_Q}*){_Q})?\s*\)")
_NEST_ROUTE = re.compile(rf"@(Get|Post|Put|Patch|Delete)\s*\(\s*(?:{_Q}({_NOT_Q}*){_Q})?\s*\)")

_NEXT_HANDLER = re.compile(r"export\s+(?:async\s+)?(?:function|const)\s+(GET|POST|PUT|PATCH|DELETE)\b")
_NEXT_DEFAULT = re.compile(r"export\s+default\s+(?:async\s+)?function")

_LARAVEL_ROUTE = re.compile(rf"Route::(get|post|put|patch|delete)\s*\(\s*{_Q}({_NOT_Q}+){_Q}", re.IGNORECASE)
_LARAVEL_RESOURCE = re.compile(rf"Route::(?:api)?[rR]esource\s*\(\s*{_Q}({_NOT_Q}+){_Q}")

_SYMFONY_ATTRIBUTE = re.compile(
    r"""#\[Route\s*\(\s*(?:path:\s*)?['"]([^'"]+)['"](.*)"""
)
_SYMFONY_ANNOTATION = re.compile(r"""@Route\s*\(\s*["']([^"']+)["'](.*)""")
_SYMFONY_METHODS = re.compile(r"""methods\s*[:=]\s*[\[{]([^\]}]*)[\]}]""")

_PY_ROUTE = re.compile(
    r"""@\w+\.(get|post|put|patch|delete)\s*\(\s*["']([^"']+)["']""",
    re.IGNORECASE,
)
_FLASK_ROUTE = re.compile(r"""@\w+\.route\s*\(\s*["']([^"']+)["']([^)]*)\)""")

_COLON_PARAM = re.compile(r":(\w+)\??")
_BRACE_PARAM = re.compile(r"\{(\w+)\??\}")
_ANGLE_PARAM = re.compile(r"<(?:\w+:)?(\w+)>")

# Laravel resource routes, relative to the resource root.
_RESOURCE_ROUTES = (
    ("get", ""), ("post", ""), ("get", "/{id}"), ("put", "/{id}"), ("delete", "/{id}"),
)

_ERROR_RESPONSES = {
    "400": "Invalid request",
    "401": "Not authenticated",
    "404": "Resource not found",
}

_ACTIONS = {"post": "Create", "put": "Update", "patch": "Partially update", "delete": "Delete"}

NODE_FRAMEWORKS = ("express", "fastify", "koa", "hapi")


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    source_file: str


def normalize_route_path(path: str) -> str:
    """``/users/:id``, ``/users/<int:id>`` and ``/users/{id?}`` all become ``/users/{id}``."""
    path = _ANGLE_PARAM.sub(r"{\1}", path.strip())
    path = _COLON_PARAM.sub(r"{\1}", path)
    path = _BRACE_PARAM.sub(r"{\1}", path)
    path = "/" + path.strip("/")
    return path


def _join(prefix: Optional[str], path: Optional[str]) -> str:
    return normalize_route_path(f"{(prefix or '').strip('/')}/{(path or '').strip('/')}")


def _node_routes(content: str) -> Iterable[tuple[str, str]]:
    for method, path in _EXPRESS_ROUTE.findall(content):
        yield ("delete" if method.lower() == "del" else method), path
    for path, chain in _EXPRESS_CHAINED.findall(content):
        for method in _CHAINED_METHOD.findall(chain):
            yield method, path
    for method, path in _OBJECT_ROUTE.findall(content):
        yield method, path


def _nestjs_routes(content: str) -> Iterable[tuple[str, str]]:
    controller = _NEST_CONTROLLER.search(content)
    prefix = controller.group(1) if controller else ""
    for method, path in _NEST_ROUTE.findall(content):
        yield method, _join(prefix, path)


def _nextjs_routes(file_path: str, content: str) -> Iterable[tuple[str, str]]:
    """App router ``app/api/**/route.ts`` exports and pages router ``pages/api/**`` handlers."""
    parts = file_path.split("/")
    if "api" not in parts:
        return
    segments = parts[parts.index("api"):]
    stem = segments[-1].rsplit(".", 1)[0]
    if stem in ("route", "index"):
        segments = segments[:-1]
    else:
        segments[-1] = stem
    # [id] -> {id}; route groups like (admin) do not appear in the URL.
    url = "/".join(
        "{" + s.strip("[]").lstrip(".") + "}" if s.startswith("[") else s
        for s in segments
        if not (s.startswith("(") and s.endswith(")"))
    )
    handlers = _NEXT_HANDLER.findall(content)
    if handlers:
        for method in handlers:
            yield method, url
    elif _NEXT_DEFAULT.search(content) and "/pages/" in f"/{file_path}":
        yield "get", url


def _laravel_routes(content: str) -> Iterable[tuple[str, str]]:
    yield from _LARAVEL_ROUTE.findall(content)
    for resource in _LARAVEL_RESOURCE.findall(content):
        for method, suffix in _RESOURCE_ROUTES:
            yield method, f"/{resource.strip('/')}{suffix}"


def _symfony_routes(content: str) -> Iterable[tuple[str, str]]:
    for pattern in (_SYMFONY_ATTRIBUTE, _SYMFONY_ANNOTATION):
        for path, rest in pattern.findall(content):
            declared = _SYMFONY_METHODS.search(rest)
            methods = re.findall(r"\w+", declared.group(1)) if declared else ["GET"]
            for method in methods:
                yield method, path


def _fastapi_routes(content: str) -> Iterable[tuple[str, str]]:
    yield from _PY_ROUTE.findall(content)


def _flask_routes(content: str) -> Iterable[tuple[str, str]]:
    for path, rest in _FLASK_ROUTE.findall(content):
        declared = _SYMFONY_METHODS.search(rest)
        methods = re.findall(r"\w+", declared.group(1)) if declared else ["GET"]
        for method in methods:
            yield method, path


def frameworks_for_file(file_path: str, detected: list[str]) -> list[str]:
    """Frameworks whose patterns apply to *file_path*.

    Detected frameworks of the file's language win; otherwise every
    framework of that language is tried.
    """
    lowered = file_path.lower()
    if lowered.endswith(".php"):
        family = ("laravel", "symfony")
    elif lowered.endswith(".py"):
        family = ("fastapi", "flask")
    else:
        family = NODE_FRAMEWORKS + ("nestjs", "nextjs")
    matching = [f for f in detected if f in family]
    return matching or list(family)


def extract_routes(framework: str, file_path: str, content: str) -> list[Route]:
    """Routes declared in one file, deduplicated in order of appearance."""
    if framework in NODE_FRAMEWORKS:
        found = _node_routes(content)
    elif framework == "nestjs":
        found = _nestjs_routes(content)
    elif framework == "nextjs":
        found = _nextjs_routes(file_path, content)
    elif framework == "laravel":
        found = _laravel_routes(content)
    elif framework == "symfony":
        found = _symfony_routes(content)
    elif framework == "fastapi":
        found = _fastapi_routes(content)
    elif framework == "flask":
        found = _flask_routes(content)
    else:
        return []

    routes: list[Route] = []
    seen = set()
    for method, path in found:
        method = method.lower()
        if method not in ("get", "post", "put", "patch", "delete"):
            continue
        path = normalize_route_path(path)
        if (method, path) in seen:
            continue
        seen.add((method, path))
        routes.append(Route(method=method, path=path, source_file=file_path))
    return routes


def resource_name(path: str) -> str:
    """Last literal path segment, singularised: ``/api/users/{id}`` -> ``user``."""
    literals = [p for p in path.split("/") if p and not p.startswith("{")]
    name = literals[-1] if literals else "resource"
    if name.endswith("s") and not name.endswith("ss"):
        name = name[:-1]
    return name


def _operation(route: Route) -> dict[str, Any]:
    resource = resource_name(route.path)
    has_params = "{" in route.path
    if route.method == "get":
        action = "Get" if has_params else "List"
    else:
        action = _ACTIONS[route.method]
    success = "201" if route.method == "post" else "200"

    responses: dict[str, Any] = {
        success: {
            "description": "Created" if success == "201" else "Successful operation",
            "content": {"application/json": {"schema": {"type": "object"}}},
        }
    }
    for code, description in _ERROR_RESPONSES.items():
        if code == "404" and not has_params:
            continue
        responses[code] = {"description": description}

    operation: dict[str, Any] = {
        "summary": f"{action} {resource}",
        "tags": [resource.capitalize()],
        "parameters": [
            {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}
            for name in _BRACE_PARAM.findall(route.path)
        ],
        "responses": responses,
        "x-source-file": route.source_file,
    }
    if route.method in ("post", "put", "patch"):
        operation["requestBody"] = {
            "required": True,
            "content": {"application/json": {"schema": {"type": "object"}}},
        }
    return operation


def routes_to_spec(routes: list[Route], title: str) -> dict[str, Any]:
    """Inferred OpenAPI 3.0 document for *routes*. The first declaration of a (path, method) wins."""
    paths: dict[str, dict[str, Any]] = {}
    tags: list[dict[str, str]] = []
    for route in routes:
        methods = paths.setdefault(route.path, {})
        if route.method in methods:
            continue
        operation = _operation(route)
        methods[route.method] = operation
        tag = operation["tags"][0]
        if not any(t["name"] == tag for t in tags):
            tags.append({"name": tag})
    logger.debug("Inferred spec", extra={"paths": len(paths), "routes": len(routes)})
    return {
        "openapi": "3.0.0",
        "info": {
            "title": title,
            "version": "1.0.0",
            "description": "API specification inferred from route declarations",
        },
        "paths": paths,
        "components": {"schemas": {}},
        "tags": tags,
    }
