"""Build an OpenAPI 3.0 document from ``@swagger`` JSDoc comment blocks.

Each ``/** ... @swagger ... */`` block holds YAML. Path keys found at the
top level of a block or under ``paths:`` are merged into the spec, along
with components and tags. Blocks whose YAML does not parse are skipped
and logged.
"""

import logging
import re
import textwrap
from typing import Any

import yaml

from ..exceptions import ValidationError
from .spec_editor import summarize_operations

logger = logging.getLogger(__name__)

_BLOCK_RE = re.compile(r"/\*\*[\s\S]*?@swagger[\s\S]*?\*/")
_LEADING_STAR_RE = re.compile(r"^\s*\*\s?")

_COMPONENT_SECTIONS = ("schemas", "securitySchemes", "responses", "parameters")


def base_spec(title: str) -> dict[str, Any]:
    return {
        "openapi": "3.0.0",
        "info": {
            "title": title,
            "version": "1.0.0",
            "description": "API specification generated from Swagger comments",
        },
        "servers": [{"url": "http://localhost:5000", "description": "Development server"}],
        "paths": {},
        "components": {"schemas": {}, "securitySchemes": {}},
        "tags": [],
    }


def extract_blocks(code: str) -> list[str]:
    """YAML bodies of every ``@swagger`` comment block in *code*."""
    bodies = []
    for block in _BLOCK_RE.findall(code):
        lines = block[3:-2].split("\n")
        for index, line in enumerate(lines):
            if "@swagger" in line:
                body = textwrap.dedent("\n".join(_LEADING_STAR_RE.sub("", ln) for ln in lines[index + 1:])).strip()
                if body:
                    bodies.append(body)
                break
    return bodies


def merge_block(spec: dict[str, Any], parsed: Any) -> None:
    """Merge one parsed YAML block into *spec* in place."""
    if not isinstance(parsed, dict):
        return

    for key, value in parsed.items():
        if isinstance(key, str) and key.startswith("/") and isinstance(value, dict):
            spec["paths"].setdefault(key, {}).update(value)

    paths = parsed.get("paths")
    if isinstance(paths, dict):
        for path, methods in paths.items():
            if isinstance(methods, dict):
                spec["paths"].setdefault(str(path), {}).update(methods)

    components = parsed.get("components")
    if not isinstance(components, dict):
        components = {}
    for section in _COMPONENT_SECTIONS:
        if isinstance(components.get(section), dict):
            spec["components"].setdefault(section, {}).update(components[section])

    tags = parsed.get("tags")
    if isinstance(tags, dict):
        tags = [tags]
    if not isinstance(tags, list):
        tags = []
    for tag in tags:
        if isinstance(tag, dict) and tag.get("name"):
            if not any(t.get("name") == tag["name"] for t in spec["tags"]):
                spec["tags"].append(tag)


def parse_swagger_comments(code: str, file_name: str = "uploaded-file.js") -> dict[str, Any]:
    """Parse *code* and return ``{"spec", "paths_count", "schemas_count", "preview"}``.

    Raises:
        ValidationError: no usable ``@swagger`` block was found.
    """
    spec = base_spec(f"API from {file_name}")

    for index, body in enumerate(extract_blocks(code), start=1):
        try:
            parsed = yaml.safe_load(body)
        except yaml.YAMLError as e:
            logger.warning("Skipping unparsable @swagger block %d in %s: %s", index, file_name, e)
            continue
        merge_block(spec, parsed)

    paths_count = len(spec["paths"])
    schemas_count = len(spec["components"]["schemas"])
    if paths_count == 0 and schemas_count == 0:
        raise ValidationError(
            "No valid Swagger comments found. Use the /** @swagger */ syntax.",
            field="source_code",
        )

    return {
        "spec": spec,
        "paths_count": paths_count,
        "schemas_count": schemas_count,
        "preview": summarize_operations(spec),
    }
