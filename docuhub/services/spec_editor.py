"""Structural edits of single operations inside an OpenAPI document.

Every function works on a deep copy and returns it; the caller's spec is
never mutated, so discarding the result is a complete undo. Only
``spec["paths"]`` is touched; unknown top-level keys and unknown operation
keys pass through untouched.

    spec = add_operation(spec, "/users", "post", {"summary": "Create user"})
    spec = edit_operation(spec, "/users", "post", {}, new_path="/members")
    spec = delete_operation(spec, "/members", "post")
"""

import copy
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConflictError, NotFoundError, ValidationError

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

# Methods listed in previews, in display order.
PREVIEW_METHODS = ("get", "post", "put", "delete", "patch")
PREVIEW_ENDPOINT_LIMIT = 10


class ResponseEntry(BaseModel):
    """One ``{code, description}`` row of the editor's response list."""

    model_config = ConfigDict(extra="allow")

    code: str
    description: str = ""

    @field_validator("code", mode="before")
    @classmethod
    def _code_as_string(cls, v: Any) -> str:
        return str(v).strip()


class OperationFields(BaseModel):
    """The operation keys the editor understands, plus passthrough for the rest."""

    model_config = ConfigDict(extra="allow")

    summary: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[list[str]] = None
    parameters: Optional[list[dict[str, Any]]] = None
    requestBody: Optional[dict[str, Any]] = None
    responses: Optional[Union[list[ResponseEntry], dict[str, Any]]] = None
    security: Optional[list[dict[str, Any]]] = None

    def to_operation(self) -> dict[str, Any]:
        """Serialise to an OpenAPI operation object.

        Only explicitly provided keys are emitted; an explicit ``None`` is
        kept so ``edit_operation`` can drop that key.
        """
        data = self.model_dump(exclude_unset=True)
        if self.responses is not None:
            data["responses"] = responses_to_mapping(self.responses)
        return data


OperationInput = Union[OperationFields, Mapping[str, Any], None]


def responses_to_mapping(responses: Union[list, Mapping[str, Any]]) -> dict[str, Any]:
    """Collapse the editor's response list to an OpenAPI mapping keyed by code.

    Raises:
        ValidationError: a status code appears more than once.
    """
    if isinstance(responses, Mapping):
        return {str(code): copy.deepcopy(body) for code, body in responses.items()}

    mapping: dict[str, Any] = {}
    for entry in responses:
        if not isinstance(entry, ResponseEntry):
            entry = ResponseEntry.model_validate(entry)
        if not entry.code:
            raise ValidationError("Response code is required", field="responses")
        if entry.code in mapping:
            raise ValidationError(f"Duplicate response code: {entry.code}", field="responses")
        mapping[entry.code] = entry.model_dump(exclude={"code"})
    return mapping


def normalize_method(method: str) -> str:
    normalized = (method or "").strip().lower()
    if normalized not in HTTP_METHODS:
        raise ValidationError(f"Unsupported HTTP method: {method}", field="method")
    return normalized


def normalize_path(path: str) -> str:
    normalized = (path or "").strip()
    if not normalized.startswith("/"):
        raise ValidationError("Path must start with '/'", field="path")
    return normalized


def add_operation(spec: Mapping[str, Any], path: str, method: str, fields: OperationInput = None) -> dict:
    """Insert a new operation. Raises ConflictError if (path, method) exists."""
    path, method = normalize_path(path), normalize_method(method)
    operation = _operation_from(fields)

    if method in _methods(_paths(spec), path):
        raise ConflictError(
            f"Operation already exists: {method.upper()} {path}",
            details={"path": path, "method": method},
        )

    result = _copy_with_paths(spec)
    paths = result["paths"]
    if not isinstance(paths.get(path), dict):
        paths[path] = {}
    paths[path][method] = {k: v for k, v in operation.items() if v is not None}
    return result


def edit_operation(
    spec: Mapping[str, Any],
    path: str,
    method: str,
    updated_fields: OperationInput = None,
    new_path: Optional[str] = None,
    new_method: Optional[str] = None,
) -> dict:
    """Update an operation in place, or move it to a new (path, method).

    Provided fields overwrite the existing ones, ``None`` removes a key,
    and keys not mentioned are kept. On a move the old method key is
    deleted and the old path is dropped once it has no methods left.

    Raises:
        NotFoundError: the source operation does not exist.
        ConflictError: the move target already holds an operation.
    """
    path, method = normalize_path(path), normalize_method(method)
    target_path = normalize_path(new_path) if new_path else path
    target_method = normalize_method(new_method) if new_method else method
    changes = _operation_from(updated_fields)

    paths = _paths(spec)
    if method not in _methods(paths, path):
        raise NotFoundError("Operation", f"{method.upper()} {path}")

    moving = (target_path, target_method) != (path, method)
    if moving and target_method in _methods(paths, target_path):
        raise ConflictError(
            f"Operation already exists: {target_method.upper()} {target_path}",
            details={"path": target_path, "method": target_method},
        )

    result = _copy_with_paths(spec)
    result_paths = result["paths"]
    operation = result_paths[path][method]
    if not isinstance(operation, dict):
        operation = {}
    for key, value in changes.items():
        if value is None:
            operation.pop(key, None)
        else:
            operation[key] = value

    if moving:
        del result_paths[path][method]
        if not result_paths[path]:
            del result_paths[path]
    if not isinstance(result_paths.get(target_path), dict):
        result_paths[target_path] = {}
    result_paths[target_path][target_method] = operation
    return result


def delete_operation(spec: Mapping[str, Any], path: str, method: str) -> dict:
    """Remove an operation. Missing operations are a no-op."""
    path, method = normalize_path(path), normalize_method(method)
    if method not in _methods(_paths(spec), path):
        return copy.deepcopy(dict(spec))
    result = _copy_with_paths(spec)
    methods = result["paths"][path]
    del methods[method]
    if not methods:
        del result["paths"][path]
    return result


def summarize_operations(spec: Mapping[str, Any]) -> dict[str, Any]:
    """Preview card for a spec: title, version, endpoints and schema names."""
    paths = _paths(spec)
    endpoints = [
        {"path": path, "method": method.upper()}
        for path, methods in paths.items()
        if isinstance(methods, Mapping)
        for method in methods
        if method.lower() in PREVIEW_METHODS
    ]
    info = spec.get("info") or {}
    schemas = list(((spec.get("components") or {}).get("schemas") or {}).keys())
    return {
        "title": info.get("title") or "Untitled API",
        "version": info.get("version") or "1.0.0",
        "endpoints_count": len(paths),
        "operations_count": len(endpoints),
        "endpoints": endpoints[:PREVIEW_ENDPOINT_LIMIT],
        "schemas": schemas,
        "schemas_count": len(schemas),
    }


def _operation_from(fields: OperationInput) -> dict[str, Any]:
    if fields is None:
        return {}
    if not isinstance(fields, OperationFields):
        try:
            fields = OperationFields.model_validate(dict(fields))
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ())) or None
            raise ValidationError(f"Invalid operation: {first.get('msg')}", field=location) from e
    return fields.to_operation()


def _paths(spec: Mapping[str, Any]) -> Mapping[str, Any]:
    paths = spec.get("paths")
    return paths if isinstance(paths, Mapping) else {}


def _methods(paths: Mapping[str, Any], path: str) -> Mapping[str, Any]:
    methods = paths.get(path)
    return methods if isinstance(methods, Mapping) else {}


def _copy_with_paths(spec: Mapping[str, Any]) -> dict:
    """Deep copy of *spec* whose ``paths`` is always a dict; ``null`` reads as empty."""
    result = copy.deepcopy(dict(spec))
    if not isinstance(result.get("paths"), dict):
        result["paths"] = {}
    return result
