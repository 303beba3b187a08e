"""Pydantic schemas for API validation."""

from .common import Page, PaginationMeta
from .environment import EnvironmentCreate, EnvironmentUpdate, EnvironmentResponse
from .project import ProjectCreate, ProjectUpdate, ProjectResponse
from .document import DocumentCreate, DocumentUpdate, DocumentResponse, DocumentListItem
from .version import (
    DocumentVersionEntry,
    DiffResponse,
    ApiSpecVersionSummary,
    ApiSpecVersionResponse,
    ApiSpecVersionEntry,
)
from .api_spec import (
    ApiSpecCreate,
    ApiSpecUpdate,
    ApiSpecResponse,
    ApiSpecListItem,
    OperationCreate,
    OperationUpdate,
)
from .api_key import ApiKeyCreate, ApiKeyResponse, ApiKeyCreatedResponse, UsageStatsResponse

__all__ = [
    "Page", "PaginationMeta",
    "EnvironmentCreate", "EnvironmentUpdate", "EnvironmentResponse",
    "ProjectCreate", "ProjectUpdate", "ProjectResponse",
    "DocumentCreate", "DocumentUpdate", "DocumentResponse", "DocumentListItem",
    "DocumentVersionEntry", "DiffResponse", "ApiSpecVersionSummary", "ApiSpecVersionResponse", "ApiSpecVersionEntry",
    "ApiSpecCreate", "ApiSpecUpdate", "ApiSpecResponse", "ApiSpecListItem",
    "OperationCreate", "OperationUpdate",
    "ApiKeyCreate", "ApiKeyResponse", "ApiKeyCreatedResponse", "UsageStatsResponse",
]
