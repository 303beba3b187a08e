"""Data access repositories."""

from .base import BaseRepository
from .environment_repository import EnvironmentRepository
from .project_repository import ProjectRepository
from .document_repository import DocumentRepository
from .api_spec_repository import ApiSpecRepository, NO_PROJECT
from .api_key_repository import ApiKeyRepository

__all__ = [
    "BaseRepository",
    "EnvironmentRepository",
    "ProjectRepository",
    "DocumentRepository",
    "ApiSpecRepository",
    "ApiKeyRepository",
    "NO_PROJECT",
]
