"""Database models."""

from .user import User, AuditLog
from .environment import Environment
from .project import Project
from .document import Document
from .api_spec import ApiSpec
from .version import DocumentVersion, ApiSpecVersion
from .api_key import ApiKey, ApiKeyUsage
from .source_control import SourceControlAccount

__all__ = [
    "User", "AuditLog",
    "Environment", "Project",
    "Document", "DocumentVersion",
    "ApiSpec", "ApiSpecVersion",
    "ApiKey", "ApiKeyUsage",
    "SourceControlAccount",
]
