"""API routes."""

from .auth_routes import router as auth_router
from .environments import router as environments_router
from .projects import router as projects_router
from .documents import router as documents_router
from .api_specs import router as api_specs_router
from .api_keys import router as api_keys_router
from .source_control import router as source_control_router
from .stats import router as stats_router
from .ws import router as ws_router

__all__ = [
    "auth_router",
    "environments_router",
    "projects_router",
    "documents_router",
    "api_specs_router",
    "api_keys_router",
    "source_control_router",
    "stats_router",
    "ws_router",
]
