"""Authentication module exposing FastAPI dependencies.

Public interface:
    ``require_auth``  returns AuthContext or raises 401.
    ``optional_auth`` returns AuthContext or None, never raises for a
                      missing or invalid bearer token.
    ``require_admin`` returns AuthContext, raises 403 if not admin.
    ``require_editor`` returns AuthContext, raises 403 for viewers.

Two credentials are accepted: a bearer JWT issued by ``/api/auth/login``
and an ``X-API-Key`` header. API keys are honoured even when
``settings.auth_enabled`` is False so their usage is always recorded; with
neither credential and auth disabled, every dependency returns the
anonymous development context.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .token_factory import TokenPayload, decode_token
from ..database import get_db
from ..exceptions import AuthenticationError, ForbiddenError
from ..services.permission_service import require_write

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)
_api_key_scheme = APIKeyHeader(name="X-API-Key", auto_error=False)

ANONYMOUS_USER_ID = "anonymous"


@dataclass(frozen=True)
class AuthContext:
    """Resolved caller identity available to every endpoint.

    ``api_key_id`` is set when the request authenticated with an API key;
    ``project_scope`` then restricts the key to a single project.
    """

    user_id: str
    role: str
    username: str = ""
    api_key_id: Optional[int] = None
    project_scope: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


_ANONYMOUS = AuthContext(user_id=ANONYMOUS_USER_ID, role="editor", username="anonymous")


def client_ip(request: Request) -> Optional[str]:
    """Best-effort client address, honouring ``X-Forwarded-For``."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def require_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    api_key: Optional[str] = Depends(_api_key_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Require a valid JWT or API key and return the caller's AuthContext."""
    if api_key:
        return _authenticate_api_key(request, api_key, db)

    if not settings.auth_enabled:
        return _ANONYMOUS

    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    return _load_auth_context(payload, db)


def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[AuthContext]:
    """Validate a bearer token if present. Returns None when there is none.

    Used by registration, which is open for the first user only.
    """
    if not settings.auth_enabled:
        return _ANONYMOUS

    if credentials is None:
        return None

    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        return None

    return _load_auth_context(payload, db)


def require_admin(
    auth: AuthContext = Depends(require_auth),
) -> AuthContext:
    """Require the authenticated user to be an admin. Raises 403 otherwise."""
    if not auth.is_admin:
        raise ForbiddenError("Admin access required")
    return auth


def require_editor(
    auth: AuthContext = Depends(require_auth),
) -> AuthContext:
    """Require a role that may write (not a viewer). Raises 403 otherwise."""
    require_write(auth)
    return auth


def resolve_socket_user(token: Optional[str], db: Session) -> Optional[str]:
    """User id for a WebSocket handshake carrying ``?token=``, or None if rejected."""
    if not settings.auth_enabled:
        return ANONYMOUS_USER_ID
    if not token:
        return None
    payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
    if payload is None:
        return None
    from ..models.user import User

    user = db.query(User).filter(User.user_id == payload.sub).first()
    if user is None or not user.is_active:
        return None
    return user.user_id


def _authenticate_api_key(request: Request, raw_key: str, db: Session) -> AuthContext:
    """Validate an API key, record its usage and return the issuer's context."""
    from ..models.user import User
    from ..services.api_key_service import ApiKeyService

    key = ApiKeyService(db).authenticate(
        raw_key,
        method=request.method,
        endpoint=request.url.path,
        ip_address=client_ip(request),
    )

    user = db.query(User).filter(User.user_id == key.user_id).first()
    if user is not None and not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return AuthContext(
        user_id=key.user_id,
        role=user.role if user is not None else "editor",
        username=user.display_name if user is not None else key.user_id,
        api_key_id=key.id,
        project_scope=key.project_id,
    )


def _load_auth_context(payload: TokenPayload, db: Session) -> AuthContext:
    """Load the user named by a decoded token payload."""
    from ..models.user import User

    user = db.query(User).filter(User.user_id == payload.sub).first()
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return AuthContext(
        user_id=user.user_id,
        role=user.role,
        username=user.display_name,
    )
