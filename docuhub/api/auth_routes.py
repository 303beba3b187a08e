"""Authentication and user management API endpoints.

Public endpoints:
    POST /api/auth/register  create account (open for the first user, admin-only after)
    POST /api/auth/login     authenticate and receive a bearer token
    GET  /api/auth/me        current user info

Admin-only endpoints:
    GET  /api/auth/users                       list all users
    PUT  /api/auth/users/{user_id}/role        change global role
    PUT  /api/auth/users/{user_id}/deactivate  deactivate account
"""

import logging
from typing import Optional, List

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, client_ip, optional_auth, require_auth, require_admin
from ..core.config import settings
from ..core.token_factory import create_token
from ..database import get_db
from ..exceptions import AuthenticationError, ForbiddenError
from ..services import audit_service, auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# --- Request/Response schemas ---


class RegisterRequest(BaseModel):
    email: str = Field(..., description="Email address")
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    display_name: str = Field(..., description="Display name")

    model_config = {
        "json_schema_extra": {
            "examples": [{"email": "alice@company.com", "password": "securepass", "display_name": "Alice"}]
        }
    }


class LoginRequest(BaseModel):
    email: str
    password: str


class RoleRequest(BaseModel):
    role: str = Field(..., description="New role: admin, editor, or viewer")


class UserResponse(BaseModel):
    user_id: str
    display_name: str
    email: Optional[str] = None
    role: str
    is_active: bool

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    token: str
    expires_in_hours: int
    user: UserResponse


# --- Endpoints ---


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    summary="Register a new user",
    description="First registration is open (creates admin). After that, admin auth required.",
)
def register_user(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    auth: Optional[AuthContext] = Depends(optional_auth),
):
    if settings.auth_enabled and auth_service.has_users(db):
        if auth is None or not auth.is_admin:
            raise ForbiddenError("Only admins can register new users")

    user = auth_service.register_user(db, body.email, body.password, body.display_name)
    audit_service.log(db, auth.user_id if auth else user.user_id, "register", "user", user.user_id)
    return user


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate and receive a bearer token",
)
def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = auth_service.authenticate(db, body.email, body.password)
    token = create_token(
        subject=user.user_id,
        role=user.role,
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_hours=settings.jwt_expire_hours,
        name=user.display_name,
    )
    audit_service.log(db, user.user_id, "login", "user", user.user_id, ip_address=client_ip(request))
    return LoginResponse(
        token=token,
        expires_in_hours=settings.jwt_expire_hours,
        user=UserResponse.model_validate(user),
    )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user info",
)
def get_me(auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    user = auth_service.get_user_by_id(db, auth.user_id)
    if user is None:
        if settings.auth_enabled:
            raise AuthenticationError("User not found")
        # Dev mode: the anonymous caller has no row.
        return UserResponse(user_id=auth.user_id, display_name=auth.username, role=auth.role, is_active=True)
    return user


@router.get(
    "/users",
    response_model=List[UserResponse],
    summary="List all users (admin only)",
)
def list_users(
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return auth_service.list_users(db)


@router.put(
    "/users/{user_id}/role",
    response_model=UserResponse,
    summary="Change a user's global role (admin only)",
)
def update_role(
    user_id: str,
    body: RoleRequest,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = auth_service.update_user_role(db, user_id, body.role)
    audit_service.log(db, auth.user_id, "update_role", "user", user_id, {"role": body.role})
    return user


@router.put(
    "/users/{user_id}/deactivate",
    response_model=UserResponse,
    summary="Deactivate a user account (admin only)",
)
def deactivate(
    user_id: str,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = auth_service.deactivate_user(db, user_id)
    audit_service.log(db, auth.user_id, "deactivate", "user", user_id)
    return user
