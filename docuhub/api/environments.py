"""Environment API endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth, require_editor
from ..database import get_db
from ..schemas.environment import EnvironmentCreate, EnvironmentResponse, EnvironmentUpdate
from ..services.environment_service import EnvironmentService

router = APIRouter(prefix="/api/environments", tags=["environments"])


@router.get("", response_model=List[EnvironmentResponse])
def list_environments(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """List the caller's environments with their project counts."""
    return EnvironmentService(db).list_environments(auth)


@router.post("", response_model=EnvironmentResponse, status_code=201)
def create_environment(
    body: EnvironmentCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    return EnvironmentService(db).create_environment(body, auth)


@router.get("/{env_id}", response_model=EnvironmentResponse)
def get_environment(
    env_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return EnvironmentService(db).get_environment(env_id, auth)


@router.put("/{env_id}", response_model=EnvironmentResponse)
def update_environment(
    env_id: int,
    body: EnvironmentUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    return EnvironmentService(db).update_environment(env_id, body, auth)


@router.delete("/{env_id}", status_code=204)
def delete_environment(
    env_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    """Delete an empty environment. Fails with 412 while projects remain."""
    EnvironmentService(db).delete_environment(env_id, auth)
