"""Project API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth, require_editor
from ..database import get_db
from ..schemas.common import Page
from ..schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate
from ..services.project_service import ProjectService
from .pagination import PageParams, page_params

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.get("", response_model=Page[ProjectResponse])
def list_projects(
    environment_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ProjectService(db).list_projects(
        auth, paging.page, paging.limit, environment_id=environment_id, search=search
    )


@router.post("", response_model=ProjectResponse, status_code=201)
def create_project(
    body: ProjectCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    """Create a project. Codes are unique case-insensitively."""
    return ProjectService(db).create_project(body, auth)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ProjectService(db).get_owned(project_id, auth)


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    body: ProjectUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    return ProjectService(db).update_project(project_id, body, auth)


@router.delete("/{project_id}", status_code=204)
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    """Delete a project with its documents and scoped API keys. Its API specs are detached."""
    ProjectService(db).delete_project(project_id, auth)
