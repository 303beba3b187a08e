"""Project service.

Codes are at most ten characters and unique regardless of case; the
stored code keeps the casing the user typed. Deleting a project removes
its documents and project-scoped API keys and detaches its API specs.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..exceptions import ConflictError, ForbiddenError, ValidationError
from ..models import Project
from ..models.project import DEFAULT_PROJECT_COLOR, PROJECT_CODE_MAX_LENGTH
from ..repositories import EnvironmentRepository, ProjectRepository
from ..schemas.common import Page, PaginationMeta
from ..schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate
from . import audit_service
from .permission_service import require_owner, require_scope

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    code = (code or "").strip()
    if not code:
        raise ValidationError("Project code is required", field="code")
    if len(code) > PROJECT_CODE_MAX_LENGTH:
        raise ValidationError(
            f"Project code must be at most {PROJECT_CODE_MAX_LENGTH} characters", field="code"
        )
    return code


class ProjectService:

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProjectRepository(db)
        self.env_repo = EnvironmentRepository(db)

    def _check_code_free(self, code: str, exclude_id: Optional[int] = None) -> None:
        existing = self.repo.find_by_code(code, exclude_id=exclude_id)
        if existing is not None:
            raise ConflictError(
                f"Project code already in use: {existing.code}",
                details={"code": code, "project_id": existing.id},
            )

    def _commit_code(self, code: str) -> None:
        """Commit a new or changed code; a concurrent duplicate hits the unique index."""
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Project code collision", extra={"code": code})
            raise ConflictError(f"Project code already in use: {code}", details={"code": code}) from e

    def _check_environment(self, environment_id: int, auth: AuthContext) -> None:
        env = self.env_repo.get_by_id(environment_id)
        require_owner(auth, env.user_id, "environment")

    def get_owned(self, project_id: int, auth: AuthContext) -> Project:
        project = self.repo.get_by_id(project_id)
        require_owner(auth, project.user_id, "project")
        require_scope(auth, project.id)
        return project

    def list_projects(
        self,
        auth: AuthContext,
        page: int,
        limit: int,
        environment_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Page[ProjectResponse]:
        query = self.repo.query_for_user(
            auth.user_id, environment_id=environment_id, search=search, only_id=auth.project_scope
        )
        items, total = self.repo.paginate(query, page, limit)
        return Page[ProjectResponse](
            data=[ProjectResponse.model_validate(p) for p in items],
            pagination=PaginationMeta.build(page, limit, total),
        )

    def create_project(self, data: ProjectCreate, auth: AuthContext) -> Project:
        if auth.project_scope is not None:
            raise ForbiddenError("Project-scoped API keys cannot create projects")
        code = normalize_code(data.code)
        self._check_environment(data.environment_id, auth)
        self._check_code_free(code)

        project = Project(
            user_id=auth.user_id,
            code=code,
            name=data.name.strip(),
            description=data.description,
            color=data.color or DEFAULT_PROJECT_COLOR,
            environment_id=data.environment_id,
        )
        self.db.add(project)
        self._commit_code(code)
        self.db.refresh(project)
        logger.info("Project created", extra={"project_id": project.id, "code": project.code})
        audit_service.log(self.db, auth.user_id, "create", "project", project.id, {"code": project.code})
        return project

    def update_project(self, project_id: int, data: ProjectUpdate, auth: AuthContext) -> Project:
        project = self.get_owned(project_id, auth)
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items()
                   if v is not None or k == "description"}

        if "code" in changes:
            changes["code"] = normalize_code(changes["code"])
            self._check_code_free(changes["code"], exclude_id=project.id)
        if "environment_id" in changes:
            self._check_environment(changes["environment_id"], auth)
        if "name" in changes:
            changes["name"] = changes["name"].strip()

        for name, value in changes.items():
            setattr(project, name, value)
        self._commit_code(changes.get("code", project.code))
        self.db.refresh(project)
        audit_service.log(self.db, auth.user_id, "update", "project", project.id, {"fields": sorted(changes)})
        return project

    def delete_project(self, project_id: int, auth: AuthContext) -> None:
        project = self.get_owned(project_id, auth)
        detached = len(project.api_specs)
        self.repo.delete(project)
        self.db.commit()
        logger.info("Project deleted", extra={"project_id": project_id, "detached_specs": detached})
        audit_service.log(self.db, auth.user_id, "delete", "project", project_id,
                          {"detached_api_specs": detached})
