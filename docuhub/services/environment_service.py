"""Environment service: owner-scoped CRUD with a referential delete guard."""

import logging

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..exceptions import PreconditionFailedError
from ..models import Environment
from ..repositories import EnvironmentRepository
from ..schemas.environment import EnvironmentCreate, EnvironmentResponse, EnvironmentUpdate
from . import audit_service
from .permission_service import require_owner

logger = logging.getLogger(__name__)


def _to_response(env: Environment, project_count: int) -> EnvironmentResponse:
    response = EnvironmentResponse.model_validate(env)
    response.project_count = project_count
    return response


class EnvironmentService:

    def __init__(self, db: Session):
        self.db = db
        self.repo = EnvironmentRepository(db)

    def list_environments(self, auth: AuthContext) -> list[EnvironmentResponse]:
        return [_to_response(env, count) for env, count in self.repo.list_for_user(auth.user_id)]

    def get_owned(self, env_id: int, auth: AuthContext) -> Environment:
        env = self.repo.get_by_id(env_id)
        require_owner(auth, env.user_id, "environment")
        return env

    def get_environment(self, env_id: int, auth: AuthContext) -> EnvironmentResponse:
        env = self.get_owned(env_id, auth)
        return _to_response(env, self.repo.project_count(env.id))

    def create_environment(self, data: EnvironmentCreate, auth: AuthContext) -> EnvironmentResponse:
        env = self.repo.add(Environment(
            user_id=auth.user_id,
            name=data.name.strip(),
            description=data.description,
            color=data.color,
        ))
        self.db.commit()
        self.db.refresh(env)
        audit_service.log(self.db, auth.user_id, "create", "environment", env.id, {"name": env.name})
        return _to_response(env, 0)

    def update_environment(self, env_id: int, data: EnvironmentUpdate, auth: AuthContext) -> EnvironmentResponse:
        env = self.get_owned(env_id, auth)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name") is None:
            changes.pop("name", None)
        for name, value in changes.items():
            setattr(env, name, value.strip() if name == "name" else value)
        self.db.commit()
        self.db.refresh(env)
        audit_service.log(self.db, auth.user_id, "update", "environment", env.id, {"fields": sorted(changes)})
        return _to_response(env, self.repo.project_count(env.id))

    def delete_environment(self, env_id: int, auth: AuthContext) -> None:
        """Delete an empty environment.

        Raises:
            PreconditionFailedError: projects still belong to it.
        """
        env = self.get_owned(env_id, auth)
        count = self.repo.project_count(env.id)
        if count:
            raise PreconditionFailedError(
                "Environment still has projects; move or delete them first",
                details={"environment_id": env.id, "project_count": count},
            )
        self.repo.delete(env)
        self.db.commit()
        logger.info("Environment deleted", extra={"environment_id": env_id})
        audit_service.log(self.db, auth.user_id, "delete", "environment", env_id)
