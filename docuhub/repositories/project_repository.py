"""Project repository."""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Query

from ..models import Project
from .base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    model_class = Project
    resource_name = "Project"

    def find_by_code(self, code: str, exclude_id: Optional[int] = None) -> Optional[Project]:
        """Case-insensitive lookup by project code."""
        query = self.db.query(Project).filter(func.lower(Project.code) == code.lower())
        if exclude_id is not None:
            query = query.filter(Project.id != exclude_id)
        return query.first()

    def query_for_user(
        self,
        user_id: str,
        environment_id: Optional[int] = None,
        search: Optional[str] = None,
        only_id: Optional[int] = None,
    ) -> Query:
        query = self.db.query(Project).filter(Project.user_id == user_id)
        if environment_id is not None:
            query = query.filter(Project.environment_id == environment_id)
        if only_id is not None:
            query = query.filter(Project.id == only_id)
        if search:
            like = f"%{search.lower()}%"
            query = query.filter(
                func.lower(Project.name).like(like) | func.lower(Project.code).like(like)
            )
        return query.order_by(Project.created_at.desc(), Project.id.desc())
