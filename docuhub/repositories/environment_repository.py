"""Environment repository."""

from sqlalchemy import func

from ..models import Environment, Project
from .base import BaseRepository


class EnvironmentRepository(BaseRepository[Environment]):
    model_class = Environment
    resource_name = "Environment"

    def list_for_user(self, user_id: str) -> list[tuple[Environment, int]]:
        """The user's environments, newest first, each paired with its project count."""
        counts = (
            self.db.query(Project.environment_id, func.count(Project.id).label("n"))
            .group_by(Project.environment_id)
            .subquery()
        )
        rows = (
            self.db.query(Environment, func.coalesce(counts.c.n, 0))
            .outerjoin(counts, counts.c.environment_id == Environment.id)
            .filter(Environment.user_id == user_id)
            .order_by(Environment.created_at.desc(), Environment.id.desc())
            .all()
        )
        return [(env, int(count)) for env, count in rows]

    def project_count(self, environment_id: int) -> int:
        return self.db.query(Project).filter(Project.environment_id == environment_id).count()
