"""ApiSpec repository."""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Query

from ..models import ApiSpec
from .base import BaseRepository

# Sentinel for the "no project" bucket in list filters.
NO_PROJECT = 0


class ApiSpecRepository(BaseRepository[ApiSpec]):
    model_class = ApiSpec
    resource_name = "API spec"

    def query_for_user(
        self,
        user_id: str,
        project_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Query:
        """The user's specs. ``project_id=NO_PROJECT`` selects detached specs."""
        query = self.db.query(ApiSpec).filter(ApiSpec.user_id == user_id)
        if project_id == NO_PROJECT:
            query = query.filter(ApiSpec.project_id.is_(None))
        elif project_id is not None:
            query = query.filter(ApiSpec.project_id == project_id)
        if search:
            query = query.filter(func.lower(ApiSpec.name).like(f"%{search.lower()}%"))
        return query.order_by(ApiSpec.updated_at.desc(), ApiSpec.id.desc())
