"""Per-user counters for dashboards."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..models import ApiKey, ApiSpec, Environment, Project
from ..repositories import DocumentRepository

router = APIRouter(prefix="/api/stats", tags=["stats"])


class StatsResponse(BaseModel):
    environments: int
    projects: int
    documents: int
    api_specs: int
    api_keys: int
    active_api_keys: int


@router.get("", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    def owned(model):
        return db.query(model).filter(model.user_id == auth.user_id)

    return StatsResponse(
        environments=owned(Environment).count(),
        projects=owned(Project).count(),
        documents=DocumentRepository(db).count_for_user(auth.user_id),
        api_specs=owned(ApiSpec).count(),
        api_keys=owned(ApiKey).count(),
        active_api_keys=owned(ApiKey).filter(ApiKey.is_active.is_(True)).count(),
    )
