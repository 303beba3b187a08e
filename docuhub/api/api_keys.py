"""API key endpoints. The plaintext key is returned once, by POST."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.api_key import ApiKeyCreate, ApiKeyCreatedResponse, ApiKeyResponse, UsageStatsResponse
from ..schemas.common import Page
from ..services.api_key_service import CREATION_WARNING, ApiKeyService, to_response
from .pagination import PageParams, page_params

router = APIRouter(prefix="/api/api-keys", tags=["api-keys"])


@router.get("", response_model=Page[ApiKeyResponse])
def list_keys(
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ApiKeyService(db).list_keys(auth, paging.page, paging.limit)


@router.post("", response_model=ApiKeyCreatedResponse, status_code=201)
def create_key(
    body: ApiKeyCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    key, raw_key = ApiKeyService(db).create_key(body, auth)
    return ApiKeyCreatedResponse(**to_response(key).model_dump(), key=raw_key, warning=CREATION_WARNING)


@router.get("/{key_id}", response_model=ApiKeyResponse)
def get_key(
    key_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return to_response(ApiKeyService(db).get_key(key_id, auth))


@router.post("/{key_id}/revoke", response_model=ApiKeyResponse)
def revoke_key(
    key_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return to_response(ApiKeyService(db).revoke_key(key_id, auth))


@router.delete("/{key_id}", status_code=204)
def delete_key(
    key_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Delete a revoked or expired key. Active keys are refused with 412."""
    ApiKeyService(db).delete_key(key_id, auth)


@router.get("/{key_id}/usage-stats", response_model=UsageStatsResponse)
def usage_stats(
    key_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ApiKeyService(db).usage_stats(key_id, auth)
