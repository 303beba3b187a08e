"""API spec endpoints: CRUD, structural operation edits, history, and AI enhancement."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth, require_editor
from ..database import get_db
from ..schemas.api_spec import (
    ApiSpecCreate,
    ApiSpecListItem,
    ApiSpecResponse,
    ApiSpecUpdate,
    OperationCreate,
    OperationUpdate,
    ParseSwaggerRequest,
    ParseSwaggerResponse,
)
from ..schemas.common import Page
from ..schemas.version import ApiSpecVersionEntry, ApiSpecVersionResponse
from ..services import swagger_parser
from ..services.api_spec_service import ApiSpecService
from ..services.spec_enhancer import SpecEnhancer
from .pagination import PageParams, page_params

router = APIRouter(prefix="/api/api-specs", tags=["api-specs"])


def get_enhancer() -> SpecEnhancer:
    """Overridable in tests via ``app.dependency_overrides``."""
    return SpecEnhancer()


@router.get("", response_model=Page[ApiSpecListItem])
def list_specs(
    project_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ApiSpecService(db).list_specs(auth, paging.page, paging.limit, project_id=project_id, search=search)


@router.post("", response_model=ApiSpecResponse, status_code=201)
def create_spec(
    body: ApiSpecCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    service = ApiSpecService(db)
    return service.to_response(service.create_spec(body, auth), auth)


@router.post("/parse-swagger", response_model=ParseSwaggerResponse)
def parse_swagger(
    body: ParseSwaggerRequest,
    auth: AuthContext = Depends(require_auth),
):
    """Build an OpenAPI document from ``@swagger`` comment blocks. Nothing is stored."""
    return swagger_parser.parse_swagger_comments(body.source_code, body.file_name)


@router.get("/{spec_id}", response_model=ApiSpecResponse)
def get_spec(
    spec_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    service = ApiSpecService(db)
    return service.to_response(service.get_owned(spec_id, auth), auth)


@router.put("/{spec_id}", response_model=ApiSpecResponse)
def update_spec(
    spec_id: int,
    body: ApiSpecUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    service = ApiSpecService(db)
    return service.to_response(service.update_spec(spec_id, body, auth), auth)


@router.delete("/{spec_id}", status_code=204)
def delete_spec(
    spec_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    ApiSpecService(db).delete_spec(spec_id, auth)


@router.get("/{spec_id}/preview")
def preview_spec(
    spec_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Title, version, endpoint and schema counts plus the first few endpoints."""
    return ApiSpecService(db).preview(spec_id, auth)


# --- structural edits ---


@router.post("/{spec_id}/operations", response_model=ApiSpecResponse, status_code=201)
def add_operation(
    spec_id: int,
    body: OperationCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    service = ApiSpecService(db)
    return service.to_response(service.add_operation(spec_id, body, auth), auth)


@router.put("/{spec_id}/operations", response_model=ApiSpecResponse)
def edit_operation(
    spec_id: int,
    body: OperationUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    """Edit an operation in place, or move it with ``new_path`` / ``new_method``."""
    service = ApiSpecService(db)
    return service.to_response(service.edit_operation(spec_id, body, auth), auth)


@router.delete("/{spec_id}/operations", response_model=ApiSpecResponse)
def delete_operation(
    spec_id: int,
    path: str = Query(...),
    method: str = Query(...),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    service = ApiSpecService(db)
    return service.to_response(service.delete_operation(spec_id, path, method, auth), auth)


@router.post("/{spec_id}/enhance", response_model=ApiSpecResponse)
def enhance_spec(
    spec_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
    enhancer: SpecEnhancer = Depends(get_enhancer),
):
    """Rewrite descriptions and examples with the configured AI model. 502 on provider failure."""
    service = ApiSpecService(db)
    return service.to_response(service.enhance(spec_id, auth, enhancer), auth)


# --- history ---


@router.get("/{spec_id}/versions", response_model=List[ApiSpecVersionEntry])
def list_versions(
    spec_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return [
        ApiSpecVersionEntry(
            rank=entry.rank,
            label=entry.label,
            is_current=entry.is_current,
            version_id=entry.version_id,
            version_number=entry.version_number,
            change_summary=entry.extra.get("change_summary"),
            created_by=entry.created_by,
            created_at=entry.created_at,
        )
        for entry in ApiSpecService(db).list_versions(spec_id, auth)
    ]


@router.get("/{spec_id}/versions/{version_id}", response_model=ApiSpecVersionResponse)
def get_version(
    spec_id: int,
    version_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return ApiSpecService(db).get_version(spec_id, version_id, auth)


@router.post("/{spec_id}/versions/{version_id}/restore", response_model=ApiSpecResponse)
def restore_version(
    spec_id: int,
    version_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    service = ApiSpecService(db)
    return service.to_response(service.restore_version(spec_id, version_id, auth), auth)
