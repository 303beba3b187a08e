"""Document API endpoints, including version history, diff and restore.

Endpoints are thin: DocumentService owns the lifecycle and the
versioning rules.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth, require_editor
from ..database import get_db
from ..schemas.common import Page
from ..schemas.document import (
    DocumentCreate,
    DocumentListItem,
    DocumentResponse,
    DocumentType,
    DocumentUpdate,
)
from ..schemas.version import DiffResponse, DocumentVersionEntry
from ..services.document_service import DocumentService
from .pagination import PageParams, page_params

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("", response_model=Page[DocumentListItem])
def list_documents(
    project_id: Optional[int] = Query(None),
    type: Optional[DocumentType] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    mine: bool = Query(False, description="Only documents owned by the caller"),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """List documents, most recently updated first."""
    return DocumentService(db).list_documents(
        auth, paging.page, paging.limit,
        project_id=project_id, doc_type=type, search=search, mine=mine,
    )


@router.post("", response_model=DocumentResponse, status_code=201)
def create_document(
    body: DocumentCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    service = DocumentService(db)
    return service.to_response(service.create_document(body, auth), auth)


@router.get("/{doc_id}", response_model=DocumentResponse)
def get_document(
    doc_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    service = DocumentService(db)
    return service.to_response(service.get_readable(doc_id, auth), auth)


@router.put("/{doc_id}", response_model=DocumentResponse)
def update_document(
    doc_id: int,
    body: DocumentUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    """Partial update. A title or content change archives the previous state first."""
    service = DocumentService(db)
    return service.to_response(service.update_document(doc_id, body, auth), auth)


@router.delete("/{doc_id}", status_code=204)
def delete_document(
    doc_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    DocumentService(db).delete_document(doc_id, auth)


@router.get("/{doc_id}/versions", response_model=List[DocumentVersionEntry])
def list_versions(
    doc_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """The live state (label ``current``) followed by stored versions, newest first."""
    return DocumentService(db).list_versions(doc_id, auth)


@router.get("/{doc_id}/versions/{ref}/diff", response_model=DiffResponse)
def diff_version(
    doc_id: int,
    ref: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Word diff of entry *ref* (``current`` or a version id) against the entry before it."""
    return DocumentService(db).diff_version(doc_id, ref, auth)


@router.post("/{doc_id}/versions/{version_id}/restore", response_model=DocumentResponse)
def restore_version(
    doc_id: int,
    version_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_editor),
):
    service = DocumentService(db)
    return service.to_response(service.restore_version(doc_id, version_id, auth), auth)
