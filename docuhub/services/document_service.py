"""Document service: CRUD, version history, restore and diff.

Changes to ``title`` or ``content`` go through the versioning engine so
the overwritten state is archived first. Metadata-only edits (type,
author, version label, ...) update the row directly.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.config import settings
from ..exceptions import ValidationError, VersionNotFoundError
from ..models import Document, DocumentVersion
from ..repositories import DocumentRepository, ProjectRepository
from ..schemas.common import Page, PaginationMeta
from ..schemas.document import (
    CONTENT_PREVIEW_LENGTH,
    DocumentCreate,
    DocumentListItem,
    DocumentResponse,
    DocumentUpdate,
)
from ..schemas.version import DiffResponse, DocumentVersionEntry
from . import audit_service
from .diff_service import diff, diff_stats
from .permission_service import can_edit, require_owner, require_scope
from .versioning import CURRENT_LABEL, VersioningEngine, VersionPolicy

logger = logging.getLogger(__name__)

# Columns that never take None on update.
_REQUIRED_FIELDS = frozenset({"project_id", "type", "title", "version", "content"})


def document_policy() -> VersionPolicy:
    return VersionPolicy(
        version_model=DocumentVersion,
        parent_column="document_id",
        snapshot_fields=("title", "content"),
        retention=settings.document_version_retention or None,
    )


class DocumentService:
    """Document lifecycle for one request's session."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DocumentRepository(db)
        self.project_repo = ProjectRepository(db)
        self.versions = VersioningEngine(db, document_policy())

    # --- mapping ---

    @staticmethod
    def to_response(doc: Document, auth: AuthContext) -> DocumentResponse:
        response = DocumentResponse.model_validate(doc)
        response.can_edit = can_edit(auth, doc.user_id, doc.project_id)
        return response

    @staticmethod
    def to_list_item(doc: Document, auth: AuthContext) -> DocumentListItem:
        return DocumentListItem(
            id=doc.id,
            project_id=doc.project_id,
            user_id=doc.user_id,
            type=doc.type,
            title=doc.title,
            description=doc.description,
            author=doc.author,
            version=doc.version,
            content_preview=(doc.content or "")[:CONTENT_PREVIEW_LENGTH],
            created_at=doc.created_at,
            updated_at=doc.updated_at,
            can_edit=can_edit(auth, doc.user_id, doc.project_id),
        )

    # --- access ---

    def _check_target_project(self, project_id: int, auth: AuthContext) -> None:
        project = self.project_repo.get_by_id(project_id)
        require_owner(auth, project.user_id, "project")
        require_scope(auth, project.id)

    def get_readable(self, doc_id: int, auth: AuthContext) -> Document:
        """Any authenticated caller may read; project-scoped keys stay in their project."""
        doc = self.repo.get_by_id(doc_id)
        require_scope(auth, doc.project_id)
        return doc

    def get_editable(self, doc_id: int, auth: AuthContext) -> Document:
        doc = self.get_readable(doc_id, auth)
        require_owner(auth, doc.user_id, "document")
        return doc

    # --- CRUD ---

    def create_document(self, data: DocumentCreate, auth: AuthContext) -> Document:
        self._check_target_project(data.project_id, auth)
        doc = self.repo.add(Document(
            project_id=data.project_id,
            user_id=auth.user_id,
            type=data.type,
            title=data.title.strip(),
            description=data.description,
            author=data.author or auth.username or None,
            version=data.version,
            content=data.content,
        ))
        self.db.commit()
        self.db.refresh(doc)
        logger.info("Document created", extra={"document_id": doc.id, "project_id": doc.project_id})
        audit_service.log(self.db, auth.user_id, "create", "document", doc.id, {"title": doc.title})
        return doc

    def list_documents(
        self,
        auth: AuthContext,
        page: int,
        limit: int,
        project_id: Optional[int] = None,
        doc_type: Optional[str] = None,
        search: Optional[str] = None,
        mine: bool = False,
    ) -> Page[DocumentListItem]:
        if auth.project_scope is not None:
            if project_id is not None:
                require_scope(auth, project_id)
            project_id = auth.project_scope
        query = self.repo.query_filtered(
            project_id=project_id,
            doc_type=doc_type,
            search=search,
            user_id=auth.user_id if mine else None,
        )
        items, total = self.repo.paginate(query, page, limit)
        return Page[DocumentListItem](
            data=[self.to_list_item(d, auth) for d in items],
            pagination=PaginationMeta.build(page, limit, total),
        )

    def update_document(self, doc_id: int, data: DocumentUpdate, auth: AuthContext) -> Document:
        """Apply a partial update, archiving title/content first when they change."""
        doc = self.get_editable(doc_id, auth)
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items()
                   if v is not None or k not in _REQUIRED_FIELDS}
        if "title" in changes:
            changes["title"] = changes["title"].strip()
            if not changes["title"]:
                raise ValidationError("Title cannot be empty", field="title")
        if "project_id" in changes and changes["project_id"] != doc.project_id:
            self._check_target_project(changes["project_id"], auth)

        snapshot_changed = any(
            name in changes and changes[name] != getattr(doc, name)
            for name in self.versions.policy.snapshot_fields
        )
        if snapshot_changed:
            self.versions.apply_update(doc, changes, auth.user_id, created_by_username=auth.username or None)
        else:
            for name, value in changes.items():
                setattr(doc, name, value)

        self.db.commit()
        self.db.refresh(doc)
        audit_service.log(self.db, auth.user_id, "update", "document", doc.id,
                          {"fields": sorted(changes), "versioned": snapshot_changed})
        return doc

    def delete_document(self, doc_id: int, auth: AuthContext) -> None:
        doc = self.get_editable(doc_id, auth)
        self.repo.delete(doc)
        self.db.commit()
        logger.info("Document deleted", extra={"document_id": doc_id})
        audit_service.log(self.db, auth.user_id, "delete", "document", doc_id)

    # --- history ---

    def list_versions(self, doc_id: int, auth: AuthContext) -> list[DocumentVersionEntry]:
        doc = self.get_readable(doc_id, auth)
        return [
            DocumentVersionEntry(
                rank=entry.rank,
                label=entry.label,
                is_current=entry.is_current,
                version_id=entry.version_id,
                version_number=entry.version_number,
                title=entry.fields["title"],
                content=entry.fields["content"],
                created_by=entry.created_by,
                created_by_username=entry.extra.get("created_by_username"),
                created_at=entry.created_at,
            )
            for entry in self.versions.list_versions(doc, extra_columns=("created_by_username",))
        ]

    def restore_version(self, doc_id: int, version_id: int, auth: AuthContext) -> Document:
        """Make a stored version current. The state being replaced becomes a new version."""
        doc = self.get_editable(doc_id, auth)
        version = self.versions.restore_version(
            doc, version_id, auth.user_id, created_by_username=auth.username or None
        )
        self.db.commit()
        self.db.refresh(doc)
        logger.info("Document restored", extra={"document_id": doc.id, "version_number": version.version_number})
        audit_service.log(self.db, auth.user_id, "restore", "document", doc.id,
                          {"version_id": version_id, "version_number": version.version_number})
        return doc

    def diff_version(self, doc_id: int, ref: str, auth: AuthContext) -> DiffResponse:
        """Diff entry *ref* ("current" or a version id) against the entry just older than it."""
        entries = self.list_versions(doc_id, auth)
        if ref == CURRENT_LABEL:
            index = 0
        else:
            try:
                version_id = int(ref)
            except ValueError:
                raise ValidationError(f"Invalid version reference: {ref}", field="ref") from None
            index = next((i for i, e in enumerate(entries) if e.version_id == version_id), None)
            if index is None:
                raise VersionNotFoundError(version_id, doc_id)

        entry = entries[index]
        base = entries[index + 1] if index + 1 < len(entries) else None
        segments = diff(base.content if base else "", entry.content)
        return DiffResponse(
            ref=entry.label,
            base=base.label if base else None,
            segments=segments,
            stats=diff_stats(segments),
        )
