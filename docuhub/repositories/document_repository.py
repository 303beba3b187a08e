"""Document repository.

Owns document list queries; single-row lookups come from BaseRepository.
"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Query

from ..models import Document
from .base import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    model_class = Document
    resource_name = "Document"

    def query_filtered(
        self,
        project_id: Optional[int] = None,
        doc_type: Optional[str] = None,
        search: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Query:
        """Documents matching the given filters, most recently updated first."""
        query = self.db.query(Document)
        if project_id is not None:
            query = query.filter(Document.project_id == project_id)
        if doc_type:
            query = query.filter(Document.type == doc_type)
        if user_id is not None:
            query = query.filter(Document.user_id == user_id)
        if search:
            like = f"%{search.lower()}%"
            query = query.filter(
                func.lower(Document.title).like(like) | func.lower(Document.content).like(like)
            )
        return query.order_by(Document.updated_at.desc(), Document.id.desc())

    def count_for_user(self, user_id: str) -> int:
        return self.db.query(Document).filter(Document.user_id == user_id).count()
