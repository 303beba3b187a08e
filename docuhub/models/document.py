"""Document model."""

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base

DOCUMENT_TYPES = ("api", "usuario", "tecnica", "procesos", "proyecto", "requisitos")


class Document(Base):
    """Markdown document belonging to a project.

    The live row is the "current" version; prior states live in
    ``document_versions`` and are written by the versioning engine.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_project_id", "project_id"),
        Index("ix_documents_user_id", "user_id"),
        Index("ix_documents_updated_at", "updated_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(50), nullable=False)

    type = Column(String(20), nullable=False, default="tecnica")
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    author = Column(String(255), nullable=True)
    # Free-text label ("V1", "1.2.0"); unrelated to version_number in history.
    version = Column(String(20), nullable=False, default="V1")
    content = Column(Text, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    project = relationship("Project", back_populates="documents")
    versions = relationship(
        "DocumentVersion",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentVersion.version_number.desc()",
    )
