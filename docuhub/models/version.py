"""Version snapshot models for documents and API specs."""

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class DocumentVersion(Base):
    """Immutable snapshot of a document taken just before it was overwritten."""

    __tablename__ = "document_versions"
    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_document_versions_number"),
        Index("ix_document_versions_document_id", "document_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    version_number = Column(Integer, nullable=False)

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)

    # Who made the change that archived this state.
    created_by = Column(String(50), nullable=True)
    created_by_username = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    document = relationship("Document", back_populates="versions")


class ApiSpecVersion(Base):
    """Immutable snapshot of an API spec's content. Retention is capped per spec."""

    __tablename__ = "api_spec_versions"
    __table_args__ = (
        UniqueConstraint("api_spec_id", "version_number", name="uq_api_spec_versions_number"),
        Index("ix_api_spec_versions_api_spec_id", "api_spec_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    api_spec_id = Column(Integer, ForeignKey("api_specs.id", ondelete="CASCADE"), nullable=False)
    version_number = Column(Integer, nullable=False)

    spec_content = Column(JSON, nullable=False)
    change_summary = Column(String(255), nullable=True)

    created_by = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    api_spec = relationship("ApiSpec", back_populates="versions")
