"""Project model."""

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base

PROJECT_CODE_MAX_LENGTH = 10
DEFAULT_PROJECT_COLOR = "#6366f1"


class Project(Base):
    """Coded container for documents and API specs.

    Deleting a project removes its documents and project-scoped API keys;
    its API specs are detached into the "no project" bucket.
    """

    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_environment_id", "environment_id"),
        Index("ix_projects_user_id", "user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=False)
    code = Column(String(PROJECT_CODE_MAX_LENGTH), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), nullable=False, default=DEFAULT_PROJECT_COLOR)
    environment_id = Column(Integer, ForeignKey("environments.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    environment = relationship("Environment", back_populates="projects")
    documents = relationship("Document", back_populates="project", cascade="all, delete-orphan")
    # No delete cascade: the ORM nulls api_specs.project_id on project deletion.
    api_specs = relationship("ApiSpec", back_populates="project")
    api_keys = relationship("ApiKey", back_populates="project", cascade="all, delete-orphan")


# Codes are unique regardless of case.
Index("uq_projects_code_lower", func.lower(Project.code), unique=True)
