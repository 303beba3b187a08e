"""Environment model: top-level grouping of projects."""

from sqlalchemy import Column, Index, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class Environment(Base):
    """An environment (client, deployment stage, ...) owning projects.

    No cascade to projects: deletion is refused while any project remains.
    """

    __tablename__ = "environments"
    __table_args__ = (
        Index("ix_environments_user_id", "user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    projects = relationship("Project", back_populates="environment")
