"""User and AuditLog models.

Users authenticate with email/password and receive signed tokens.
AuditLog records all state-changing operations for accountability.
"""

from sqlalchemy import Column, Index, String, DateTime, Boolean, Integer, Text
from sqlalchemy.sql import func
from ..database import Base


class User(Base):
    """User account.

    Roles:
        admin : user management
        editor: create and edit own content
        viewer: read only

    Ownership decides which records an admin or editor may mutate.
    """

    __tablename__ = "users"

    user_id = Column(String(50), primary_key=True)
    display_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    password_hash = Column(Text, nullable=True)
    role = Column(String(20), nullable=False, default="editor")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuditLog(Base):
    """Immutable record of state-changing operations.

    Written by the service layer, never modified.
    Fields:
        action       : create, update, delete, restore, revoke, login, ...
        resource_type: environment, project, document, api_spec, api_key, user
        resource_id  : ID of the affected resource
        details      : JSON string with additional context
    """

    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_resource", "resource_type", "resource_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Not a foreign key: the dev-mode anonymous user has no row.
    user_id = Column(String(50), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
