"""API key and usage log models."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class ApiKey(Base):
    """Bearer credential for machine access.

    The plaintext key is never stored; ``key_hash`` is an HMAC of the full
    key under the server salt. ``project_id`` NULL means the key reaches
    every project of its issuer.
    """

    __tablename__ = "api_keys"
    __table_args__ = (
        Index("ix_api_keys_user_id", "user_id"),
        Index("ix_api_keys_key_hash", "key_hash", unique=True),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True)

    name = Column(String(255), nullable=False)
    prefix = Column(String(20), nullable=False)
    key_hash = Column(String(64), nullable=False)

    expires_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    project = relationship("Project", back_populates="api_keys")
    usage = relationship(
        "ApiKeyUsage",
        back_populates="api_key",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ApiKeyUsage(Base):
    """One authenticated request made with an API key. Append-only."""

    __tablename__ = "api_key_usage"
    __table_args__ = (
        Index("ix_api_key_usage_key_used_at", "api_key_id", "used_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    api_key_id = Column(Integer, ForeignKey("api_keys.id", ondelete="CASCADE"), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=False)
    method = Column(String(10), nullable=False)
    endpoint = Column(String(500), nullable=False)
    ip_address = Column(String(45), nullable=True)

    api_key = relationship("ApiKey", back_populates="usage")
