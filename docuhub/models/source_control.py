"""Connected source-control accounts (GitHub, Bitbucket)."""

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func
from ..database import Base

PROVIDERS = ("github", "bitbucket")


class SourceControlAccount(Base):
    """A provider access token stored Fernet-encrypted, one per user and provider."""

    __tablename__ = "source_control_accounts"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_source_control_user_provider"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=False)
    provider = Column(String(20), nullable=False)
    username = Column(String(255), nullable=True)
    access_token_encrypted = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
