"""API key schemas. The plaintext key only ever appears in ApiKeyCreatedResponse."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ApiKeyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    project_id: Optional[int] = Field(None, description="Restrict the key to one project; omit for all projects")
    expires_at: Optional[datetime] = None
    expires_in_days: Optional[int] = Field(None, ge=1, le=3650)


class ApiKeyResponse(BaseModel):
    id: int
    name: str
    prefix: str
    masked_key: str
    project_id: Optional[int] = None
    expires_at: Optional[datetime] = None
    is_active: bool
    is_expired: bool
    usage_count: int
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ApiKeyCreatedResponse(ApiKeyResponse):
    key: str
    warning: str


class UsageEntry(BaseModel):
    id: int
    used_at: datetime
    method: str
    endpoint: str
    ip_address: Optional[str] = None

    model_config = {"from_attributes": True}


class UsageStatsResponse(BaseModel):
    key_id: int
    usage_count: int
    last_used_at: Optional[datetime] = None
    recent_uses: list[UsageEntry]
