"""Source-control schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .api_spec import ApiSpecResponse


class ConnectRequest(BaseModel):
    access_token: str = Field(..., min_length=1)
    username: Optional[str] = Field(None, description="Bitbucket username for app-password auth")


class ConnectionStatus(BaseModel):
    provider: str
    connected: bool
    username: Optional[str] = None
    connected_at: Optional[datetime] = None


class RepoResponse(BaseModel):
    name: str
    full_name: str
    owner: str
    description: Optional[str] = None
    default_branch: Optional[str] = None
    private: bool = False
    url: Optional[str] = None
    updated_at: Optional[str] = None


class AnalyzeRequest(BaseModel):
    branch: Optional[str] = None
    project_id: Optional[int] = None
    name: Optional[str] = Field(None, max_length=255)


class AnalyzeResponse(BaseModel):
    api_spec: ApiSpecResponse
    branch: str
    files_scanned: int
    frameworks: list[str]
    source_type: str
    paths_count: int
    schemas_count: int
