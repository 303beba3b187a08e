"""Version history and diff schemas."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel


class DocumentVersionEntry(BaseModel):
    """One entry of a document's history. ``version_id`` is None for the live state."""
    rank: int
    label: str
    is_current: bool
    version_id: Optional[int] = None
    version_number: Optional[int] = None
    title: str
    content: str
    created_by: Optional[str] = None
    created_by_username: Optional[str] = None
    created_at: Optional[datetime] = None


class DiffSegment(BaseModel):
    type: Literal["added", "removed", "unchanged"]
    text: str


class DiffResponse(BaseModel):
    ref: str
    base: Optional[str] = None
    segments: list[DiffSegment]
    stats: dict[str, int]


class ApiSpecVersionSummary(BaseModel):
    id: int
    version_number: int
    change_summary: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ApiSpecVersionResponse(ApiSpecVersionSummary):
    api_spec_id: int
    spec_content: dict[str, Any]


class ApiSpecVersionEntry(BaseModel):
    """One entry of an API spec's history, newest first. The live spec has ``version_id`` None."""

    rank: int
    label: str
    is_current: bool
    version_id: Optional[int] = None
    version_number: Optional[int] = None
    change_summary: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
