"""Document schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

DocumentType = Literal["api", "usuario", "tecnica", "procesos", "proyecto", "requisitos"]

CONTENT_PREVIEW_LENGTH = 200


class DocumentCreate(BaseModel):
    project_id: int
    type: DocumentType = "tecnica"
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    author: Optional[str] = Field(None, max_length=255)
    version: str = Field("V1", min_length=1, max_length=20)
    content: str = ""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "project_id": 1,
                    "type": "api",
                    "title": "Payments API",
                    "version": "V1",
                    "content": "# Payments\n\nEndpoints for charging cards.",
                }
            ]
        }
    }


class DocumentUpdate(BaseModel):
    project_id: Optional[int] = None
    type: Optional[DocumentType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    author: Optional[str] = Field(None, max_length=255)
    version: Optional[str] = Field(None, min_length=1, max_length=20)
    content: Optional[str] = None


class DocumentListItem(BaseModel):
    id: int
    project_id: int
    user_id: str
    type: str
    title: str
    description: Optional[str] = None
    author: Optional[str] = None
    version: str
    content_preview: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    can_edit: bool = False


class DocumentResponse(BaseModel):
    id: int
    project_id: int
    user_id: str
    type: str
    title: str
    description: Optional[str] = None
    author: Optional[str] = None
    version: str
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    can_edit: bool = False

    model_config = {"from_attributes": True}
