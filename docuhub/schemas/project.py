"""Project schemas.

Code length and uniqueness are checked by ProjectService so they surface
as DocuHub validation and conflict errors.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProjectCreate(BaseModel):
    code: str
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)
    environment_id: int

    model_config = {
        "json_schema_extra": {
            "examples": [{"code": "PRY", "name": "Payments", "environment_id": 1}]
        }
    }


class ProjectUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)
    environment_id: Optional[int] = None


class ProjectResponse(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    color: str
    environment_id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
