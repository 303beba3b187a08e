"""Environment schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class EnvironmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)

    model_config = {
        "json_schema_extra": {
            "examples": [{"name": "Prod", "description": "Production systems", "color": "#ef4444"}]
        }
    }


class EnvironmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)


class EnvironmentResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    created_at: Optional[datetime] = None
    project_count: int = 0

    model_config = {"from_attributes": True}
