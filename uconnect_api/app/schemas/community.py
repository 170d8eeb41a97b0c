"""Pydantic schemas for communities."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CommunityCreate(BaseModel):
    name: str = Field(..., example="Ingeniería de Software")
    description: Optional[str] = Field(None, example="Estudiantes de la carrera de software")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Community name must not be empty")
        return v


class CommunityRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    member_count: int = 0
