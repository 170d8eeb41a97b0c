"""Schemas shared by several domains."""

from typing import Optional

from pydantic import BaseModel, Field


class AuthorProjection(BaseModel):
    """Minimal public view of an account embedded in other resources."""

    id: int
    username: str = Field(..., example="alice")
    avatar_url: Optional[str] = Field(None, example="https://res.cloudinary.com/demo/alice.png")


class MessageResponse(BaseModel):
    message: str
