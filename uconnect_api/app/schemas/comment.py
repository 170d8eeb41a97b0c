"""
Pydantic schemas for comments.

Reference fields accept strings as well as integers so that malformed
identifiers reach the service layer, which reports them with its own
error messages in a fixed validation order.
"""

from typing import Optional, Union

from pydantic import BaseModel, Field

from .common import AuthorProjection


class CommentCreate(BaseModel):
    publication_id: Optional[Union[int, str]] = Field(None, example=3)
    community_id: Optional[Union[int, str]] = Field(None, example=7)
    text: Optional[str] = Field(None, example="Nos vemos en la biblioteca")


class CommentUpdate(BaseModel):
    text: Optional[str] = Field(None, example="Nos vemos a las 5")


class CommentRead(BaseModel):
    """Comment enriched with its author projection."""

    id: int
    publication_id: int
    community_id: int
    author: AuthorProjection
    text: str
    created_at: str
    updated_at: Optional[str] = None


class CommentUpdated(BaseModel):
    message: str
    comment: CommentRead
