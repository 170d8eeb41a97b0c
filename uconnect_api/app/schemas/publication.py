"""
Pydantic schemas for publications.

Publications are created from multipart forms (text plus an optional
image), so there is no request model here; the endpoint collects the
form fields and passes them to ``PublicationService``.
"""

from typing import Optional

from pydantic import BaseModel

from .common import AuthorProjection


class PublicationRead(BaseModel):
    """Publication enriched with its author projection."""

    id: int
    community_id: int
    author: AuthorProjection
    text: Optional[str] = None
    media_url: Optional[str] = None
    created_at: str
