"""
Comment endpoints for API v1.

Every route requires a bearer token, editing included.  Successful
mutations are broadcast to the community's realtime channel.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from uconnect_api.app.api.dependencies import get_publisher
from uconnect_api.app.core.security import Identity, get_current_user
from uconnect_api.app.infra.realtime import EventPublisher
from uconnect_api.app.schemas.comment import CommentCreate, CommentRead, CommentUpdate, CommentUpdated
from uconnect_api.app.schemas.common import MessageResponse
from uconnect_api.app.services.comment_service import CommentService


router = APIRouter()


@router.post("/comentario", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
async def create_comment(
    data: CommentCreate,
    current_user: Identity = Depends(get_current_user),
    publisher: EventPublisher = Depends(get_publisher),
) -> CommentRead:
    """Comment on a publication of a community the caller belongs to."""
    return await CommentService.create_comment(current_user, data, publisher)


@router.put("/comentario/{comment_id}", response_model=CommentUpdated)
async def update_comment(
    comment_id: str,
    data: CommentUpdate,
    current_user: Identity = Depends(get_current_user),
    publisher: EventPublisher = Depends(get_publisher),
) -> CommentUpdated:
    """Edit the text of one of the caller's comments."""
    comment = await CommentService.update_comment(current_user, comment_id, data, publisher)
    return CommentUpdated(message="Comment updated successfully", comment=comment)


@router.delete("/comentario/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: str,
    current_user: Identity = Depends(get_current_user),
    publisher: EventPublisher = Depends(get_publisher),
) -> MessageResponse:
    await CommentService.delete_comment(current_user, comment_id, publisher)
    return MessageResponse(message="Comment deleted successfully")


@router.get("/publicacion/{publication_id}", response_model=List[CommentRead])
async def list_comments(
    publication_id: str,
    current_user: Identity = Depends(get_current_user),
) -> List[CommentRead]:
    """Comments of a publication, oldest first."""
    return await CommentService.list_comments(current_user, publication_id)
