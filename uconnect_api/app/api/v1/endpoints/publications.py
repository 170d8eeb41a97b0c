"""
Publication endpoints for API v1.

Publications are submitted as multipart forms so an image can travel
with the text.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from uconnect_api.app.api.dependencies import get_asset_store, get_publisher, read_media
from uconnect_api.app.core.security import Identity, get_current_user
from uconnect_api.app.infra.assets import AssetStore
from uconnect_api.app.infra.realtime import EventPublisher
from uconnect_api.app.schemas.common import MessageResponse
from uconnect_api.app.schemas.publication import PublicationRead
from uconnect_api.app.services.publication_service import PublicationService


router = APIRouter()


@router.post("/publicacion", response_model=PublicationRead, status_code=status.HTTP_201_CREATED)
async def create_publication(
    community_id: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    media: Optional[UploadFile] = File(None),
    current_user: Identity = Depends(get_current_user),
    asset_store: AssetStore = Depends(get_asset_store),
    publisher: EventPublisher = Depends(get_publisher),
) -> PublicationRead:
    """Publish text and/or an image in a community the caller belongs to."""
    return await PublicationService.create_publication(
        current_user,
        community_id=community_id,
        text=text,
        media=await read_media(media),
        asset_store=asset_store,
        publisher=publisher,
    )


@router.get("/publicaciones/{community_id}", response_model=List[PublicationRead])
async def list_publications(
    community_id: str,
    current_user: Identity = Depends(get_current_user),
) -> List[PublicationRead]:
    """Publications of a community, newest first."""
    return await PublicationService.list_publications(current_user, community_id)


@router.delete("/publicacion/{publication_id}", response_model=MessageResponse)
async def delete_publication(
    publication_id: str,
    current_user: Identity = Depends(get_current_user),
    asset_store: AssetStore = Depends(get_asset_store),
    publisher: EventPublisher = Depends(get_publisher),
) -> MessageResponse:
    await PublicationService.delete_publication(current_user, publication_id, asset_store, publisher)
    return MessageResponse(message="Publication deleted successfully")
