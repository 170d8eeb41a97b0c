"""
Community endpoints for API v1.

Administrators create communities; any authenticated account may join
or leave one.
"""

from fastapi import APIRouter, Depends, status

from uconnect_api.app.core.security import ROLE_ADMINISTRATOR, Identity, get_current_user, require_roles
from uconnect_api.app.schemas.common import MessageResponse
from uconnect_api.app.schemas.community import CommunityCreate, CommunityRead
from uconnect_api.app.services.community_service import CommunityService


router = APIRouter()


@router.post("", response_model=CommunityRead, status_code=status.HTTP_201_CREATED)
async def create_community(
    data: CommunityCreate,
    current_user: Identity = Depends(require_roles(ROLE_ADMINISTRATOR)),
) -> CommunityRead:
    return await CommunityService.create_community(data)


@router.get("/{community_id}", response_model=CommunityRead)
async def get_community(
    community_id: str,
    current_user: Identity = Depends(get_current_user),
) -> CommunityRead:
    return await CommunityService.get_community(community_id)


@router.post("/{community_id}/miembros", response_model=MessageResponse)
async def join_community(
    community_id: str,
    current_user: Identity = Depends(get_current_user),
) -> MessageResponse:
    await CommunityService.join(community_id, current_user.account_id)
    return MessageResponse(message="You joined the community")


@router.delete("/{community_id}/miembros", response_model=MessageResponse)
async def leave_community(
    community_id: str,
    current_user: Identity = Depends(get_current_user),
) -> MessageResponse:
    await CommunityService.leave(community_id, current_user.account_id)
    return MessageResponse(message="You left the community")
