"""
Account endpoints for API v1.

Registration and confirmation are public; everything else requires a
bearer token.  Registration accepts a multipart form so a profile
picture can be uploaded together with the account data.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from uconnect_api.app.api.dependencies import get_asset_store, get_mailer, read_media
from uconnect_api.app.core.security import ROLE_ADMINISTRATOR, Identity, get_current_user, require_roles
from uconnect_api.app.infra.assets import AssetStore
from uconnect_api.app.infra.mail import Mailer
from uconnect_api.app.schemas.account import (
    AccountProfile,
    AccountPublic,
    LoginRequest,
    LoginResponse,
    PasswordUpdate,
    RegistrationRequest,
)
from uconnect_api.app.schemas.common import AuthorProjection, MessageResponse
from uconnect_api.app.services.account_service import AccountService
from uconnect_api.app.services.friend_service import FriendService
from uconnect_api.app.services.registration_service import RegistrationService


router = APIRouter()


@router.post("/estudiante/registro", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def register(
    name: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    university: Optional[str] = Form(None),
    career: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    interests: Optional[str] = Form(None, description="Comma separated list"),
    avatar: Optional[UploadFile] = File(None),
    asset_store: AssetStore = Depends(get_asset_store),
    mailer: Mailer = Depends(get_mailer),
) -> MessageResponse:
    """Register a student account and send the confirmation email.

    The account stays unconfirmed until the link in the email is
    followed.  If the email cannot be sent the account is removed
    again and the client receives a 502.
    """
    data = RegistrationRequest(
        name=name,
        username=username,
        email=email,
        password=password,
        university=university,
        career=career,
        phone=phone,
        bio=bio,
        interests=[item.strip() for item in (interests or "").split(",") if item.strip()],
    )
    await RegistrationService.register(data, await read_media(avatar), asset_store, mailer)
    return MessageResponse(message="Registration successful. Please confirm your email to complete the registration.")


@router.get("/confirmar/{token}", response_model=MessageResponse)
async def confirm_email(token: str) -> MessageResponse:
    await RegistrationService.confirm(token)
    return MessageResponse(message="Your account has been confirmed. You can now log in.")


@router.post("/estudiante/login", response_model=LoginResponse)
async def login(data: LoginRequest) -> LoginResponse:
    return await AccountService.login(data)


@router.get("/estudiante/perfil", response_model=AccountProfile)
async def get_profile(current_user: Identity = Depends(get_current_user)) -> AccountProfile:
    return await AccountService.get_profile(current_user.account_id)


@router.get("/estudiante/amigos", response_model=List[AuthorProjection])
async def list_friends(current_user: Identity = Depends(get_current_user)) -> List[AuthorProjection]:
    return await FriendService.list_friends(current_user.account_id)


@router.post("/estudiante/amigos/{account_id}", response_model=MessageResponse)
async def add_friend(
    account_id: str,
    current_user: Identity = Depends(get_current_user),
) -> MessageResponse:
    await FriendService.add_friend(current_user.account_id, account_id)
    return MessageResponse(message="Friend added successfully")


@router.delete("/estudiante/amigos/{account_id}", response_model=MessageResponse)
async def remove_friend(
    account_id: str,
    current_user: Identity = Depends(get_current_user),
) -> MessageResponse:
    await FriendService.remove_friend(current_user.account_id, account_id)
    return MessageResponse(message="Friend removed successfully")


@router.delete("/estudiante/{account_id}", response_model=MessageResponse)
async def deactivate_account(
    account_id: str,
    current_user: Identity = Depends(get_current_user),
    asset_store: AssetStore = Depends(get_asset_store),
) -> MessageResponse:
    """Deactivate an account.  Students may only deactivate themselves."""
    await AccountService.deactivate(current_user, account_id, asset_store)
    return MessageResponse(message="The account has been deactivated")


@router.put("/estudiante/reactivar/{account_id}", response_model=MessageResponse)
async def reactivate_account(
    account_id: str,
    current_user: Identity = Depends(require_roles(ROLE_ADMINISTRATOR)),
) -> MessageResponse:
    await AccountService.reactivate(account_id)
    return MessageResponse(message="The account has been reactivated")


@router.put("/estudiante/password", response_model=MessageResponse)
async def update_password(
    data: PasswordUpdate,
    current_user: Identity = Depends(get_current_user),
) -> MessageResponse:
    await AccountService.update_password(current_user, data)
    return MessageResponse(message="Password updated successfully")


# Declared last so the fixed ``/estudiante/...`` paths above take precedence.
@router.get("/estudiante/{account_id}", response_model=AccountPublic)
async def get_account(
    account_id: str,
    current_user: Identity = Depends(get_current_user),
) -> AccountPublic:
    return await AccountService.get_account(account_id)
