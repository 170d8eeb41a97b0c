"""
Pydantic models for account data.

Registration arrives as a multipart form (it may carry a profile
picture), so ``RegistrationRequest`` is assembled by the endpoint.
All fields are optional at the schema level; the registration flow
checks its required fields explicitly and answers with a 400.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .common import AuthorProjection


class RegistrationRequest(BaseModel):
    name: Optional[str] = Field(None, example="Alice Andrade")
    username: Optional[str] = Field(None, example="alice")
    email: Optional[str] = Field(None, example="alice@puce.edu.ec")
    password: Optional[str] = Field(None, example="Password123!")
    university: Optional[str] = Field(None, example="PUCE")
    career: Optional[str] = Field(None, example="Sistemas")
    phone: Optional[str] = Field(None, example="0987654321")
    bio: Optional[str] = None
    interests: List[str] = Field(default_factory=list)


class LoginRequest(BaseModel):
    email: Optional[str] = Field(None, example="alice@puce.edu.ec")
    password: Optional[str] = Field(None, example="Password123!")


class AccountProfile(BaseModel):
    """Schema for reading the caller's own account."""

    id: int
    name: str
    username: str
    email: str
    role: str
    avatar_url: Optional[str] = None
    university: Optional[str] = None
    career: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    friends: List[AuthorProjection] = Field(default_factory=list)
    communities: List[int] = Field(default_factory=list)


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    account: AccountProfile


class PasswordUpdate(BaseModel):
    current_password: Optional[str] = Field(None, example="Password123!")
    new_password: Optional[str] = Field(None, example="OtraClave456!")


class AccountPublic(BaseModel):
    """What any authenticated account may see of another one."""

    id: int
    name: str
    username: str
    avatar_url: Optional[str] = None
    university: Optional[str] = None
    career: Optional[str] = None
    bio: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
