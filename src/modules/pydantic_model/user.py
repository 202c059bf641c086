from pydantic import AliasChoices, EmailStr, Field
from datetime import datetime
from typing import List, Optional

from core.models.users import Role
from .common import CamelModel
from .profile import ProfileData


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    username: str = Field(..., min_length=2, max_length=150)
    is_verified: bool = False
    user_type: Role = Role.USER
    profile: Optional[ProfileData] = None


class UserUpdate(CamelModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=72)
    username: Optional[str] = Field(None, min_length=2, max_length=150)
    is_verified: Optional[bool] = None
    user_type: Optional[Role] = None


class UserResponse(CamelModel):
    id: int
    email: str
    username: Optional[str] = None
    is_verified: bool
    user_type: Role = Field(validation_alias=AliasChoices("role", "userType", "user_type"))
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class UserPage(CamelModel):
    users: List[UserResponse]
    total: int
    page: int
    limit: int
