from datetime import datetime
from typing import Optional

from pydantic import Field

from core.models.users import Gender
from .common import CamelModel

PHONE_PATTERN = r"^\+?[0-9 ()\-]{6,20}$"


class ProfileData(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    birthday: datetime
    social_id: str = Field(..., min_length=1, max_length=100)
    license: Optional[str] = Field(None, max_length=255)
    specialization: Optional[str] = Field(None, max_length=150)
    bio: str = Field(..., min_length=1)
    gender: Gender


class ProfileCreate(ProfileData):
    user_id: int


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    birthday: Optional[datetime] = None
    social_id: Optional[str] = Field(None, min_length=1, max_length=100)
    license: Optional[str] = Field(None, max_length=255)
    specialization: Optional[str] = Field(None, max_length=150)
    bio: Optional[str] = Field(None, min_length=1)
    gender: Optional[Gender] = None


class ProfileResponse(CamelModel):
    id: int
    user_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    birthday: datetime
    social_id: str
    license: Optional[str] = None
    specialization: Optional[str] = None
    bio: str
    gender: Gender
    created_at: datetime
    updated_at: datetime
