from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional

from .common import CamelModel


class ClinicCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    manager: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None


class ClinicUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, min_length=1, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    manager: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None


class ClinicResponse(CamelModel):
    id: int
    name: str
    phone: str
    address: Optional[str] = None
    email: Optional[str] = None
    manager: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class ClinicPage(CamelModel):
    clinics: List[ClinicResponse]
    total: int
    page: int
    limit: int


# Shape embedded in access tokens and current-user payloads
class ClinicSummary(BaseModel):
    id: int
    name: str


class ClinicMemberCreate(CamelModel):
    user_id: int
