from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional

from .common import CamelModel
from .clinic import ClinicSummary
from .user import UserResponse

# --------------------------
# Request Models
# --------------------------
class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    username: Optional[str] = Field(None, min_length=2, max_length=150)

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class ChangePasswordRequest(CamelModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=72)

class ChangeClinicRequest(CamelModel):
    clinic_id: int

class ForgotPasswordRequest(CamelModel):
    email: EmailStr

class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=72)

# --------------------------
# Response Models
# --------------------------
class CurrentUserResponse(UserResponse):
    is_active: bool

class CurrentUserPayloadResponse(CurrentUserResponse):
    user_clinics: List[ClinicSummary]

# --------------------------
# Token Models
# --------------------------
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
