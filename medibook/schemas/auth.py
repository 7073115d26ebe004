from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field, model_validator

from ..core.security import UserRole
from .base import CamelModel

Gender = Literal["male", "female", "other"]


class EmergencyContact(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None


class UserRegister(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.PATIENT
    phone: str = Field(..., min_length=1, max_length=20)

    specialization: Optional[str] = Field(None, max_length=100)
    license_number: Optional[str] = Field(None, max_length=50)
    experience: Optional[int] = Field(None, ge=0, le=80)

    age: Optional[int] = Field(None, ge=1, le=120)
    gender: Optional[Gender] = None
    address: Optional[str] = Field(None, max_length=255)
    emergency_contact: Optional[EmergencyContact] = None

    @model_validator(mode="after")
    def check_role_fields(self):
        if self.role == UserRole.DOCTOR:
            required = ("specialization", "license_number", "experience")
        else:
            required = ("age", "gender", "address")
        missing = [name for name in required if getattr(self, name) in (None, "")]
        if missing:
            raise ValueError(
                f"{', '.join(missing)} required for role {self.role.value}"
            )
        return self


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(CamelModel):
    refresh_token: str


class ChangePassword(CamelModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class ProfileUpdate(CamelModel):
    """Fields a user may change on their own profile.

    Role-specific fields sent by the other role are ignored.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=1, max_length=20)

    specialization: Optional[str] = Field(None, max_length=100)
    license_number: Optional[str] = Field(None, max_length=50)
    experience: Optional[int] = Field(None, ge=0, le=80)

    age: Optional[int] = Field(None, ge=1, le=120)
    gender: Optional[Gender] = None
    address: Optional[str] = Field(None, max_length=255)
    emergency_contact: Optional[EmergencyContact] = None


class UserSummary(CamelModel):
    """User fields inlined onto appointments and records."""
    id: int
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    specialization: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    experience: Optional[int] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


class TokenResponse(CamelModel):
    message: Optional[str] = None
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class ProfileResponse(CamelModel):
    message: str
    user: UserResponse


class DoctorResponse(CamelModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    specialization: Optional[str] = None
    experience: Optional[int] = None
