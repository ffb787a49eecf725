from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.features.auth.utils.security import PASSWORD_POLICY_MESSAGE, password_meets_policy


def _normalize_email(v: str) -> str:
    return str(v).strip().lower()


def _check_password(v: str) -> str:
    if not password_meets_policy(v):
        raise ValueError(PASSWORD_POLICY_MESSAGE)
    return v


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    roll_number: Optional[str] = Field(None, alias="rollNumber", max_length=64)
    department: Optional[str] = None
    course: Optional[str] = None
    year: Optional[str] = None
    section: Optional[str] = None
    profile_links: Optional[Dict[str, str]] = Field(None, alias="profileLinks")

    normalize_email = field_validator("email")(_normalize_email)
    check_password = field_validator("password")(_check_password)

    @field_validator("year", mode="before")
    @classmethod
    def stringify_year(cls, v):
        return str(v) if v is not None else v

    def profile_details(self) -> Dict[str, Any]:
        details = {
            "department": self.department,
            "course": self.course,
            "year": self.year,
            "section": self.section,
            "profileLinks": self.profile_links,
        }
        return {k: v for k, v in details.items() if v not in (None, "", {})}

    def full_name(self) -> Optional[str]:
        return (self.name or "").strip() or None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    normalize_email = field_validator("email")(_normalize_email)


class OTPVerifyRequest(CamelModel):
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=8)

    normalize_email = field_validator("email")(_normalize_email)


class LoginVerifyRequest(OTPVerifyRequest):
    create_session: bool = Field(False, alias="createSession")
    device_info: Optional[Dict[str, Any]] = Field(None, alias="deviceInfo")


class ForgotPasswordRequest(CamelModel):
    email: EmailStr

    normalize_email = field_validator("email")(_normalize_email)


class ResetPasswordRequest(CamelModel):
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=8)
    new_password: str = Field(..., alias="newPassword")

    normalize_email = field_validator("email")(_normalize_email)
    check_password = field_validator("new_password")(_check_password)


class UpdateProfileRequest(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    roll_number: Optional[str] = Field(None, alias="rollNumber", max_length=64)
    profile_details: Optional[Dict[str, Any]] = Field(None, alias="profileDetails")


class ProfileResponse(CamelModel):
    id: int
    email: str
    role: str
    full_name: Optional[str] = Field(None, serialization_alias="fullName")
    phone: Optional[str] = None
    roll_number: Optional[str] = Field(None, serialization_alias="rollNumber")
    profile_details: Dict[str, Any] = Field(default_factory=dict, serialization_alias="profileDetails")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @field_validator("role", mode="before")
    @classmethod
    def role_value(cls, v):
        return getattr(v, "value", v)

    @field_validator("profile_details", mode="before")
    @classmethod
    def empty_details(cls, v):
        return v or {}


class CreateSessionRequest(CamelModel):
    device_info: Optional[Dict[str, Any]] = Field(None, alias="deviceInfo")


class SessionResponse(CamelModel):
    id: int
    session_token: str = Field(serialization_alias="sessionToken")
    created_at: datetime = Field(serialization_alias="createdAt")
    expires_at: datetime = Field(serialization_alias="expiresAt")
    last_accessed_at: datetime = Field(serialization_alias="lastAccessedAt")
    device_info: Optional[Dict[str, Any]] = Field(None, serialization_alias="deviceInfo")
    is_active: bool = Field(serialization_alias="isActive")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
