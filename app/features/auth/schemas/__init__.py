from app.features.auth.schemas.auth import (
    CreateSessionRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginVerifyRequest,
    OTPVerifyRequest,
    ProfileResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
    UpdateProfileRequest,
)

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "OTPVerifyRequest",
    "LoginVerifyRequest",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "UpdateProfileRequest",
    "ProfileResponse",
    "CreateSessionRequest",
    "SessionResponse",
]
