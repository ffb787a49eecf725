from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginVerifyRequest,
    OTPVerifyRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from app.features.auth.services.auth_service import AuthService
from app.features.auth.services.email_service import NotificationSink, get_notification_sink
from app.features.auth.utils.roles import RolePolicy, get_role_policy
from app.platform.db.session import get_db
from app.platform.response import api_response
from app.platform.utils.rate_limit import rate_limit

router = APIRouter(tags=["Authentication"])


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    policy: RolePolicy = Depends(get_role_policy),
    notifier: NotificationSink = Depends(get_notification_sink),
) -> AuthService:
    return AuthService(db, policy, notifier)


@router.post(
    "/register",
    response_model=dict,
    status_code=status.HTTP_200_OK,
    summary="Register a new account",
    description="Create (or refresh an unverified) account and send a verification OTP",
)
async def register(request: RegisterRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Register with an institution email.
    - **password**: at least 8 characters with one digit and one special character

    The role (student/staff/admin) is derived from the email address.
    """
    rate_limit(f"register:{request.email}")
    result = await auth_service.register(request)
    return api_response(message=f"OTP sent to {request.email}", data=result)


@router.post("/verify", response_model=dict, summary="Verify account with OTP")
async def verify(request: OTPVerifyRequest, auth_service: AuthService = Depends(get_auth_service)):
    rate_limit(f"verify:{request.email}")
    result = await auth_service.verify_registration(request.email, request.otp)
    return api_response(message="Verified", data=result)


@router.post("/login", response_model=dict, summary="Login step 1: check credentials and send OTP")
async def login(request: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    rate_limit(f"login:{request.email}")
    result = await auth_service.login(request.email, request.password)
    message = result.pop("message")
    return api_response(message=message, data=result)


@router.post("/login-verify", response_model=dict, summary="Login step 2: verify OTP and issue token")
async def login_verify(request: LoginVerifyRequest, auth_service: AuthService = Depends(get_auth_service)):
    rate_limit(f"login-verify:{request.email}")
    result = await auth_service.login_verify(request)
    return api_response(message="Login successful", data=result)


@router.post("/forgot", response_model=dict, summary="Send a password reset OTP")
async def forgot_password(
    request: ForgotPasswordRequest, auth_service: AuthService = Depends(get_auth_service)
):
    rate_limit(f"forgot:{request.email}")
    result = await auth_service.forgot_password(request.email)
    return api_response(message="Password reset OTP sent", data=result)


@router.post("/reset", response_model=dict, summary="Reset password using an OTP")
async def reset_password(
    request: ResetPasswordRequest, auth_service: AuthService = Depends(get_auth_service)
):
    """Reset the password. No token is issued; log in again afterwards."""
    rate_limit(f"reset:{request.email}")
    await auth_service.reset_password(request.email, request.otp, request.new_password)
    return api_response(message="Password updated")
