from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User, UserRole
from app.features.auth.schemas.auth import (
    LoginVerifyRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from app.features.auth.services.email_service import NotificationSink
from app.features.auth.services.otp_service import OTPService, OTPStatus
from app.features.auth.services.session_service import SessionService
from app.features.auth.services.user_service import DuplicateEmailError, UserService
from app.features.auth.utils.roles import RolePolicy, classify_role, resolve_role_change
from app.features.auth.utils.security import create_access_token, hash_password, verify_password
from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger(__name__)

STUDENT_PROFILE_KEYS = ("department", "course", "year", "section", "profileLinks")


def read_student_profile(user: User) -> Dict[str, Any]:
    """Student attributes returned alongside the login token (read-only here)."""
    details = user.profile_details or {}
    profile = {key: details[key] for key in STUDENT_PROFILE_KEYS if key in details}
    profile["rollNumber"] = user.roll_number
    profile["phone"] = user.phone
    return profile


class AuthService:
    """
    Registration, OTP verification, two-step login and password reset.

    Every path that hands out a bearer token re-runs the role classifier first,
    so allow-list changes take effect on the next successful authentication.
    """

    def __init__(
        self,
        db: AsyncSession,
        policy: RolePolicy,
        notifier: NotificationSink,
        echo_otp: Optional[bool] = None,
    ):
        self.db = db
        self.policy = policy
        self.notifier = notifier
        self.echo_otp = settings.echo_otp if echo_otp is None else echo_otp
        self.users = UserService(db)
        self.otps = OTPService(db)
        self.sessions = SessionService(db)

    def _dev_payload(self, otp: str) -> Dict[str, str]:
        return {"devOtp": otp} if self.echo_otp else {}

    async def _send_code(self, user: User, purpose: str) -> str:
        otp = await self.otps.issue(user.email)
        self.notifier.send_otp(user.email, otp, purpose, user.full_name)
        return otp

    async def _consume_code(self, email: str, otp: str) -> None:
        outcome = await self.otps.consume(email, otp)
        if outcome == OTPStatus.expired:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="OTP expired")
        if outcome != OTPStatus.valid:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OTP")

    async def _require_user(self, email: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> User:
        user = await self.users.get_by_email(email)
        if not user:
            raise HTTPException(status_code=status_code, detail="User not found")
        return user

    async def _issue_token(self, user: User) -> Dict[str, Any]:
        if resolve_role_change(user, self.policy):
            logger.info(f"Role of user {user.id} promoted to {user.role.value}")
        await self.users.save(user)

        token = create_access_token(user.id, user.email, user.role.value)
        return {
            "token": token,
            "role": user.role.value,
            "id": user.id,
            "fullName": user.full_name,
        }

    async def register(self, request: RegisterRequest) -> Dict[str, Any]:
        email = request.email
        role = classify_role(email, self.policy)
        user = await self.users.get_by_email(email)

        if user and user.is_verified:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered"
            )

        if role is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid email format or unauthorized domain",
            )

        if user:
            # Abandoned verification: restart with the new credentials
            user.password_hash = hash_password(request.password)
            user.role = role
            user.full_name = request.full_name() or user.full_name
            user.phone = request.phone or user.phone
            user.roll_number = request.roll_number or user.roll_number
            user.profile_details = request.profile_details()
            await self.users.save(user)
            logger.info(f"Refreshed credentials of unverified account {email}")
        else:
            try:
                user = await self.users.create(
                    email=email,
                    password_hash=hash_password(request.password),
                    role=role,
                    full_name=request.full_name(),
                    phone=request.phone,
                    roll_number=request.roll_number,
                    profile_details=request.profile_details(),
                )
            except DuplicateEmailError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered"
                )
            logger.info(f"Registered {email} as {role.value}")

        otp = await self._send_code(user, "verification")
        return {"role": role.value, **self._dev_payload(otp)}

    async def verify_registration(self, email: str, otp: str) -> Dict[str, Any]:
        await self._consume_code(email, otp)
        user = await self._require_user(email, status.HTTP_404_NOT_FOUND)

        user.is_verified = True
        logger.info(f"Account {email} verified")
        return await self._issue_token(user)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        user = await self._require_user(email)

        if not verify_password(password, user.password_hash):
            logger.warning(f"Login failed - invalid credentials for {email}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

        if not user.is_verified:
            otp = await self._send_code(user, "verification")
            return {
                "message": "Please verify your account via OTP",
                "needsVerification": True,
                **self._dev_payload(otp),
            }

        otp = await self._send_code(user, "login")
        return {"message": "Login OTP sent to email", **self._dev_payload(otp)}

    async def login_verify(self, request: LoginVerifyRequest) -> Dict[str, Any]:
        await self._consume_code(request.email, request.otp)
        user = await self._require_user(request.email, status.HTTP_404_NOT_FOUND)

        if not user.is_verified:
            # The code reached the mailbox, which is all /verify proves
            user.is_verified = True
            logger.info(f"Account {request.email} verified during login")

        response = await self._issue_token(user)
        if user.role == UserRole.student:
            response.update(read_student_profile(user))

        if request.create_session:
            session = await self.sessions.create(user.id, request.device_info)
            response["sessionToken"] = session.session_token
            response["sessionExpiresAt"] = session.expires_at

        logger.info(f"Login completed for {request.email}")
        return response

    async def forgot_password(self, email: str) -> Dict[str, Any]:
        user = await self._require_user(email)
        otp = await self._send_code(user, "reset")
        return self._dev_payload(otp)

    async def reset_password(self, email: str, otp: str, new_password: str) -> None:
        await self._consume_code(email, otp)
        user = await self._require_user(email, status.HTTP_404_NOT_FOUND)

        user.password_hash = hash_password(new_password)
        await self.users.save(user)
        revoked = await self.sessions.invalidate_all(user.id)
        logger.info(f"Password reset for {email}; {revoked} session(s) revoked")

    async def get_profile(self, user_id: int) -> User:
        user = await self.users.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user

    async def update_profile(self, user_id: int, request: UpdateProfileRequest) -> User:
        """Merge the provided fields into the stored profile attributes."""
        user = await self.get_profile(user_id)

        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

        if "name" in changes:
            name = changes["name"].strip()
            if not name:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name cannot be blank")
            user.full_name = name
        if "phone" in changes:
            user.phone = changes["phone"].strip()
        if "roll_number" in changes:
            user.roll_number = changes["roll_number"].strip()
        if "profile_details" in changes:
            # Reassign so the JSON column is flagged dirty
            user.profile_details = {**(user.profile_details or {}), **changes["profile_details"]}

        return await self.users.save(user)
