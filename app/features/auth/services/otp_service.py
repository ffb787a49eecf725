import enum
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.otp import OneTimeCode
from app.features.auth.utils.security import generate_otp
from app.platform.config import settings
from app.platform.logger import get_logger
from app.platform.utils.time import utc_now

logger = get_logger(__name__)


class OTPStatus(str, enum.Enum):
    valid = "valid"
    invalid = "invalid"
    expired = "expired"


class OTPService:
    """
    Issues and consumes one-time codes.

    Codes are not tied to a purpose: registration, login and reset codes share
    one table and one consume path. Several codes may be outstanding for the
    same email; consumption matches the literal (email, code) pair.
    """

    def __init__(self, db: AsyncSession, expiry_minutes: Optional[int] = None):
        self.db = db
        self.expiry_minutes = expiry_minutes or settings.OTP_EXPIRY_MINUTES

    async def issue(self, email: str) -> str:
        code = generate_otp()
        now = utc_now()
        self.db.add(
            OneTimeCode(
                email=email.lower(),
                otp_code=code,
                expires_at=now + timedelta(minutes=self.expiry_minutes),
                created_at=now,
            )
        )
        await self.db.commit()
        logger.info(f"OTP issued for {email.lower()} (expires in {self.expiry_minutes} min)")
        return code

    async def consume(self, email: str, code: str) -> OTPStatus:
        """
        Verify and consume a code in one conditional delete.
        Two concurrent consumers of the same code cannot both see `valid`:
        only one DELETE affects the row.
        """
        email = email.lower()
        code = code.strip()
        now = utc_now()

        result = await self.db.execute(
            delete(OneTimeCode).where(
                OneTimeCode.email == email,
                OneTimeCode.otp_code == code,
                OneTimeCode.expires_at > now,
            ).execution_options(synchronize_session=False)
        )
        if result.rowcount:
            await self.db.commit()
            return OTPStatus.valid

        # Lazy cleanup: a matching but expired row is removed and reported as such
        result = await self.db.execute(
            delete(OneTimeCode).where(
                OneTimeCode.email == email,
                OneTimeCode.otp_code == code,
                OneTimeCode.expires_at <= now,
            ).execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount:
            logger.warning(f"Expired OTP presented for {email}")
            return OTPStatus.expired

        logger.warning(f"Invalid OTP presented for {email}")
        return OTPStatus.invalid

    async def purge_expired(self) -> int:
        result = await self.db.execute(
            delete(OneTimeCode)
            .where(OneTimeCode.expires_at <= utc_now())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount or 0
