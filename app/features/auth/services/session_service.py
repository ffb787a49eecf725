from datetime import timedelta
from typing import List, Optional

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.session import UserSession
from app.features.auth.utils.security import generate_session_token
from app.platform.config import settings
from app.platform.logger import get_logger
from app.platform.utils.time import utc_now

logger = get_logger(__name__)


class SessionService:
    """
    Store-backed opaque sessions.

    A session is usable while `is_active` and `now < expires_at`. The absolute
    lifetime is fixed at creation; `extend` only records activity in
    `last_accessed_at`.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _usable(now):
        return and_(UserSession.is_active.is_(True), UserSession.expires_at > now)

    async def create(self, user_id: int, device_info: Optional[dict] = None) -> UserSession:
        now = utc_now()
        session = UserSession(
            user_id=user_id,
            session_token=generate_session_token(),
            created_at=now,
            expires_at=now + timedelta(days=settings.SESSION_DURATION_DAYS),
            last_accessed_at=now,
            device_info=device_info,
            is_active=True,
        )
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)
        logger.info(f"Session {session.id} created for user {user_id}")
        return session

    async def verify(self, token: Optional[str]) -> Optional[UserSession]:
        if not token:
            return None
        result = await self.db.execute(
            select(UserSession).where(
                UserSession.session_token == token, self._usable(utc_now())
            )
        )
        return result.scalar_one_or_none()

    async def extend(self, token: Optional[str]) -> Optional[UserSession]:
        """Touch `last_accessed_at`; returns None once the session is no longer usable."""
        if not token:
            return None
        now = utc_now()
        result = await self.db.execute(
            update(UserSession)
            .where(UserSession.session_token == token, self._usable(now))
            .values(last_accessed_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if not result.rowcount:
            return None

        refreshed = await self.db.execute(
            select(UserSession)
            .where(UserSession.session_token == token)
            .execution_options(populate_existing=True)
        )
        return refreshed.scalar_one_or_none()

    async def invalidate(self, token: str) -> bool:
        result = await self.db.execute(
            update(UserSession)
            .where(UserSession.session_token == token)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return bool(result.rowcount)

    async def invalidate_all(self, user_id: int) -> int:
        result = await self.db.execute(
            update(UserSession)
            .where(UserSession.user_id == user_id, UserSession.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info(f"Invalidated {result.rowcount} session(s) for user {user_id}")
        return result.rowcount or 0

    async def list_active(self, user_id: int) -> List[UserSession]:
        result = await self.db.execute(
            select(UserSession)
            .where(UserSession.user_id == user_id, self._usable(utc_now()))
            .order_by(UserSession.last_accessed_at.desc())
        )
        return list(result.scalars().all())

    async def has_valid_session(self, user_id: int) -> bool:
        result = await self.db.execute(
            select(UserSession.id)
            .where(UserSession.user_id == user_id, self._usable(utc_now()))
            .limit(1)
        )
        return result.first() is not None

    async def cleanup(self) -> int:
        """Delete expired sessions and inactive ones past the retention window."""
        now = utc_now()
        retention_cutoff = now - timedelta(days=settings.SESSION_RETENTION_DAYS)
        result = await self.db.execute(
            delete(UserSession).where(
                or_(
                    UserSession.expires_at < now,
                    and_(
                        UserSession.is_active.is_(False),
                        UserSession.created_at < retention_cutoff,
                    ),
                )
            ).execution_options(synchronize_session=False)
        )
        await self.db.commit()
        deleted = result.rowcount or 0
        logger.info(f"Cleaned up {deleted} expired session(s)")
        return deleted
