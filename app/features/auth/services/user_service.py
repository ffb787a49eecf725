from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User, UserRole


class DuplicateEmailError(Exception):
    pass


class UserService:
    """Credential store: account lookups and single-row writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def create(
        self,
        email: str,
        password_hash: str,
        role: UserRole,
        full_name: Optional[str] = None,
        phone: Optional[str] = None,
        roll_number: Optional[str] = None,
        profile_details: Optional[dict] = None,
    ) -> User:
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            role=role,
            is_verified=False,
            full_name=full_name,
            phone=phone,
            roll_number=roll_number,
            profile_details=dict(profile_details or {}),
        )
        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateEmailError(user.email) from e
        return user

    async def save(self, user: User) -> User:
        await self.db.commit()
        await self.db.refresh(user)
        return user
