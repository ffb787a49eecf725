"""Store-backed session lifecycle."""
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import func, select, update

from app.features.auth.models.session import UserSession
from app.features.auth.models.user import UserRole
from app.features.auth.services.session_service import SessionService
from app.features.auth.services.user_service import UserService
from app.features.auth.utils.security import hash_password
from app.platform.config import settings
from app.platform.utils.time import utc_now


@pytest_asyncio.fixture
async def user(db_session):
    return await UserService(db_session).create(
        email="smith@inst.edu",
        password_hash=hash_password("Valid1!pass"),
        role=UserRole.staff,
        full_name="Jane Smith",
    )


async def _set(db, token, **values):
    await db.execute(update(UserSession).where(UserSession.session_token == token).values(**values))
    await db.commit()


@pytest.mark.asyncio
async def test_create_session(db_session, user):
    session = await SessionService(db_session).create(user.id, {"browser": "firefox"})

    assert len(session.session_token) == 64
    assert session.is_active is True
    assert session.device_info == {"browser": "firefox"}
    assert session.expires_at - session.created_at == timedelta(days=settings.SESSION_DURATION_DAYS)
    assert session.last_accessed_at == session.created_at


@pytest.mark.asyncio
async def test_verify_returns_usable_session(db_session, user):
    sessions = SessionService(db_session)
    created = await sessions.create(user.id)

    found = await sessions.verify(created.session_token)
    assert found is not None
    assert found.user_id == user.id

    assert await sessions.verify("0" * 64) is None
    assert await sessions.verify(None) is None


@pytest.mark.asyncio
async def test_verify_rejects_expired_session(db_session, user):
    sessions = SessionService(db_session)
    created = await sessions.create(user.id)
    await _set(db_session, created.session_token, expires_at=utc_now() - timedelta(seconds=1))

    assert await sessions.verify(created.session_token) is None
    assert await sessions.extend(created.session_token) is None


@pytest.mark.asyncio
async def test_extend_touches_last_access_only(db_session, user):
    sessions = SessionService(db_session)
    created = await sessions.create(user.id)
    original_expiry = created.expires_at
    backdated = utc_now() - timedelta(hours=1)
    await _set(db_session, created.session_token, last_accessed_at=backdated)

    extended = await sessions.extend(created.session_token)

    assert extended is not None
    assert extended.last_accessed_at > backdated
    assert extended.expires_at == original_expiry


@pytest.mark.asyncio
async def test_invalidate_single_session(db_session, user):
    sessions = SessionService(db_session)
    first = await sessions.create(user.id)
    second = await sessions.create(user.id)

    assert await sessions.invalidate(first.session_token) is True
    assert await sessions.verify(first.session_token) is None
    assert await sessions.verify(second.session_token) is not None
    assert await sessions.invalidate("unknown") is False


@pytest.mark.asyncio
async def test_invalidate_all_sessions(db_session, user):
    sessions = SessionService(db_session)
    tokens = [(await sessions.create(user.id)).session_token for _ in range(3)]

    assert await sessions.invalidate_all(user.id) == 3
    for token in tokens:
        assert await sessions.verify(token) is None
    assert await sessions.has_valid_session(user.id) is False
    assert await sessions.invalidate_all(user.id) == 0


@pytest.mark.asyncio
async def test_list_active_sessions_most_recent_first(db_session, user):
    sessions = SessionService(db_session)
    older = await sessions.create(user.id)
    newer = await sessions.create(user.id)
    revoked = await sessions.create(user.id)
    await _set(db_session, older.session_token, last_accessed_at=utc_now() - timedelta(days=1))
    await sessions.invalidate(revoked.session_token)

    active = await sessions.list_active(user.id)

    assert [s.session_token for s in active] == [newer.session_token, older.session_token]
    assert await sessions.has_valid_session(user.id) is True


@pytest.mark.asyncio
async def test_cleanup_removes_expired_and_stale_inactive(db_session, user):
    sessions = SessionService(db_session)
    live = await sessions.create(user.id)
    expired = await sessions.create(user.id)
    stale = await sessions.create(user.id)
    recently_revoked = await sessions.create(user.id)

    await _set(db_session, expired.session_token, expires_at=utc_now() - timedelta(minutes=1))
    await _set(
        db_session,
        stale.session_token,
        is_active=False,
        created_at=utc_now() - timedelta(days=settings.SESSION_RETENTION_DAYS + 1),
    )
    await sessions.invalidate(recently_revoked.session_token)

    assert await sessions.cleanup() == 2

    remaining = (await db_session.execute(select(UserSession.session_token))).scalars().all()
    assert set(remaining) == {live.session_token, recently_revoked.session_token}


@pytest.mark.asyncio
async def test_session_tokens_unique(db_session, user):
    sessions = SessionService(db_session)
    for _ in range(5):
        await sessions.create(user.id)
    result = await db_session.execute(select(func.count(func.distinct(UserSession.session_token))))
    assert result.scalar_one() == 5
