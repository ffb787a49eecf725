"""
Test configuration and fixtures for the Department Portal API.

Environment is configured before the application is imported: a throwaway
SQLite database, the test institution domain and OTP echoing enabled.
"""

import asyncio
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

test_db_path = tempfile.mktemp(suffix=".db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_path}"
os.environ["ENVIRONMENT"] = "local"
os.environ["INSTITUTION_DOMAIN"] = "inst.edu"
os.environ["ADMIN_EMAILS"] = ""
os.environ["RETURN_OTP"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-department-portal-tests"
os.environ["EMAIL_RELAY_URL"] = ""
os.environ["MAIL_HOST"] = ""

from app.features.auth import models  # noqa: E402,F401
from app.features.auth.services.email_service import get_notification_sink  # noqa: E402
from app.features.auth.utils.roles import RolePolicy, get_role_policy  # noqa: E402
from app.main import app  # noqa: E402
from app.platform.db.base import Base  # noqa: E402
from app.platform.db.session import SessionLocal, engine  # noqa: E402
from app.platform.utils.rate_limit import reset_rate_limits  # noqa: E402

API = "/api/auth"
DOMAIN = "inst.edu"


def run_async(coro):
    """Run a coroutine to completion from sync test code (own thread, own loop)."""
    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


async def _reset_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


class RecordingNotifier:
    """Stands in for the email sink; keeps every OTP it was asked to deliver."""

    def __init__(self):
        self.sent = []

    def send_otp(self, to_email, otp, purpose, name=None):
        self.sent.append({"to": to_email, "otp": otp, "purpose": purpose, "name": name})

    def last_code(self, email):
        for message in reversed(self.sent):
            if message["to"] == email:
                return message["otp"]
        raise AssertionError(f"no OTP delivered to {email}")


@pytest.fixture(autouse=True)
def fresh_database():
    run_async(_reset_tables())
    reset_rate_limits()
    yield


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def role_policy():
    return RolePolicy(domain=DOMAIN, admin_emails=frozenset())


@pytest.fixture
def set_admin_emails():
    """Swap the role policy the app sees, e.g. to simulate an allow-list edit."""

    def _set(*emails):
        policy = RolePolicy(domain=DOMAIN, admin_emails=frozenset(e.lower() for e in emails))
        app.dependency_overrides[get_role_policy] = lambda: policy
        return policy

    return _set


@pytest.fixture
def client(notifier, role_policy) -> Generator[TestClient, None, None]:
    """
    TestClient with the notification sink and role policy overridden.
    Overrides are removed after each test.
    """
    app.dependency_overrides[get_notification_sink] = lambda: notifier
    app.dependency_overrides[get_role_policy] = lambda: role_policy
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def db_session():
    async with SessionLocal() as session:
        yield session


STRONG_PASSWORD = "Valid1!pass"


def register(client, email, password=STRONG_PASSWORD, **profile):
    return client.post(f"{API}/register", json={"email": email, "password": password, **profile})


def register_and_verify(client, notifier, email, password=STRONG_PASSWORD, **profile):
    response = register(client, email, password, **profile)
    assert response.status_code == 200, response.json()
    verified = client.post(
        f"{API}/verify", json={"email": email, "otp": notifier.last_code(email)}
    )
    assert verified.status_code == 200, verified.json()
    return verified.json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def make_user(email, role="staff", verified=True, password=STRONG_PASSWORD, **fields):
    """Insert an account directly, bypassing the OTP flow. Returns its id."""
    from app.features.auth.models.user import UserRole
    from app.features.auth.services.user_service import UserService
    from app.features.auth.utils.security import hash_password

    async def _create():
        async with SessionLocal() as db:
            users = UserService(db)
            user = await users.create(
                email=email, password_hash=hash_password(password), role=UserRole(role), **fields
            )
            user.is_verified = verified
            await users.save(user)
            return user.id

    return run_async(_create())


def make_session(user_id, device_info=None):
    from app.features.auth.services.session_service import SessionService

    async def _create():
        async with SessionLocal() as db:
            session = await SessionService(db).create(user_id, device_info)
            return session.session_token

    return run_async(_create())


def execute(statement):
    """Run a single write statement against the test database and commit."""

    async def _run():
        async with SessionLocal() as db:
            result = await db.execute(statement)
            await db.commit()
            return result.rowcount

    return run_async(_run())


def fetch(statement):
    async def _run():
        async with SessionLocal() as db:
            result = await db.execute(statement)
            return result.all()

    return run_async(_run())
