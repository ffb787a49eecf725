import hashlib
import re
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt

from app.platform.config import settings
from app.platform.utils.time import utc_now

PASSWORD_MIN_LENGTH = 8
PASSWORD_SYMBOLS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"
PASSWORD_POLICY_MESSAGE = (
    "Password must be at least 8 characters and include at least one number "
    "and one special character"
)

TOKEN_TYPE = "access"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"


class InvalidTokenError(Exception):
    """Raised for every bearer token failure: bad signature, expiry, or malformed claims."""

    def __init__(self):
        super().__init__(INVALID_TOKEN_MESSAGE)


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str
    role: str


def password_meets_policy(password: Optional[str]) -> bool:
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        return False
    has_digit = re.search(r"\d", password) is not None
    has_symbol = any(ch in PASSWORD_SYMBOLS for ch in password)
    return has_digit and has_symbol


def hash_password(password: str) -> str:
    # SHA-256 pre-hash keeps long passwords within bcrypt's 72 byte input limit
    password_hash = hashlib.sha256(password.encode("utf-8")).digest()
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_hash, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a password against its hash.
    Uses SHA-256 pre-hashing to match the hashing method.
    """
    if not hashed_password:
        return False
    password_hash = hashlib.sha256(plain_password.encode("utf-8")).digest()
    try:
        return bcrypt.checkpw(password_hash, hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store
        return False


def create_access_token(
    user_id: int, email: str, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed JWT bearer token embedding id, email and role"""
    now = utc_now()
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> TokenClaims:
    """Decode and verify a JWT bearer token (signature + expiry)"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.ALGORITHM])
        if payload.get("type") != TOKEN_TYPE:
            raise InvalidTokenError()
        return TokenClaims(
            user_id=int(payload["sub"]),
            email=str(payload["email"]),
            role=str(payload["role"]),
        )
    except (jwt.PyJWTError, KeyError, ValueError, TypeError):
        raise InvalidTokenError()


def generate_otp() -> str:
    """Generate a 6-digit OTP (100000-999999)"""
    return str(100000 + secrets.randbelow(900000))


def generate_session_token() -> str:
    """64 hex chars from 32 random bytes"""
    return secrets.token_hex(32)
