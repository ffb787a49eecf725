from app.features.auth.utils.roles import RolePolicy, classify_role, get_role_policy, resolve_role_change
from app.features.auth.utils.security import (
    InvalidTokenError,
    create_access_token,
    decode_access_token,
    hash_password,
    password_meets_policy,
    verify_password,
)

__all__ = [
    "RolePolicy",
    "classify_role",
    "get_role_policy",
    "resolve_role_change",
    "InvalidTokenError",
    "hash_password",
    "verify_password",
    "password_meets_policy",
    "create_access_token",
    "decode_access_token",
]
