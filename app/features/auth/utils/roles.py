"""
Email based role classification.

A `RolePolicy` is an immutable snapshot of the institution domain and the
admin allow-list, built once from settings. `classify_role` is pure; callers
that issue tokens go through `resolve_role_change` so allow-list edits promote
existing accounts on their next successful authentication.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from app.features.auth.models.user import User, UserRole
from app.platform.config import settings

STUDENT_LOCAL_PART = re.compile(r"^[a-z]+\.?[0-9]{2}[a-z]+$")
STAFF_LOCAL_PART = re.compile(r"^[a-z]+$")


@dataclass(frozen=True)
class RolePolicy:
    domain: str
    admin_emails: frozenset = frozenset()


def classify_role(email: Optional[str], policy: RolePolicy) -> Optional[UserRole]:
    if not email:
        return None

    email = email.strip().lower()
    if email in policy.admin_emails:
        return UserRole.admin

    local, sep, domain = email.rpartition("@")
    if not sep or domain != policy.domain.lower():
        return None

    if STUDENT_LOCAL_PART.match(local):
        return UserRole.student
    if STAFF_LOCAL_PART.match(local):
        return UserRole.staff
    return None


def resolve_role_change(user: User, policy: RolePolicy) -> bool:
    """
    Re-derive the role of `user` and apply an admin promotion in place.
    Returns True when the role changed (the caller commits).

    Only promotions are applied: roles set administratively are never
    downgraded by a pattern match.
    """
    new_role = classify_role(user.email, policy)
    if new_role != UserRole.admin or user.role == UserRole.admin:
        return False
    user.role = new_role
    return True


@lru_cache()
def get_role_policy() -> RolePolicy:
    return RolePolicy(
        domain=settings.INSTITUTION_DOMAIN.strip().lower(),
        admin_emails=settings.admin_emails,
    )
