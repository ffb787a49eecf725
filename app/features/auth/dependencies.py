"""
Request authentication gateway.

A request may carry a bearer token (`Authorization: Bearer ...`), a session
token (`X-Session-Token: ...`), or both:

* bearer present: the token alone decides. Identity and role come from its
  claims, so a role change only shows up once a new token is issued. A session
  header sent alongside is verified and extended on a best-effort basis.
* session only: the session is verified and the account's current id and role
  are read from the store, so role changes apply immediately.

Once the primary credential is judged invalid the request is rejected; there is
no fallback to the other mode.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.session import UserSession
from app.features.auth.services.session_service import SessionService
from app.features.auth.services.user_service import UserService
from app.features.auth.utils.security import InvalidTokenError, decode_access_token
from app.platform.db.session import get_db
from app.platform.logger import get_logger

logger = get_logger(__name__)

SESSION_HEADER = "X-Session-Token"

bearer = HTTPBearer(auto_error=False)


@dataclass
class CurrentIdentity:
    id: int
    email: str
    role: str
    auth_mode: str
    session: Optional[UserSession] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    session_token: Optional[str] = Header(None, alias=SESSION_HEADER),
    db: AsyncSession = Depends(get_db),
) -> CurrentIdentity:
    sessions = SessionService(db)

    if credentials and credentials.credentials:
        try:
            claims = decode_access_token(credentials.credentials)
        except InvalidTokenError as e:
            raise _unauthorized(str(e))

        identity = CurrentIdentity(
            id=claims.user_id, email=claims.email, role=claims.role, auth_mode="bearer"
        )
        if session_token:
            session = await sessions.verify(session_token)
            if session is not None and session.user_id == identity.id:
                identity.session = await sessions.extend(session_token)
            else:
                logger.info(f"Ignoring unusable session header on bearer request for user {identity.id}")

    elif session_token:
        session = await sessions.verify(session_token)
        if session is None:
            raise _unauthorized("Invalid or expired session")

        user = await UserService(db).get_by_id(session.user_id)
        if user is None:
            raise _unauthorized("Invalid or expired session")

        identity = CurrentIdentity(
            id=user.id,
            email=user.email,
            role=user.role.value,
            auth_mode="session",
            session=await sessions.extend(session_token) or session,
        )

    else:
        raise _unauthorized("No credential supplied")

    request.state.identity = identity
    return identity


def require_roles(*roles: str):
    """Dependency factory: 403 unless the caller has one of `roles`."""
    allowed = {getattr(r, "value", r) for r in roles}

    async def checker(identity: CurrentIdentity = Depends(get_current_identity)) -> CurrentIdentity:
        if identity.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return identity

    return checker
