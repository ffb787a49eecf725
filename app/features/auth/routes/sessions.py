from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.dependencies import CurrentIdentity, get_current_identity
from app.features.auth.schemas.auth import CreateSessionRequest, SessionResponse
from app.features.auth.services.session_service import SessionService
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(tags=["Sessions"])


def _session_payload(session) -> dict:
    return SessionResponse.model_validate(session).model_dump(by_alias=True)


@router.post(
    "/sessions",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Create a long-lived session",
    description="Requires a valid bearer token; sessions are not a login mechanism",
)
async def create_session(
    request: Optional[CreateSessionRequest] = Body(None),
    identity: CurrentIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    if identity.auth_mode != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="A bearer token is required to create a session",
            headers={"WWW-Authenticate": "Bearer"},
        )

    device_info = request.device_info if request else None
    session = await SessionService(db).create(identity.id, device_info)
    return api_response(
        message="Session created",
        data={"session": _session_payload(session)},
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/sessions", response_model=dict, summary="List the caller's active sessions")
async def list_sessions(
    identity: CurrentIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    sessions = await SessionService(db).list_active(identity.id)
    return api_response(
        message="Active sessions retrieved",
        data={"sessions": [_session_payload(s) for s in sessions]},
    )


@router.post("/logout", response_model=dict, summary="Invalidate the presented session")
async def logout(
    identity: CurrentIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    Bearer tokens are stateless and expire on their own; logout revokes the
    session sent in the X-Session-Token header, if any.
    """
    if identity.session is not None:
        await SessionService(db).invalidate(identity.session.session_token)
    return api_response(message="Logged out")


@router.post("/logout-all", response_model=dict, summary="Invalidate every session of the caller")
async def logout_all(
    identity: CurrentIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    revoked = await SessionService(db).invalidate_all(identity.id)
    return api_response(message="Logged out from all sessions", data={"revoked": revoked})
