from fastapi import APIRouter, Depends

from app.features.auth.dependencies import CurrentIdentity, get_current_identity
from app.features.auth.routes.auth import get_auth_service
from app.features.auth.schemas.auth import ProfileResponse, UpdateProfileRequest
from app.features.auth.services.auth_service import AuthService
from app.platform.response import api_response

router = APIRouter(tags=["Profile"])


def _profile_payload(user) -> dict:
    return ProfileResponse.model_validate(user).model_dump(by_alias=True)


@router.get(
    "/profile",
    response_model=dict,
    summary="Get current user profile",
    description="Retrieve the profile of the authenticated caller",
)
async def get_my_profile(
    identity: CurrentIdentity = Depends(get_current_identity),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = await auth_service.get_profile(identity.id)
    return api_response(message="Profile retrieved successfully", data=_profile_payload(user))


@router.put(
    "/profile",
    response_model=dict,
    summary="Update current user profile",
    description="Merge name, phone, rollNumber and profileDetails into the caller's profile",
)
async def update_my_profile(
    profile_data: UpdateProfileRequest,
    identity: CurrentIdentity = Depends(get_current_identity),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = await auth_service.update_profile(identity.id, profile_data)
    return api_response(
        message="Profile updated successfully",
        data={"profile": _profile_payload(user)},
    )
