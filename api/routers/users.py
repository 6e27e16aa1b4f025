from typing import List
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, status, HTTPException, Query
import structlog

from api.auth import User, get_current_member
from api.errors import http_error
from api.models import PostView, ProfileResponse, ProfileUpdate
from api.routers.posts import to_post_view
from libs.common.settings import get_settings
from libs.firebase.client import get_firestore_async_client
from libs.firestore.posts import list_posts_by_author
from libs.firestore.users import find_user_by_email, get_user_profile, update_user_profile
from libs.models.firestore import FirestoreUser

router = APIRouter()
logger = structlog.get_logger(__name__)


def avatar_url(profile: FirestoreUser) -> str:
    """The profile photo, or a generated initials avatar when there is none."""
    if profile.photo_url:
        return profile.photo_url
    name = profile.display_name or profile.email or "User"
    return f"{get_settings().avatar_placeholder_url}?{urlencode({'name': name})}"


def to_profile_response(profile: FirestoreUser) -> ProfileResponse:
    return ProfileResponse(**profile.model_dump(), avatar_url=avatar_url(profile))


@router.get(
    "/v1/users/me",
    response_model=ProfileResponse,
    tags=["Users"],
    summary="Get current user profile",
)
async def get_user_profile_endpoint(
    current_user: User = Depends(get_current_member),
) -> ProfileResponse:
    """
    Retrieve the current user's profile from Firestore.

    Members who never edited their profile have no document yet; their
    profile is built from the ID token claims instead.

    Returns:
        ProfileResponse: The user's profile information with an avatar URL
    """
    firestore_client = get_firestore_async_client()

    try:
        user_profile = await get_user_profile(firestore_client, current_user.uid)
    except Exception as e:
        raise http_error(e, "Failed to load profile") from e

    if not user_profile:
        logger.info("No stored profile, using token claims", uid=current_user.uid)
        user_profile = FirestoreUser(
            uid=current_user.uid,
            email=current_user.email,
            display_name=current_user.name,
            photo_url=current_user.picture,
        )

    return to_profile_response(user_profile)


@router.patch(
    "/v1/users/me",
    response_model=ProfileResponse,
    tags=["Users"],
    summary="Edit current user profile",
)
async def update_user_profile_endpoint(
    request: ProfileUpdate,
    current_user: User = Depends(get_current_member),
) -> ProfileResponse:
    """
    Update the display name, bio or photo of the current user.

    Only the given fields change; the rest of the profile is kept.

    Examples:
        ```bash
        curl -X PATCH http://localhost:8000/api/v1/users/me \\
          -H "Authorization: Bearer <id-token>" \\
          -H "Content-Type: application/json" \\
          -d '{"bio": "Final year student, happy to help with exam stress."}'
        ```
    """
    updates = request.model_dump(by_alias=True, exclude_none=True)
    updates["email"] = current_user.email

    try:
        profile = await update_user_profile(get_firestore_async_client(), current_user.uid, updates)
    except Exception as e:
        raise http_error(e, "Failed to update profile") from e

    logger.info("Profile updated", uid=current_user.uid, fields=sorted(updates))
    return to_profile_response(profile)


@router.get(
    "/v1/users/lookup",
    response_model=ProfileResponse,
    tags=["Users"],
    summary="Find a member by email",
)
async def lookup_user(
    email: str = Query(..., description="Email address of the member"),
    current_user: User = Depends(get_current_member),
) -> ProfileResponse:
    try:
        profile = await find_user_by_email(get_firestore_async_client(), email)
    except Exception as e:
        raise http_error(e, "Failed to look up member") from e

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No member with email {email}"
        )
    return to_profile_response(profile)


@router.get(
    "/v1/users/posts",
    response_model=List[PostView],
    tags=["Users"],
    summary="List a member's posts",
)
async def user_posts(
    email: str = Query(..., description="Email address of the author"),
    current_user: User = Depends(get_current_member),
) -> List[PostView]:
    """Posts written by a member, newest first, for their profile page."""
    try:
        posts = await list_posts_by_author(get_firestore_async_client(), email)
    except Exception as e:
        raise http_error(e, "Failed to load member posts") from e
    return [to_post_view(post, current_user.email) for post in posts]
