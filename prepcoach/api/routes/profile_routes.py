"""
Profile Routes

GET /profile - Get my profile (created on first access)
PUT /profile - Update username, name, avatar, bio
GET /profile/username-available?username= - Case-insensitive availability check
POST /profile/calendar - Connect Google Calendar (store OAuth tokens)
DELETE /profile/calendar - Disconnect Google Calendar
"""

from fastapi import APIRouter, HTTPException, Depends, Query

from prepcoach.core.auth import get_current_user
from prepcoach.services.calendar_client import get_calendar_client
from prepcoach.services.profile_service import get_profile_service, UsernameTakenError
from prepcoach.schemas.schemas import (
    ProfileResponse, ProfileUpdate, UsernameAvailability, CalendarConnectRequest
)

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("", response_model=ProfileResponse)
async def get_my_profile(user: dict = Depends(get_current_user)):
    return get_profile_service().ensure_profile(user["user_id"])


@router.put("", response_model=ProfileResponse)
async def update_my_profile(request: ProfileUpdate, user: dict = Depends(get_current_user)):
    try:
        return get_profile_service().update_profile(
            user["user_id"], request.model_dump(exclude_unset=True)
        )
    except UsernameTakenError:
        raise HTTPException(status_code=400, detail="Username is already taken")


@router.get("/username-available", response_model=UsernameAvailability)
async def check_username(
    username: str = Query(..., pattern=r"^[A-Za-z0-9_]{3,30}$"),
    user: dict = Depends(get_current_user)
):
    available = get_profile_service().is_username_available(username, exclude_user_id=user["user_id"])
    return UsernameAvailability(username=username, available=available)


@router.post("/calendar", response_model=ProfileResponse)
async def connect_calendar(request: CalendarConnectRequest, user: dict = Depends(get_current_user)):
    """Store tokens from the Google OAuth consent flow completed by the frontend."""
    get_calendar_client().store_calendar_tokens(
        user["user_id"], request.access_token, request.refresh_token,
        request.expires_in, email=request.email
    )
    return get_profile_service().get_profile(user["user_id"])


@router.delete("/calendar", response_model=ProfileResponse)
async def disconnect_calendar(user: dict = Depends(get_current_user)):
    get_profile_service().ensure_profile(user["user_id"])
    get_calendar_client().disconnect_calendar(user["user_id"])
    return get_profile_service().get_profile(user["user_id"])
