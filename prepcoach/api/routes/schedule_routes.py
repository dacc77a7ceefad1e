"""
Schedule Routes

GET /schedule - List scheduled sessions (status, limit, offset)
POST /schedule - Schedule a session (optionally adds a Google Calendar event)
GET /schedule/{id} - Get a scheduled session
PATCH /schedule/{id} - Update config, times or status
DELETE /schedule/{id} - Delete (and remove the calendar event)
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Response

from prepcoach.core.auth import get_current_user
from prepcoach.services.schedule_service import get_schedule_service
from prepcoach.schemas.schemas import (
    ScheduleCreate, ScheduleUpdate, ScheduleItemResponse, ScheduleListResponse, ScheduleStatus
)

router = APIRouter(prefix="/schedule", tags=["Schedule"])


@router.get("", response_model=ScheduleListResponse)
async def list_scheduled_sessions(
    status: Optional[ScheduleStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_user)
):
    sessions = get_schedule_service().list_sessions(
        user["user_id"], status=status.value if status else None, limit=limit, offset=offset
    )
    return ScheduleListResponse(data=sessions, count=len(sessions))


@router.post("", response_model=ScheduleItemResponse, status_code=201)
async def create_scheduled_session(request: ScheduleCreate, user: dict = Depends(get_current_user)):
    """
    Schedule a practice session.

    With `sync_to_calendar` (default) and a connected Google Calendar, an
    event with a Meet link is created; `calendar_synced` reports the result.
    """
    session = get_schedule_service().create_session(
        user["user_id"],
        request.session_config.model_dump(mode="json", exclude_none=True),
        request.start_time,
        end_time=request.end_time,
        sync_to_calendar=request.sync_to_calendar,
    )
    return ScheduleItemResponse(data=session)


@router.get("/{session_id}", response_model=ScheduleItemResponse)
async def get_scheduled_session(session_id: str, user: dict = Depends(get_current_user)):
    session = get_schedule_service().get_session(user["user_id"], session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Scheduled session not found")
    return ScheduleItemResponse(data=session)


@router.patch("/{session_id}", response_model=ScheduleItemResponse)
async def update_scheduled_session(session_id: str, request: ScheduleUpdate,
                                   user: dict = Depends(get_current_user)):
    updates = {
        "session_config": (
            request.session_config.model_dump(mode="json", exclude_unset=True)
            if request.session_config else None
        ),
        "start_time": request.start_time,
        "end_time": request.end_time,
        "status": request.status.value if request.status else None,
    }
    try:
        session = get_schedule_service().update_session(
            user["user_id"], session_id, updates, sync_to_calendar=request.sync_to_calendar
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not session:
        raise HTTPException(status_code=404, detail="Scheduled session not found")
    return ScheduleItemResponse(data=session)


@router.delete("/{session_id}", status_code=204)
async def delete_scheduled_session(session_id: str, user: dict = Depends(get_current_user)):
    if not get_schedule_service().delete_session(user["user_id"], session_id):
        raise HTTPException(status_code=404, detail="Scheduled session not found")
    return Response(status_code=204)
