"""
Interview Session Routes

POST /sessions - Create a practice session
POST /sessions/adaptive - Create a session at the recommended level
GET /sessions - List my sessions (newest first)
GET /sessions/{id} - Get session
DELETE /sessions/{id} - Delete session
POST /sessions/{id}/responses - Save an answer
PATCH /sessions/{id}/status - Start / pause / resume / complete
GET /sessions/{id}/stats - Completion statistics
GET /sessions/{id}/export - Session plus statistics for download
POST /sessions/{id}/follow-up - Follow-up question for an answer
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Response

from prepcoach.core.auth import get_current_user
from prepcoach.services.session_service import get_session_service
from prepcoach.schemas.schemas import (
    SessionCreateRequest, AdaptiveSessionRequest, SessionResponseIn, SessionStatusUpdate,
    InterviewSessionResponse, SessionListResponse, AdaptiveSessionResponse,
    SessionExportResponse, SessionStats, SessionStatus, FollowUpRequest, FollowUpResponse
)

router = APIRouter(prefix="/sessions", tags=["Interview Sessions"])

SESSION_NOT_FOUND = "Session not found"


@router.post("", response_model=InterviewSessionResponse, status_code=201)
async def create_session(request: SessionCreateRequest, user: dict = Depends(get_current_user)):
    """
    Create a session. Questions come from the first source that yields any:
    question banks, template, custom questions, AI generation, fallback pool.
    """
    return get_session_service().create_session(user["user_id"], request.model_dump(mode="json"))


@router.post("/adaptive", response_model=AdaptiveSessionResponse, status_code=201)
async def create_adaptive_session(request: AdaptiveSessionRequest, user: dict = Depends(get_current_user)):
    params = request.model_dump(mode="json")
    return get_session_service().create_adaptive_session(user["user_id"], params)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    status: Optional[SessionStatus] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    sessions = get_session_service().list_sessions(
        user["user_id"], status=status.value if status else None, limit=limit
    )
    return SessionListResponse(data=sessions, count=len(sessions))


@router.get("/{session_id}", response_model=InterviewSessionResponse)
async def get_session(session_id: str, user: dict = Depends(get_current_user)):
    session = get_session_service().get_session(user["user_id"], session_id)
    if not session:
        raise HTTPException(status_code=404, detail=SESSION_NOT_FOUND)
    return session


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: str, user: dict = Depends(get_current_user)):
    if not get_session_service().delete_session(user["user_id"], session_id):
        raise HTTPException(status_code=404, detail=SESSION_NOT_FOUND)
    return Response(status_code=204)


@router.post("/{session_id}/responses", response_model=InterviewSessionResponse)
async def save_response(session_id: str, request: SessionResponseIn, user: dict = Depends(get_current_user)):
    """Answering a question again replaces the previous answer."""
    try:
        session = get_session_service().save_response(user["user_id"], session_id, request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not session:
        raise HTTPException(status_code=404, detail=SESSION_NOT_FOUND)
    return session


@router.patch("/{session_id}/status", response_model=InterviewSessionResponse)
async def update_status(session_id: str, request: SessionStatusUpdate, user: dict = Depends(get_current_user)):
    try:
        session = get_session_service().update_session_status(
            user["user_id"], session_id, request.status.value
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not session:
        raise HTTPException(status_code=404, detail=SESSION_NOT_FOUND)
    return session


@router.get("/{session_id}/stats", response_model=SessionStats)
async def get_session_stats(session_id: str, user: dict = Depends(get_current_user)):
    stats = get_session_service().get_session_stats(user["user_id"], session_id)
    if stats is None:
        raise HTTPException(status_code=404, detail=SESSION_NOT_FOUND)
    return stats


@router.get("/{session_id}/export", response_model=SessionExportResponse)
async def export_session(session_id: str, user: dict = Depends(get_current_user)):
    export = get_session_service().export_session(user["user_id"], session_id)
    if not export:
        raise HTTPException(status_code=404, detail=SESSION_NOT_FOUND)
    return export


@router.post("/{session_id}/follow-up", response_model=FollowUpResponse)
async def generate_follow_up(session_id: str, request: FollowUpRequest, user: dict = Depends(get_current_user)):
    try:
        result = get_session_service().generate_follow_up(user["user_id"], session_id, request.question_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not result:
        raise HTTPException(status_code=404, detail=SESSION_NOT_FOUND)
    return result
