"""
Performance Routes

GET /performance?userId= - Performance summary and recommendation accuracy
POST /performance - Complete a session: score answers, store metrics
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from prepcoach.services.session_service import get_session_service
from prepcoach.schemas.schemas import (
    PerformanceGetResponse, SessionCompleteRequest, SessionCompleteResponse
)

router = APIRouter(prefix="/performance", tags=["Performance"])


@router.get("", response_model=PerformanceGetResponse)
async def get_performance(
    user_id: Optional[str] = Query(None, alias="userId"),
):
    if not user_id:
        raise HTTPException(status_code=400, detail="userId is required")

    service = get_session_service()
    return PerformanceGetResponse(
        performance_summary=service.get_user_performance_summary(user_id),
        recommendation_accuracy=service.get_recommendation_accuracy(user_id),
    )


@router.post("", response_model=SessionCompleteResponse)
async def complete_session(request: SessionCompleteRequest):
    """
    Score every answered question of the session and mark it completed.

    Completing an already completed session returns the stored score.
    """
    if not request.user_id or not request.session_id:
        raise HTTPException(status_code=400, detail="userId and sessionId are required")

    result = get_session_service().complete_session(
        request.user_id, request.session_id,
        role=request.role, use_ai_feedback=request.use_ai_feedback
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Session not found")

    return SessionCompleteResponse(**result)
