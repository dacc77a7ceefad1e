"""
Adaptive Difficulty Routes

GET /adaptive-config?userId= - Recommended difficulty/type for the next session
POST /adaptive-config - Get recommendation and record the user's choice
GET /adaptive-config/history?userId= - Recorded choices and their session outcomes
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from prepcoach.services.adaptive_engine import get_adaptive_engine
from prepcoach.services.session_service import get_session_service
from prepcoach.schemas.schemas import (
    AdaptiveConfigResponse, AdaptiveChoiceRequest, AdaptiveChoiceResponse, ChoiceHistoryResponse
)

router = APIRouter(prefix="/adaptive-config", tags=["Adaptive Difficulty"])


@router.get("", response_model=AdaptiveConfigResponse)
async def get_adaptive_config(
    user_id: Optional[str] = Query(None, alias="userId"),
):
    """Rule-based recommendation from the user's past performance."""
    if not user_id:
        raise HTTPException(status_code=400, detail="userId is required")

    recommendation = get_session_service().get_adaptive_config(user_id)
    return AdaptiveConfigResponse(recommendation=recommendation)


@router.post("", response_model=AdaptiveChoiceResponse)
async def record_adaptive_choice(request: AdaptiveChoiceRequest):
    """
    Return the current recommendation and, when `userChoice` is sent,
    record whether the user followed it.
    """
    if not request.user_id:
        raise HTTPException(status_code=400, detail="userId is required")

    recommendation = get_session_service().get_adaptive_config(request.user_id)

    followed = None
    if request.user_choice:
        record = get_adaptive_engine().record_user_choice(
            request.user_id,
            recommendation,
            request.user_choice.model_dump(mode="json"),
            session_id=request.session_id,
        )
        followed = record["was_recommendation_followed"]

    return AdaptiveChoiceResponse(
        recommendation=recommendation,
        recorded=request.user_choice is not None,
        was_recommendation_followed=followed,
    )


@router.get("/history", response_model=ChoiceHistoryResponse)
async def get_choice_history(
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: int = Query(20, ge=1, le=100),
):
    """Newest first."""
    if not user_id:
        raise HTTPException(status_code=400, detail="userId is required")

    history = get_adaptive_engine().get_choice_history(user_id, limit)
    return ChoiceHistoryResponse(count=len(history), data=history)
