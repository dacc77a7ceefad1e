"""
Scoring Weight Routes

GET /scoring-weights - My metric weights (defaults when never customized)
PUT /scoring-weights - Save explicit weights or apply a preset
DELETE /scoring-weights - Reset to defaults
GET /scoring-weights/presets - Available presets
"""

from fastapi import APIRouter, HTTPException, Depends

from prepcoach.core.auth import get_current_user
from prepcoach.services.scoring_service import get_scoring_service, get_preset_weights, PRESET_WEIGHTS
from prepcoach.schemas.schemas import (
    ScoringWeightsResponse, ScoringWeightsUpdate, ScoringPresetsResponse
)

router = APIRouter(prefix="/scoring-weights", tags=["Scoring Weights"])


@router.get("/presets", response_model=ScoringPresetsResponse)
async def list_presets():
    return ScoringPresetsResponse(presets=PRESET_WEIGHTS)


@router.get("", response_model=ScoringWeightsResponse)
async def get_weights(user: dict = Depends(get_current_user)):
    return get_scoring_service().get_user_weights(user["user_id"])


@router.put("", response_model=ScoringWeightsResponse)
async def update_weights(request: ScoringWeightsUpdate, user: dict = Depends(get_current_user)):
    """Missing metrics take the default weight; scores divide by the weight total."""
    if request.preset is not None:
        weights = get_preset_weights(request.preset)
        if weights is None:
            raise HTTPException(status_code=400, detail=f"Unknown preset '{request.preset}'")
        return get_scoring_service().save_user_weights(user["user_id"], weights, preset_name=request.preset)

    return get_scoring_service().save_user_weights(user["user_id"], request.weights.model_dump())


@router.delete("", response_model=ScoringWeightsResponse)
async def reset_weights(user: dict = Depends(get_current_user)):
    service = get_scoring_service()
    service.reset_user_weights(user["user_id"])
    return service.get_user_weights(user["user_id"])
