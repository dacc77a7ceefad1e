"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from prepcoach.api.routes.adaptive_routes import router as adaptive_router
from prepcoach.api.routes.performance_routes import router as performance_router
from prepcoach.api.routes.auth_routes import router as auth_router
from prepcoach.api.routes.job_routes import router as job_router
from prepcoach.api.routes.schedule_routes import router as schedule_router
from prepcoach.api.routes.tts_routes import router as tts_router
from prepcoach.api.routes.session_routes import router as session_router
from prepcoach.api.routes.question_bank_routes import router as question_bank_router
from prepcoach.api.routes.template_routes import router as template_router
from prepcoach.api.routes.profile_routes import router as profile_router
from prepcoach.api.routes.scoring_weights_routes import router as scoring_weights_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(adaptive_router)
api_router.include_router(performance_router)
api_router.include_router(auth_router)
api_router.include_router(job_router)
api_router.include_router(schedule_router)
api_router.include_router(tts_router)
api_router.include_router(session_router)
api_router.include_router(question_bank_router)
api_router.include_router(template_router)
api_router.include_router(profile_router)
api_router.include_router(scoring_weights_router)
