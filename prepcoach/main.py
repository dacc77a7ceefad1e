"""
PrepCoach - Interview Practice API

FastAPI backend with:
- PostgreSQL for structured data (profiles, question banks, schedules, job cache)
- MongoDB for sessions, performance metrics and recommendation records
- OpenAI-compatible AI for question generation and answer feedback
- JWT authentication against the hosted auth provider

Run: uvicorn prepcoach.main:app --reload
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from prepcoach import __version__
from prepcoach.api.routes import api_router
from prepcoach.core.config import get_settings
from prepcoach.core.logging import setup_logging, get_logger

settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="PrepCoach",
    description="""
    Interview practice coaching platform.

    ## Features
    - **Sessions**: Practice sessions from question banks, templates or AI
    - **Scoring**: Eight-metric heuristic scoring with per-user weights
    - **Adaptive difficulty**: Recommendations from past performance
    - **Schedule**: Planned sessions mirrored to Google Calendar
    - **Jobs**: Cached job listings from JSearch
    - **Text-to-speech**: Interviewer voice via ElevenLabs

    ## Databases
    - PostgreSQL: profiles, question banks, schedules, job cache, scoring weights
    - MongoDB: sessions, performance metrics, recommendation choices
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Include API routes
app.include_router(api_router, prefix="/api")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create SQL tables and MongoDB indexes."""
    from prepcoach.db.postgres import init_schema
    from prepcoach.db.mongodb import init_mongo_indexes

    try:
        init_schema()
    except Exception as e:
        logger.warning(f"Database schema initialization failed: {e}")
    try:
        init_mongo_indexes()
        logger.info("MongoDB indexes initialized")
    except Exception as e:
        logger.warning(f"MongoDB index initialization failed: {e}")


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    from prepcoach.db.postgres import test_postgres_connection
    from prepcoach.db.mongodb import test_mongo_connection

    return {
        "status": "healthy",
        "version": __version__,
        "postgres": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
