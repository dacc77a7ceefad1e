"""
Text-to-Speech Routes

POST /tts - Synthesize interviewer speech (returns audio/mpeg)
"""

import httpx
from fastapi import APIRouter, HTTPException, Response

from prepcoach.services.tts_client import get_tts_client
from prepcoach.schemas.schemas import TTSRequest
from prepcoach.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/tts", tags=["Text-to-Speech"])


@router.post("")
async def text_to_speech(request: TTSRequest):
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")

    try:
        audio = get_tts_client().synthesize(request.text, request.voice_id)
    except (httpx.HTTPError, RuntimeError) as e:
        logger.error(f"Text-to-speech failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate speech")

    return Response(
        content=audio,
        media_type="audio/mpeg",
        headers={
            "Content-Length": str(len(audio)),
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        },
    )
