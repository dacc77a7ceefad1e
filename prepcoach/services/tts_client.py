"""
Text-to-Speech Client - ElevenLabs REST API.
"""

from typing import Optional

import httpx

from prepcoach.core.config import get_settings
from prepcoach.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)


class TTSClient:

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        self.client = httpx.Client(
            base_url=settings.elevenlabs_base_url,
            headers={"xi-api-key": settings.elevenlabs_api_key, "Accept": "audio/mpeg"},
            timeout=settings.http_timeout_seconds * 3,
            transport=transport,
        )

    def synthesize(self, text: str, voice_id: Optional[str] = None) -> bytes:
        """Return MP3 bytes for `text`. Raises on missing key or upstream errors."""
        if not settings.elevenlabs_api_key:
            raise RuntimeError("ElevenLabs API key is not configured")

        voice = voice_id or settings.elevenlabs_default_voice_id
        response = self.client.post(
            f"/text-to-speech/{voice}",
            params={"output_format": settings.elevenlabs_output_format},
            json={"text": text, "model_id": settings.elevenlabs_model_id},
        )
        response.raise_for_status()
        logger.debug(f"Synthesized {len(text)} chars with voice {voice} ({len(response.content)} bytes)")
        return response.content


# Singleton
_tts_client = None


def get_tts_client() -> TTSClient:
    global _tts_client
    if _tts_client is None:
        _tts_client = TTSClient()
    return _tts_client
