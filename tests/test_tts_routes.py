"""
Text-to-Speech Route Tests

Tests:
1. Audio bytes returned with no-cache headers
2. Voice selection
3. Empty text and upstream failures

Run with: pytest tests/test_tts_routes.py -v
"""
import json

import httpx

from prepcoach.services import tts_client
from prepcoach.services.tts_client import TTSClient

AUDIO = b"ID3fake-mp3-bytes"


def install(monkeypatch, handler):
    monkeypatch.setattr(tts_client, "_tts_client", TTSClient(transport=httpx.MockTransport(handler)))


def test_returns_audio(client, monkeypatch):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=AUDIO)

    install(monkeypatch, handler)

    response = client.post("/api/tts", json={"text": "Tell me about yourself."})

    assert response.status_code == 200
    assert response.content == AUDIO
    assert response.headers["content-type"] == "audio/mpeg"
    assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"
    assert response.headers["content-length"] == str(len(AUDIO))

    request = seen[0]
    assert request.url.path == "/v1/text-to-speech/pNInz6obpgDQGXPRmrWg"
    assert request.headers["xi-api-key"] == "test-elevenlabs-key"
    assert json.loads(request.content)["text"] == "Tell me about yourself."


def test_custom_voice(client, monkeypatch):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, content=AUDIO)

    install(monkeypatch, handler)

    client.post("/api/tts", json={"text": "Hello", "voiceId": "voice-42"})

    assert seen[0].url.path.endswith("/text-to-speech/voice-42")


def test_empty_text(client):
    response = client.post("/api/tts", json={"text": "   "})
    assert response.status_code == 400
    assert response.json()["detail"] == "Text is required"


def test_upstream_error(client, monkeypatch):
    install(monkeypatch, lambda request: httpx.Response(401, json={"detail": "bad key"}))

    response = client.post("/api/tts", json={"text": "Hello"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to generate speech"


def test_missing_api_key(client, monkeypatch):
    monkeypatch.setattr(tts_client.settings, "elevenlabs_api_key", "")
    install(monkeypatch, lambda request: httpx.Response(200, content=AUDIO))

    assert client.post("/api/tts", json={"text": "Hello"}).status_code == 500
