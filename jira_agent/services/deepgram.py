"""
Deepgram speech services: transcribe recorded topics, speak responses.
Plain request/response wrappers, the workflow never depends on them.
"""
import httpx
import logging
from typing import Optional

from jira_agent.config import settings
from jira_agent.constants import DEEPGRAM_LISTEN_URL, DEEPGRAM_SPEAK_URL, HTTP_LONG_TIMEOUT
from jira_agent.errors import SpeechServiceError

logger = logging.getLogger(__name__)


def _auth_headers() -> dict[str, str]:
    if not settings.deepgram_api_key:
        raise SpeechServiceError("Deepgram not configured")
    return {"Authorization": f"Token {settings.deepgram_api_key}"}


async def transcribe(
    audio: bytes,
    content_type: str = "audio/webm",
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Return the best transcript for an audio clip (empty string if none)."""
    headers = {**_auth_headers(), "Content-Type": content_type}
    params = {"model": settings.deepgram_stt_model, "smart_format": "true"}
    try:
        async with httpx.AsyncClient(timeout=HTTP_LONG_TIMEOUT, transport=transport) as client:
            response = await client.post(
                DEEPGRAM_LISTEN_URL, params=params, headers=headers, content=audio
            )
    except httpx.HTTPError as e:
        logger.error(f"Deepgram STT request failed: {e}")
        raise SpeechServiceError(f"Transcription failed: {e}") from e

    if response.is_error:
        logger.error(f"Deepgram STT error: {response.status_code} {response.text}")
        raise SpeechServiceError(f"Deepgram STT failed: {response.status_code}")

    data = response.json()
    channels = (data.get("results") or {}).get("channels") or [{}]
    alternatives = channels[0].get("alternatives") or [{}]
    return alternatives[0].get("transcript") or ""


async def speak(
    text: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bytes:
    """Synthesize ``text`` and return MP3 audio bytes."""
    headers = {**_auth_headers(), "Content-Type": "application/json"}
    params = {"model": settings.deepgram_tts_model}
    try:
        async with httpx.AsyncClient(timeout=HTTP_LONG_TIMEOUT, transport=transport) as client:
            response = await client.post(
                DEEPGRAM_SPEAK_URL, params=params, headers=headers, json={"text": text}
            )
    except httpx.HTTPError as e:
        logger.error(f"Deepgram TTS request failed: {e}")
        raise SpeechServiceError(f"TTS failed: {e}") from e

    if response.is_error:
        logger.error(f"Deepgram TTS error: {response.status_code} {response.text}")
        raise SpeechServiceError(f"Deepgram TTS failed: {response.status_code}")

    return response.content
