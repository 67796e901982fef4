"""
Voice endpoints backed by Deepgram.

Provides:
- POST /transcribe - Speech-to-text for a recorded topic (multipart field "audio")
- POST /speak      - Text-to-speech, returns audio/mpeg
"""

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from typing import Optional

from jira_agent.api.auth import verify_api_key
from jira_agent.config import settings, limiter
from jira_agent.errors import SpeechServiceError
from jira_agent.schemas.story import SpeakRequest, TranscribeResponse
from jira_agent.services import deepgram
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["voice"], dependencies=[Depends(verify_api_key)])


def _require_deepgram() -> None:
    if not settings.is_deepgram_configured():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Deepgram not configured",
        )


@router.post("/transcribe", response_model=TranscribeResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def transcribe(request: Request, audio: Optional[UploadFile] = File(None)):
    _require_deepgram()
    if audio is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No audio file uploaded",
        )

    data = await audio.read()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No audio file uploaded",
        )

    try:
        transcript = await deepgram.transcribe(data, content_type=audio.content_type or "audio/webm")
    except SpeechServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )

    logger.info(f"Transcribed {len(data)} bytes of audio ({len(transcript)} chars)")
    return TranscribeResponse(transcript=transcript)


@router.post("/speak")
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def speak(request: Request, body: SpeakRequest):
    _require_deepgram()
    text = body.text.strip()
    if not text:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing text",
        )

    try:
        audio = await deepgram.speak(text)
    except SpeechServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )

    return Response(content=audio, media_type="audio/mpeg")
