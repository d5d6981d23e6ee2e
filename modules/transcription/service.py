"""Transcription lifecycle: pending -> processing -> completed | failed.

Two engines write the same row: the hosted speech-to-text provider (with
speaker diarization) and the local Whisper pipeline (one speaker). When
no engine is requested the hosted one is used if its key is configured.

Usage:
    with get_session() as session:
        result = await run_transcription(session, transcription_id, audio_bytes, "pt")
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from common.db.models import Transcription
from common.errors import HubError, NotFound, ValidationError

from .local import transcribe_local, whisper_handle
from .model import ModelHandle
from .segments import duration_seconds, group_words
from .speech import SpeechToTextClient

logger = logging.getLogger(__name__)

STATUSES = ("pending", "processing", "completed", "failed")
ENGINES = ("hosted", "local")


def create_transcription(session: Session, title: str, language: str = "pt") -> Transcription:
    if not title or not title.strip():
        raise ValidationError("title is required")
    transcription = Transcription(title=title.strip(), language=language, status="pending")
    session.add(transcription)
    session.flush()
    return transcription


def get_transcription(session: Session, transcription_id: str) -> Transcription:
    transcription = session.get(Transcription, transcription_id)
    if transcription is None:
        raise NotFound(f"Transcription {transcription_id} not found")
    return transcription


def mark_failed(session: Session, transcription: Transcription, message: str) -> None:
    transcription.status = "failed"
    transcription.error_message = message
    session.flush()


def _failure_message(error: Exception) -> str:
    if isinstance(error, HubError):
        # Provider body after " - " stays in the logs only
        return error.message.split(" - ")[0]
    return str(error) or type(error).__name__


def _start(session: Session, transcription_id: Optional[str], audio: bytes,
           language: Optional[str], engine: str) -> Transcription:
    if not transcription_id:
        raise ValidationError("transcription_id is required")
    if not audio:
        raise ValidationError("No file provided (file_base64 or file_url required)")
    transcription = get_transcription(session, transcription_id)

    logger.info(f"Processing transcription {transcription_id} ({engine}), language: {language}")
    transcription.status = "processing"
    session.flush()
    return transcription


def _complete(session: Session, transcription: Transcription, text: Optional[str],
              segments: list[dict], speakers: int, duration: int) -> dict:
    transcription.status = "completed"
    transcription.transcript_text = text
    transcription.transcript_segments = segments
    transcription.speakers_count = speakers
    transcription.duration_seconds = duration
    transcription.completed_at = datetime.now(timezone.utc)
    transcription.error_message = None
    session.flush()

    logger.info(f"Transcription {transcription.id} completed: {len(segments)} segments")
    return {
        "success": True,
        "transcription_id": transcription.id,
        "text": text,
        "segments": segments,
        "speakers_count": speakers,
        "duration_seconds": duration,
    }


async def transcribe(session: Session, transcription_id: str, audio: bytes,
                     language: Optional[str] = "pt",
                     client: Optional[SpeechToTextClient] = None) -> dict:
    """Run the hosted speech-to-text for a transcription row and store the result.

    The row goes to 'processing' before the provider is called. Any
    failure marks it 'failed' and re-raises.
    """
    transcription = _start(session, transcription_id, audio, language, "hosted")
    client = client or SpeechToTextClient()

    try:
        result = await client.transcribe(audio, language)
    except Exception as e:
        mark_failed(session, transcription, _failure_message(e))
        raise

    words = result.get("words") or []
    segments, speakers = group_words(words)
    return _complete(
        session, transcription, result.get("text"),
        [s.to_dict() for s in segments], speakers, duration_seconds(words),
    )


async def transcribe_with_local(session: Session, transcription_id: str, audio: bytes,
                                language: Optional[str] = "pt",
                                handle: Optional[ModelHandle] = None) -> dict:
    """Same lifecycle as transcribe(), with the local Whisper pipeline."""
    transcription = _start(session, transcription_id, audio, language, "local")

    try:
        result = await transcribe_local(audio, language or "pt", handle=handle or whisper_handle)
    except Exception as e:
        mark_failed(session, transcription, _failure_message(e))
        raise

    return _complete(session, transcription, result["text"], result["segments"], 1, result["duration"])


def choose_engine(requested: Optional[str], client: SpeechToTextClient) -> str:
    if requested:
        if requested not in ENGINES:
            raise ValidationError(f"engine must be one of: {', '.join(ENGINES)}")
        return requested
    return "hosted" if client.is_configured else "local"


async def run_transcription(session: Session, transcription_id: str, audio: bytes,
                            language: Optional[str] = "pt", engine: Optional[str] = None,
                            client: Optional[SpeechToTextClient] = None,
                            handle: Optional[ModelHandle] = None) -> dict:
    """Transcribe with the requested engine, falling back to local without a provider key."""
    client = client or SpeechToTextClient()
    if choose_engine(engine, client) == "local":
        return await transcribe_with_local(session, transcription_id, audio, language, handle)
    return await transcribe(session, transcription_id, audio, language, client)
