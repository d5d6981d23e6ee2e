"""Local Whisper transcription (no diarization).

The pipeline comes from `transformers` and is loaded on first use through
a process-wide ModelHandle. Install with the `local-speech` extra.
"""
import asyncio
import logging
import math
from typing import Any, Optional

from .model import ModelHandle, ProgressCallback
from .segments import Segment

logger = logging.getLogger(__name__)

WHISPER_MODEL = "openai/whisper-base"
LOCAL_SPEAKER = "Transcrição"
DEFAULT_CHUNK_SECONDS = 5

WHISPER_LANGUAGES = {
    "pt": "portuguese",
    "en": "english",
    "es": "spanish",
    "fr": "french",
    "de": "german",
    "it": "italian",
    "auto": None,
}


def load_whisper(on_progress: ProgressCallback) -> Any:
    from transformers import pipeline

    on_progress(5, "Usando processamento CPU...")
    return pipeline("automatic-speech-recognition", model=WHISPER_MODEL, device=-1)


whisper_handle = ModelHandle(load_whisper, name="modelo Whisper")


def chunks_to_segments(result: dict) -> tuple[str, list[Segment], int]:
    """Convert a Whisper result with timestamped chunks into segments.

    A chunk without a start continues from the previous end; one without
    an end lasts five seconds. Without chunks the whole text is one segment.
    Returns (text, segments, duration in whole seconds).
    """
    text = (result.get("text") or "").strip()
    chunks = result.get("chunks") or []
    segments: list[Segment] = []
    last_end = 0.0

    for chunk in chunks:
        start_ts, end_ts = chunk.get("timestamp") or (None, None)
        start = start_ts or last_end
        end = end_ts or start + DEFAULT_CHUNK_SECONDS
        last_end = end
        segments.append(Segment(LOCAL_SPEAKER, start, end, (chunk.get("text") or "").strip()))

    if not segments:
        segments.append(Segment(LOCAL_SPEAKER, 0, 0, text))

    return text, segments, math.ceil(segments[-1].end)


async def transcribe_local(audio: Any, language: str = "pt",
                           on_progress: Optional[ProgressCallback] = None,
                           handle: ModelHandle = whisper_handle) -> dict:
    """Transcribe audio (file bytes, path, URL or array) with the local pipeline."""
    pipe = await handle.acquire(on_progress)
    if on_progress:
        on_progress(50, "Transcrevendo áudio...")

    generate_kwargs = {"task": "transcribe"}
    whisper_language = WHISPER_LANGUAGES.get(language, WHISPER_LANGUAGES["pt"])
    if whisper_language:
        generate_kwargs["language"] = whisper_language

    result = await asyncio.to_thread(
        pipe, audio,
        return_timestamps=True,
        chunk_length_s=30,
        stride_length_s=5,
        generate_kwargs=generate_kwargs,
    )

    text, segments, duration = chunks_to_segments(result)
    if on_progress:
        on_progress(100, "Transcrição concluída!")
    logger.info(f"Local transcription done: {len(segments)} segments, {duration}s")
    return {
        "text": text,
        "segments": [s.to_dict() for s in segments],
        "duration": duration,
    }
