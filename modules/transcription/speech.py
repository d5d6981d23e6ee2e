"""Hosted speech-to-text client (ElevenLabs Scribe)."""
import logging
from typing import Optional

import httpx

from common.config import SpeechConfig, get_config
from common.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

# ISO 639-1 -> ISO 639-3; empty means auto-detect
LANGUAGE_CODES = {
    "pt": "por",
    "en": "eng",
    "es": "spa",
    "fr": "fra",
    "de": "deu",
    "it": "ita",
    "auto": "",
}


def language_code(language: Optional[str]) -> str:
    return LANGUAGE_CODES.get(language or "pt", LANGUAGE_CODES["pt"])


class SpeechToTextClient:
    """Speech-to-text adapter over httpx, diarization enabled."""

    def __init__(self, config: Optional[SpeechConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or get_config().speech
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    async def transcribe(self, audio: bytes, language: Optional[str] = "pt",
                         filename: str = "audio.mp3") -> dict:
        """Transcribe audio bytes. Returns the provider body ({text, words, ...})."""
        if not self.is_configured:
            raise ConfigurationError("ElevenLabs API key not configured")

        data = {
            "model_id": self.config.model_id,
            "diarize": "true",
            "tag_audio_events": "false",
        }
        code = language_code(language)
        if code:
            data["language_code"] = code

        logger.info(f"Calling speech-to-text API ({len(audio)} bytes, language={code or 'auto'})")
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=600.0) as client:
                resp = await client.post(
                    f"{self.config.base_url.rstrip('/')}/speech-to-text",
                    headers={"xi-api-key": self.config.api_key},
                    data=data,
                    files={"file": (filename, audio)},
                )
        except httpx.HTTPError as e:
            logger.error(f"Speech-to-text request failed: {e}")
            raise UpstreamError(f"ElevenLabs API unreachable - {e}", 502) from e
        if resp.status_code >= 400:
            logger.error(f"Speech-to-text API error: {resp.status_code} {resp.text}")
            # provider 4xx answers as bad gateway
            status = 502 if resp.status_code < 500 else resp.status_code
            raise UpstreamError(f"ElevenLabs API error: {resp.status_code} - {resp.text}", status)
        return resp.json()


async def download_audio(url: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> bytes:
    logger.info(f"Downloading file from URL: {url}")
    async with httpx.AsyncClient(transport=transport, timeout=300.0, follow_redirects=True) as client:
        resp = await client.get(url)
    if resp.status_code >= 400:
        raise UpstreamError(f"Failed to download file: {resp.status_code}", resp.status_code)
    return resp.content
