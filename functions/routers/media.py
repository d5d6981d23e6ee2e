"""Media functions: video transcription and Drive downloads."""
import base64
import binascii
import logging
from typing import NamedTuple, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from common.auth.tokens import AuthContext
from common.errors import ValidationError
from modules.drive.download import download_file
from modules.transcription.model import ModelHandle
from modules.transcription.service import run_transcription
from modules.transcription.speech import SpeechToTextClient, download_audio

from ..deps import get_auth_context, get_db, get_drive, get_model_handle, get_speech_client

logger = logging.getLogger(__name__)
router = APIRouter()


class TranscriptionRequest(BaseModel):
    transcription_id: Optional[str] = None
    file_base64: Optional[str] = None
    file_url: Optional[str] = None
    language: Optional[str] = "pt"
    engine: Optional[str] = None


class DriveDownloadRequest(BaseModel):
    fileId: Optional[str] = None


class AudioRequest(NamedTuple):
    transcription_id: Optional[str]
    audio: bytes
    language: str
    engine: Optional[str]


async def _read_transcription_request(request: Request) -> AudioRequest:
    """Transcription id, audio, language and engine from a multipart or JSON body."""
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type:
        form = await request.form()
        upload = form.get("file")
        if upload is None or isinstance(upload, str):
            raise ValidationError("No file provided in form data")
        return AudioRequest(form.get("transcription_id"), await upload.read(),
                            form.get("language") or "pt", form.get("engine") or None)

    body = TranscriptionRequest(**(await request.json()))
    if body.file_base64:
        try:
            audio = base64.b64decode(body.file_base64, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("file_base64 is not valid base64")
    elif body.file_url:
        audio = await download_audio(body.file_url)
    else:
        raise ValidationError("No file provided (file_base64 or file_url required)")
    return AudioRequest(body.transcription_id, audio, body.language or "pt", body.engine)


@router.post("/transcribe-video")
async def transcribe_video(
    request: Request,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    client: SpeechToTextClient = Depends(get_speech_client),
    handle: ModelHandle = Depends(get_model_handle),
):
    req = await _read_transcription_request(request)
    try:
        return await run_transcription(db, req.transcription_id, req.audio, req.language,
                                       engine=req.engine, client=client, handle=handle)
    except Exception:
        # Keep the 'failed' status written by the service.
        db.commit()
        raise


@router.post("/google-drive-download")
def google_drive_download(
    body: DriveDownloadRequest,
    caller: AuthContext = Depends(get_auth_context),
    drive_service=Depends(get_drive),
):
    if not body.fileId:
        raise ValidationError("fileId is required")
    return download_file(body.fileId, drive_service)
