"""Download a Drive file shared with the service account.

Files above the size limit are refused with 413 so the caller can fall
back to a manual download.
"""
import base64
import io
import logging
from typing import Optional

from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload

from common.auth.google import get_drive_service
from common.config import get_config
from common.errors import HubError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

METADATA_FIELDS = "id,name,mimeType,size"
SHARE_HINT = "Verifique se o arquivo está compartilhado com a Service Account"
TOO_LARGE_MESSAGE = (
    "O arquivo excede o limite de 50MB para download via API. "
    "Por favor, faça o download manualmente."
)


class FileTooLarge(HubError):
    status_code = 413


def get_metadata(file_id: str, drive_service) -> dict:
    try:
        return drive_service.files().get(fileId=file_id, fields=METADATA_FIELDS).execute()
    except HttpError as e:
        logger.error(f"File metadata error: {e}")
        raise UpstreamError(f"Failed to get file metadata: {e}", details=SHARE_HINT)


def download_bytes(file_id: str, drive_service) -> bytes:
    buffer = io.BytesIO()
    request = drive_service.files().get_media(fileId=file_id)
    downloader = MediaIoBaseDownload(buffer, request)
    try:
        done = False
        while not done:
            _, done = downloader.next_chunk()
    except HttpError as e:
        logger.error(f"File download error: {e}")
        raise UpstreamError(f"Failed to download file: {e}", details=SHARE_HINT)
    return buffer.getvalue()


def download_file(file_id: str, drive_service=None, max_bytes: Optional[int] = None) -> dict:
    """Metadata plus base64 content of a Drive file.

    Returns:
        {"success": True, "metadata": {...}, "data": "<base64>"}
    """
    if not file_id:
        raise ValidationError("fileId is required")
    max_bytes = max_bytes or get_config().google.drive_max_bytes
    service = drive_service or get_drive_service()

    logger.info(f"Processing download for file: {file_id}")
    metadata = get_metadata(file_id, service)
    logger.info(f"File: {metadata.get('name')}, Size: {metadata.get('size')} bytes, "
                f"Type: {metadata.get('mimeType')}")

    if int(metadata.get("size") or 0) > max_bytes:
        raise FileTooLarge("File too large", message=TOO_LARGE_MESSAGE, metadata=metadata)

    content = download_bytes(file_id, service)
    logger.info(f"Downloaded {len(content)} bytes")
    return {
        "success": True,
        "metadata": {k: metadata.get(k) for k in ("id", "name", "mimeType", "size")},
        "data": base64.b64encode(content).decode("ascii"),
    }
