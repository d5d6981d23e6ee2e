"""FastAPI dependencies: DB session, caller identity, external clients.

Every external client is its own dependency so tests can override it.
"""
import hmac
from typing import Generator, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from common.auth.google import get_calendar_service, get_drive_service, get_sheets_service
from common.auth.tokens import AuthContext, extract_bearer, load_auth_context, verify_token
from common.config import get_config
from common.db.database import get_session_factory
from common.errors import ConfigurationError, Forbidden, Unauthorized
from modules.calendar.calcom import CalComClient
from modules.copywriting.gateway import AIGatewayClient
from modules.transcription.local import whisper_handle
from modules.transcription.model import ModelHandle
from modules.transcription.speech import SpeechToTextClient
from modules.users.auth_admin import AuthAdminClient


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session: commit on success, rollback on error."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def resolve_caller(db: Session, authorization: Optional[str]) -> AuthContext:
    claims = verify_token(extract_bearer(authorization))
    return load_auth_context(db, claims)


def get_auth_context(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Caller of the request; inactive accounts are rejected."""
    ctx = resolve_caller(db, authorization)
    if not ctx.is_active:
        raise Forbidden(f"Unauthorized: User {ctx.email} is inactive")
    return ctx


def require_service_role(authorization: Optional[str] = Header(default=None)) -> None:
    """Scheduled sweeps are called with the service role key as bearer."""
    key = get_config().auth.service_role_key
    if not key:
        raise ConfigurationError("Server configuration error: service role key not set")
    token = extract_bearer(authorization)
    if not hmac.compare_digest(token, key):
        raise Unauthorized("Unauthorized: service role required")


def get_auth_admin_client() -> AuthAdminClient:
    return AuthAdminClient()


def get_ai_client() -> AIGatewayClient:
    return AIGatewayClient()


def get_calcom_client() -> CalComClient:
    return CalComClient()


def get_speech_client() -> SpeechToTextClient:
    return SpeechToTextClient()


def get_model_handle() -> ModelHandle:
    return whisper_handle


def get_sheets():
    return get_sheets_service()


def get_calendar():
    return get_calendar_service()


def get_drive():
    return get_drive_service()
