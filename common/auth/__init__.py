"""Authentication helpers: hosted-auth bearer tokens and Google service accounts."""

from .google import get_calendar_service, get_drive_service, get_google_credentials, get_sheets_service
from .tokens import AuthContext, extract_bearer, load_auth_context, require_active_admin, verify_token

__all__ = [
    'AuthContext', 'extract_bearer', 'verify_token', 'load_auth_context', 'require_active_admin',
    'get_google_credentials', 'get_calendar_service', 'get_sheets_service', 'get_drive_service',
]
