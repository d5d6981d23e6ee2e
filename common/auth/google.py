"""Google service-account authentication."""
import json
import logging
from typing import List, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build

from common.config import get_config
from common.errors import ConfigurationError

logger = logging.getLogger(__name__)

CALENDAR_SCOPES = ['https://www.googleapis.com/auth/calendar.readonly']
SHEETS_SCOPES = ['https://www.googleapis.com/auth/spreadsheets.readonly']
DRIVE_SCOPES = ['https://www.googleapis.com/auth/drive.readonly']


def parse_service_account_key(raw: str) -> dict:
    """Parse the service account JSON, tolerating double-escaped newlines."""
    if not raw:
        raise ConfigurationError('Google Service Account not configured')
    try:
        info = json.loads(raw)
    except json.JSONDecodeError:
        try:
            info = json.loads(raw.replace('\\\\n', '\\n').strip())
        except json.JSONDecodeError as e:
            logger.error(f'Service account JSON parse error: {e}')
            raise ConfigurationError('Invalid service account JSON format')

    if not info.get('client_email') or not info.get('private_key'):
        raise ConfigurationError(
            "Service account JSON missing required fields",
            hint="The JSON must contain 'client_email' and 'private_key'",
        )
    return info


def get_google_credentials(scopes: List[str], raw_key: Optional[str] = None):
    """Service-account credentials for the given scopes."""
    info = parse_service_account_key(raw_key or get_config().google.service_account_key)
    return service_account.Credentials.from_service_account_info(info, scopes=scopes)


def get_calendar_service(raw_key: Optional[str] = None):
    """Get authenticated Google Calendar API service."""
    creds = get_google_credentials(CALENDAR_SCOPES, raw_key)
    return build('calendar', 'v3', credentials=creds, cache_discovery=False)


def get_sheets_service(raw_key: Optional[str] = None):
    """Get authenticated Google Sheets API service."""
    creds = get_google_credentials(SHEETS_SCOPES, raw_key)
    return build('sheets', 'v4', credentials=creds, cache_discovery=False)


def get_drive_service(raw_key: Optional[str] = None):
    """Get authenticated Google Drive API service."""
    creds = get_google_credentials(DRIVE_SCOPES, raw_key)
    return build('drive', 'v3', credentials=creds, cache_discovery=False)
