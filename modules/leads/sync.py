"""Import strategic leads from a session's Google Sheet.

The first sheet row holds column headers; every following row becomes a
lead, upserted by (session_id, source_row_id) so re-syncs update in place.
"""
import logging
import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from common.auth.google import get_sheets_service
from common.db.models import (
    QualificationCriterion,
    StrategicLead,
    StrategicSession,
    StrategicSyncLog,
)
from common.errors import NotFound, ValidationError

from .qualification import qualify_row

logger = logging.getLogger(__name__)

SHEET_ID_PATTERN = re.compile(r"/d/([a-zA-Z0-9-_]+)")

# Lead attribute -> accepted header names, first non-empty wins
COLUMN_ALIASES = {
    "name": ("nome", "name", "lead"),
    "email": ("email", "e-mail"),
    "phone": ("telefone", "phone", "whatsapp"),
    "utm_source": ("utm_source", "fonte"),
    "utm_medium": ("utm_medium",),
    "utm_campaign": ("utm_campaign", "campanha"),
    "utm_content": ("utm_content",),
}


def extract_spreadsheet_id(url: str) -> str:
    match = SHEET_ID_PATTERN.search(url or "")
    if not match:
        raise ValidationError("Invalid Google Sheet URL")
    return match.group(1)


def _pick(row: dict, attr: str) -> Optional[str]:
    for header in COLUMN_ALIASES[attr]:
        if row.get(header):
            return row[header]
    return None


def rows_to_records(rows: list[list[str]]) -> list[dict]:
    """Turn sheet values into dicts keyed by lower-cased header."""
    if len(rows) < 2:
        return []
    headers = [str(h).lower().strip() for h in rows[0]]
    records = []
    for row in rows[1:]:
        records.append({h: (row[i] if i < len(row) else "") for i, h in enumerate(headers)})
    return records


def fetch_sheet_rows(spreadsheet_id: str, sheets_service=None) -> list[list[str]]:
    service = sheets_service or get_sheets_service()
    result = service.spreadsheets().values().get(
        spreadsheetId=spreadsheet_id, range="A:Z"
    ).execute()
    return result.get("values", [])


def sync_session(db: Session, session_id: str, sheets_service=None) -> dict:
    """Sync one strategic session from its sheet.

    Returns:
        {"created": N, "updated": N, "total": N}
    """
    strategic = db.get(StrategicSession, session_id)
    if strategic is None:
        raise NotFound("Session not found")
    if not strategic.google_sheet_url:
        raise ValidationError("No Google Sheet URL configured")

    spreadsheet_id = extract_spreadsheet_id(strategic.google_sheet_url)
    records = rows_to_records(fetch_sheet_rows(spreadsheet_id, sheets_service))
    if not records:
        return {"created": 0, "updated": 0, "total": 0}

    criteria = list(db.scalars(
        select(QualificationCriterion).where(QualificationCriterion.session_id == session_id)
    ))

    created = updated = 0
    for i, record in enumerate(records, start=1):
        source_row_id = f"{spreadsheet_id}_row_{i}"
        qualified, score = qualify_row(criteria, record)
        values = {
            "name": _pick(record, "name") or f"Lead {i}",
            "email": _pick(record, "email"),
            "phone": _pick(record, "phone"),
            "utm_source": _pick(record, "utm_source"),
            "utm_medium": _pick(record, "utm_medium"),
            "utm_campaign": _pick(record, "utm_campaign"),
            "utm_content": _pick(record, "utm_content"),
            "is_qualified": qualified,
            "qualification_score": score,
            "extra_data": record,
        }

        lead = db.scalar(
            select(StrategicLead)
            .where(StrategicLead.session_id == session_id)
            .where(StrategicLead.source_row_id == source_row_id)
        )
        if lead:
            for k, v in values.items():
                setattr(lead, k, v)
            updated += 1
        else:
            db.add(StrategicLead(session_id=session_id, source_row_id=source_row_id, **values))
            created += 1

    db.flush()
    logger.info(
        f"Synced session '{strategic.name}': {created} created, {updated} updated "
        f"({len(records)} rows)"
    )
    return {"created": created, "updated": updated, "total": len(records)}


def cron_sync_all(db: Session, sheets_service=None) -> dict:
    """Sync every session that has a sheet, logging each outcome.

    One failing session does not stop the others.
    """
    sessions = list(db.scalars(
        select(StrategicSession).where(StrategicSession.google_sheet_url.is_not(None))
    ))
    if not sessions:
        return {"message": "No sessions to sync", "synced": 0, "results": []}

    results = []
    for strategic in sessions:
        try:
            with db.begin_nested():
                data = sync_session(db, strategic.id, sheets_service)
            db.add(StrategicSyncLog(
                session_id=strategic.id,
                session_name=strategic.name,
                status="ok",
                total_rows=data["total"],
                source="cron",
            ))
            results.append({"session": strategic.name, "status": "ok", **data})
        except Exception as e:
            db.add(StrategicSyncLog(
                session_id=strategic.id,
                session_name=strategic.name,
                status="error",
                error_message=str(e),
                source="cron",
            ))
            results.append({"session": strategic.name, "status": "error", "error": str(e)})
            logger.error(f"Error syncing '{strategic.name}': {e}")

    db.flush()
    return {"synced": len(results), "results": results}
