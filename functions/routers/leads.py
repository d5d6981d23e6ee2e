"""Strategic lead functions: sheet sync, cron sync, lead score."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from common.auth.tokens import AuthContext
from modules.leads.scoring import compute_lead_score
from modules.leads.sync import cron_sync_all, sync_session

from ..deps import get_auth_context, get_db, get_sheets, require_service_role

logger = logging.getLogger(__name__)
router = APIRouter()


class SyncRequest(BaseModel):
    session_id: Optional[str] = None


class LeadScoreRequest(BaseModel):
    extra_data: dict = {}


@router.post("/sync-strategic-leads")
def sync_strategic_leads(
    body: SyncRequest,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    sheets_service=Depends(get_sheets),
):
    return sync_session(db, body.session_id, sheets_service)


@router.post("/cron-sync-strategic-leads", dependencies=[Depends(require_service_role)])
def cron_sync_strategic_leads(
    db: Session = Depends(get_db),
    sheets_service=Depends(get_sheets),
):
    return cron_sync_all(db, sheets_service)


@router.post("/lead-score")
async def lead_score(body: LeadScoreRequest, caller: AuthContext = Depends(get_auth_context)):
    return compute_lead_score(body.extra_data).to_dict()
