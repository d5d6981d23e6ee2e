"""Strategic session API: lead kanban and UTM analytics."""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from common.auth.tokens import AuthContext
from common.db.models import StrategicSession
from common.errors import NotFound
from modules.leads import service
from modules.leads.scoring import compute_lead_score

from ..deps import get_auth_context, get_db

router = APIRouter()


class StageMove(BaseModel):
    stage: str


def _lead_dict(lead) -> dict:
    score = compute_lead_score(lead.extra_data)
    return {
        "id": lead.id,
        "name": lead.name,
        "email": lead.email,
        "phone": lead.phone,
        "stage": lead.stage,
        "utm_source": lead.utm_source,
        "is_qualified": lead.is_qualified,
        "qualification_score": lead.qualification_score,
        "lead_score": score.score,
        "score_qualified": score.is_qualified,
    }


@router.get("/{session_id}/leads")
async def list_leads(
    session_id: str,
    stage: Optional[str] = None,
    utm_source: Optional[str] = None,
    is_qualified: Optional[bool] = None,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    strategic = db.get(StrategicSession, session_id)
    if strategic is None:
        raise NotFound(f"Strategic session {session_id} not found")
    leads = service.list_leads(db, session_id, stage, utm_source, is_qualified)
    return {
        "stages": service.session_stages(strategic),
        "leads": [_lead_dict(l) for l in leads],
    }


@router.get("/{session_id}/analytics")
async def analytics(
    session_id: str,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return service.utm_analytics(db, session_id)


@router.post("/leads/{lead_id}/stage")
async def move_lead(
    lead_id: str,
    body: StageMove,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return _lead_dict(service.move_lead_stage(db, lead_id, body.stage, changed_by=caller.user_id))
