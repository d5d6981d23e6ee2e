"""Strategic lead kanban and UTM analytics."""
import logging
from collections import Counter
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from common.db.models import StrategicLead, StrategicLeadHistory, StrategicSession
from common.errors import NotFound, ValidationError

from .scoring import compute_lead_score

logger = logging.getLogger(__name__)

DEFAULT_STAGES = [
    {"key": "lead", "label": "Lead"},
    {"key": "qualificado", "label": "Qualificado"},
    {"key": "agendado", "label": "Agendado"},
    {"key": "realizado", "label": "Realizado"},
    {"key": "venda", "label": "Venda"},
]
SALE_STAGE = "venda"
NO_DATA = "Sem dados"

UTM_ALIASES = {
    "utm_source": ["utm_source", "utm source", "fonte", "source"],
    "utm_medium": ["utm_medium", "utm medium", "medium", "mídia", "midia"],
    "utm_campaign": ["utm_campaign", "utm campaign", "campanha", "campaign"],
    "utm_content": ["utm_content", "utm content", "content", "conteúdo", "conteudo"],
    "utm_term": ["utm_term", "utm term", "term", "termo"],
}


def session_stages(strategic: Optional[StrategicSession]) -> list[dict]:
    """Custom stages of a session, or the default pipeline."""
    if strategic is not None and isinstance(strategic.custom_stages, list) and strategic.custom_stages:
        return strategic.custom_stages
    return DEFAULT_STAGES


def list_leads(db: Session, session_id: str, stage: Optional[str] = None,
               utm_source: Optional[str] = None,
               is_qualified: Optional[bool] = None) -> list[StrategicLead]:
    query = select(StrategicLead).where(StrategicLead.session_id == session_id)
    if stage:
        query = query.where(StrategicLead.stage == stage)
    if utm_source:
        query = query.where(StrategicLead.utm_source == utm_source)
    if is_qualified is not None:
        query = query.where(StrategicLead.is_qualified == is_qualified)
    return list(db.scalars(query.order_by(StrategicLead.created_at.desc())))


def move_lead_stage(db: Session, lead_id: str, new_stage: str,
                    changed_by: Optional[str] = None) -> StrategicLead:
    """Move a lead to another kanban column, recording the transition."""
    lead = db.get(StrategicLead, lead_id)
    if lead is None:
        raise NotFound(f"Lead {lead_id} not found")
    stages = {s["key"] for s in session_stages(db.get(StrategicSession, lead.session_id))}
    if new_stage not in stages:
        raise ValidationError(f"Unknown stage: {new_stage}")
    if lead.stage == new_stage:
        return lead

    db.add(StrategicLeadHistory(
        lead_id=lead.id,
        previous_stage=lead.stage,
        new_stage=new_stage,
        changed_by=changed_by,
    ))
    logger.info(f"Lead {lead.id}: {lead.stage} → {new_stage}")
    lead.stage = new_stage
    return lead


def extract_utm(lead: StrategicLead, utm_key: str) -> str:
    """UTM value from the lead column, else from its raw sheet row."""
    top_level = getattr(lead, utm_key, None)
    if top_level and str(top_level).strip():
        return str(top_level).strip()
    extra = lead.extra_data
    if not isinstance(extra, dict):
        return ""
    lowered = {str(k).lower(): v for k, v in extra.items()}
    for alias in UTM_ALIASES.get(utm_key, [utm_key]):
        value = lowered.get(alias)
        if value and str(value).strip():
            return str(value).strip()
    return ""


def utm_analytics(db: Session, session_id: str) -> dict:
    """Per-UTM totals, qualified counts, sales and conversion, plus stage funnel."""
    leads = list(db.scalars(select(StrategicLead).where(StrategicLead.session_id == session_id)))
    qualified_ids = {l.id for l in leads if compute_lead_score(l.extra_data).is_qualified}

    def aggregate(dimension: str) -> list[dict]:
        stats: dict[str, dict] = {}
        for lead in leads:
            key = extract_utm(lead, dimension) or NO_DATA
            entry = stats.setdefault(key, {"total": 0, "qualified": 0, "vendas": 0})
            entry["total"] += 1
            if lead.id in qualified_ids:
                entry["qualified"] += 1
            if lead.stage == SALE_STAGE:
                entry["vendas"] += 1
        rows = [
            {"name": name, **s,
             "convPercent": round(s["vendas"] / s["total"] * 100) if s["total"] else 0}
            for name, s in stats.items()
        ]
        return sorted(rows, key=lambda r: r["total"], reverse=True)

    by_stage = Counter(l.stage for l in leads)
    daily = Counter(l.created_at.date().isoformat() for l in leads if l.created_at)

    return {
        "bySource": aggregate("utm_source"),
        "byMedium": aggregate("utm_medium"),
        "byCampaign": aggregate("utm_campaign"),
        "byContent": aggregate("utm_content"),
        "byTerm": aggregate("utm_term"),
        "funnel": [{"name": s["label"], "value": by_stage.get(s["key"], 0)} for s in DEFAULT_STAGES],
        "daily": [{"date": d, "leads": n} for d, n in sorted(daily.items())],
        "total": len(leads),
        "qualified": len(qualified_ids),
        "vendas": by_stage.get(SALE_STAGE, 0),
    }
