"""Sponsor kanban: cards, stage moves and their history.

All functions take a SQLAlchemy session; the caller manages commit.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from common.db.models import Sponsor, SponsorStageHistory
from common.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

SPONSOR_STAGES = [
    {"id": "possiveis_patrocinadores", "name": "Possíveis patrocinadores"},
    {"id": "primeiro_contato", "name": "Primeiro contato"},
    {"id": "followup", "name": "Follow-up"},
    {"id": "agendamento", "name": "Agendamento"},
    {"id": "ultimo_contato", "name": "Último contato"},
    {"id": "contrato_fechamento", "name": "Contrato e fechamento"},
]
STAGE_IDS = [s["id"] for s in SPONSOR_STAGES]
INITIAL_STAGE = STAGE_IDS[0]

BRAZILIAN_STATES = [
    "AC", "AL", "AP", "AM", "BA", "CE", "DF", "ES", "GO", "MA", "MT", "MS",
    "MG", "PA", "PB", "PR", "PE", "PI", "RJ", "RN", "RS", "RO", "RR", "SC",
    "SP", "SE", "TO",
]

REQUIRED_FIELDS = ("name", "city", "state", "segment")
EDITABLE_FIELDS = {
    "name", "contact_name", "contact_phone", "contact_email", "additional_info",
    "city", "state", "segment", "last_contact_date", "last_contact_notes",
    "next_action", "next_followup_date",
}

SYSTEM_NAME = "Sistema"


def _check_stage(stage: str) -> None:
    if stage not in STAGE_IDS:
        raise ValidationError(f"Unknown sponsor stage: {stage}")


def _check_state(state: Optional[str]) -> None:
    if state is not None and state not in BRAZILIAN_STATES:
        raise ValidationError(f"Unknown state: {state}")


def get_sponsor(session: Session, sponsor_id: str) -> Sponsor:
    sponsor = session.get(Sponsor, sponsor_id)
    if sponsor is None:
        raise NotFound(f"Sponsor {sponsor_id} not found")
    return sponsor


def list_sponsors(session: Session, stage: Optional[str] = None,
                  state: Optional[str] = None) -> list[Sponsor]:
    query = select(Sponsor)
    if stage:
        query = query.where(Sponsor.stage == stage)
    if state:
        query = query.where(Sponsor.state == state)
    return list(session.scalars(query.order_by(Sponsor.created_at.desc())))


def kanban(session: Session) -> list[dict]:
    """Sponsors grouped into columns, in pipeline order."""
    columns = {s["id"]: {**s, "sponsors": []} for s in SPONSOR_STAGES}
    for sponsor in list_sponsors(session):
        column = columns.get(sponsor.stage)
        if column is None:
            logger.warning(f"Sponsor {sponsor.id} has unknown stage '{sponsor.stage}'")
            continue
        column["sponsors"].append(sponsor)
    return list(columns.values())


def create_sponsor(session: Session, values: dict, created_by: Optional[str] = None,
                   created_by_name: Optional[str] = None) -> Sponsor:
    """Insert a sponsor card and record its initial stage."""
    missing = [f for f in REQUIRED_FIELDS if not values.get(f)]
    if missing:
        raise ValidationError(f"missing required fields: {', '.join(missing)}")
    stage = values.get("stage") or INITIAL_STAGE
    _check_stage(stage)
    _check_state(values["state"])

    sponsor = Sponsor(
        **{k: v for k, v in values.items() if k in EDITABLE_FIELDS},
        stage=stage,
        created_by=created_by,
    )
    session.add(sponsor)
    session.flush()
    session.add(SponsorStageHistory(
        sponsor_id=sponsor.id,
        previous_stage=None,
        new_stage=stage,
        changed_by=created_by,
        changed_by_name=created_by_name or SYSTEM_NAME,
    ))
    logger.info(f"Sponsor created: {sponsor.id} '{sponsor.name}' in {stage}")
    return sponsor


def update_sponsor(session: Session, sponsor_id: str, updates: dict) -> Sponsor:
    sponsor = get_sponsor(session, sponsor_id)
    unknown = set(updates) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"unknown fields: {sorted(unknown)}")
    _check_state(updates.get("state"))
    for field, value in updates.items():
        setattr(sponsor, field, value)
    return sponsor


def move_sponsor(session: Session, sponsor_id: str, new_stage: str,
                 changed_by: Optional[str] = None,
                 changed_by_name: Optional[str] = None) -> Sponsor:
    """Move a sponsor to another column and record the transition."""
    _check_stage(new_stage)
    sponsor = get_sponsor(session, sponsor_id)
    if sponsor.stage == new_stage:
        return sponsor
    session.add(SponsorStageHistory(
        sponsor_id=sponsor.id,
        previous_stage=sponsor.stage,
        new_stage=new_stage,
        changed_by=changed_by,
        changed_by_name=changed_by_name or SYSTEM_NAME,
    ))
    logger.info(f"Sponsor {sponsor.id}: {sponsor.stage} → {new_stage}")
    sponsor.stage = new_stage
    return sponsor


def stage_history(session: Session, sponsor_id: str) -> list[SponsorStageHistory]:
    """Stage transitions, newest first."""
    get_sponsor(session, sponsor_id)
    return list(session.scalars(
        select(SponsorStageHistory)
        .where(SponsorStageHistory.sponsor_id == sponsor_id)
        .order_by(SponsorStageHistory.changed_at.desc())
    ))


def delete_sponsor(session: Session, sponsor_id: str) -> None:
    session.delete(get_sponsor(session, sponsor_id))
    logger.info(f"Sponsor deleted: {sponsor_id}")
