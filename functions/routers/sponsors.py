"""Sponsor kanban API."""
import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from common.auth.tokens import AuthContext
from common.db.models import Profile
from modules.sponsors import service

from ..deps import get_auth_context, get_db

router = APIRouter()


class SponsorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=120)
    state: str = Field(min_length=2, max_length=2)
    segment: str = Field(min_length=1, max_length=120)
    contact_name: Optional[str] = Field(default=None, max_length=255)
    contact_phone: Optional[str] = Field(default=None, max_length=50)
    contact_email: Optional[str] = Field(default=None, max_length=255)
    additional_info: Optional[str] = Field(default=None, max_length=2000)
    stage: Optional[str] = None
    next_action: Optional[str] = None
    next_followup_date: Optional[dt.date] = None


class StageMove(BaseModel):
    stage: str


class SponsorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    city: str
    state: str
    segment: str
    stage: str
    contact_name: Optional[str]
    contact_phone: Optional[str]
    contact_email: Optional[str]
    next_action: Optional[str]
    next_followup_date: Optional[dt.date]


class StageHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    previous_stage: Optional[str]
    new_stage: str
    changed_by_name: Optional[str]
    changed_at: dt.datetime


def _caller_name(db: Session, caller: AuthContext) -> Optional[str]:
    profile = db.get(Profile, caller.user_id)
    return (profile.display_name or profile.full_name) if profile else None


@router.get("/kanban")
async def kanban(caller: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return [
        {"id": c["id"], "name": c["name"],
         "sponsors": [SponsorResponse.model_validate(s) for s in c["sponsors"]]}
        for c in service.kanban(db)
    ]


@router.post("/", response_model=SponsorResponse, status_code=201)
async def create_sponsor(
    body: SponsorCreate,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return service.create_sponsor(
        db, body.model_dump(exclude_none=True),
        created_by=caller.user_id, created_by_name=_caller_name(db, caller),
    )


@router.post("/{sponsor_id}/stage", response_model=SponsorResponse)
async def move_sponsor(
    sponsor_id: str,
    body: StageMove,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return service.move_sponsor(
        db, sponsor_id, body.stage,
        changed_by=caller.user_id, changed_by_name=_caller_name(db, caller),
    )


@router.get("/{sponsor_id}/history", response_model=List[StageHistoryResponse])
async def sponsor_history(
    sponsor_id: str,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return service.stage_history(db, sponsor_id)
