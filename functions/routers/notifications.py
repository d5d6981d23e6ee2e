"""Notifications API: inbox, unread count, read state, admin send."""
import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from common.auth.tokens import AuthContext
from common.errors import Forbidden
from modules.notifications import service

from ..deps import get_auth_context, get_db

router = APIRouter()


class NotificationSend(BaseModel):
    recipient_ids: List[str] = Field(min_length=1)
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=2000)
    type: str = "info"


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    message: str
    type: str
    sender_id: Optional[str]
    read: bool
    read_at: Optional[dt.datetime]
    created_at: dt.datetime


@router.get("/", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    limit: int = 50,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return service.list_notifications(db, caller.user_id, unread_only, min(limit, 200))


@router.get("/unread-count")
async def unread_count(caller: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return {"count": service.unread_count(db, caller.user_id)}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return service.mark_read(db, notification_id, caller.user_id)


@router.post("/read-all")
async def mark_all_read(caller: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return {"success": True, "updated": service.mark_all_read(db, caller.user_id)}


@router.post("/send", status_code=201)
async def send(
    body: NotificationSend,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Admins send a notification to one or more users."""
    if not caller.is_admin:
        raise Forbidden("Only admins can send notifications")
    sent = [
        service.send_notification(db, rid, body.title, body.message, body.type, sender_id=caller.user_id)
        for rid in body.recipient_ids
    ]
    return {"success": True, "sent": len(sent)}
