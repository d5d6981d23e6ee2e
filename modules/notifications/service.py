"""In-app notifications: send, list, read state."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from common.db.models import Notification
from common.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = {"info", "success", "warning", "alert"}


def send_notification(session: Session, recipient_id: str, title: str, message: str,
                      type: str = "info", sender_id: Optional[str] = None) -> Notification:
    """Insert a notification. sender_id None means sent by the system."""
    if not title or not message:
        raise ValidationError("title and message are required")
    if type not in NOTIFICATION_TYPES:
        raise ValidationError(f"invalid notification type: {type}")
    notification = Notification(
        title=title,
        message=message,
        type=type,
        recipient_id=recipient_id,
        sender_id=sender_id,
    )
    session.add(notification)
    session.flush()
    return notification


def list_notifications(session: Session, recipient_id: str, unread_only: bool = False,
                       limit: int = 50) -> list[Notification]:
    query = select(Notification).where(Notification.recipient_id == recipient_id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
    return list(session.scalars(query.order_by(Notification.created_at.desc()).limit(limit)))


def unread_count(session: Session, recipient_id: str) -> int:
    return session.scalar(
        select(func.count(Notification.id))
        .where(Notification.recipient_id == recipient_id)
        .where(Notification.read.is_(False))
    ) or 0


def mark_read(session: Session, notification_id: str, recipient_id: str) -> Notification:
    notification = session.get(Notification, notification_id)
    if notification is None or notification.recipient_id != recipient_id:
        raise NotFound(f"Notification {notification_id} not found")
    if not notification.read:
        notification.read = True
        notification.read_at = datetime.now(timezone.utc)
    return notification


def mark_all_read(session: Session, recipient_id: str) -> int:
    result = session.execute(
        update(Notification)
        .where(Notification.recipient_id == recipient_id)
        .where(Notification.read.is_(False))
        .values(read=True, read_at=datetime.now(timezone.utc))
    )
    return result.rowcount or 0


def recently_notified(session: Session, recipient_id: str, title_contains: str,
                      message_contains: str, since: datetime) -> bool:
    """Whether a similar notification reached the recipient since the cutoff."""
    found = session.scalar(
        select(Notification.id)
        .where(Notification.recipient_id == recipient_id)
        .where(Notification.title.ilike(f"%{title_contains}%"))
        .where(Notification.message.ilike(f"%{message_contains}%"))
        .where(Notification.created_at >= since)
        .limit(1)
    )
    return found is not None


def dedupe_cutoff(hours: int, now: Optional[datetime] = None) -> datetime:
    return (now or datetime.now(timezone.utc)) - timedelta(hours=hours)
