"""PDI deadline sweep.

Notifies each collaborator whose open PDI is overdue, due today or due
within the warning window. A PDI already notified within the dedupe
window is skipped.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from common.config import ScheduleConfig
from common.db.models import PDI
from modules.notifications.service import dedupe_cutoff, recently_notified, send_notification

logger = logging.getLogger(__name__)

DONE_STATUS = "finalizado"


@dataclass
class DeadlineNotice:
    type: str  # warning | alert
    title: str
    message: str


def deadline_notice(pdi_title: str, deadline: date, today: date,
                    warning_days: int = 3) -> Optional[DeadlineNotice]:
    """Notice for a PDI given its deadline, or None when not yet relevant."""
    days_left = (deadline - today).days
    if days_left < 0:
        return DeadlineNotice(
            "alert",
            "⚠️ PDI Atrasado",
            f'O PDI "{pdi_title}" está atrasado há {abs(days_left)} dia(s). Regularize sua situação.',
        )
    if days_left == 0:
        return DeadlineNotice(
            "alert",
            "🔴 PDI vence HOJE",
            f'O PDI "{pdi_title}" vence hoje! Finalize suas atividades.',
        )
    if days_left <= warning_days:
        return DeadlineNotice(
            "warning",
            "⏰ PDI próximo do vencimento",
            f'O PDI "{pdi_title}" vence em {days_left} dia(s). Não deixe para última hora!',
        )
    return None


def check_pdi_deadlines(session: Session, today: date,
                        config: Optional[ScheduleConfig] = None,
                        now: Optional[datetime] = None) -> dict:
    """Run the sweep for 'today'.

    Returns:
        {"success", "message", "pdi_ids"}
    """
    config = config or ScheduleConfig()
    horizon = today + timedelta(days=config.pdi_warning_days)
    since = dedupe_cutoff(config.notification_dedupe_hours, now)

    pdis = list(session.scalars(
        select(PDI).where(PDI.status != DONE_STATUS).where(PDI.deadline <= horizon)
    ))
    logger.info(f"Checking {len(pdis)} PDIs with deadline up to {horizon}")

    notified: list[str] = []
    for pdi in pdis:
        notice = deadline_notice(pdi.title, pdi.deadline, today, config.pdi_warning_days)
        if notice is None:
            continue
        if recently_notified(session, pdi.collaborator_id, "PDI", pdi.title, since):
            logger.info(f"PDI '{pdi.title}' already notified in the last "
                        f"{config.notification_dedupe_hours}h")
            continue
        try:
            with session.begin_nested():
                send_notification(
                    session,
                    recipient_id=pdi.collaborator_id,
                    title=notice.title,
                    message=notice.message,
                    type=notice.type,
                )
        except Exception as e:
            logger.error(f"Error notifying PDI {pdi.id}: {e}")
            continue
        logger.info(f"Notified {pdi.collaborator_id} about PDI '{pdi.title}'")
        notified.append(pdi.id)

    return {
        "success": True,
        "message": f"Verificação concluída. {len(notified)} notificações enviadas.",
        "pdi_ids": notified,
    }
