"""Scheduled sweeps: PDI deadlines and task recurrence.

Both run with the service role key and use 'today' in the configured
timezone unless a date is given.
"""
import datetime as dt
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from common.config import get_config
from modules.pdi.deadlines import check_pdi_deadlines
from modules.tasks.recurrence import today_in
from modules.tasks.service import process_task_recurrence

from ..deps import get_db, require_service_role
from .tasks import task_cache

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_service_role)])


class SweepRequest(BaseModel):
    date: Optional[dt.date] = None


def _sweep_date(body: Optional[SweepRequest]) -> dt.date:
    if body is not None and body.date:
        return body.date
    return today_in(get_config().schedule.timezone)


@router.post("/check-pdi-deadlines")
async def pdi_deadlines(body: Optional[SweepRequest] = None, db: Session = Depends(get_db)):
    return check_pdi_deadlines(db, _sweep_date(body), get_config().schedule)


@router.post("/process-task-recurrence")
async def task_recurrence(body: Optional[SweepRequest] = None, db: Session = Depends(get_db)):
    result = process_task_recurrence(db, _sweep_date(body))
    db.commit()
    if result.get("tasksCreated"):
        task_cache.invalidate(("tasks",))
    return result
