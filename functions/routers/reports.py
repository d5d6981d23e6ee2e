"""Funnel daily report relay."""
from fastapi import APIRouter, Depends

from common.auth.tokens import AuthContext
from modules.reports.webhook import DailyReport, relay_daily_report

from ..deps import get_auth_context

router = APIRouter()


@router.post("/funnel-daily-report-webhook")
async def funnel_daily_report(report: DailyReport, caller: AuthContext = Depends(get_auth_context)):
    return await relay_daily_report(report)
