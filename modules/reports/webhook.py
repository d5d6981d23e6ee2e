"""Relay a funnel daily report to the configured webhook.

The relay is best-effort: a webhook failure is reported back in the
response but never fails the request.
"""
import logging
from datetime import date, datetime
from typing import Optional

import httpx
from pydantic import BaseModel, Field

from common.config import get_config

logger = logging.getLogger(__name__)


class DailyReport(BaseModel):
    funnel_id: str
    funnel_name: str
    report_date: date
    contacts: int = Field(default=0, ge=0)
    followups: int = Field(default=0, ge=0)
    reschedules: int = Field(default=0, ge=0)
    meetings_scheduled: int = Field(default=0, ge=0)
    meetings_held: int = Field(default=0, ge=0)
    no_shows: int = Field(default=0, ge=0)
    sales: int = Field(default=0, ge=0)
    summary: str = Field(default="", max_length=5000)
    reported_by: str = ""
    reported_at: Optional[datetime] = None


async def relay_daily_report(report: DailyReport, webhook_url: Optional[str] = None,
                             transport: Optional[httpx.AsyncBaseTransport] = None) -> dict:
    url = webhook_url if webhook_url is not None else get_config().webhooks.funnel_report_url
    if not url:
        logger.info("No webhook URL configured, skipping external notification")
        return {"success": True, "message": "Report received but no webhook configured"}

    logger.info(f"Sending daily report for '{report.funnel_name}' to webhook")
    try:
        async with httpx.AsyncClient(transport=transport, timeout=30.0) as client:
            resp = await client.post(url, json=report.model_dump(mode="json"))
    except httpx.HTTPError as e:
        logger.error(f"Webhook request failed: {e}")
        return {
            "success": True,
            "message": "Report saved but webhook notification failed",
            "webhook_error": str(e),
        }

    if resp.status_code >= 400:
        logger.error(f"Webhook returned error: {resp.status_code} {resp.text}")
        return {
            "success": True,
            "message": "Report saved but webhook notification failed",
            "webhook_error": f"{resp.status_code}: {resp.text}",
        }

    logger.info("Webhook sent successfully")
    return {"success": True, "message": "Report sent to webhook"}
