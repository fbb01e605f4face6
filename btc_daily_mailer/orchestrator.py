from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from . import config
from .market_client import fetch_market_data
from .mailer import send_report
from .models import Report
from .report_formatter import build_report

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def build_daily_report(settings: config.Settings, now: Optional[datetime] = None) -> Report:
    logger.info("Building daily BTC report...")
    snapshot, fee = await fetch_market_data()
    return build_report(snapshot, fee, now or utc_now(), settings.timezone)


def run_once(settings: config.Settings, now: Optional[datetime] = None) -> Report:
    """Fetch, format and send one report. Every failure propagates to the caller."""
    report = asyncio.run(build_daily_report(settings, now))
    send_report(report, settings.transport, settings.to_email)
    logger.info("Daily mail sent: %s", report.subject)
    return report


def run_scheduled(settings: config.Settings) -> None:
    """Scheduled entry point: errors are logged and never reach the scheduler."""
    logger.info("Starting daily BTC report job")
    try:
        run_once(settings)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Daily mail job failed: %s", exc)
