from __future__ import annotations

import html
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from .models import FeeEstimate, PriceSnapshot, Report

logger = logging.getLogger(__name__)

SUBJECT_PREFIX = "BTC 每日重點"
MISSING_VALUE = "N/A"
FEE_UNIT = "sats/vB"

# (text label, html label, url)
TRACKING_LINKS: Tuple[Tuple[str, str, str], ...] = (
    ("Farside ETF 面板", "Farside：美國現貨 BTC ETF 淨流面板", "https://farside.co.uk/btc/"),
    (
        "Fed FOMC 日曆",
        "Fed 官方 FOMC 日曆",
        "https://www.federalreserve.gov/monetarypolicy/fomccalendars.htm",
    ),
    ("CoinGecko BTC", "CoinGecko：BTC 詳情", "https://www.coingecko.com/en/coins/bitcoin"),
    ("mempool.space", "mempool.space：鏈上狀態", "https://mempool.space/"),
)
TRACKING_HEADING = "🔗 追蹤連結："


def format_report_date(now: datetime, tz_name: str) -> str:
    """Medium date style of the zh-Hant locale (CLDR pattern ``y年M月d日``)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(ZoneInfo(tz_name))
    return f"{local.year}年{local.month}月{local.day}日"


def format_price(price: Optional[float]) -> str:
    if price is None:
        return MISSING_VALUE
    return f"${price:,.2f}"


def format_change(change: Optional[float]) -> str:
    if change is None:
        return MISSING_VALUE
    if change == 0:
        change = 0.0  # drop the sign of -0.0
    sign = "+" if change >= 0 else ""
    return f"{sign}{change:.2f}%"


def _format_fee(value: Optional[int]) -> str:
    return MISSING_VALUE if value is None else str(value)


def build_report_lines(snapshot: PriceSnapshot, fee: FeeEstimate, date_str: str) -> List[str]:
    missing = [
        name
        for name, value in (
            ("price", snapshot.price),
            ("change_24h", snapshot.change_24h),
            ("fastest_fee", fee.fastest_fee),
            ("half_hour_fee", fee.half_hour_fee),
            ("hour_fee", fee.hour_fee),
        )
        if value is None
    ]
    if missing:
        logger.warning("Upstream fields missing; rendering %s for: %s", MISSING_VALUE, ", ".join(missing))

    return [
        f"📊 市場總結（{date_str}）",
        f"• 價格：{format_price(snapshot.price)}（24h {format_change(snapshot.change_24h)}）",
        (
            f"• 手續費建議：fast {_format_fee(fee.fastest_fee)}"
            f" / halfHour {_format_fee(fee.half_hour_fee)}"
            f" / hour {_format_fee(fee.hour_fee)} {FEE_UNIT}"
        ),
        "• ETF 淨流：請見 Farside 面板（下方連結）",
        "• 重要事件：下次 FOMC 會議請見官方日曆",
    ]


def build_email_subject(date_str: str) -> str:
    return f"{SUBJECT_PREFIX} – {date_str}"


def build_email_body(lines: List[str]) -> Tuple[str, str]:
    """Return (text_body, html_body) built from the same report lines."""
    text_parts = ["\n".join(lines), "", TRACKING_HEADING]
    text_parts.extend(f"• {text_label}: {url}" for text_label, _, url in TRACKING_LINKS)
    text_body = "\n".join(text_parts)

    html_parts = [f"<div>{html.escape(line)}</div>" for line in lines]
    html_parts.append("<hr>")
    html_parts.append(f"<div>{TRACKING_HEADING}<ul>")
    html_parts.extend(
        f'<li><a href="{url}">{html.escape(html_label)}</a></li>' for _, html_label, url in TRACKING_LINKS
    )
    html_parts.append("</ul></div>")
    html_body = "".join(html_parts)

    return text_body, html_body


def build_report(snapshot: PriceSnapshot, fee: FeeEstimate, now: datetime, tz_name: str) -> Report:
    date_str = format_report_date(now, tz_name)
    lines = build_report_lines(snapshot, fee, date_str)
    text_body, html_body = build_email_body(lines)
    subject = build_email_subject(date_str)
    logger.info("Report built: %s", subject)
    return Report(subject=subject, html=html_body, text=text_body)
