from __future__ import annotations

from datetime import datetime, timezone

import pytest

from btc_daily_mailer import orchestrator
from btc_daily_mailer.config import Settings, SmtpTransportConfig
from btc_daily_mailer.market_client import MarketDataConnectionError
from btc_daily_mailer.models import FeeEstimate, PriceSnapshot

SETTINGS = Settings(
    to_email="to@example.com",
    transport=SmtpTransportConfig(user="me@gmail.com", app_password="pw"),
)
NOW = datetime(2024, 6, 1, 1, 0, tzinfo=timezone.utc)


@pytest.fixture
def sent(monkeypatch):
    async def fake_fetch():
        return PriceSnapshot(price=65000.5, change_24h=3.2), FeeEstimate(10, 5, 2)

    deliveries = []

    def fake_send(report, transport, recipient):
        deliveries.append((report, transport, recipient))

    monkeypatch.setattr(orchestrator, "fetch_market_data", fake_fetch)
    monkeypatch.setattr(orchestrator, "send_report", fake_send)
    return deliveries


def test_run_once_fetches_formats_and_sends(sent):
    report = orchestrator.run_once(SETTINGS, now=NOW)
    assert report.subject == "BTC 每日重點 – 2024年6月1日"
    assert sent == [(report, SETTINGS.transport, "to@example.com")]


def test_two_runs_deliver_twice(sent):
    orchestrator.run_once(SETTINGS, now=NOW)
    orchestrator.run_once(SETTINGS, now=NOW)
    assert len(sent) == 2


def test_run_once_propagates_fetch_errors(monkeypatch, sent):
    async def failing_fetch():
        raise MarketDataConnectionError("coingecko down")

    monkeypatch.setattr(orchestrator, "fetch_market_data", failing_fetch)
    with pytest.raises(MarketDataConnectionError):
        orchestrator.run_once(SETTINGS, now=NOW)
    assert sent == []


def test_run_scheduled_logs_and_swallows(monkeypatch, sent, caplog):
    async def failing_fetch():
        raise MarketDataConnectionError("coingecko down")

    monkeypatch.setattr(orchestrator, "fetch_market_data", failing_fetch)
    orchestrator.run_scheduled(SETTINGS)
    assert "Daily mail job failed" in caplog.text
    assert sent == []
