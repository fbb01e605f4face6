from __future__ import annotations

import asyncio

import httpx
import pytest

from btc_daily_mailer.market_client import (
    MarketDataApiError,
    MarketDataConnectionError,
    MarketDataParseError,
    fetch_market_data,
    parse_fee_estimate,
    parse_price_snapshot,
)
from btc_daily_mailer.models import FeeEstimate, PriceSnapshot

PRICE_BODY = {"bitcoin": {"usd": 65000.5, "usd_24h_change": 3.2}}
FEE_BODY = {"fastestFee": 10, "halfHourFee": 5, "hourFee": 2, "economyFee": 1, "minimumFee": 1}


def _fetch(handler):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_market_data(client)

    return asyncio.run(_run())


def _ok_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "api.coingecko.com":
        return httpx.Response(200, json=PRICE_BODY)
    return httpx.Response(200, json=FEE_BODY)


def test_fetch_parses_both_endpoints():
    snapshot, fee = _fetch(_ok_handler)
    assert snapshot == PriceSnapshot(price=65000.5, change_24h=3.2)
    assert fee == FeeEstimate(fastest_fee=10, half_hour_fee=5, hour_fee=2)


def test_fetch_requests_expected_urls():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return _ok_handler(request)

    _fetch(handler)
    urls = {(u.host, u.path) for u in seen}
    assert urls == {
        ("api.coingecko.com", "/api/v3/simple/price"),
        ("mempool.space", "/api/v1/fees/recommended"),
    }
    price_url = next(u for u in seen if u.host == "api.coingecko.com")
    assert price_url.params["ids"] == "bitcoin"
    assert price_url.params["include_24hr_change"] == "true"


def test_fetches_run_concurrently():
    started = 0
    both_started = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal started
        started += 1
        if started == 2:
            both_started.set()
        # A sequential implementation would never see the second request start.
        await asyncio.wait_for(both_started.wait(), timeout=2)
        return _ok_handler(request)

    snapshot, _ = _fetch(handler)
    assert snapshot.price == 65000.5


def test_connection_error_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "mempool.space":
            raise httpx.ConnectError("mempool down", request=request)
        return _ok_handler(request)

    with pytest.raises(MarketDataConnectionError) as excinfo:
        _fetch(handler)
    assert "mempool down" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_error_status_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.coingecko.com":
            return httpx.Response(429, text="rate limited")
        return _ok_handler(request)

    with pytest.raises(MarketDataApiError):
        _fetch(handler)


def test_non_json_body_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "mempool.space":
            return httpx.Response(200, text="<html>maintenance</html>")
        return _ok_handler(request)

    with pytest.raises(MarketDataParseError):
        _fetch(handler)


def test_missing_fields_become_none():
    assert parse_price_snapshot({"bitcoin": {"usd": "n/a"}}) == PriceSnapshot(price=None, change_24h=None)
    assert parse_price_snapshot({}) == PriceSnapshot(price=None, change_24h=None)
    assert parse_price_snapshot([]) == PriceSnapshot(price=None, change_24h=None)
    assert parse_fee_estimate({"fastestFee": 12.0, "hourFee": True}) == FeeEstimate(
        fastest_fee=12, half_hour_fee=None, hour_fee=None
    )
