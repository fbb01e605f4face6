from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Optional, Tuple

import httpx

from .config import COINGECKO_PRICE_URL, MEMPOOL_FEES_URL
from .models import FeeEstimate, PriceSnapshot

logger = logging.getLogger(__name__)


class MarketDataError(Exception):
    """Raised when fetching market data fails."""


class MarketDataConnectionError(MarketDataError):
    """Raised when an upstream API is unreachable."""


class MarketDataApiError(MarketDataError):
    """Raised when an upstream API returns an error response."""


class MarketDataParseError(MarketDataError):
    """Raised when an upstream API returns a body that is not JSON."""


async def fetch_market_data(
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[PriceSnapshot, FeeEstimate]:
    """Fetch spot price and fee recommendations concurrently.

    The first failure propagates; there is no timeout and no retry.
    """
    if client is not None:
        return await _fetch_both(client)
    async with httpx.AsyncClient(timeout=None) as owned:
        return await _fetch_both(owned)


async def _fetch_both(client: httpx.AsyncClient) -> Tuple[PriceSnapshot, FeeEstimate]:
    price_raw, fee_raw = await asyncio.gather(
        _get_json(client, COINGECKO_PRICE_URL),
        _get_json(client, MEMPOOL_FEES_URL),
    )
    snapshot = parse_price_snapshot(price_raw)
    fee = parse_fee_estimate(fee_raw)
    logger.info(
        "Fetched market data: price=%s change_24h=%s fees=%s/%s/%s",
        snapshot.price,
        snapshot.change_24h,
        fee.fastest_fee,
        fee.half_hour_fee,
        fee.hour_fee,
    )
    return snapshot, fee


async def _get_json(client: httpx.AsyncClient, url: str) -> Any:
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.RequestError as exc:
        logger.warning("Market data request error %s: %s", url, exc)
        raise MarketDataConnectionError(f"Market data request failed: {exc}") from exc
    except httpx.HTTPStatusError as exc:
        raise MarketDataApiError(f"Market data request returned error: {exc}") from exc
    try:
        return response.json()
    except ValueError as exc:
        raise MarketDataParseError(f"Market data response is not JSON ({url}): {exc}") from exc


def parse_price_snapshot(raw: Any) -> PriceSnapshot:
    bitcoin = raw.get("bitcoin") if isinstance(raw, dict) else None
    if not isinstance(bitcoin, dict):
        bitcoin = {}
    return PriceSnapshot(
        price=_as_float(bitcoin.get("usd")),
        change_24h=_as_float(bitcoin.get("usd_24h_change")),
    )


def parse_fee_estimate(raw: Any) -> FeeEstimate:
    data = raw if isinstance(raw, dict) else {}
    return FeeEstimate(
        fastest_fee=_as_int(data.get("fastestFee")),
        half_hour_fee=_as_int(data.get("halfHourFee")),
        hour_fee=_as_int(data.get("hourFee")),
    )


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)
