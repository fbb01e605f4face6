from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PriceSnapshot:
    price: Optional[float]  # USD
    change_24h: Optional[float]  # percent, signed


@dataclass(frozen=True)
class FeeEstimate:
    fastest_fee: Optional[int]  # sats/vB
    half_hour_fee: Optional[int]
    hour_fee: Optional[int]


@dataclass(frozen=True)
class Report:
    subject: str
    html: str
    text: str
