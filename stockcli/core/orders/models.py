from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OrderAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderKind(str, Enum):
    MARKET = "MKT"
    LIMIT = "LMT"
    STOP = "STP"
    TRAIL = "TRAIL"
    TRAIL_LIMIT = "TRAIL LIMIT"
    TRAIL_MIT = "TRAIL MIT"


@dataclass(frozen=True)
class ContractSpec:
    symbol: str
    sec_type: str = "STK"
    exchange: str = "SMART"
    currency: str = "USD"


@dataclass(frozen=True)
class OrderTicket:
    order_id: int
    action: OrderAction
    qty: int
    kind: OrderKind
    limit_price: float = 0.0
    aux_price: float = 0.0
    trail_stop_price: float = 0.0
    parent_id: int = 0
    transmit: bool = True
    tif: str = "DAY"
    outside_rth: bool = False
