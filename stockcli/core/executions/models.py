from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ExecutionFill:
    exec_id: str
    order_id: int
    symbol: str
    time: datetime
    side: str
    shares: float
    price: float
    cum_qty: float
    avg_price: float
    exchange: str
    parent_id: int = 0


@dataclass(frozen=True)
class CommissionReport:
    exec_id: str
    commission: float
    currency: str
    realized_pnl: Optional[float] = None


@dataclass
class ExecutionRecord:
    exec_id: str
    fill: Optional[ExecutionFill] = None
    commission: Optional[CommissionReport] = None

    @property
    def complete(self) -> bool:
        return self.fill is not None and self.commission is not None
