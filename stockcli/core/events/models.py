from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class SessionState(str, Enum):
    READY = "READY"
    EXIT_NORMAL = "EXIT_NORMAL"
    EXIT_ERROR = "EXIT_ERROR"


@dataclass(frozen=True)
class SessionStateChanged:
    state: SessionState
    error: Optional[str] = None


@dataclass(frozen=True)
class ErrorEvent:
    req_id: Optional[int]
    code: Optional[int]
    message: Optional[str]


@dataclass(frozen=True)
class ManagedAccounts:
    accounts: tuple[str, ...]


@dataclass(frozen=True)
class PositionEvent:
    account: str
    symbol: str
    position: float
    average_cost: float


@dataclass(frozen=True)
class OpenOrderEvent:
    order_id: int
    parent_id: int
    status: str
    symbol: str
    action: str
    quantity: float
    tif: str
    order_type: str
    limit_price: float
    aux_price: float
    commission: float
    min_commission: float
    max_commission: float


@dataclass(frozen=True)
class OrderStatusEvent:
    order_id: int
    parent_id: int
    status: str
    filled: float
    remaining: float
    average_fill_price: float
    why_held: str = ""


@dataclass(frozen=True)
class AccountValueEvent:
    account: str
    key: str
    value: str
    currency: str


@dataclass(frozen=True)
class PortfolioValueEvent:
    account: str
    symbol: str
    position: float
    average_cost: float
    unrealized_pnl: float
    realized_pnl: float


@dataclass(frozen=True)
class AccountSummaryEvent:
    req_id: int
    account: str
    key: str
    value: str
    currency: str = ""


@dataclass(frozen=True)
class ExecutionFillEvent:
    req_id: int
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


@dataclass(frozen=True)
class CommissionReportEvent:
    exec_id: str
    commission: float
    currency: str
    realized_pnl: Optional[float] = None


@dataclass(frozen=True)
class AccountSummaryEnd:
    req_id: int


@dataclass(frozen=True)
class AccountDownloadEnd:
    account: str


@dataclass(frozen=True)
class ExecutionDataEnd:
    req_id: int


@dataclass(frozen=True)
class PositionEnd:
    pass


@dataclass(frozen=True)
class OpenOrderEnd:
    pass


@dataclass(frozen=True)
class AccountUpdateTime:
    timestamp: str


@dataclass(frozen=True)
class NextValidId:
    order_id: int


@dataclass(frozen=True)
class RealtimeBarEvent:
    req_id: int
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    wap: float
    count: int


@dataclass(frozen=True)
class UnknownEvent:
    """Any engine callback without a dedicated variant."""

    kind: str
    value: object = None


BrokerEvent = Union[
    ErrorEvent,
    ManagedAccounts,
    PositionEvent,
    OpenOrderEvent,
    OrderStatusEvent,
    AccountValueEvent,
    PortfolioValueEvent,
    AccountSummaryEvent,
    ExecutionFillEvent,
    CommissionReportEvent,
    AccountSummaryEnd,
    AccountDownloadEnd,
    ExecutionDataEnd,
    PositionEnd,
    OpenOrderEnd,
    AccountUpdateTime,
    NextValidId,
    RealtimeBarEvent,
    UnknownEvent,
]
