from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from stockcli.core.orders.models import ContractSpec, OrderTicket

ACCOUNT_SUMMARY_TAGS = (
    "BuyingPower,NetLiquidation,GrossPositionValue,TotalCashValue,SettledCash,"
    "InitMarginReq,MaintMarginReq,AvailableFunds,TotalCashValue,UnrealizedPnL"
)


@dataclass(frozen=True)
class PlaceOrder:
    contract: ContractSpec
    order: OrderTicket


@dataclass(frozen=True)
class CancelOrder:
    order_id: int


@dataclass(frozen=True)
class RequestGlobalCancel:
    pass


@dataclass(frozen=True)
class RequestIds:
    pass


@dataclass(frozen=True)
class RequestAccountSummary:
    req_id: int
    group: str = "All"
    tags: str = ACCOUNT_SUMMARY_TAGS


@dataclass(frozen=True)
class CancelAccountSummary:
    req_id: int


@dataclass(frozen=True)
class RequestOpenOrders:
    pass


@dataclass(frozen=True)
class RequestPositions:
    pass


@dataclass(frozen=True)
class RequestAccountUpdates:
    subscribe: bool
    account: str = ""


@dataclass(frozen=True)
class RequestExecutions:
    req_id: int


@dataclass(frozen=True)
class RequestRealTimeBars:
    req_id: int
    contract: ContractSpec
    bar_size: int = 5
    what_to_show: str = "TRADES"
    use_rth: bool = True


EngineRequest = Union[
    PlaceOrder,
    CancelOrder,
    RequestGlobalCancel,
    RequestIds,
    RequestAccountSummary,
    CancelAccountSummary,
    RequestOpenOrders,
    RequestPositions,
    RequestAccountUpdates,
    RequestExecutions,
    RequestRealTimeBars,
]
