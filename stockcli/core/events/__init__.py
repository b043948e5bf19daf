from stockcli.core.events.models import (
    AccountDownloadEnd,
    AccountSummaryEnd,
    AccountSummaryEvent,
    AccountUpdateTime,
    AccountValueEvent,
    BrokerEvent,
    CommissionReportEvent,
    ErrorEvent,
    ExecutionDataEnd,
    ExecutionFillEvent,
    ManagedAccounts,
    NextValidId,
    OpenOrderEnd,
    OpenOrderEvent,
    OrderStatusEvent,
    PortfolioValueEvent,
    PositionEnd,
    PositionEvent,
    RealtimeBarEvent,
    SessionState,
    SessionStateChanged,
    UnknownEvent,
)

__all__ = [
    "AccountDownloadEnd",
    "AccountSummaryEnd",
    "AccountSummaryEvent",
    "AccountUpdateTime",
    "AccountValueEvent",
    "BrokerEvent",
    "CommissionReportEvent",
    "ErrorEvent",
    "ExecutionDataEnd",
    "ExecutionFillEvent",
    "ManagedAccounts",
    "NextValidId",
    "OpenOrderEnd",
    "OpenOrderEvent",
    "OrderStatusEvent",
    "PortfolioValueEvent",
    "PositionEnd",
    "PositionEvent",
    "RealtimeBarEvent",
    "SessionState",
    "SessionStateChanged",
    "UnknownEvent",
]
