from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from stockcli.core.accounts.session import AccountSession
from stockcli.core.engine.ports import EnginePort
from stockcli.core.engine.requests import CancelAccountSummary, RequestAccountUpdates
from stockcli.core.events.models import (
    AccountDownloadEnd,
    AccountSummaryEnd,
    AccountSummaryEvent,
    AccountUpdateTime,
    AccountValueEvent,
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
    UnknownEvent,
)
from stockcli.core.executions.models import CommissionReport, ExecutionFill
from stockcli.core.executions.reconciler import format_execution_report
from stockcli.core.modes import ModeFlags

ACCOUNT_VALUE_KEYS = frozenset(
    {
        "AvailableFunds",
        "BuyingPower",
        "TotalCashValue",
        "GrossPositionValue",
        "NetLiquidation",
        "UnrealizedPnL",
        "RealizedPnL",
        "AccruedCash",
    }
)
_ACCOUNT_VALUE_CURRENCY = "USD"
# The engine reports unset commission doubles as a huge sentinel value.
_COMMISSION_UNSET_THRESHOLD = 1_000_000


class DispatchResult(str, Enum):
    HANDLED = "HANDLED"
    IGNORED = "IGNORED"
    BENIGN_MISS = "BENIGN_MISS"
    UNKNOWN = "UNKNOWN"
    FAILED = "FAILED"


class EventClassifier:
    """Routes one account's inbound events to a log line, a table update or a state change.

    ``handle`` never raises; every outcome is reported as a ``DispatchResult``.
    """

    def __init__(
        self,
        session: AccountSession,
        engine: EnginePort,
        modes: ModeFlags,
        *,
        emit: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._session = session
        self._engine = engine
        self._modes = modes
        self._emit = emit or _log_line

    @property
    def session(self) -> AccountSession:
        return self._session

    def handle(self, event: object) -> DispatchResult:
        try:
            return self._dispatch(event)
        except Exception:
            logger.exception(
                "{} event handler failed for {}",
                self._session.label,
                type(event).__name__,
            )
            return DispatchResult.FAILED

    def _dispatch(self, event: object) -> DispatchResult:
        label = self._session.label
        if isinstance(event, ErrorEvent):
            self._emit(f"{label} ID: {event.req_id} Code:{_fmt_code(event.code)} Message:'{event.message}'")
            return DispatchResult.HANDLED
        if isinstance(event, ManagedAccounts):
            for account in event.accounts:
                self._emit(f"{label}: Account {account}")
            return DispatchResult.HANDLED
        if isinstance(event, PositionEvent):
            self._emit(
                f"{label}: C:{event.symbol:>6} P:{_fmt_qty(event.position):>10} "
                f"AvgC:{event.average_cost:10.2f}"
            )
            return DispatchResult.HANDLED
        if isinstance(event, OpenOrderEvent):
            self._session.record_order_parent(event.order_id, event.parent_id)
            self._emit(_format_open_order(label, event))
            return DispatchResult.HANDLED
        if isinstance(event, OrderStatusEvent):
            self._session.record_order_parent(event.order_id, event.parent_id)
            self._emit(
                f"{label} OrderID: {event.order_id},{event.parent_id} Status: {event.status:<9} "
                f"Filled: {_fmt_qty(event.filled):>5} Remaining: {_fmt_qty(event.remaining):>5} "
                f"AverageFillPrice: {event.average_fill_price:6.2f} - WH:'{event.why_held}'"
            )
            return DispatchResult.HANDLED
        if isinstance(event, AccountValueEvent):
            return self._handle_account_value(event)
        if isinstance(event, PortfolioValueEvent):
            self._emit(
                f"{label}: C:{event.symbol:>6} P:{_fmt_qty(event.position):>10} "
                f"AvgC:{event.average_cost:10.2f} uPNL:{event.unrealized_pnl:8.2f} "
                f"PNL:{event.realized_pnl:8.2f}"
            )
            return DispatchResult.HANDLED
        if isinstance(event, AccountSummaryEvent):
            self._emit(f"{label}: K:{event.key:<26} V:{event.value:>20}")
            return DispatchResult.HANDLED
        if isinstance(event, ExecutionFillEvent):
            self._session.executions.upsert_fill(
                _fill_from_event(event, parent_id=self._session.order_parent(event.order_id))
            )
            return DispatchResult.HANDLED
        if isinstance(event, CommissionReportEvent):
            self._session.executions.upsert_commission(
                CommissionReport(
                    exec_id=event.exec_id,
                    commission=event.commission,
                    currency=event.currency,
                    realized_pnl=event.realized_pnl,
                )
            )
            return DispatchResult.HANDLED
        if isinstance(event, AccountSummaryEnd):
            if not self._modes.auto_cancel:
                return DispatchResult.IGNORED
            self._engine.send(CancelAccountSummary(req_id=event.req_id))
            return DispatchResult.HANDLED
        if isinstance(event, AccountDownloadEnd):
            if not self._modes.auto_cancel:
                return DispatchResult.IGNORED
            self._engine.send(RequestAccountUpdates(subscribe=False))
            return DispatchResult.HANDLED
        if isinstance(event, ExecutionDataEnd):
            for line in format_execution_report(label, self._session.executions):
                self._emit(line)
            return DispatchResult.HANDLED
        if isinstance(event, (PositionEnd, OpenOrderEnd, AccountUpdateTime)):
            return DispatchResult.IGNORED
        if isinstance(event, NextValidId):
            self._session.seed_request_id(event.order_id)
            return DispatchResult.HANDLED
        if isinstance(event, RealtimeBarEvent):
            return self._handle_realtime_bar(event)
        if isinstance(event, UnknownEvent):
            self._emit(f"{label} - RECEIVE {event.kind}")
            self._emit(f"{label} X {event.value!r}")
            return DispatchResult.UNKNOWN
        self._emit(f"{label} - RECEIVE {type(event).__name__}")
        self._emit(f"{label} X {event!r}")
        return DispatchResult.UNKNOWN

    def _handle_account_value(self, event: AccountValueEvent) -> DispatchResult:
        if event.currency != _ACCOUNT_VALUE_CURRENCY:
            return DispatchResult.IGNORED
        if event.key not in ACCOUNT_VALUE_KEYS and not self._modes.update_override:
            return DispatchResult.IGNORED
        self._emit(f"{self._session.label}: K:{event.key:<26} V:{event.value:>20}")
        return DispatchResult.HANDLED

    def _handle_realtime_bar(self, event: RealtimeBarEvent) -> DispatchResult:
        symbol = self._session.bar_symbol(event.req_id)
        result = DispatchResult.HANDLED
        if symbol is None:
            symbol = ""
            result = DispatchResult.BENIGN_MISS
        bar_time = datetime.fromtimestamp(event.time).strftime("%H:%M:%S")
        self._emit(
            f"{symbol:>10}: {bar_time} - Open: {event.open:10.2f} Close: {event.close:10.2f} "
            f"Low {event.low:10.2f} High {event.high:10.2f} Volume {event.volume:10.2f} "
            f"Count {event.count:>10} WAP {event.wap:10.2f}"
        )
        return result


def _log_line(line: str) -> None:
    logger.info(line)


def _fill_from_event(event: ExecutionFillEvent, *, parent_id: int) -> ExecutionFill:
    return ExecutionFill(
        exec_id=event.exec_id,
        order_id=event.order_id,
        symbol=event.symbol,
        time=event.time,
        side=event.side,
        shares=event.shares,
        price=event.price,
        cum_qty=event.cum_qty,
        avg_price=event.avg_price,
        exchange=event.exchange,
        parent_id=parent_id,
    )


def _format_open_order(label: str, event: OpenOrderEvent) -> str:
    commission = adjust_commission(event.commission)
    min_commission = adjust_commission(event.min_commission)
    max_commission = adjust_commission(event.max_commission)
    return (
        f"{label} OrderID: {event.order_id},{event.parent_id} Status: {event.status:<9} "
        f"Symbol: {event.symbol:<5} Action   : {event.action:<4}  "
        f"Quantity        : {_fmt_qty(event.quantity):>4} {event.tif} {event.order_type} "
        f"l:{event.limit_price:6.2f} a:{event.aux_price:6.2f} "
        f"c:{commission:4.2f} {min_commission:4.2f}/{max_commission:4.2f}"
    )


def adjust_commission(value: float) -> float:
    if value > _COMMISSION_UNSET_THRESHOLD:
        return 0.0
    return value


def _fmt_qty(value: float) -> str:
    as_float = float(value)
    if as_float.is_integer():
        return str(int(as_float))
    return f"{as_float:g}"


def _fmt_code(code: Optional[int]) -> str:
    if code is None:
        return "  -"
    return f"{code:3d}"
