"""Translation of IB wrapper callbacks into core event variants.

Each translator receives the callback's positional arguments exactly as the
engine's decoder passes them and returns one event, or ``None`` when the
callback carries nothing worth forwarding.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from stockcli.adapters.broker._ib_compat import maybe_float, maybe_int, parse_gateway_error
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

Translator = Callable[..., Optional[object]]


def _symbol(contract: object) -> str:
    return str(getattr(contract, "symbol", "") or "")


def _error(*args: object, **kwargs: object) -> ErrorEvent:
    req_id, code, message = parse_gateway_error(args, kwargs)
    return ErrorEvent(req_id=req_id, code=code, message=message)


def _managed_accounts(accounts_list: str) -> ManagedAccounts:
    accounts = tuple(item.strip() for item in str(accounts_list).split(",") if item.strip())
    return ManagedAccounts(accounts=accounts)


def _position(account: str, contract: object, pos_size: object, avg_cost: object) -> PositionEvent:
    return PositionEvent(
        account=str(account),
        symbol=_symbol(contract),
        position=maybe_float(pos_size),
        average_cost=maybe_float(avg_cost),
    )


def _open_order(order_id: int, contract: object, order: object, order_state: object) -> OpenOrderEvent:
    return OpenOrderEvent(
        order_id=maybe_int(getattr(order, "orderId", order_id)) or 0,
        parent_id=maybe_int(getattr(order, "parentId", 0)) or 0,
        status=str(getattr(order_state, "status", "") or ""),
        symbol=_symbol(contract),
        action=str(getattr(order, "action", "") or ""),
        quantity=maybe_float(getattr(order, "totalQuantity", 0)),
        tif=str(getattr(order, "tif", "") or ""),
        order_type=str(getattr(order, "orderType", "") or ""),
        limit_price=maybe_float(getattr(order, "lmtPrice", 0.0)),
        aux_price=maybe_float(getattr(order, "auxPrice", 0.0)),
        commission=maybe_float(getattr(order_state, "commission", 0.0)),
        min_commission=maybe_float(getattr(order_state, "minCommission", 0.0)),
        max_commission=maybe_float(getattr(order_state, "maxCommission", 0.0)),
    )


def _order_status(
    order_id: int,
    status: str,
    filled: object,
    remaining: object,
    avg_fill_price: object,
    _perm_id: object = 0,
    parent_id: object = 0,
    _last_fill_price: object = 0.0,
    _client_id: object = 0,
    why_held: object = "",
    *_rest: object,
) -> OrderStatusEvent:
    return OrderStatusEvent(
        order_id=maybe_int(order_id) or 0,
        parent_id=maybe_int(parent_id) or 0,
        status=str(status),
        filled=maybe_float(filled),
        remaining=maybe_float(remaining),
        average_fill_price=maybe_float(avg_fill_price),
        why_held=str(why_held or ""),
    )


def _account_value(tag: str, value: str, currency: str, account: str) -> AccountValueEvent:
    return AccountValueEvent(account=str(account), key=str(tag), value=str(value), currency=str(currency))


def _portfolio(
    contract: object,
    pos_size: object,
    _market_price: object,
    _market_value: object,
    average_cost: object,
    unrealized_pnl: object,
    realized_pnl: object,
    account: str,
) -> PortfolioValueEvent:
    return PortfolioValueEvent(
        account=str(account),
        symbol=_symbol(contract),
        position=maybe_float(pos_size),
        average_cost=maybe_float(average_cost),
        unrealized_pnl=maybe_float(unrealized_pnl),
        realized_pnl=maybe_float(realized_pnl),
    )


def _account_summary(req_id: int, account: str, tag: str, value: str, currency: str = "") -> AccountSummaryEvent:
    return AccountSummaryEvent(
        req_id=maybe_int(req_id) or 0,
        account=str(account),
        key=str(tag),
        value=str(value),
        currency=str(currency or ""),
    )


def _exec_details(req_id: int, contract: object, execution: object) -> ExecutionFillEvent:
    return ExecutionFillEvent(
        req_id=maybe_int(req_id) or 0,
        exec_id=str(getattr(execution, "execId", "")),
        order_id=maybe_int(getattr(execution, "orderId", 0)) or 0,
        symbol=_symbol(contract),
        time=_execution_time(getattr(execution, "time", None)),
        side=str(getattr(execution, "side", "") or ""),
        shares=maybe_float(getattr(execution, "shares", 0)),
        price=maybe_float(getattr(execution, "price", 0.0)),
        cum_qty=maybe_float(getattr(execution, "cumQty", 0)),
        avg_price=maybe_float(getattr(execution, "avgPrice", 0.0)),
        exchange=str(getattr(execution, "exchange", "") or ""),
    )


def _commission_report(report: object) -> CommissionReportEvent:
    realized = getattr(report, "realizedPNL", None)
    return CommissionReportEvent(
        exec_id=str(getattr(report, "execId", "")),
        commission=maybe_float(getattr(report, "commission", 0.0)),
        currency=str(getattr(report, "currency", "") or ""),
        realized_pnl=maybe_float(realized) if realized is not None else None,
    )


def _realtime_bar(
    req_id: int,
    time: object,
    open_: object,
    high: object,
    low: object,
    close: object,
    volume: object,
    wap: object,
    count: object,
) -> RealtimeBarEvent:
    return RealtimeBarEvent(
        req_id=maybe_int(req_id) or 0,
        time=maybe_int(time) or 0,
        open=maybe_float(open_),
        high=maybe_float(high),
        low=maybe_float(low),
        close=maybe_float(close),
        volume=maybe_float(volume),
        wap=maybe_float(wap),
        count=maybe_int(count) or 0,
    )


def _execution_time(value: object) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    # Gateway strings carry their own zone suffix; only the backend parser resolves it.
    from stockcli.adapters.broker._ib_client import parse_ib_datetime

    return parse_ib_datetime(value)


def _unknown(kind: str) -> Translator:
    def _translate(*args: object, **_kwargs: object) -> UnknownEvent:
        return UnknownEvent(kind=kind, value=args)

    return _translate


WRAPPER_TRANSLATORS: dict[str, Translator] = {
    "error": _error,
    "managedAccounts": _managed_accounts,
    "position": _position,
    "openOrder": _open_order,
    "orderStatus": _order_status,
    "updateAccountValue": _account_value,
    "updatePortfolio": _portfolio,
    "accountSummary": _account_summary,
    "execDetails": _exec_details,
    "commissionReport": _commission_report,
    "accountSummaryEnd": lambda req_id: AccountSummaryEnd(req_id=maybe_int(req_id) or 0),
    "accountDownloadEnd": lambda account: AccountDownloadEnd(account=str(account)),
    "execDetailsEnd": lambda req_id: ExecutionDataEnd(req_id=maybe_int(req_id) or 0),
    "positionEnd": lambda: PositionEnd(),
    "openOrderEnd": lambda: OpenOrderEnd(),
    "updateAccountTime": lambda timestamp: AccountUpdateTime(timestamp=str(timestamp)),
    "nextValidId": lambda order_id: NextValidId(order_id=maybe_int(order_id) or 0),
    "realtimeBar": _realtime_bar,
    "completedOrder": _unknown("completedOrder"),
    "orderBound": _unknown("orderBound"),
    "positionMulti": _unknown("positionMulti"),
    "accountUpdateMulti": _unknown("accountUpdateMulti"),
}


def translate_callback(name: str, args: tuple[object, ...], kwargs: dict[str, object]) -> Optional[object]:
    translator = WRAPPER_TRANSLATORS.get(name)
    if translator is None:
        return UnknownEvent(kind=name, value=args)
    return translator(*args, **kwargs)
