from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from stockcli.adapters.broker._ib_client import IB, ExecutionFilter, Order, Stock
from stockcli.adapters.broker._ib_compat import attach_event, detach_event, silence_ib_client_loggers
from stockcli.adapters.broker.ibkr_events import WRAPPER_TRANSLATORS, translate_callback
from stockcli.core.accounts.models import AccountConfig
from stockcli.core.dispatch.worker import AccountEventStream
from stockcli.core.engine.requests import (
    CancelAccountSummary,
    CancelOrder,
    EngineRequest,
    PlaceOrder,
    RequestAccountSummary,
    RequestAccountUpdates,
    RequestExecutions,
    RequestGlobalCancel,
    RequestIds,
    RequestOpenOrders,
    RequestPositions,
    RequestRealTimeBars,
)
from stockcli.core.events.models import SessionState, SessionStateChanged
from stockcli.core.orders.models import ContractSpec, OrderKind, OrderTicket

_LIMIT_KINDS = {OrderKind.LIMIT, OrderKind.TRAIL_LIMIT}
_AUX_KINDS = {OrderKind.STOP, OrderKind.TRAIL, OrderKind.TRAIL_LIMIT, OrderKind.TRAIL_MIT}


@dataclass(frozen=True)
class IBKREngineOptions:
    timeout: float = 5.0
    readonly: bool = False

    @classmethod
    def from_env(cls) -> "IBKREngineOptions":
        return cls(
            timeout=float(os.getenv("STOCKCLI_CONNECT_TIMEOUT", "5")),
            readonly=os.getenv("STOCKCLI_READONLY", "0") == "1",
        )


class IBKREngine:
    """One IB API session for one account, seen by the core as an ``EnginePort``.

    Wrapper callbacks are tapped and forwarded to the account's event stream;
    outbound requests go straight to the low-level client with the caller's
    request ids.
    """

    def __init__(
        self,
        account: AccountConfig,
        stream: AccountEventStream,
        ib: Optional[IB] = None,
        *,
        options: Optional[IBKREngineOptions] = None,
    ) -> None:
        self._account = account
        self._stream = stream
        self._ib = ib or IB()
        self._options = options or IBKREngineOptions()
        self._stopping = False

    @property
    def ib(self) -> IB:
        return self._ib

    @property
    def label(self) -> str:
        return self._account.label

    async def connect(self) -> None:
        silence_ib_client_loggers()
        account = self._account
        logger.info(
            "{}: connecting to {}:{} client_id={} paper={}",
            account.label,
            account.host,
            account.port,
            account.client_id,
            account.paper,
        )
        try:
            await self._ib.connectAsync(
                account.host,
                account.port,
                clientId=account.client_id,
                timeout=self._options.timeout,
                readonly=self._options.readonly,
            )
        except Exception as exc:
            logger.error("{}: connection failed: {}: {}", account.label, type(exc).__name__, exc)
            raise
        self._install_event_taps()
        attach_event(self._ib, "disconnectedEvent", self._on_disconnected)
        self._stream.publish_state(SessionStateChanged(state=SessionState.READY))
        self.send(RequestIds())

    def stop(self) -> None:
        if self._stopping:
            return
        self._stopping = True
        detach_event(self._ib, "disconnectedEvent", self._on_disconnected)
        if self._ib.isConnected():
            self._ib.disconnect()
        self._stream.publish_state(SessionStateChanged(state=SessionState.EXIT_NORMAL))

    def status(self) -> dict[str, object]:
        return {
            "label": self._account.label,
            "connected": self._ib.isConnected(),
            "host": self._account.host,
            "port": self._account.port,
            "client_id": self._account.client_id,
            "paper": self._account.paper,
        }

    def next_request_id(self) -> int:
        return int(self._ib.client.getReqId())

    def send(self, request: EngineRequest) -> None:
        client = self._ib.client
        if isinstance(request, PlaceOrder):
            order = build_order(request.order)
            client.placeOrder(request.order.order_id, build_contract(request.contract), order)
        elif isinstance(request, CancelOrder):
            client.cancelOrder(request.order_id)
        elif isinstance(request, RequestGlobalCancel):
            client.reqGlobalCancel()
        elif isinstance(request, RequestIds):
            client.reqIds(1)
        elif isinstance(request, RequestAccountSummary):
            client.reqAccountSummary(request.req_id, request.group, request.tags)
        elif isinstance(request, CancelAccountSummary):
            client.cancelAccountSummary(request.req_id)
        elif isinstance(request, RequestOpenOrders):
            client.reqOpenOrders()
        elif isinstance(request, RequestPositions):
            client.reqPositions()
        elif isinstance(request, RequestAccountUpdates):
            client.reqAccountUpdates(request.subscribe, request.account)
        elif isinstance(request, RequestExecutions):
            client.reqExecutions(request.req_id, ExecutionFilter())
        elif isinstance(request, RequestRealTimeBars):
            client.reqRealTimeBars(
                request.req_id,
                build_contract(request.contract),
                request.bar_size,
                request.what_to_show,
                request.use_rth,
                [],
            )
        else:
            raise TypeError(f"Unsupported engine request: {type(request).__name__}")

    def _install_event_taps(self) -> None:
        wrapper = getattr(self._ib, "wrapper", None)
        if wrapper is None:
            return
        for name in WRAPPER_TRANSLATORS:
            current = getattr(wrapper, name, None)
            if not callable(current):
                continue
            if getattr(current, "_stockcli_tapped", False):
                continue

            def _tapped(*args, _original=current, _name=name, **kwargs) -> None:
                self._forward(_name, args, kwargs)
                _original(*args, **kwargs)

            _tapped._stockcli_tapped = True  # type: ignore[attr-defined]
            setattr(wrapper, name, _tapped)

    def _forward(self, name: str, args: tuple[object, ...], kwargs: dict[str, object]) -> None:
        try:
            event = translate_callback(name, args, kwargs)
        except Exception:
            logger.exception("{}: could not translate {} callback", self._account.label, name)
            return
        if event is not None:
            self._stream.publish_event(event)

    def _on_disconnected(self) -> None:
        detach_event(self._ib, "disconnectedEvent", self._on_disconnected)
        if self._stopping:
            return
        self._stream.publish_state(
            SessionStateChanged(
                state=SessionState.EXIT_ERROR,
                error=f"connection to {self._account.host}:{self._account.port} lost",
            )
        )


def build_contract(spec: ContractSpec) -> Stock:
    return Stock(spec.symbol, spec.exchange, spec.currency)


def build_order(ticket: OrderTicket) -> Order:
    order = Order(
        orderId=ticket.order_id,
        action=ticket.action.value,
        totalQuantity=ticket.qty,
        orderType=ticket.kind.value,
        tif=ticket.tif,
        outsideRth=ticket.outside_rth,
        transmit=ticket.transmit,
    )
    if ticket.kind in _LIMIT_KINDS:
        order.lmtPrice = ticket.limit_price
    if ticket.kind in _AUX_KINDS:
        order.auxPrice = ticket.aux_price
    if ticket.kind == OrderKind.TRAIL_LIMIT:
        order.trailStopPrice = ticket.trail_stop_price
    if ticket.parent_id:
        order.parentId = ticket.parent_id
    return order
