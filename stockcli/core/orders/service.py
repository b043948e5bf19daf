from __future__ import annotations

from dataclasses import replace
from typing import Optional

from loguru import logger

from stockcli.core.accounts.session import AccountSession
from stockcli.core.engine.ports import EnginePort
from stockcli.core.engine.requests import (
    CancelOrder,
    PlaceOrder,
    RequestGlobalCancel,
    RequestRealTimeBars,
)
from stockcli.core.modes import ModeFlags
from stockcli.core.orders.models import (
    ContractSpec,
    OrderAction,
    OrderKind,
    OrderTicket,
)


def stock_contract(symbol: str) -> ContractSpec:
    return ContractSpec(symbol=symbol)


class OrderService:
    """Builds order tickets for one account and hands them to its engine."""

    def __init__(self, session: AccountSession, engine: EnginePort, modes: ModeFlags) -> None:
        self._session = session
        self._engine = engine
        self._modes = modes

    @property
    def label(self) -> str:
        return self._session.label

    def new_ticket(
        self,
        action: OrderAction,
        qty: int,
        kind: OrderKind,
        *,
        order_id: Optional[int] = None,
        **fields: object,
    ) -> OrderTicket:
        ticket = OrderTicket(
            order_id=self._session.next_request_id() if order_id is None else order_id,
            action=action,
            qty=int(qty),
            kind=kind,
            tif=self._modes.tif,
            outside_rth=self._modes.outside_rth,
        )
        if fields:
            ticket = replace(ticket, **fields)
        return ticket

    def buy(self, symbol: str, qty: int, *, market: bool, price: float = 0.0) -> OrderTicket:
        return self._plain(OrderAction.BUY, symbol, qty, market=market, price=price)

    def sell(self, symbol: str, qty: int, *, market: bool, price: float = 0.0) -> OrderTicket:
        return self._plain(OrderAction.SELL, symbol, qty, market=market, price=price)

    def stop_market(self, symbol: str, qty: int, stop_price: float) -> OrderTicket:
        ticket = self.new_ticket(OrderAction.SELL, qty, OrderKind.STOP, aux_price=stop_price)
        self._place(symbol, ticket)
        logger.info(
            "{}: Sending STP SELL for {}, quantity {}, - {} - {}",
            self.label,
            symbol,
            qty,
            ticket.kind.value,
            ticket.aux_price,
        )
        return ticket

    def buy_trail(self, symbol: str, qty: int, trail_amount: float) -> OrderTicket:
        return self._trail(OrderAction.BUY, OrderKind.TRAIL, symbol, qty, trail_amount)

    def sell_trail(self, symbol: str, qty: int, trail_amount: float) -> OrderTicket:
        return self._trail(OrderAction.SELL, OrderKind.TRAIL, symbol, qty, trail_amount)

    def buy_trail_if_touched(self, symbol: str, qty: int, trail_amount: float) -> OrderTicket:
        return self._trail(OrderAction.BUY, OrderKind.TRAIL_MIT, symbol, qty, trail_amount)

    def buy_trail_limit(
        self,
        symbol: str,
        qty: int,
        trail_amount: float,
        stop_price: float,
        limit_offset: float,
    ) -> OrderTicket:
        return self._trail_limit(
            OrderAction.BUY, symbol, qty, trail_amount, stop_price, stop_price + limit_offset
        )

    def sell_trail_limit(
        self,
        symbol: str,
        qty: int,
        trail_amount: float,
        stop_price: float,
        limit_offset: float,
    ) -> OrderTicket:
        return self._trail_limit(
            OrderAction.SELL, symbol, qty, trail_amount, stop_price, stop_price - limit_offset
        )

    def bracket(
        self,
        symbol: str,
        qty: int,
        buy_price: float,
        sell_price: float,
        stop_price: float,
    ) -> tuple[OrderTicket, OrderTicket, OrderTicket]:
        """Parent BUY limit with a stop-loss and a take-profit child.

        Only the last child transmits; the gateway releases the whole group
        once it arrives.
        """
        parent = self.new_ticket(
            OrderAction.BUY, qty, OrderKind.LIMIT, limit_price=buy_price, transmit=False
        )
        self._place(symbol, parent)
        logger.info(
            "{}: BRK - Sending BUY for {}, quantity {}, - {} - {}",
            self.label,
            symbol,
            qty,
            parent.kind.value,
            parent.limit_price,
        )
        stop = self.new_ticket(
            OrderAction.SELL,
            qty,
            OrderKind.STOP,
            aux_price=stop_price,
            parent_id=parent.order_id,
            transmit=False,
        )
        self._place(symbol, stop)
        logger.info(
            "{}: BRK - Sending STP for {}, quantity {}, - {} - {}",
            self.label,
            symbol,
            qty,
            stop.kind.value,
            stop.aux_price,
        )
        take_profit = self.new_ticket(
            OrderAction.SELL,
            qty,
            OrderKind.LIMIT,
            limit_price=sell_price,
            parent_id=parent.order_id,
        )
        self._place(symbol, take_profit)
        logger.info(
            "{}: BRK - Sending SELL for {}, quantity {}, - {} - {}",
            self.label,
            symbol,
            qty,
            take_profit.kind.value,
            take_profit.limit_price,
        )
        return parent, stop, take_profit

    def request_realtime_bars(self, symbol: str) -> int:
        req_id = self._session.next_request_id()
        self._session.register_bar_subscription(req_id, symbol)
        self._engine.send(RequestRealTimeBars(req_id=req_id, contract=stock_contract(symbol)))
        logger.info("{}: Sending RealTime Bars For {}", self.label, symbol)
        return req_id

    def cancel(self, order_id: int) -> None:
        self._engine.send(CancelOrder(order_id=order_id))
        logger.info("{}: Cancel order {}", self.label, order_id)

    def cancel_all(self) -> None:
        self._engine.send(RequestGlobalCancel())
        logger.info("{}: Global cancel", self.label)

    def _plain(
        self,
        action: OrderAction,
        symbol: str,
        qty: int,
        *,
        market: bool,
        price: float,
    ) -> OrderTicket:
        if market:
            ticket = self.new_ticket(action, qty, OrderKind.MARKET)
        else:
            ticket = self.new_ticket(action, qty, OrderKind.LIMIT, limit_price=price)
        self._place(symbol, ticket)
        logger.info(
            "{}: Sending {} for {}, quantity {}, - {} - {}",
            self.label,
            action.value,
            symbol,
            qty,
            ticket.kind.value,
            ticket.limit_price,
        )
        return ticket

    def _trail(
        self,
        action: OrderAction,
        kind: OrderKind,
        symbol: str,
        qty: int,
        trail_amount: float,
    ) -> OrderTicket:
        ticket = self.new_ticket(action, qty, kind, aux_price=trail_amount)
        self._place(symbol, ticket)
        logger.info(
            "{}: Sending {} for {}, quantity {}, {} - {:.2f}",
            self.label,
            action.value,
            symbol,
            qty,
            kind.value,
            ticket.aux_price,
        )
        return ticket

    def _trail_limit(
        self,
        action: OrderAction,
        symbol: str,
        qty: int,
        trail_amount: float,
        stop_price: float,
        limit_price: float,
    ) -> OrderTicket:
        ticket = self.new_ticket(
            action,
            qty,
            OrderKind.TRAIL_LIMIT,
            aux_price=trail_amount,
            trail_stop_price=stop_price,
            limit_price=limit_price,
        )
        self._place(symbol, ticket)
        logger.info(
            "{}: Sending {} for {}, quantity {}, {} - trail:{:.2f} stop:{:.2f}",
            self.label,
            action.value,
            symbol,
            qty,
            ticket.kind.value,
            ticket.aux_price,
            ticket.trail_stop_price,
        )
        return ticket

    def _place(self, symbol: str, ticket: OrderTicket) -> None:
        self._engine.send(PlaceOrder(contract=stock_contract(symbol), order=ticket))
