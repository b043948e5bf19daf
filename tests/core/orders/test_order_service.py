from __future__ import annotations

import pytest

from stockcli.core.accounts.session import AccountSession
from stockcli.core.engine.requests import CancelOrder, PlaceOrder, RequestGlobalCancel, RequestRealTimeBars
from stockcli.core.modes import ModeFlags
from stockcli.core.orders import OrderAction, OrderKind
from stockcli.core.orders.service import OrderService


class _FakeEngine:
    def __init__(self) -> None:
        self.sent: list[object] = []

    def send(self, request: object) -> None:
        self.sent.append(request)

    def next_request_id(self) -> int:
        raise AssertionError("order ids come from the account session")


def _service(modes: ModeFlags | None = None, *, next_id: int = 100):
    session = AccountSession("Acct1", next_request_id=next_id)
    engine = _FakeEngine()
    return OrderService(session, engine, modes or ModeFlags()), session, engine


def _placed(engine: _FakeEngine) -> list[PlaceOrder]:
    return [request for request in engine.sent if isinstance(request, PlaceOrder)]


def test_market_buy_uses_session_id_and_mode_defaults() -> None:
    service, session, engine = _service()

    ticket = service.buy("AAPL", 100, market=True)

    assert ticket.order_id == 100
    assert ticket.action == OrderAction.BUY
    assert ticket.kind == OrderKind.MARKET
    assert ticket.tif == "GTC"
    assert ticket.outside_rth is True
    assert ticket.transmit is True
    assert session.peek_request_id == 101
    [request] = _placed(engine)
    assert request.contract.symbol == "AAPL"
    assert request.contract.exchange == "SMART"
    assert request.contract.currency == "USD"
    assert request.order is ticket


def test_mode_toggles_apply_to_new_tickets() -> None:
    modes = ModeFlags(gtc=False, outside_rth=False)
    service, _session, _engine = _service(modes)

    ticket = service.sell("MSFT", 10, market=False, price=410.5)

    assert ticket.kind == OrderKind.LIMIT
    assert ticket.limit_price == 410.5
    assert ticket.tif == "DAY"
    assert ticket.outside_rth is False


def test_stop_market_is_a_sell_stop_at_the_given_price() -> None:
    service, _session, _engine = _service()

    ticket = service.stop_market("AAPL", 50, 185.0)

    assert ticket.action == OrderAction.SELL
    assert ticket.kind == OrderKind.STOP
    assert ticket.aux_price == 185.0


def test_trailing_orders_carry_trail_amount_as_aux_price() -> None:
    service, _session, _engine = _service()

    buy = service.buy_trail("AMD", 20, 0.5)
    sell = service.sell_trail("AMD", 20, 0.75)
    touched = service.buy_trail_if_touched("AMD", 20, 0.25)

    assert (buy.action, buy.kind, buy.aux_price) == (OrderAction.BUY, OrderKind.TRAIL, 0.5)
    assert (sell.action, sell.kind, sell.aux_price) == (OrderAction.SELL, OrderKind.TRAIL, 0.75)
    assert (touched.action, touched.kind, touched.aux_price) == (OrderAction.BUY, OrderKind.TRAIL_MIT, 0.25)
    assert [buy.order_id, sell.order_id, touched.order_id] == [100, 101, 102]


def test_trail_limit_offsets_the_limit_from_the_stop() -> None:
    service, _session, _engine = _service()

    buy = service.buy_trail_limit("AMD", 20, trail_amount=0.4, stop_price=150.0, limit_offset=0.1)
    sell = service.sell_trail_limit("AMD", 20, trail_amount=0.4, stop_price=150.0, limit_offset=0.1)

    assert buy.kind == OrderKind.TRAIL_LIMIT
    assert buy.trail_stop_price == 150.0
    assert buy.aux_price == 0.4
    assert buy.limit_price == pytest.approx(150.1)
    assert sell.limit_price == pytest.approx(149.9)


def test_bracket_links_children_and_transmits_only_the_last_leg() -> None:
    service, _session, engine = _service(next_id=500)

    parent, stop, take_profit = service.bracket("AAPL", 100, 190.0, 190.2, 189.95)

    assert [parent.order_id, stop.order_id, take_profit.order_id] == [500, 501, 502]
    assert (parent.action, parent.kind, parent.limit_price) == (OrderAction.BUY, OrderKind.LIMIT, 190.0)
    assert (stop.action, stop.kind, stop.aux_price) == (OrderAction.SELL, OrderKind.STOP, 189.95)
    assert (take_profit.action, take_profit.kind, take_profit.limit_price) == (
        OrderAction.SELL,
        OrderKind.LIMIT,
        190.2,
    )
    assert parent.parent_id == 0
    assert stop.parent_id == take_profit.parent_id == 500
    assert [parent.transmit, stop.transmit, take_profit.transmit] == [False, False, True]
    assert [request.order for request in _placed(engine)] == [parent, stop, take_profit]


def test_realtime_bars_register_the_symbol_under_the_request_id() -> None:
    service, session, engine = _service(next_id=42)

    req_id = service.request_realtime_bars("QQQ")

    assert req_id == 42
    assert session.bar_symbol(42) == "QQQ"
    [request] = engine.sent
    assert isinstance(request, RequestRealTimeBars)
    assert request.req_id == 42
    assert request.contract.symbol == "QQQ"
    assert (request.bar_size, request.what_to_show, request.use_rth) == (5, "TRADES", True)


def test_cancel_and_global_cancel() -> None:
    service, _session, engine = _service()

    service.cancel(77)
    service.cancel_all()

    assert engine.sent == [CancelOrder(order_id=77), RequestGlobalCancel()]
