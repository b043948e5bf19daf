from __future__ import annotations

from datetime import datetime

from stockcli.core.accounts.session import AccountSession
from stockcli.core.dispatch.classifier import DispatchResult, EventClassifier, adjust_commission
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
    PositionEnd,
    PositionEvent,
    RealtimeBarEvent,
    UnknownEvent,
)
from stockcli.core.modes import ModeFlags


class _FakeEngine:
    def __init__(self) -> None:
        self.sent: list[object] = []
        self._next_id = 9000

    def send(self, request: object) -> None:
        self.sent.append(request)

    def next_request_id(self) -> int:
        self._next_id += 1
        return self._next_id


def _classifier(modes: ModeFlags | None = None):
    session = AccountSession("Acct1", next_request_id=100)
    engine = _FakeEngine()
    lines: list[str] = []
    classifier = EventClassifier(session, engine, modes or ModeFlags(), emit=lines.append)
    return classifier, session, engine, lines


def _fill(exec_id: str, *, second: int, cum_qty: float = 100.0) -> ExecutionFillEvent:
    return ExecutionFillEvent(
        req_id=7,
        exec_id=exec_id,
        order_id=12,
        symbol="AAPL",
        time=datetime(2024, 1, 2, 10, 0, second),
        side="BOT",
        shares=100.0,
        price=190.5,
        cum_qty=cum_qty,
        avg_price=190.5,
        exchange="ISLAND",
    )


def test_error_event_is_logged_with_request_id_and_code() -> None:
    classifier, _session, _engine, lines = _classifier()

    result = classifier.handle(ErrorEvent(req_id=-1, code=2104, message="Market data farm connection is OK"))

    assert result == DispatchResult.HANDLED
    assert lines == ["Acct1 ID: -1 Code:2104 Message:'Market data farm connection is OK'"]


def test_managed_accounts_prints_one_line_per_account() -> None:
    classifier, _session, _engine, lines = _classifier()

    assert classifier.handle(ManagedAccounts(accounts=("DU111", "DU222"))) == DispatchResult.HANDLED
    assert lines == ["Acct1: Account DU111", "Acct1: Account DU222"]


def test_position_and_order_status_lines_carry_label_and_symbol() -> None:
    classifier, _session, _engine, lines = _classifier()

    classifier.handle(PositionEvent(account="DU111", symbol="MSFT", position=25.0, average_cost=410.1234))
    classifier.handle(
        OrderStatusEvent(
            order_id=12,
            parent_id=0,
            status="Filled",
            filled=100.0,
            remaining=0.0,
            average_fill_price=190.5,
        )
    )

    assert lines[0].startswith("Acct1: C:  MSFT P:")
    assert "AvgC:    410.12" in lines[0]
    assert lines[1].startswith("Acct1 OrderID: 12,0 Status: Filled")
    assert "AverageFillPrice: 190.50" in lines[1]


def test_open_order_replaces_unset_commission_sentinel_with_zero() -> None:
    classifier, _session, _engine, lines = _classifier()

    classifier.handle(
        OpenOrderEvent(
            order_id=12,
            parent_id=0,
            status="Submitted",
            symbol="AAPL",
            action="BUY",
            quantity=100.0,
            tif="GTC",
            order_type="LMT",
            limit_price=190.0,
            aux_price=0.0,
            commission=1.7976931348623157e308,
            min_commission=1.0,
            max_commission=1.7976931348623157e308,
        )
    )

    assert "c:0.00 1.00/0.00" in lines[0]
    assert adjust_commission(1.35) == 1.35
    assert adjust_commission(2_000_000.0) == 0.0


def test_account_value_allow_list_and_override() -> None:
    modes = ModeFlags()
    classifier, _session, _engine, lines = _classifier(modes)

    allowed = AccountValueEvent(account="DU111", key="NetLiquidation", value="100000.00", currency="USD")
    other = AccountValueEvent(account="DU111", key="Cushion", value="0.98", currency="USD")
    foreign = AccountValueEvent(account="DU111", key="NetLiquidation", value="90000.00", currency="EUR")

    assert classifier.handle(allowed) == DispatchResult.HANDLED
    assert classifier.handle(other) == DispatchResult.IGNORED
    assert classifier.handle(foreign) == DispatchResult.IGNORED
    assert len(lines) == 1
    assert lines[0].startswith("Acct1: K:NetLiquidation")

    modes.update_override = True
    assert classifier.handle(other) == DispatchResult.HANDLED
    assert classifier.handle(foreign) == DispatchResult.IGNORED
    assert len(lines) == 2


def test_account_summary_value_is_printed() -> None:
    classifier, _session, _engine, lines = _classifier()

    result = classifier.handle(
        AccountSummaryEvent(req_id=9001, account="DU111", key="BuyingPower", value="400000.00", currency="USD")
    )

    assert result == DispatchResult.HANDLED
    assert lines[0].startswith("Acct1: K:BuyingPower")
    assert lines[0].endswith("400000.00")


def test_summary_end_cancels_subscription_only_when_auto_cancel_is_on() -> None:
    modes = ModeFlags()
    classifier, _session, engine, _lines = _classifier(modes)

    assert classifier.handle(AccountSummaryEnd(req_id=9001)) == DispatchResult.HANDLED
    assert engine.sent == [CancelAccountSummary(req_id=9001)]

    modes.auto_cancel = False
    assert classifier.handle(AccountSummaryEnd(req_id=9002)) == DispatchResult.IGNORED
    assert engine.sent == [CancelAccountSummary(req_id=9001)]


def test_account_download_end_unsubscribes_updates_when_auto_cancel_is_on() -> None:
    modes = ModeFlags()
    classifier, _session, engine, _lines = _classifier(modes)

    assert classifier.handle(AccountDownloadEnd(account="DU111")) == DispatchResult.HANDLED
    assert engine.sent == [RequestAccountUpdates(subscribe=False)]

    modes.auto_cancel = False
    assert classifier.handle(AccountDownloadEnd(account="DU111")) == DispatchResult.IGNORED
    assert len(engine.sent) == 1


def test_terminal_markers_are_ignored_without_output() -> None:
    classifier, _session, engine, lines = _classifier()

    for event in (PositionEnd(), OpenOrderEnd(), AccountUpdateTime(timestamp="10:01")):
        assert classifier.handle(event) == DispatchResult.IGNORED

    assert lines == []
    assert engine.sent == []


def test_next_valid_id_reseeds_the_session_counter() -> None:
    classifier, session, _engine, _lines = _classifier()

    assert classifier.handle(NextValidId(order_id=500)) == DispatchResult.HANDLED
    assert session.next_request_id() == 500
    assert session.next_request_id() == 501


def test_fills_and_commissions_join_and_report_on_execution_end() -> None:
    classifier, session, _engine, lines = _classifier()

    classifier.handle(CommissionReportEvent(exec_id="e2", commission=1.25, currency="USD"))
    classifier.handle(_fill("e2", second=5, cum_qty=200.0))
    classifier.handle(_fill("e1", second=5, cum_qty=100.0))
    assert lines == []

    assert classifier.handle(ExecutionDataEnd(req_id=7)) == DispatchResult.HANDLED

    assert len(session.executions) == 2
    assert len(lines) == 2
    assert lines[0].startswith("Acct1: 10:00:05   12 AAPL    BOT  100  190.50  100")
    assert lines[0].endswith("  0.00 ISLAND")
    assert "  200  190.50   1.25 ISLAND" in lines[1]


def test_realtime_bar_uses_registered_symbol() -> None:
    classifier, session, _engine, lines = _classifier()
    session.register_bar_subscription(101, "TSLA")

    event = RealtimeBarEvent(
        req_id=101,
        time=1_700_000_000,
        open=200.0,
        high=201.5,
        low=199.25,
        close=201.0,
        volume=1200.0,
        wap=200.4,
        count=37,
    )

    assert classifier.handle(event) == DispatchResult.HANDLED
    bar_time = datetime.fromtimestamp(1_700_000_000).strftime("%H:%M:%S")
    assert lines[0].startswith(f"      TSLA: {bar_time} - Open:     200.00 Close:     201.00")
    assert "Count         37" in lines[0]


def test_realtime_bar_for_unknown_request_is_a_benign_miss() -> None:
    classifier, _session, _engine, lines = _classifier()

    event = RealtimeBarEvent(
        req_id=999,
        time=1_700_000_000,
        open=1.0,
        high=1.0,
        low=1.0,
        close=1.0,
        volume=0.0,
        wap=1.0,
        count=0,
    )

    assert classifier.handle(event) == DispatchResult.BENIGN_MISS
    assert lines[0].startswith("          : ")


def test_unknown_event_is_reported_with_its_kind() -> None:
    classifier, _session, _engine, lines = _classifier()

    result = classifier.handle(UnknownEvent(kind="completedOrder", value=(1, 2)))

    assert result == DispatchResult.UNKNOWN
    assert lines == ["Acct1 - RECEIVE completedOrder", "Acct1 X (1, 2)"]


def test_unrecognized_object_is_unknown_not_an_error() -> None:
    classifier, _session, _engine, lines = _classifier()

    assert classifier.handle(object()) == DispatchResult.UNKNOWN
    assert lines[0] == "Acct1 - RECEIVE object"


def test_handler_failure_is_contained() -> None:
    classifier, _session, _engine, _lines = _classifier()

    def _boom(_line: str) -> None:
        raise RuntimeError("sink closed")

    classifier._emit = _boom

    result = classifier.handle(ErrorEvent(req_id=1, code=200, message="No security definition"))

    assert result == DispatchResult.FAILED


def test_fill_of_a_bracket_child_carries_the_reported_parent_id() -> None:
    classifier, session, _engine, _lines = _classifier()

    classifier.handle(
        OrderStatusEvent(
            order_id=12,
            parent_id=11,
            status="Filled",
            filled=100.0,
            remaining=0.0,
            average_fill_price=190.5,
        )
    )
    classifier.handle(_fill("e1", second=1))

    assert session.executions.get("e1").fill.parent_id == 11


def test_fill_without_known_parent_is_top_level() -> None:
    classifier, session, _engine, _lines = _classifier()

    classifier.handle(_fill("e1", second=1))

    assert session.executions.get("e1").fill.parent_id == 0
