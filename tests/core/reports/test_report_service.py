from __future__ import annotations

from stockcli.core.accounts.session import AccountSession
from stockcli.core.engine.requests import (
    ACCOUNT_SUMMARY_TAGS,
    RequestAccountSummary,
    RequestAccountUpdates,
    RequestExecutions,
    RequestOpenOrders,
    RequestPositions,
)
from stockcli.core.executions.models import CommissionReport
from stockcli.core.reports.service import ReportService


class _FakeEngine:
    def __init__(self) -> None:
        self.sent: list[object] = []
        self._next_id = 7000

    def send(self, request: object) -> None:
        self.sent.append(request)

    def next_request_id(self) -> int:
        self._next_id += 1
        return self._next_id


def test_account_summary_uses_an_engine_request_id() -> None:
    session = AccountSession("Acct1", next_request_id=5)
    engine = _FakeEngine()

    req_id = ReportService(session, engine).account_summary()

    assert req_id == 7001
    assert engine.sent == [RequestAccountSummary(req_id=7001, group="All", tags=ACCOUNT_SUMMARY_TAGS)]
    assert session.peek_request_id == 5


def test_snapshot_and_subscription_requests() -> None:
    engine = _FakeEngine()
    reports = ReportService(AccountSession("Acct1"), engine)

    reports.open_orders()
    reports.positions()
    reports.account_updates(True)
    reports.account_updates(False)

    assert engine.sent == [
        RequestOpenOrders(),
        RequestPositions(),
        RequestAccountUpdates(subscribe=True),
        RequestAccountUpdates(subscribe=False),
    ]


def test_executions_resets_the_table_before_requesting() -> None:
    session = AccountSession("Acct1")
    session.executions.upsert_commission(CommissionReport(exec_id="stale", commission=1.0, currency="USD"))
    engine = _FakeEngine()

    req_id = ReportService(session, engine).executions()

    assert len(session.executions) == 0
    assert engine.sent == [RequestExecutions(req_id=req_id)]
