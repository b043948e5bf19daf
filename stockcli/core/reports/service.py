from __future__ import annotations

from loguru import logger

from stockcli.core.accounts.session import AccountSession
from stockcli.core.engine.ports import EnginePort
from stockcli.core.engine.requests import (
    RequestAccountSummary,
    RequestAccountUpdates,
    RequestExecutions,
    RequestOpenOrders,
    RequestPositions,
)


class ReportService:
    """Subscription and snapshot requests for one account.

    Replies come back through the account's event stream.
    """

    def __init__(self, session: AccountSession, engine: EnginePort) -> None:
        self._session = session
        self._engine = engine

    def account_summary(self) -> int:
        req_id = self._engine.next_request_id()
        self._engine.send(RequestAccountSummary(req_id=req_id))
        return req_id

    def open_orders(self) -> None:
        self._engine.send(RequestOpenOrders())

    def positions(self) -> None:
        self._engine.send(RequestPositions())

    def account_updates(self, subscribe: bool) -> None:
        self._engine.send(RequestAccountUpdates(subscribe=subscribe))

    def executions(self) -> int:
        # A fresh history replaces the old one; merging into it would keep stale rows.
        self._session.reset_execution_table()
        req_id = self._engine.next_request_id()
        self._engine.send(RequestExecutions(req_id=req_id))
        logger.debug("{}: requested executions req_id={}", self._session.label, req_id)
        return req_id
