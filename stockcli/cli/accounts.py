from __future__ import annotations

from dataclasses import dataclass

from stockcli.core.accounts.session import AccountSession
from stockcli.core.engine.ports import EnginePort
from stockcli.core.modes import ModeFlags
from stockcli.core.orders.service import OrderService
from stockcli.core.reports.service import ReportService


@dataclass
class AccountHandle:
    session: AccountSession
    orders: OrderService
    reports: ReportService

    @property
    def label(self) -> str:
        return self.session.label

    @classmethod
    def build(cls, session: AccountSession, engine: EnginePort, modes: ModeFlags) -> "AccountHandle":
        return cls(
            session=session,
            orders=OrderService(session, engine, modes),
            reports=ReportService(session, engine),
        )
