from __future__ import annotations

from typing import Optional

from stockcli.core.accounts.models import AccountConfig
from stockcli.core.executions.reconciler import ExecutionTable


class AccountSession:
    """State owned by a single account: request ids, bar subscriptions, executions.

    Only the account's worker and the command layer acting on this account
    touch it; callers serialize access per account.
    """

    def __init__(self, label: str, *, paper: bool = False, next_request_id: int = 0) -> None:
        self.label = label
        self.paper = paper
        self._next_request_id = next_request_id
        self._bar_subscriptions: dict[int, str] = {}
        self._order_parents: dict[int, int] = {}
        self.executions = ExecutionTable()

    @classmethod
    def from_config(cls, config: AccountConfig) -> "AccountSession":
        return cls(config.label, paper=config.paper)

    @property
    def peek_request_id(self) -> int:
        return self._next_request_id

    def next_request_id(self) -> int:
        value = self._next_request_id
        self._next_request_id += 1
        return value

    def seed_request_id(self, value: int) -> None:
        # The engine's next-valid-id is authoritative across reconnects.
        self._next_request_id = int(value)

    def reset_execution_table(self) -> None:
        self.executions.clear()

    def register_bar_subscription(self, req_id: int, symbol: str) -> None:
        self._bar_subscriptions[req_id] = symbol

    def bar_symbol(self, req_id: int) -> Optional[str]:
        return self._bar_subscriptions.get(req_id)

    def record_order_parent(self, order_id: int, parent_id: int) -> None:
        if parent_id:
            self._order_parents[order_id] = parent_id

    def order_parent(self, order_id: int) -> int:
        """Parent order id last reported for ``order_id``; 0 for top-level or unseen orders."""
        return self._order_parents.get(order_id, 0)
