from __future__ import annotations

from typing import Protocol

from stockcli.core.engine.requests import EngineRequest


class EnginePort(Protocol):
    def send(self, request: EngineRequest) -> None:
        """Hand a request to the trading-API engine without waiting for a reply."""
        raise NotImplementedError

    def next_request_id(self) -> int:
        """Return a request id from the engine's own sequence."""
        raise NotImplementedError
