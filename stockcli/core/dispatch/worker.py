from __future__ import annotations

import asyncio
from typing import Callable, Optional

from loguru import logger

from stockcli.core.dispatch.classifier import DispatchResult, EventClassifier
from stockcli.core.events.models import SessionState, SessionStateChanged


class FatalSessionError(RuntimeError):
    def __init__(self, label: str, error: Optional[str]) -> None:
        super().__init__(f"{label} ERROR: {error}")
        self.label = label
        self.error = error


class AccountEventStream:
    """Two inbound channels for one account: engine events and session-state changes."""

    def __init__(self) -> None:
        self.events: asyncio.Queue[object] = asyncio.Queue()
        self.states: asyncio.Queue[SessionStateChanged] = asyncio.Queue()

    def publish_event(self, event: object) -> None:
        self.events.put_nowait(event)

    def publish_state(self, change: SessionStateChanged) -> None:
        self.states.put_nowait(change)


class AccountWorker:
    """Consumes one account's stream in arrival order until the session ends.

    When an event and a state change are both pending, events win: every
    event queued before the state change is dispatched first.
    """

    def __init__(
        self,
        classifier: EventClassifier,
        stream: AccountEventStream,
        *,
        event_tap: Optional[Callable[[object], None]] = None,
    ) -> None:
        self._classifier = classifier
        self._stream = stream
        self._event_tap = event_tap
        self.dispatched = 0

    @property
    def label(self) -> str:
        return self._classifier.session.label

    async def run(self) -> SessionState:
        events = self._stream.events
        states = self._stream.states
        next_event: asyncio.Task = asyncio.ensure_future(events.get())
        next_state: asyncio.Task = asyncio.ensure_future(states.get())
        try:
            while True:
                done, _pending = await asyncio.wait(
                    {next_event, next_state},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if next_event in done:
                    self._dispatch(next_event.result())
                    next_event = asyncio.ensure_future(events.get())
                    continue
                change = next_state.result()
                if next_event.done() and not next_event.cancelled():
                    self._dispatch(next_event.result())
                    next_event = asyncio.ensure_future(events.get())
                while not events.empty():
                    self._dispatch(events.get_nowait())
                if change.state == SessionState.READY:
                    logger.info("{}: session ready", self.label)
                    next_state = asyncio.ensure_future(states.get())
                    continue
                return self._finish(change)
        finally:
            next_event.cancel()
            next_state.cancel()

    def _dispatch(self, event: object) -> DispatchResult:
        if self._event_tap is not None:
            try:
                self._event_tap(event)
            except Exception:
                logger.exception("{}: event tap failed", self.label)
        self.dispatched += 1
        return self._classifier.handle(event)

    def _finish(self, change: SessionStateChanged) -> SessionState:
        logger.info("{}: session state {}", self.label, change.state.value)
        if change.state != SessionState.EXIT_NORMAL:
            logger.critical("{} ERROR: {}", self.label, change.error)
            raise FatalSessionError(self.label, change.error)
        return change.state
