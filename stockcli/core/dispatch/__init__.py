from stockcli.core.dispatch.classifier import (
    ACCOUNT_VALUE_KEYS,
    DispatchResult,
    EventClassifier,
)
from stockcli.core.dispatch.worker import (
    AccountEventStream,
    AccountWorker,
    FatalSessionError,
)

__all__ = [
    "ACCOUNT_VALUE_KEYS",
    "AccountEventStream",
    "AccountWorker",
    "DispatchResult",
    "EventClassifier",
    "FatalSessionError",
]
