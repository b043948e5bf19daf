from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Optional

_IB_LOGGER_NAMES = ("ib_insync", "ib_async")


def attach_event(owner: object, event_name: str, handler: Callable[..., None]) -> bool:
    event = getattr(owner, event_name, None)
    if event is None:
        return False
    try:
        event += handler
        return True
    except Exception:
        return False


def detach_event(owner: object, event_name: str, handler: Callable[..., None]) -> bool:
    event = getattr(owner, event_name, None)
    if event is None:
        return False
    try:
        event -= handler
        return True
    except Exception:
        return False


def silence_ib_client_loggers(*, logger_names: Iterable[str] | None = None) -> tuple[str, ...]:
    names = tuple(dict.fromkeys(logger_names or _IB_LOGGER_NAMES))
    for name in names:
        logger = logging.getLogger(name)
        logger.setLevel(logging.CRITICAL)
        logger.propagate = False
        if not logger.handlers:
            logger.addHandler(logging.NullHandler())
    return names


def parse_gateway_error(
    args: tuple[object, ...],
    kwargs: dict[str, object],
) -> tuple[Optional[int], Optional[int], Optional[str]]:
    if len(args) >= 3:
        req_id = maybe_int(args[0])
        error_code = maybe_int(args[1])
        error_msg = str(args[2]) if args[2] is not None else None
        return req_id, error_code, error_msg

    req_id = maybe_int(kwargs.get("reqId"))
    error_code = maybe_int(kwargs.get("errorCode"))
    raw_msg = kwargs.get("errorString")
    if raw_msg is None:
        raw_msg = kwargs.get("errorMsg")
    return req_id, error_code, str(raw_msg) if raw_msg is not None else None


def maybe_int(value: object) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def maybe_float(value: object, default: float = 0.0) -> float:
    try:
        return float(value) if value is not None else default
    except (TypeError, ValueError):
        return default


__all__ = [
    "attach_event",
    "detach_event",
    "maybe_float",
    "maybe_int",
    "parse_gateway_error",
    "silence_ib_client_loggers",
]
