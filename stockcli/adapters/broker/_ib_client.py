from __future__ import annotations

from datetime import date, datetime, timezone
from importlib import import_module
from types import SimpleNamespace
from typing import Any

_BACKEND_CANDIDATES = ("ib_insync", "ib_async")
_REQUIRED_SYMBOLS = ("IB", "Stock", "Order", "ExecutionFilter")
_LAST_IMPORT_ERROR: Exception | None = None
_backend: Any | None = None
_backend_name = ""

for candidate in _BACKEND_CANDIDATES:
    try:
        _backend = import_module(candidate)
        _backend_name = candidate
        break
    except Exception as exc:
        _LAST_IMPORT_ERROR = exc

if _backend is None:
    raise ModuleNotFoundError(
        "Could not import an IB client backend. Install one of: "
        + ", ".join(_BACKEND_CANDIDATES)
    ) from _LAST_IMPORT_ERROR

_missing = [name for name in _REQUIRED_SYMBOLS if getattr(_backend, name, None) is None]
if _missing:
    raise ImportError(
        f"IB client backend {_backend_name!r} is missing required symbols: {', '.join(_missing)}"
    )

try:
    _util_module = import_module(f"{_backend_name}.util")
except Exception:
    _util_module = SimpleNamespace()
_backend_parse_datetime = getattr(_util_module, "parseIBDatetime", None)
if _backend_parse_datetime is None:
    _backend_parse_datetime = getattr(_util_module, "parse_ib_datetime", None)

IB = _backend.IB
Stock = _backend.Stock
Order = _backend.Order
ExecutionFilter = _backend.ExecutionFilter
IB_CLIENT_BACKEND = _backend_name


def parse_ib_datetime(value: object) -> datetime:
    """Parse a gateway timestamp into an aware datetime; naive values are taken as UTC."""
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    text = str(value or "").strip()
    if callable(_backend_parse_datetime) and text:
        try:
            parsed = _backend_parse_datetime(text)
        except Exception:
            parsed = None
        if isinstance(parsed, datetime):
            return _as_utc(parsed)
        if isinstance(parsed, date):
            return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)

    digits = "".join(ch for ch in text if ch.isdigit())
    if len(digits) >= 14:
        try:
            return datetime(
                int(digits[:4]),
                int(digits[4:6]),
                int(digits[6:8]),
                int(digits[8:10]),
                int(digits[10:12]),
                int(digits[12:14]),
                tzinfo=timezone.utc,
            )
        except ValueError:
            pass
    raise ValueError(f"unparsable gateway timestamp: {value!r}")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


__all__ = [
    "IB",
    "ExecutionFilter",
    "IB_CLIENT_BACKEND",
    "Order",
    "Stock",
    "parse_ib_datetime",
]
