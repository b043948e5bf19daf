from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Optional

from stockcli.core.accounts.models import AccountConfig

DEFAULT_CONFIG_PATH = "config.json"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class AppConfig:
    accounts: tuple[AccountConfig, ...]
    log_path: Optional[str] = None
    event_log_path: Optional[str] = None

    @classmethod
    def from_env(cls, config_path: Optional[str] = None) -> "AppConfig":
        path = config_path or os.getenv("STOCKCLI_CONFIG", DEFAULT_CONFIG_PATH)
        return cls(
            accounts=tuple(load_accounts_file(path)),
            log_path=os.getenv("STOCKCLI_LOG_PATH") or None,
            event_log_path=os.getenv("STOCKCLI_EVENT_LOG_PATH") or None,
        )


def load_accounts_file(path: str) -> list[AccountConfig]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config file {path} is not valid JSON: {exc}") from exc
    return parse_accounts(payload)


def parse_accounts(payload: Any) -> list[AccountConfig]:
    if not isinstance(payload, dict):
        raise ConfigError("config must be a JSON object with an 'Accounts' list")
    raw_accounts = _get(payload, "Accounts")
    if not isinstance(raw_accounts, list) or not raw_accounts:
        raise ConfigError("config needs a non-empty 'Accounts' list")

    accounts: list[AccountConfig] = []
    seen: set[str] = set()
    for idx, raw in enumerate(raw_accounts):
        if not isinstance(raw, dict):
            raise ConfigError(f"Accounts[{idx}] must be an object")
        label = str(_get(raw, "Label") or "").strip()
        if not label:
            raise ConfigError(f"Accounts[{idx}] is missing 'Label'")
        if label in seen:
            raise ConfigError(f"duplicate account label: {label}")
        seen.add(label)
        client_raw = _get(raw, "Client", 0)
        try:
            client_id = int(client_raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Accounts[{idx}] 'Client' must be an integer") from exc
        accounts.append(
            AccountConfig(
                label=label,
                gateway=str(_get(raw, "Gateway") or ""),
                client_id=client_id,
                paper=_parse_bool(_get(raw, "Paper", False)),
            )
        )
    return accounts


def _get(raw: dict[str, Any], key: str, default: Any = None) -> Any:
    # Keys are matched case-insensitively ("Label" / "label").
    if key in raw:
        return raw[key]
    lowered = key.lower()
    for candidate, value in raw.items():
        if str(candidate).lower() == lowered:
            return value
    return default


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}
