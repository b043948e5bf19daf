from __future__ import annotations

from dataclasses import dataclass

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 7497


@dataclass(frozen=True)
class AccountConfig:
    label: str
    gateway: str
    client_id: int
    paper: bool = False

    @property
    def host(self) -> str:
        host, _port = _split_gateway(self.gateway)
        return host

    @property
    def port(self) -> int:
        _host, port = _split_gateway(self.gateway)
        return port


def _split_gateway(gateway: str) -> tuple[str, int]:
    text = gateway.strip()
    if not text:
        return DEFAULT_HOST, DEFAULT_PORT
    host, sep, port = text.rpartition(":")
    if not sep:
        return text, DEFAULT_PORT
    try:
        return host or DEFAULT_HOST, int(port)
    except ValueError:
        return host or DEFAULT_HOST, DEFAULT_PORT
