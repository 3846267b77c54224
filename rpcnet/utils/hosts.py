"""Host header validation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

from .matcher import Matcher

_U16_RE = re.compile(r"\+?[0-9]+")


@dataclass(frozen=True)
class Port:
    """Port part of a host: absent (None), a fixed number, or a wildcard pattern."""

    value: Union[int, str, None] = None

    @classmethod
    def coerce(cls, port: Union["Port", int, str, None]) -> "Port":
        if isinstance(port, Port):
            return port
        if isinstance(port, int) and not isinstance(port, bool):
            if not 0 <= port <= 0xFFFF:
                raise ValueError(f"port out of range: {port}")
            return cls(port)
        if port is None or isinstance(port, str):
            return cls(port)
        raise TypeError(f"unsupported port value: {port!r}")

    @property
    def is_fixed(self) -> bool:
        return isinstance(self.value, int)

    @property
    def is_pattern(self) -> bool:
        return isinstance(self.value, str)

    def __str__(self) -> str:
        return "" if self.value is None else f":{self.value}"


def _pre_process(host: str) -> str:
    parts = host.split("://")
    host = parts[1] if len(parts) > 1 else parts[0]
    return host.split("/")[0].lower()


def _parse_port(text: str) -> Port:
    if _U16_RE.fullmatch(text) and int(text) <= 0xFFFF:
        return Port(int(text))
    return Port(text)


class Host:
    """A host name with an optional port, usable as a case-insensitive glob."""

    __slots__ = ("hostname", "port", "_text", "_matcher")

    def __init__(self, hostname: str, port: Union[Port, int, str, None] = None) -> None:
        self.hostname = _pre_process(hostname)
        self.port = Port.coerce(port)
        self._text = f"{self.hostname}{self.port}"
        self._matcher = Matcher(self._text)

    @classmethod
    def parse(cls, hostname: str) -> "Host":
        """Parse a host string; never fails, falling back to sensible defaults."""
        pieces = _pre_process(hostname).split(":")
        port = _parse_port(pieces[1]) if len(pieces) > 1 else Port()
        return cls(pieces[0], port)

    def matches(self, other: object) -> bool:
        return self._matcher.matches(other)

    def __str__(self) -> str:
        return self._text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Host):
            return NotImplemented
        return (self.hostname, self.port) == (other.hostname, other.port)

    def __hash__(self) -> int:
        return hash((self.hostname, self.port))

    def __repr__(self) -> str:
        return f"Host({self.hostname!r}, {self.port!r})"


@dataclass(frozen=True)
class DomainsValidation:
    """Whether domains are validated: a tuple of allowed items, or None when disabled."""

    allowed: Optional[tuple] = None

    @classmethod
    def allow_only(cls, items: Iterable) -> "DomainsValidation":
        return cls(tuple(items))

    @classmethod
    def disabled(cls) -> "DomainsValidation":
        return cls(None)

    @classmethod
    def from_optional(cls, items: Optional[Iterable]) -> "DomainsValidation":
        return cls.disabled() if items is None else cls.allow_only(items)

    def to_list(self) -> Optional[list]:
        return None if self.allowed is None else list(self.allowed)


def _as_host(value: Union[Host, str]) -> Host:
    return value if isinstance(value, Host) else Host.parse(value)


def is_host_valid(host: Optional[str], allowed_hosts: Optional[Sequence[Union[Host, str]]]) -> bool:
    """Return True when the Host header is allowed by ``allowed_hosts``."""
    if allowed_hosts is None:
        return True
    if host is None:
        return False
    return any(_as_host(allowed).matches(host) for allowed in allowed_hosts)


def _format_address(address: Union[str, tuple]) -> str:
    if isinstance(address, str):
        return address
    ip, port = address[0], address[1]
    if ":" in ip:
        return f"[{ip}]:{port}"
    return f"{ip}:{port}"


def update(hosts: Optional[Iterable[Host]], address: Union[str, tuple]) -> Optional[list[Host]]:
    """Add the bound address (and its localhost alias) to the list of hosts."""
    if hosts is None:
        return None
    text = _format_address(address)
    merged = dict.fromkeys(hosts)
    merged[Host.parse(text)] = None
    merged[Host.parse(text.replace("127.0.0.1", "localhost"))] = None
    return list(merged)