"""CORS handling utility functions."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Generic, Iterable, Optional, Sequence, TypeVar, Union

from .hosts import Host, Port
from .matcher import Matcher

T = TypeVar("T")
O = TypeVar("O")

_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")


def _fold(name: object) -> str:
    return str(name).translate(_ASCII_LOWER)


@dataclass(frozen=True)
class OriginProtocol:
    """Origin scheme; ``HTTP`` and ``HTTPS`` are predefined, anything else is custom."""

    scheme: str

    HTTP: ClassVar["OriginProtocol"]
    HTTPS: ClassVar["OriginProtocol"]

    @property
    def is_custom(self) -> bool:
        return self.scheme not in ("http", "https")


OriginProtocol.HTTP = OriginProtocol("http")
OriginProtocol.HTTPS = OriginProtocol("https")


class Origin:
    """A request origin: protocol plus host, usable as a case-insensitive glob."""

    __slots__ = ("protocol", "host", "_text", "_matcher")

    def __init__(
        self,
        protocol: Union[OriginProtocol, str],
        host: str,
        port: Union[Port, int, str, None] = None,
    ) -> None:
        if not isinstance(protocol, OriginProtocol):
            protocol = OriginProtocol(str(protocol).lower())
        self.protocol = protocol
        self.host = Host(host, port)
        self._text = f"{protocol.scheme}://{self.host}"
        self._matcher = Matcher(self._text)

    @classmethod
    def parse(cls, data: str) -> "Origin":
        """Parse an origin string; never fails, falling back to sensible defaults."""
        parts = data.split("://")
        if len(parts) > 1:
            scheme: Optional[str] = parts[0].lower()
            hostname = parts[1]
        else:
            scheme, hostname = None, parts[0]

        if scheme is None or scheme == "http":
            protocol = OriginProtocol.HTTP
        elif scheme == "https":
            protocol = OriginProtocol.HTTPS
        else:
            protocol = OriginProtocol(scheme)

        host = Host.parse(hostname)
        return cls(protocol, host.hostname, host.port)

    def matches(self, other: object) -> bool:
        return self._matcher.matches(other)

    def __str__(self) -> str:
        return self._text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Origin):
            return NotImplemented
        return (self.protocol, self.host) == (other.protocol, other.host)

    def __hash__(self) -> int:
        return hash((self.protocol, self.host))

    def __repr__(self) -> str:
        return f"Origin({self._text!r})"


class _OriginKind(enum.Enum):
    VALUE = "value"
    NULL = "null"
    ANY = "any"


@dataclass(frozen=True)
class AccessControlAllowOrigin:
    """An allowed origin: a specific origin, the null origin, or any origin."""

    kind: _OriginKind
    origin: Optional[Origin] = None

    ANY: ClassVar["AccessControlAllowOrigin"]
    NULL: ClassVar["AccessControlAllowOrigin"]

    @classmethod
    def value(cls, origin: Union[Origin, str]) -> "AccessControlAllowOrigin":
        if not isinstance(origin, Origin):
            origin = Origin.parse(origin)
        return cls(_OriginKind.VALUE, origin)

    @classmethod
    def from_string(cls, value: str) -> "AccessControlAllowOrigin":
        if value in ("all", "*", "any"):
            return cls.ANY
        if value == "null":
            return cls.NULL
        return cls.value(value)

    @property
    def is_any(self) -> bool:
        return self.kind is _OriginKind.ANY

    @property
    def is_null(self) -> bool:
        return self.kind is _OriginKind.NULL

    def __str__(self) -> str:
        if self.kind is _OriginKind.ANY:
            return "*"
        if self.kind is _OriginKind.NULL:
            return "null"
        return str(self.origin)


AccessControlAllowOrigin.ANY = AccessControlAllowOrigin(_OriginKind.ANY)
AccessControlAllowOrigin.NULL = AccessControlAllowOrigin(_OriginKind.NULL)


@dataclass(frozen=True)
class AccessControlAllowHeaders:
    """Allowed request headers: a tuple of names, or None to allow any header."""

    only: Optional[tuple[str, ...]] = None

    ANY: ClassVar["AccessControlAllowHeaders"]

    @classmethod
    def allow_only(cls, headers: Iterable[str]) -> "AccessControlAllowHeaders":
        return cls(tuple(headers))


AccessControlAllowHeaders.ANY = AccessControlAllowHeaders(None)


class _CorsStatus(enum.Enum):
    NOT_REQUIRED = "not_required"
    INVALID = "invalid"
    OK = "ok"


@dataclass(frozen=True)
class AllowCors(Generic[T]):
    """Outcome of a CORS check: not required, invalid, or ok with a header value."""

    status: _CorsStatus
    value: Optional[T] = None

    NOT_REQUIRED: ClassVar["AllowCors[Any]"]
    INVALID: ClassVar["AllowCors[Any]"]

    @classmethod
    def ok(cls, value: T) -> "AllowCors[T]":
        return cls(_CorsStatus.OK, value)

    @property
    def is_ok(self) -> bool:
        return self.status is _CorsStatus.OK

    @property
    def is_invalid(self) -> bool:
        return self.status is _CorsStatus.INVALID

    @property
    def is_not_required(self) -> bool:
        return self.status is _CorsStatus.NOT_REQUIRED

    def map(self, func: Callable[[T], O]) -> "AllowCors[O]":
        if self.is_ok:
            return AllowCors.ok(func(self.value))  # type: ignore[arg-type]
        return self  # type: ignore[return-value]

    def to_optional(self) -> Optional[T]:
        return self.value if self.is_ok else None


AllowCors.NOT_REQUIRED = AllowCors(_CorsStatus.NOT_REQUIRED)
AllowCors.INVALID = AllowCors(_CorsStatus.INVALID)


def get_cors_allow_origin(
    origin: Optional[object],
    host: Optional[object],
    allowed: Optional[Sequence[AccessControlAllowOrigin]],
) -> AllowCors[AccessControlAllowOrigin]:
    """Return the CORS header (if any) for the given origin and allowed origins."""
    if origin is None:
        return AllowCors.NOT_REQUIRED
    origin = str(origin)

    if host is not None:
        host = str(host)
        # Request initiated from the same server.
        if origin.endswith(host) and str(Origin.parse(origin).host) == host:
            return AllowCors.NOT_REQUIRED

    if allowed is None:
        if origin == "null":
            return AllowCors.ok(AccessControlAllowOrigin.NULL)
        return AllowCors.ok(AccessControlAllowOrigin.value(Origin.parse(origin)))

    if origin == "null":
        if any(cors == AccessControlAllowOrigin.NULL for cors in allowed):
            return AllowCors.ok(AccessControlAllowOrigin.NULL)
        return AllowCors.INVALID

    for cors in allowed:
        if cors.is_any or (cors.origin is not None and cors.origin.matches(origin)):
            return AllowCors.ok(AccessControlAllowOrigin.value(Origin.parse(origin)))
    return AllowCors.INVALID


_ALWAYS_ALLOWED_HEADERS = frozenset(
    _fold(name)
    for name in (
        "Accept",
        "Accept-Language",
        "Access-Control-Allow-Origin",
        "Access-Control-Request-Headers",
        "Content-Language",
        "Content-Type",
        "Host",
        "Origin",
        "Content-Length",
        "Connection",
        "User-Agent",
    )
)


def get_cors_allow_headers(
    headers: Iterable[T],
    requested_headers: Iterable[T],
    cors_allow_headers: AccessControlAllowHeaders,
    to_result: Optional[Callable[[T], O]] = None,
) -> AllowCors[list]:
    """Validate request headers and the requested headers against the allowed set."""
    convert: Callable[[T], Any] = to_result if to_result is not None else (lambda item: item)
    only = cors_allow_headers.only

    if only is None:
        result = [convert(header) for header in requested_headers]
        filtered = False
    else:
        allowed = {_fold(name) for name in only} | _ALWAYS_ALLOWED_HEADERS
        if not all(_fold(header) in allowed for header in headers):
            return AllowCors.INVALID
        filtered = False
        result = []
        for header in requested_headers:
            filtered = True
            if _fold(header) in allowed:
                result.append(convert(header))

    if not result:
        return AllowCors.INVALID if filtered else AllowCors.NOT_REQUIRED
    return AllowCors.ok(result)