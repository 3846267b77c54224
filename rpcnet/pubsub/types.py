"""Core types shared by the publish-subscribe machinery."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

if TYPE_CHECKING:
    from .subscription import Session

TransportSender = Callable[[str], None]
"""Raw transport for one client: called with each serialized message."""

_U64_MAX = 2**64 - 1


class ErrorCode(enum.IntEnum):
    """Standard JSON-RPC error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class RpcError(Exception):
    """A JSON-RPC error object raised as an exception."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = int(code)
        self.message = message
        self.data = data

    @classmethod
    def invalid_params(cls, message: str) -> "RpcError":
        return cls(ErrorCode.INVALID_PARAMS, f"Invalid params: {message}")

    def to_dict(self) -> dict:
        """Return the error as a JSON-RPC error object."""
        result: dict = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RpcError):
            return NotImplemented
        return (self.code, self.message, self.data) == (other.code, other.message, other.data)

    def __hash__(self) -> int:
        return hash((self.code, self.message))

    def __repr__(self) -> str:
        return f"RpcError(code={self.code}, message={self.message!r}, data={self.data!r})"


class TransportError(Exception):
    """Raised when a message cannot be delivered because the transport is closed."""


@dataclass(frozen=True)
class SubscriptionId:
    """Unique subscription id: an unsigned 64-bit number or a string.

    Assigning the same id to different requests unsubscribes the previous one.
    """

    value: Union[int, str]

    def __post_init__(self) -> None:
        value = self.value
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise TypeError(f"subscription id must be an int or str, not {value!r}")
        if isinstance(value, int) and not 0 <= value <= _U64_MAX:
            raise ValueError(f"numeric subscription id out of range: {value}")

    @classmethod
    def parse_value(cls, value: Any) -> Optional["SubscriptionId"]:
        """Parse a JSON value into a subscription id, or return None."""
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= _U64_MAX:
            return cls(value)
        return None

    @classmethod
    def parse_output(cls, output: Any) -> Optional["SubscriptionId"]:
        """Extract the subscription id from a decoded notification, if present."""
        if not isinstance(output, Mapping):
            return None
        if "method" not in output or "id" in output:
            return None
        params = output.get("params")
        if not isinstance(params, Mapping) or "subscription" not in params:
            return None
        return cls.parse_value(params["subscription"])

    def to_value(self) -> Union[int, str]:
        """Return the id as a JSON value."""
        return self.value

    def __str__(self) -> str:
        return str(self.value)


class PubSubMetadata(ABC):
    """Request metadata that can expose the client's session.

    Keeping a reference to the session outside of the handler prevents the
    unsubscribe callbacks from running when the connection closes.
    """

    @abstractmethod
    def session(self) -> Optional["Session"]:
        """Return the session of this client, or None if unsupported."""