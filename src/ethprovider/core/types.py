"""
Type definitions for the ethprovider runtime.

This module contains the enums, value objects and wire payloads
shared by the tracker, dispatcher, router and event bus.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

_HEX_PATTERN = re.compile(r"^0x[0-9a-fA-F]+$")


class ProviderEvent(str, Enum):
    """Events emitted toward listeners."""

    CONNECT = "connect"
    DISCONNECT = "disconnect"
    CHAIN_CHANGED = "chainChanged"
    ACCOUNTS_CHANGED = "accountsChanged"
    MESSAGE = "message"


class LegacyEvent(str, Enum):
    """Deprecated events kept as mirrors of the canonical ones."""

    CLOSE = "close"  # mirrors disconnect
    NETWORK_CHANGED = "networkChanged"  # mirrors chainChanged
    NOTIFICATION = "notification"  # mirrors eth_subscription messages


class ProviderErrorCode(IntEnum):
    """Errors the Provider detects itself."""

    USER_REJECTED = 4001
    UNAUTHORIZED = 4100
    UNSUPPORTED_METHOD = 4200
    DISCONNECTED = 4900
    CHAIN_DISCONNECTED = 4901

    @property
    def default_message(self) -> str:
        return _PROVIDER_MESSAGES[self]


_PROVIDER_MESSAGES = {
    ProviderErrorCode.USER_REJECTED: "The user rejected the request.",
    ProviderErrorCode.UNAUTHORIZED: "The requested method and/or account has not been authorized by the user.",
    ProviderErrorCode.UNSUPPORTED_METHOD: "The Provider does not support the requested method.",
    ProviderErrorCode.DISCONNECTED: "The Provider is disconnected from all chains.",
    ProviderErrorCode.CHAIN_DISCONNECTED: "The Provider is not connected to the requested chain.",
}


class JsonRpcErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class CloseCode(IntEnum):
    """Close-style status codes carried by `disconnect` errors."""

    NORMAL_CLOSURE = 1000
    GOING_AWAY = 1001
    ABNORMAL_CLOSURE = 1006
    INTERNAL_ERROR = 1011
    TRY_AGAIN_LATER = 1013

    @property
    def default_message(self) -> str:
        return _CLOSE_MESSAGES[self]


_CLOSE_MESSAGES = {
    CloseCode.NORMAL_CLOSURE: "The Provider was closed.",
    CloseCode.GOING_AWAY: "The remote client is going away.",
    CloseCode.ABNORMAL_CLOSURE: "The connection to the remote client was lost.",
    CloseCode.INTERNAL_ERROR: "The remote client encountered an internal error.",
    CloseCode.TRY_AGAIN_LATER: "The Provider is unable to reach any chain. Try again later.",
}


@dataclass(frozen=True)
class ChainId:
    """
    Hex-encoded chain identifier.

    Canonical form is lowercase hex without leading zeros, so
    ChainId("0x01") == ChainId("0x1") == ChainId(1).
    """

    value: str

    def __init__(self, value: str | int) -> None:
        object.__setattr__(self, "value", self._canonicalize(value))

    @staticmethod
    def _canonicalize(value: str | int) -> str:
        if isinstance(value, bool):
            raise ValueError(f"Invalid chain id: {value!r}")
        if isinstance(value, int):
            if value < 0:
                raise ValueError(f"Chain id must be non-negative: {value}")
            return hex(value)
        if isinstance(value, str) and _HEX_PATTERN.match(value):
            return hex(int(value, 16))
        raise ValueError(f"Invalid chain id: {value!r}. Expected a 0x-prefixed hex string")

    @classmethod
    def coerce(cls, value: ChainId | str | int) -> ChainId:
        if isinstance(value, ChainId):
            return value
        return cls(value)

    def to_int(self) -> int:
        return int(self.value, 16)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProviderState:
    """Snapshot of the Provider's connectivity, chain and accounts."""

    connected: bool = False
    chain_id: ChainId | None = None
    accounts: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.connected and self.chain_id is None:
            raise ValueError("A connected state requires a chain id")

    def has_account(self, address: str) -> bool:
        """Case-insensitive membership check against the authorized accounts."""
        wanted = address.lower()
        return any(account.lower() == wanted for account in self.accounts)


@dataclass(frozen=True)
class RequestArgs:
    """
    A single RPC request.

    `extra` holds any fields beyond method and params, e.g. a target `chainId`.
    """

    method: str
    params: Any = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.method, str) or not self.method:
            raise ValueError("method must be a non-empty string")

    @classmethod
    def from_value(cls, value: RequestArgs | Mapping[str, Any]) -> RequestArgs:
        if isinstance(value, RequestArgs):
            return value
        if not isinstance(value, Mapping):
            raise ValueError(f"Request arguments must be a mapping, got {type(value).__name__}")
        if "method" not in value:
            raise ValueError("Request arguments are missing 'method'")
        extra = {k: v for k, v in value.items() if k not in ("method", "params")}
        return cls(method=value["method"], params=value.get("params"), extra=extra)

    @property
    def positional_params(self) -> list[Any]:
        """Params as a list; by-name params and None yield an empty list."""
        if isinstance(self.params, (list, tuple)):
            return list(self.params)
        return []


@dataclass(frozen=True)
class ConnectInfo:
    """Payload of the `connect` event."""

    chain_id: ChainId
    extra: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {**self.extra, "chainId": self.chain_id.value}


@dataclass(frozen=True)
class ProviderMessage:
    """Payload of the `message` event."""

    type: str
    data: Any

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.data}


ETH_SUBSCRIPTION = "eth_subscription"
