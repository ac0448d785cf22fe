"""
ethprovider - an Ethereum Provider runtime for Python applications.

Brokers RPC requests to a remote Ethereum client, tracks connectivity,
chain and accounts, and surfaces notifications to listeners.

Usage:
    >>> from ethprovider import EthereumProvider, HttpTransport, ProviderConfig, configure_logging
    >>>
    >>> config = ProviderConfig.from_env()
    >>> configure_logging(config)
    >>> provider = EthereumProvider(HttpTransport.from_config(config), config)
    >>> provider.on("accountsChanged", print)
    >>> provider.start_monitor()
    >>> block = await provider.request({"method": "eth_blockNumber"})
"""

from ethprovider.connectivity import ConnectivityMonitor, ConnectivityTracker
from ethprovider.core.config import ProviderConfig
from ethprovider.core.exceptions import (
    ConfigurationError,
    EthProviderError,
    JsonRpcResponseError,
    ProviderRpcError,
    TransportError,
    TransportTimeoutError,
    UserRejectedRequestError,
    ValidationError,
)
from ethprovider.core.logging import configure_logging, get_logger
from ethprovider.core.types import (
    ChainId,
    CloseCode,
    ConnectInfo,
    JsonRpcErrorCode,
    LegacyEvent,
    ProviderErrorCode,
    ProviderEvent,
    ProviderMessage,
    ProviderState,
    RequestArgs,
)
from ethprovider.dispatch import LegacyAdapter, RequestDispatcher
from ethprovider.errors import ErrorMapper
from ethprovider.events import EventBus, ListenerHandle
from ethprovider.provider import EthereumProvider, LegacyMirrorBus
from ethprovider.subscriptions import SubscriptionRouter
from ethprovider.transport import HttpTransport, Transport

__version__ = "0.1.0"
__all__ = [
    # Main Provider
    "EthereumProvider",
    # Runtime components
    "ConnectivityTracker",
    "ConnectivityMonitor",
    "RequestDispatcher",
    "LegacyAdapter",
    "SubscriptionRouter",
    "EventBus",
    "LegacyMirrorBus",
    "ListenerHandle",
    "ErrorMapper",
    # Transports
    "Transport",
    "HttpTransport",
    # Types
    "ChainId",
    "ProviderState",
    "RequestArgs",
    "ConnectInfo",
    "ProviderMessage",
    "ProviderEvent",
    "LegacyEvent",
    "ProviderErrorCode",
    "JsonRpcErrorCode",
    "CloseCode",
    # Config
    "ProviderConfig",
    # Logging
    "configure_logging",
    "get_logger",
    # Exceptions
    "EthProviderError",
    "ConfigurationError",
    "ValidationError",
    "ProviderRpcError",
    "TransportError",
    "TransportTimeoutError",
    "JsonRpcResponseError",
    "UserRejectedRequestError",
]
