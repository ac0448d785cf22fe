"""
EthereumProvider - the application-facing Provider object.

Composes the event bus, connectivity tracker, subscription router and
request dispatcher around an injected transport.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ethprovider.connectivity.monitor import ConnectivityMonitor
from ethprovider.connectivity.tracker import ConnectivityTracker
from ethprovider.core.config import ProviderConfig
from ethprovider.core.exceptions import ProviderRpcError
from ethprovider.core.logging import get_logger
from ethprovider.core.types import (
    ETH_SUBSCRIPTION,
    ChainId,
    CloseCode,
    LegacyEvent,
    ProviderEvent,
    ProviderMessage,
    ProviderState,
    RequestArgs,
)
from ethprovider.dispatch.dispatcher import RequestDispatcher
from ethprovider.dispatch.legacy import LegacyAdapter, LegacyCallback
from ethprovider.errors import ErrorMapper
from ethprovider.events import EventBus, Listener, ListenerHandle
from ethprovider.subscriptions.router import PushHandler, SubscriptionRouter
from ethprovider.transport.base import Transport


class LegacyMirrorBus(EventBus):
    """
    EventBus that re-emits canonical events under their deprecated names.

    close mirrors disconnect, networkChanged mirrors chainChanged with the
    decimal network id, notification mirrors eth_subscription message data.
    """

    def emit(self, event: str, *args: Any) -> bool:
        handled = super().emit(event, *args)
        name = getattr(event, "value", event)
        if name == ProviderEvent.DISCONNECT.value:
            super().emit(LegacyEvent.CLOSE, *args)
        elif name == ProviderEvent.CHAIN_CHANGED.value and args:
            try:
                network_id = str(ChainId.coerce(args[0]).to_int())
            except ValueError:
                return handled
            super().emit(LegacyEvent.NETWORK_CHANGED, network_id)
        elif name == ProviderEvent.MESSAGE.value and args:
            message = args[0]
            if isinstance(message, Mapping) and message.get("type") == ETH_SUBSCRIPTION:
                super().emit(LegacyEvent.NOTIFICATION, message["data"])
        return handled


class EthereumProvider:
    """
    Brokers RPC requests to a remote Ethereum client and surfaces its events.

    The transport and the health reports are supplied from outside: call
    `report_connectivity` (or run a ConnectivityMonitor via `start_monitor`)
    and hand unsolicited payloads to `handle_push`.

    Example:
        >>> provider = EthereumProvider(HttpTransport("https://rpc.example.org"))
        >>> provider.on("chainChanged", lambda chain_id: print("now on", chain_id))
        >>> provider.start_monitor()
        >>> balance = await provider.request(
        ...     {"method": "eth_getBalance", "params": ["0xabc...", "latest"]}
        ... )
    """

    def __init__(self, transport: Transport, config: ProviderConfig | None = None) -> None:
        self._config = config or ProviderConfig()
        self._transport = transport
        self._bus = LegacyMirrorBus() if self._config.legacy_events else EventBus()
        self._mapper = ErrorMapper()
        self._tracker = ConnectivityTracker(self._bus, self._mapper)
        self._router = SubscriptionRouter(self._bus)
        self._dispatcher = RequestDispatcher(transport, self._tracker, self._mapper, self._config)
        self._legacy = LegacyAdapter(self._dispatcher.request)
        self._monitor: ConnectivityMonitor | None = None
        self._logger = get_logger("provider")

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    async def request(self, args: RequestArgs | Mapping[str, Any]) -> Any:
        """Submit an RPC request; see RequestDispatcher.request."""
        return await self._dispatcher.request(args)

    def send(self, method_or_payload: str | Mapping[str, Any], params_or_callback: Any = None) -> Any:
        """Deprecated. Use `request`."""
        return self._legacy.send(method_or_payload, params_or_callback)

    def send_async(self, payload: Mapping[str, Any] | list[Mapping[str, Any]], callback: LegacyCallback) -> None:
        """Deprecated. Use `request`."""
        self._legacy.send_async(payload, callback)

    def on(self, event: str, listener: Listener) -> ListenerHandle:
        return self._bus.on(event, listener)

    def once(self, event: str, listener: Listener) -> ListenerHandle:
        return self._bus.once(event, listener)

    def remove_listener(self, event: str | ListenerHandle, listener: Listener | None = None) -> bool:
        """
        Remove a listener by handle, or by (event, listener).

        When the same listener was registered several times, the most
        recent registration is removed.
        """
        if isinstance(event, ListenerHandle):
            return self._bus.remove_listener(event)
        if listener is None:
            raise TypeError("remove_listener needs a handle or an (event, listener) pair")
        handle = self._bus.find(event, listener)
        return self._bus.remove_listener(handle) if handle is not None else False

    off = remove_listener

    def remove_all_listeners(self, event: str | None = None) -> None:
        self._bus.remove_all_listeners(event)

    def listener_count(self, event: str) -> int:
        return self._bus.listener_count(event)

    def emit(self, event: str, *args: Any) -> bool:
        return self._bus.emit(event, *args)

    async def drain(self) -> None:
        """Wait for async listeners and sendAsync calls still running."""
        await self._legacy.drain()
        await self._bus.drain()

    @property
    def state(self) -> ProviderState:
        return self._tracker.current_state()

    def is_connected(self) -> bool:
        return self._tracker.current_state().connected

    @property
    def chain_id(self) -> str | None:
        chain = self._tracker.current_state().chain_id
        return chain.value if chain is not None else None

    @property
    def accounts(self) -> list[str]:
        return list(self._tracker.current_state().accounts)

    @property
    def selected_address(self) -> str | None:
        accounts = self._tracker.current_state().accounts
        return accounts[0] if accounts else None

    def report_connectivity(
        self,
        success: bool,
        chain_id: ChainId | str | int | None = None,
        accounts: Iterable[str] | None = None,
        error: ProviderRpcError | CloseCode | int | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> bool:
        """Feed a reachability report; see ConnectivityTracker.report_connectivity."""
        return self._tracker.report_connectivity(success, chain_id, accounts, error, extra)

    def handle_push(self, payload: Any) -> list[ProviderMessage]:
        """Feed an unsolicited payload from the transport."""
        return self._router.on_raw_push(payload)

    def register_push_handler(self, handler: PushHandler) -> None:
        self._router.register(handler)

    def start_monitor(self, max_backoff: float = 8.0) -> ConnectivityMonitor:
        """Start polling the client for connectivity. Requires a running event loop."""
        if self._monitor is None:
            self._monitor = ConnectivityMonitor(
                self._transport, self._tracker, self._config, max_backoff=max_backoff
            )
        self._monitor.start()
        return self._monitor

    async def close(self) -> None:
        """Stop monitoring, report a normal closure and close the transport."""
        if self._monitor is not None:
            await self._monitor.stop()
        self._tracker.report_connectivity(False, error=CloseCode.NORMAL_CLOSURE)
        await self._transport.close()
        self._logger.info("Provider closed")

    async def __aenter__(self) -> EthereumProvider:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

