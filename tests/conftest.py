"""Shared fixtures: a scripted transport and an event recorder."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from ethprovider.connectivity.tracker import ConnectivityTracker
from ethprovider.core.config import ProviderConfig
from ethprovider.dispatch.dispatcher import RequestDispatcher
from ethprovider.errors import ErrorMapper
from ethprovider.events import EventBus
from ethprovider.provider import EthereumProvider
from ethprovider.transport.base import Transport


class ScriptedTransport(Transport):
    """
    Transport answering from a method -> response table.

    A response may be a plain value, an exception instance (raised),
    or a callable taking params (its return value is used, awaited if needed).
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[tuple[str, Any]] = []
        self.closed = False

    async def submit(self, method: str, params: Any = None) -> Any:
        self.calls.append((method, params))
        response = self.responses.get(method)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            response = response(params)
            if asyncio.iscoroutine(response):
                response = await response
        return response

    async def close(self) -> None:
        self.closed = True

    @property
    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]


class EventRecorder:
    """Records (event, payload) pairs in emission order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def attach(self, target: Any, *names: str) -> EventRecorder:
        for name in names:
            target.on(name, self._listener(name))
        return self

    def _listener(self, name: str):
        def record(*args: Any) -> None:
            self.events.append((name, args[0] if args else None))

        return record

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> list[Any]:
        return [payload for event, payload in self.events if event == name]


ALL_EVENTS = ("connect", "disconnect", "chainChanged", "accountsChanged", "message")
LEGACY_EVENTS = ("close", "networkChanged", "notification")

ALICE = "0xAbC0000000000000000000000000000000000001"
BOB = "0xdef0000000000000000000000000000000000002"


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport({"eth_chainId": "0x1", "eth_accounts": [ALICE]})


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def tracker(bus: EventBus) -> ConnectivityTracker:
    return ConnectivityTracker(bus, ErrorMapper())


@pytest.fixture
def connected_tracker(tracker: ConnectivityTracker) -> ConnectivityTracker:
    tracker.report_connectivity(True, chain_id="0x1", accounts=[ALICE])
    return tracker


@pytest.fixture
def dispatcher(transport: ScriptedTransport, connected_tracker: ConnectivityTracker) -> RequestDispatcher:
    return RequestDispatcher(transport, connected_tracker, ErrorMapper(), ProviderConfig())


@pytest.fixture
def provider(transport: ScriptedTransport) -> EthereumProvider:
    return EthereumProvider(transport, ProviderConfig())
