"""
Deprecated `send` / `sendAsync` calling conventions.

Both translate their arguments into `request` calls and shape the
outcome as JSON-RPC response envelopes. They carry no policy of their own.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from ethprovider.core.exceptions import ProviderRpcError
from ethprovider.core.logging import get_logger
from ethprovider.core.types import JsonRpcErrorCode

RequestFn = Callable[[Mapping[str, Any]], Awaitable[Any]]
LegacyCallback = Callable[[ProviderRpcError | None, Any], Any]

_ENVELOPE_KEYS = ("id", "jsonrpc")


class LegacyAdapter:
    """
    Adapts legacy payload-and-callback calls onto a `request` function.

    Example:
        >>> adapter = LegacyAdapter(provider.request)
        >>> accounts = await adapter.send("eth_accounts")
        >>> adapter.send_async({"id": 1, "method": "eth_chainId"}, callback)
    """

    def __init__(self, request: RequestFn) -> None:
        self._request = request
        self._tasks: set[asyncio.Task[Any]] = set()
        self._logger = get_logger("legacy")

    def send(self, method_or_payload: str | Mapping[str, Any], params_or_callback: Any = None) -> Any:
        """
        Legacy `send` in its three historical forms.

        - send(method, params) -> awaitable resolving to the raw result
        - send(payload, callback) -> None, delegates to send_async
        - send(payload) -> awaitable resolving to a response envelope
        """
        if isinstance(method_or_payload, str):
            params = [] if params_or_callback is None else params_or_callback
            return self._request({"method": method_or_payload, "params": params})
        if callable(params_or_callback):
            self.send_async(method_or_payload, params_or_callback)
            return None
        return self._respond_one(method_or_payload)

    def send_async(self, payload: Mapping[str, Any] | list[Mapping[str, Any]], callback: LegacyCallback) -> None:
        """
        Legacy `sendAsync`: run the payload and report through `callback(error, response)`.

        Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(payload, callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for outstanding send_async calls."""
        pending = [t for t in self._tasks if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _run(self, payload: Any, callback: LegacyCallback) -> None:
        error: ProviderRpcError | None = None
        if isinstance(payload, list):
            response: Any = await asyncio.gather(*(self._respond_one(p) for p in payload))
        else:
            response, error = await self._execute(payload)
        try:
            callback(error, response)
        except Exception:
            self._logger.exception("sendAsync callback raised")

    async def _respond_one(self, payload: Any) -> dict[str, Any]:
        envelope, _ = await self._execute(payload)
        return envelope

    async def _execute(self, payload: Any) -> tuple[dict[str, Any], ProviderRpcError | None]:
        if not isinstance(payload, Mapping):
            error = ProviderRpcError(
                "Legacy payload must be a mapping", int(JsonRpcErrorCode.INVALID_REQUEST)
            )
            return {"id": None, "jsonrpc": "2.0", "error": error.to_dict()}, error

        envelope: dict[str, Any] = {"id": payload.get("id"), "jsonrpc": payload.get("jsonrpc", "2.0")}
        args = {k: v for k, v in payload.items() if k not in _ENVELOPE_KEYS}
        try:
            envelope["result"] = await self._request(args)
        except ProviderRpcError as e:
            envelope["error"] = e.to_dict()
            return envelope, e
        return envelope, None
