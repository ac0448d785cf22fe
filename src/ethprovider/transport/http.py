"""
JSON-RPC 2.0 over HTTP.

Posts one request envelope per call with httpx and unwraps the response.
"""

from __future__ import annotations

import itertools
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import httpx

from ethprovider.core.exceptions import (
    ConfigurationError,
    JsonRpcResponseError,
    TransportError,
    TransportTimeoutError,
)
from ethprovider.core.logging import get_logger
from ethprovider.core.types import JsonRpcErrorCode
from ethprovider.transport.base import Transport

if TYPE_CHECKING:
    from ethprovider.core.config import ProviderConfig


class HttpTransport(Transport):
    """
    HTTP transport for a remote Ethereum client.

    The httpx client is created on first use unless one is injected,
    in which case the caller keeps ownership of it.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._http_client = client
        self._owns_client = client is None
        self._ids = itertools.count(1)
        self._logger = get_logger("transport.http")

    @classmethod
    def from_config(cls, config: ProviderConfig, **kwargs: Any) -> HttpTransport:
        if not config.rpc_url:
            raise ConfigurationError("rpc_url is required for HttpTransport")
        get_logger("transport.http").debug(f"HTTP transport for {config.masked_rpc_url()}")
        return cls(config.rpc_url, timeout=config.request_timeout, **kwargs)

    @property
    def url(self) -> str:
        return self._url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout, headers=self._headers)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    def _envelope(self, method: str, params: Any) -> dict[str, Any]:
        body: dict[str, Any] = {"jsonrpc": "2.0", "id": next(self._ids), "method": method}
        if params is not None:
            body["params"] = list(params) if isinstance(params, tuple) else params
        return body

    async def submit(self, method: str, params: Any = None) -> Any:
        client = await self._get_client()
        body = self._envelope(method, params)
        self._logger.debug(f"POST {method} (id={body['id']})")

        try:
            response = await client.post(self._url, json=body)
        except httpx.TimeoutException as e:
            raise TransportTimeoutError(
                f"{method} timed out", timeout_seconds=self._timeout, url=self._url
            ) from e
        except httpx.TransportError as e:
            raise TransportError(f"Could not reach RPC endpoint: {e}", url=self._url) from e

        if response.status_code >= 400:
            # Some clients send JSON-RPC errors with a 4xx/5xx status
            error_body = self._error_body(response)
            if error_body is not None:
                return self._unwrap(error_body, body["id"], response.status_code)
            raise TransportError(
                f"RPC endpoint returned HTTP {response.status_code}",
                url=self._url,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(
                "RPC endpoint returned a non-JSON body",
                url=self._url,
                status_code=response.status_code,
            ) from e

        return self._unwrap(payload, body["id"], response.status_code)

    @staticmethod
    def _error_body(response: httpx.Response) -> Mapping[str, Any] | None:
        try:
            payload = response.json()
        except ValueError:
            return None
        if isinstance(payload, Mapping) and isinstance(payload.get("error"), Mapping):
            return payload
        return None

    def _unwrap(self, payload: Any, request_id: int, status_code: int) -> Any:
        if not isinstance(payload, Mapping) or ("result" not in payload and "error" not in payload):
            raise TransportError(
                "RPC endpoint returned a body that is not a JSON-RPC response",
                url=self._url,
                status_code=status_code,
                details={"body": payload},
            )
        if payload.get("id") not in (request_id, None):
            self._logger.warning(f"Response id {payload.get('id')!r} does not match request id {request_id}")

        error = payload.get("error")
        if error is not None:
            if isinstance(error, Mapping):
                code = error.get("code")
                message = error.get("message")
                raise JsonRpcResponseError(
                    code if isinstance(code, int) else int(JsonRpcErrorCode.INTERNAL_ERROR),
                    message if isinstance(message, str) else "RPC error",
                    error.get("data"),
                )
            raise JsonRpcResponseError(int(JsonRpcErrorCode.INTERNAL_ERROR), str(error))
        return payload["result"]
