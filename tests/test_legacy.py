"""Tests for the deprecated send/sendAsync adapters."""

import asyncio

import pytest

from conftest import ALICE
from ethprovider.core.exceptions import JsonRpcResponseError, ProviderRpcError
from ethprovider.dispatch import LegacyAdapter


@pytest.fixture
def legacy(dispatcher) -> LegacyAdapter:
    return LegacyAdapter(dispatcher.request)


class CallbackRecorder:
    def __init__(self) -> None:
        self.calls = []
        self.done = asyncio.Event()

    def __call__(self, error, response) -> None:
        self.calls.append((error, response))
        self.done.set()


class TestSend:
    """The three historical `send` forms."""

    @pytest.mark.asyncio
    async def test_method_and_params(self, legacy, transport) -> None:
        assert await legacy.send("eth_accounts") == [ALICE]
        assert transport.calls[-1] == ("eth_accounts", [])

    @pytest.mark.asyncio
    async def test_method_and_params_errors_raise(self, legacy, transport) -> None:
        transport.responses["eth_call"] = JsonRpcResponseError(-32000, "reverted")
        with pytest.raises(ProviderRpcError):
            await legacy.send("eth_call", [{}, "latest"])

    @pytest.mark.asyncio
    async def test_payload_returns_envelope(self, legacy) -> None:
        response = await legacy.send({"id": 7, "jsonrpc": "2.0", "method": "eth_chainId"})
        assert response == {"id": 7, "jsonrpc": "2.0", "result": "0x1"}

    @pytest.mark.asyncio
    async def test_payload_error_envelope(self, legacy, transport) -> None:
        transport.responses["eth_call"] = JsonRpcResponseError(-32000, "reverted")
        response = await legacy.send({"id": 1, "method": "eth_call", "params": []})
        assert response == {"id": 1, "jsonrpc": "2.0", "error": {"code": -32000, "message": "reverted"}}

    @pytest.mark.asyncio
    async def test_payload_and_callback(self, legacy) -> None:
        callback = CallbackRecorder()
        assert legacy.send({"id": 1, "method": "eth_accounts"}, callback) is None
        await asyncio.wait_for(callback.done.wait(), timeout=1)
        assert callback.calls == [(None, {"id": 1, "jsonrpc": "2.0", "result": [ALICE]})]

    @pytest.mark.asyncio
    async def test_envelope_fields_not_forwarded_as_extra(self, legacy, transport) -> None:
        transport.responses["eth_call"] = "0x"
        await legacy.send({"id": 3, "jsonrpc": "2.0", "method": "eth_call", "params": [{}]})
        assert transport.calls[-1] == ("eth_call", [{}])


class TestSendAsync:
    """sendAsync(payload, callback)."""

    @pytest.mark.asyncio
    async def test_success(self, legacy) -> None:
        callback = CallbackRecorder()
        legacy.send_async({"id": 2, "jsonrpc": "2.0", "method": "eth_chainId"}, callback)
        await legacy.drain()
        assert callback.calls == [(None, {"id": 2, "jsonrpc": "2.0", "result": "0x1"})]

    @pytest.mark.asyncio
    async def test_error_passed_to_callback(self, legacy, transport) -> None:
        transport.responses["eth_sign"] = JsonRpcResponseError(-32000, "locked")
        callback = CallbackRecorder()

        legacy.send_async({"id": 4, "method": "eth_sign", "params": [ALICE, "0x"]}, callback)
        await legacy.drain()

        error, response = callback.calls[0]
        assert isinstance(error, ProviderRpcError)
        assert error.code == -32000
        assert response["error"] == {"code": -32000, "message": "locked"}

    @pytest.mark.asyncio
    async def test_unusable_accounts_result_reaches_callback(self, legacy, transport) -> None:
        transport.responses["eth_accounts"] = 5
        callback = CallbackRecorder()

        legacy.send_async({"id": 5, "method": "eth_accounts"}, callback)
        await legacy.drain()

        assert callback.calls == [(None, {"id": 5, "jsonrpc": "2.0", "result": 5})]

    @pytest.mark.asyncio
    async def test_batch(self, legacy, transport) -> None:
        transport.responses["eth_call"] = JsonRpcResponseError(-32000, "reverted")
        callback = CallbackRecorder()

        legacy.send_async(
            [{"id": 1, "method": "eth_chainId"}, {"id": 2, "method": "eth_call", "params": []}],
            callback,
        )
        await legacy.drain()

        error, responses = callback.calls[0]
        assert error is None
        assert responses[0] == {"id": 1, "jsonrpc": "2.0", "result": "0x1"}
        assert responses[1]["error"]["code"] == -32000

    @pytest.mark.asyncio
    async def test_malformed_payload(self, legacy) -> None:
        callback = CallbackRecorder()
        legacy.send_async("eth_accounts", callback)  # type: ignore[arg-type]
        await legacy.drain()
        error, response = callback.calls[0]
        assert error.code == -32600
        assert response["id"] is None

    @pytest.mark.asyncio
    async def test_callback_exception_is_contained(self, legacy) -> None:
        def broken(error, response):
            raise RuntimeError("callback bug")

        legacy.send_async({"id": 1, "method": "eth_chainId"}, broken)
        await legacy.drain()

    def test_requires_running_loop(self, legacy) -> None:
        with pytest.raises(RuntimeError):
            legacy.send_async({"id": 1, "method": "eth_chainId"}, lambda e, r: None)
