"""RequestDispatcher - forwards requests to the transport under Provider policy."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from ethprovider.connectivity.tracker import ConnectivityTracker
from ethprovider.core.config import ProviderConfig
from ethprovider.core.exceptions import ProviderRpcError, ValidationError
from ethprovider.core.logging import get_logger
from ethprovider.core.types import (
    ChainId,
    JsonRpcErrorCode,
    ProviderErrorCode,
    RequestArgs,
)
from ethprovider.errors import ErrorMapper
from ethprovider.transport.base import Transport

# Methods whose first param is a transaction object
TRANSACTION_METHODS = frozenset({"eth_sendTransaction", "eth_signTransaction"})

ACCOUNTS_METHODS = frozenset({"eth_accounts", "eth_requestAccounts"})


def _param(request: RequestArgs, index: int) -> Any:
    params = request.positional_params
    return params[index] if len(params) > index else None


def _transaction(request: RequestArgs) -> Mapping[str, Any] | None:
    tx = _param(request, 0)
    return tx if isinstance(tx, Mapping) else None


def _transaction_sender(request: RequestArgs) -> Any:
    tx = _transaction(request)
    return tx.get("from") if tx is not None else None


ACCOUNT_TARGETS: dict[str, Callable[[RequestArgs], Any]] = {
    "eth_sendTransaction": _transaction_sender,
    "eth_signTransaction": _transaction_sender,
    "eth_sign": lambda r: _param(r, 0),
    "personal_sign": lambda r: _param(r, 1),
    "eth_signTypedData": lambda r: _param(r, 1),
    "eth_signTypedData_v3": lambda r: _param(r, 0),
    "eth_signTypedData_v4": lambda r: _param(r, 0),
}


def target_account(request: RequestArgs) -> str | None:
    """Account a request acts on behalf of, if its method names one."""
    extractor = ACCOUNT_TARGETS.get(request.method)
    if extractor is None:
        return None
    account = extractor(request)
    return account if isinstance(account, str) else None


def target_chain(request: RequestArgs) -> ChainId | None:
    """
    Chain a request is pinned to, if any.

    Raises:
        ValueError: If the chain id is malformed
    """
    raw = request.extra.get("chainId")
    if raw is None and request.method in TRANSACTION_METHODS:
        tx = _transaction(request)
        raw = tx.get("chainId") if tx is not None else None
    if raw is None:
        return None
    return ChainId.coerce(raw)


class RequestDispatcher:
    """
    Single entry point for RPC requests.

    Policy checks run before forwarding, in this order:
    unsupported method (4200), unauthorized account (4100), disconnected (4900),
    wrong chain (4901). Successful results are returned unchanged.
    """

    def __init__(
        self,
        transport: Transport,
        tracker: ConnectivityTracker,
        mapper: ErrorMapper | None = None,
        config: ProviderConfig | None = None,
    ) -> None:
        self._transport = transport
        self._tracker = tracker
        self._mapper = mapper or ErrorMapper()
        self._config = config or ProviderConfig()
        self._in_flight = 0
        self._logger = get_logger("dispatcher")

    @property
    def in_flight(self) -> int:
        """Number of requests forwarded and still awaiting the transport."""
        return self._in_flight

    async def request(self, args: RequestArgs | Mapping[str, Any]) -> Any:
        """
        Forward one request and resolve with the raw result.

        Args:
            args: RequestArgs or a mapping with `method`, optional `params`
                and any extra fields

        Returns:
            The client's result, untransformed

        Raises:
            ProviderRpcError: For every failure, policy or remote
        """
        try:
            request = RequestArgs.from_value(args)
        except ValueError as e:
            raise ProviderRpcError(str(e), int(JsonRpcErrorCode.INVALID_REQUEST)) from e

        self._check_policy(request)

        self._in_flight += 1
        self._logger.debug(f"Forwarding {request.method}")
        try:
            result = await self._transport.submit(request.method, request.params)
        except Exception as e:
            error = self._map_failure(request, e)
            self._logger.debug(f"{request.method} rejected with {error.code}: {error.message}")
            if error is e:
                raise
            raise error from e
        finally:
            self._in_flight -= 1

        self._record_state_inputs(request.method, result)
        return result

    def _check_policy(self, request: RequestArgs) -> None:
        if not self._config.supports(request.method):
            raise self._mapper.provider_error(
                ProviderErrorCode.UNSUPPORTED_METHOD, data={"method": request.method}
            )

        state = self._tracker.current_state()
        # Authorization is checked regardless of connectivity
        account = target_account(request)
        if account is not None and not state.has_account(account):
            raise self._mapper.provider_error(
                ProviderErrorCode.UNAUTHORIZED, data={"account": account}
            )

        if not state.connected and self._config.reject_when_disconnected:
            raise self._mapper.provider_error(ProviderErrorCode.DISCONNECTED)

        if state.connected and self._config.enforce_chain:
            try:
                chain = target_chain(request)
            except ValueError as e:
                raise ProviderRpcError(str(e), int(JsonRpcErrorCode.INVALID_PARAMS)) from e
            if chain is not None and chain != state.chain_id:
                raise self._mapper.provider_error(
                    ProviderErrorCode.CHAIN_DISCONNECTED,
                    data={"requested": chain.value, "connected": state.chain_id.value},
                )

    def _map_failure(self, request: RequestArgs, cause: Exception) -> ProviderRpcError:
        error = self._mapper.map_failure(cause)
        # Authorization may have been revoked while the request was in flight
        account = target_account(request)
        if (
            account is not None
            and error.code != ProviderErrorCode.UNAUTHORIZED
            and not self._tracker.current_state().has_account(account)
        ):
            return self._mapper.provider_error(
                ProviderErrorCode.UNAUTHORIZED,
                data={"account": account, "cause": error.to_dict()},
            )
        return error

    def _record_state_inputs(self, method: str, result: Any) -> None:
        """Feed chain and account results into the tracker."""
        try:
            if method == "eth_chainId":
                self._tracker.report_connectivity(True, chain_id=result)
            elif method in ACCOUNTS_METHODS and self._tracker.current_state().connected:
                self._tracker.report_connectivity(True, accounts=result)
        except ValidationError as e:
            self._logger.warning(f"Ignoring {method} result as state input: {e}")
