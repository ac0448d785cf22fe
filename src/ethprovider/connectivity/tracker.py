"""
Connectivity state machine.

Two logical states, Disconnected and Connected(chain_id, accounts).
Every report is evaluated against the state recorded at that moment and
only real transitions emit events.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ethprovider.core.exceptions import ProviderRpcError, ValidationError
from ethprovider.core.logging import get_logger
from ethprovider.core.types import (
    ChainId,
    CloseCode,
    ConnectInfo,
    ProviderEvent,
    ProviderState,
)
from ethprovider.errors import ErrorMapper, is_close_code
from ethprovider.events import EventBus


def _normalize_accounts(accounts: Iterable[str]) -> tuple[str, ...]:
    if isinstance(accounts, (str, bytes)):
        raise ValidationError("accounts must be a sequence of address strings, not a single string")
    if not isinstance(accounts, (list, tuple)):
        raise ValidationError(
            f"accounts must be a list of address strings, got {type(accounts).__name__}"
        )
    normalized = tuple(accounts)
    for account in normalized:
        if not isinstance(account, str):
            raise ValidationError(
                f"Account addresses must be strings, got {type(account).__name__}",
                details={"accounts": list(normalized)},
            )
    return normalized


class ConnectivityTracker:
    """
    Owns ProviderState and decides which events a report triggers.

    Transitions:
        Disconnected -> Connected(c, a)      emits connect (+ accountsChanged if a changed)
        Connected(c, a) -> Disconnected      emits disconnect
        Connected(c, a) -> Connected(c2, a)  emits chainChanged
        Connected(c, a) -> Connected(c, a2)  emits accountsChanged
    Identical reports emit nothing.
    """

    def __init__(self, bus: EventBus, mapper: ErrorMapper | None = None) -> None:
        self._bus = bus
        self._mapper = mapper or ErrorMapper()
        self._state = ProviderState()
        self._logger = get_logger("connectivity")

    def current_state(self) -> ProviderState:
        return self._state

    def report_connectivity(
        self,
        success: bool,
        chain_id: ChainId | str | int | None = None,
        accounts: Iterable[str] | None = None,
        error: ProviderRpcError | CloseCode | int | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> bool:
        """
        Evaluate a reachability report from the transport-health collaborator.

        Args:
            success: Whether the client is currently reachable
            chain_id: Chain the client serves; keeps the recorded chain when omitted
            accounts: Authorized accounts; keeps the recorded accounts when omitted
            error: Close code or error for the `disconnect` payload on failure
            extra: Additional fields for the `connect` payload

        Returns:
            True if the report changed the recorded state
        """
        if not success:
            return self._report_failure(error)
        return self._report_success(chain_id, accounts, extra)

    def _report_failure(self, error: ProviderRpcError | CloseCode | int | None) -> bool:
        previous = self._state
        if not previous.connected:
            self._logger.debug("Failure reported while already disconnected; ignoring")
            return False

        if isinstance(error, ProviderRpcError):
            disconnect_error = error
        elif error is None:
            disconnect_error = self._mapper.disconnect_error()
        else:
            disconnect_error = self._mapper.disconnect_error(error)

        if not is_close_code(disconnect_error.code):
            # Provider and JSON-RPC codes never travel on `disconnect`
            self._logger.debug(f"Wrapping non-close code {disconnect_error.code} in a disconnect error")
            disconnect_error = self._mapper.disconnect_error(
                message=disconnect_error.message, data={"cause": disconnect_error.to_dict()}
            )

        self._state = ProviderState(connected=False, chain_id=None, accounts=previous.accounts)
        self._logger.warning(
            f"Disconnected from chain {previous.chain_id} (code {disconnect_error.code})"
        )
        self._bus.emit(ProviderEvent.DISCONNECT, disconnect_error)
        return True

    def _report_success(
        self,
        chain_id: ChainId | str | int | None,
        accounts: Iterable[str] | None,
        extra: Mapping[str, Any] | None,
    ) -> bool:
        previous = self._state
        try:
            new_chain = ChainId.coerce(chain_id) if chain_id is not None else previous.chain_id
        except ValueError as e:
            raise ValidationError(str(e), details={"chain_id": chain_id}) from e
        if new_chain is None:
            raise ValidationError("A successful report needs a chain id when disconnected")
        new_accounts = _normalize_accounts(accounts) if accounts is not None else previous.accounts

        chain_changed = previous.chain_id != new_chain
        accounts_changed = previous.accounts != new_accounts

        if previous.connected and not chain_changed and not accounts_changed:
            return False

        self._state = ProviderState(connected=True, chain_id=new_chain, accounts=new_accounts)

        if not previous.connected:
            self._logger.info(f"Connected to chain {new_chain}")
            self._bus.emit(ProviderEvent.CONNECT, ConnectInfo(new_chain, dict(extra or {})).to_dict())
        elif chain_changed:
            self._logger.info(f"Chain changed from {previous.chain_id} to {new_chain}")
            self._bus.emit(ProviderEvent.CHAIN_CHANGED, new_chain.value)

        if accounts_changed:
            self._logger.info(f"Accounts changed ({len(new_accounts)} authorized)")
            self._bus.emit(ProviderEvent.ACCOUNTS_CHANGED, list(new_accounts))

        return True
