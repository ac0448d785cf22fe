"""
Failure normalization.

Every failure that reaches a caller or a `disconnect` listener goes
through ErrorMapper and comes out as a ProviderRpcError.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ethprovider.core.exceptions import (
    JsonRpcResponseError,
    ProviderRpcError,
    TransportError,
    TransportTimeoutError,
    UserRejectedRequestError,
)
from ethprovider.core.logging import get_logger
from ethprovider.core.types import CloseCode, JsonRpcErrorCode, ProviderErrorCode

FALLBACK_CODE = JsonRpcErrorCode.INTERNAL_ERROR


def _is_code(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_close_code(code: Any) -> bool:
    """Whether `code` belongs to the close-style space used by `disconnect`."""
    if not _is_code(code) or not 1000 <= code <= 4999:
        return False
    return code not in {int(c) for c in ProviderErrorCode}


class ErrorMapper:
    """
    Maps arbitrary failure causes onto ProviderRpcError.

    Precedence:
    1. Conditions the Provider detected itself (user rejection, transport
       connection loss) get the fixed Provider codes.
    2. Errors reported by the client keep their code verbatim.
    3. Anything else falls back to -32603 with the cause attached as data.
    """

    def __init__(self) -> None:
        self._logger = get_logger("errors")

    def map_failure(self, cause: Any) -> ProviderRpcError:
        if isinstance(cause, ProviderRpcError):
            return cause

        if isinstance(cause, UserRejectedRequestError):
            return self.provider_error(ProviderErrorCode.USER_REJECTED, cause.message)

        if isinstance(cause, JsonRpcResponseError):
            return ProviderRpcError(
                cause.message or f"RPC error {cause.code}", cause.code, cause.data
            )

        if isinstance(cause, TransportTimeoutError):
            return ProviderRpcError(
                f"Request timed out after {cause.timeout_seconds}s",
                FALLBACK_CODE,
                {"cause": repr(cause)},
            )

        if isinstance(cause, TransportError):
            if cause.is_connection_failure():
                return self.provider_error(
                    ProviderErrorCode.DISCONNECTED, data={"cause": cause.message}
                )
            return ProviderRpcError(
                cause.message,
                FALLBACK_CODE,
                {"cause": repr(cause), "status_code": cause.status_code},
            )

        structured = self._from_structured(cause)
        if structured is not None:
            return structured

        self._logger.debug(f"Unstructured failure mapped to {int(FALLBACK_CODE)}: {cause!r}")
        message = str(cause) if str(cause) else "Internal error"
        return ProviderRpcError(message, FALLBACK_CODE, {"cause": repr(cause)})

    def _from_structured(self, cause: Any) -> ProviderRpcError | None:
        """Error objects shaped like {code: int, message: str, data?}."""
        if isinstance(cause, Mapping):
            code, message, data = cause.get("code"), cause.get("message"), cause.get("data")
        else:
            code = getattr(cause, "code", None)
            message = getattr(cause, "message", None)
            data = getattr(cause, "data", None)
        if _is_code(code) and isinstance(message, str):
            return ProviderRpcError(message, code, data)
        return None

    @staticmethod
    def provider_error(
        code: ProviderErrorCode,
        message: str | None = None,
        data: Any = None,
    ) -> ProviderRpcError:
        """Build an error for a condition the Provider detected itself."""
        return ProviderRpcError(message or code.default_message, int(code), data)

    @staticmethod
    def disconnect_error(
        code: CloseCode | int = CloseCode.TRY_AGAIN_LATER,
        message: str | None = None,
        data: Any = None,
    ) -> ProviderRpcError:
        """Build the error carried by a `disconnect` event."""
        if message is None:
            try:
                message = CloseCode(code).default_message
            except ValueError:
                message = "The Provider is disconnected."
        return ProviderRpcError(message, int(code), data)
