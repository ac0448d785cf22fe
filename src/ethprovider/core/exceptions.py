"""
Exception hierarchy for the ethprovider runtime.

All package-specific exceptions inherit from EthProviderError for easy catching.
Errors delivered to `request` callers are always ProviderRpcError.
"""

from __future__ import annotations

from typing import Any


class EthProviderError(Exception):
    """
    Base exception for all ethprovider errors.

    Catch this to handle any provider-related exception.

    Example:
        >>> try:
        ...     await provider.request({"method": "eth_accounts"})
        ... except EthProviderError as e:
        ...     print(f"Provider error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(EthProviderError):
    """
    Configuration is missing or invalid.

    Raised when:
    - Configuration values fail validation
    - Environment variables hold unparseable values
    """

    pass


class ValidationError(EthProviderError):
    """
    Input validation error.

    Raised when:
    - A push payload cannot be decoded
    - A collaborator reports malformed state
    """

    pass


class ProviderRpcError(EthProviderError):
    """
    Normalized error delivered to callers and `disconnect` listeners.

    `code` is one of the Provider codes (4001, 4100, 4200, 4900, 4901),
    a JSON-RPC code reported by the client, or a close-style status code
    when carried by a `disconnect` event.

    Example:
        >>> try:
        ...     await provider.request({"method": "eth_sendTransaction", "params": [tx]})
        ... except ProviderRpcError as e:
        ...     if e.code == 4001:
        ...         print("User rejected the transaction")
    """

    def __init__(self, message: str, code: int, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"ProviderRpcError(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a JSON-RPC style error object."""
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload


class TransportError(EthProviderError):
    """
    The transport could not reach the remote client.

    Raised when:
    - The connection is refused or dropped
    - The endpoint answers with a non-2xx HTTP status
    - The response body is not a JSON-RPC response
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code

    def is_connection_failure(self) -> bool:
        """True when no HTTP response was received at all."""
        return self.status_code is None

    def is_server_error(self) -> bool:
        """Check if this is a server-side error."""
        return self.status_code is not None and 500 <= self.status_code < 600


class TransportTimeoutError(TransportError):
    """The transport gave up waiting for the client to answer."""

    def __init__(
        self,
        message: str,
        timeout_seconds: float,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, url=url, details=details)
        self.timeout_seconds = timeout_seconds

    def is_connection_failure(self) -> bool:
        return False


class JsonRpcResponseError(EthProviderError):
    """
    The remote client answered with a JSON-RPC error object.

    The code is the client's own and is passed to callers verbatim.
    """

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class UserRejectedRequestError(EthProviderError):
    """
    The user declined the request.

    Raised by consent collaborators (wallet UI, approval hooks) and
    surfaced to callers with code 4001.
    """

    def __init__(self, message: str = "User rejected the request.", method: str | None = None) -> None:
        super().__init__(message)
        self.method = method
