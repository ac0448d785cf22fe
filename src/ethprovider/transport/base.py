"""
Base transport interface.

The runtime never talks to the network itself; it hands method and
params to a Transport and maps whatever comes back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Transport(ABC):
    """
    Abstract "submit method+params to the client" capability.

    Implementations:
    - HttpTransport: JSON-RPC 2.0 over HTTP POST

    Timeout policy belongs to the transport; a timeout is raised as
    TransportTimeoutError and mapped like any other failure.
    """

    @abstractmethod
    async def submit(self, method: str, params: Any = None) -> Any:
        """
        Send one RPC call and return the client's raw result.

        Args:
            method: RPC method name
            params: Positional or by-name params, or None

        Returns:
            The `result` value exactly as the client returned it

        Raises:
            TransportError: If the client could not be reached
            JsonRpcResponseError: If the client answered with an error object
        """
        ...

    async def close(self) -> None:
        """Release any underlying connections."""
        return None
