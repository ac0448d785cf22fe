"""
Transports reaching the remote Ethereum client.

Example:
    >>> from ethprovider.transport import HttpTransport
    >>> transport = HttpTransport("https://rpc.example.org", timeout=10.0)
"""

from .base import Transport
from .http import HttpTransport

__all__ = [
    "Transport",
    "HttpTransport",
]
