"""Request dispatch and the deprecated send/sendAsync adapters."""

from .dispatcher import RequestDispatcher, target_account, target_chain
from .legacy import LegacyAdapter

__all__ = [
    "RequestDispatcher",
    "LegacyAdapter",
    "target_account",
    "target_chain",
]
