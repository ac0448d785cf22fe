"""
Connectivity state for the Provider.

Provides the ConnectivityTracker state machine and the polling
ConnectivityMonitor that feeds it.
"""

from .monitor import ConnectivityMonitor
from .tracker import ConnectivityTracker

__all__ = [
    "ConnectivityMonitor",
    "ConnectivityTracker",
]
