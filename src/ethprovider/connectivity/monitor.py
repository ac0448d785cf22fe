"""
Connectivity monitor.

Polls the client through the transport and feeds the outcome to the
ConnectivityTracker. Transient transport failures are retried with
tenacity before a disconnect is reported.
"""

from __future__ import annotations

import asyncio
from typing import Any

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ethprovider.connectivity.tracker import ConnectivityTracker
from ethprovider.core.config import ProviderConfig
from ethprovider.core.exceptions import (
    JsonRpcResponseError,
    TransportError,
    ValidationError,
)
from ethprovider.core.logging import get_logger
from ethprovider.core.types import CloseCode
from ethprovider.errors import ErrorMapper
from ethprovider.transport.base import Transport


class ConnectivityMonitor:
    """
    Periodically probes `eth_chainId` and `eth_accounts`.

    A reachable client is reported as Connected with the probed chain and
    accounts; an unreachable one as a failure, which disconnects the tracker
    if it was connected.
    """

    def __init__(
        self,
        transport: Transport,
        tracker: ConnectivityTracker,
        config: ProviderConfig | None = None,
        max_backoff: float = 8.0,
    ) -> None:
        """
        Initialize the monitor.

        Args:
            transport: Transport used for probe calls
            tracker: Tracker receiving the reports
            config: Supplies poll_interval and probe_attempts
            max_backoff: Upper bound of the exponential wait between retries
        """
        self._transport = transport
        self._tracker = tracker
        self._config = config or ProviderConfig()
        self._max_backoff = max_backoff
        self._task: asyncio.Task[None] | None = None
        self._logger = get_logger("monitor")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _call(self, method: str) -> Any:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(TransportError),
            wait=wait_exponential(multiplier=0.5, max=self._max_backoff),
            stop=stop_after_attempt(self._config.probe_attempts),
            reraise=True,
            before_sleep=lambda state: self._logger.debug(
                f"Retrying {method} probe (attempt {state.attempt_number})"
            ),
        ):
            with attempt:
                return await self._transport.submit(method, [])

    async def probe(self) -> bool:
        """
        Probe the client once and report the outcome.

        Returns:
            True if the client answered the chain id probe
        """
        try:
            chain_id = await self._call("eth_chainId")
        except TransportError as e:
            code = CloseCode.ABNORMAL_CLOSURE if e.is_connection_failure() else CloseCode.TRY_AGAIN_LATER
            self._logger.warning(f"Chain id probe failed: {e.message}")
            self._tracker.report_connectivity(
                False,
                error=ErrorMapper.disconnect_error(code, data={"cause": e.message}),
            )
            return False
        except JsonRpcResponseError as e:
            # Reachable, but unable to name its chain
            self._logger.warning(f"Client rejected eth_chainId: {e}")
            self._tracker.report_connectivity(
                False,
                error=ErrorMapper.disconnect_error(
                    CloseCode.TRY_AGAIN_LATER, data={"cause": e.message, "code": e.code}
                ),
            )
            return False

        try:
            accounts = await self._call("eth_accounts")
        except JsonRpcResponseError as e:
            self._logger.debug(f"eth_accounts refused ({e.code}); treating as no authorized accounts")
            accounts = []
        except TransportError as e:
            self._logger.warning(f"Accounts probe failed: {e.message}")
            accounts = None

        try:
            self._tracker.report_connectivity(True, chain_id=chain_id, accounts=accounts)
        except ValidationError as e:
            self._logger.error(f"Client returned unusable probe results: {e}")
            self._tracker.report_connectivity(
                False,
                error=ErrorMapper.disconnect_error(CloseCode.INTERNAL_ERROR, data={"cause": str(e)}),
            )
            return False
        return True

    def start(self) -> None:
        """Start polling in the background. Requires a running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._logger.info(f"Connectivity monitor started (every {self._config.poll_interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            self._logger.exception("Connectivity monitor task had failed")
        self._task = None
        self._logger.info("Connectivity monitor stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.probe()
            except Exception as e:
                self._logger.exception("Connectivity probe raised unexpectedly")
                self._tracker.report_connectivity(
                    False,
                    error=ErrorMapper.disconnect_error(CloseCode.INTERNAL_ERROR, data={"cause": repr(e)}),
                )
            await asyncio.sleep(self._config.poll_interval)
