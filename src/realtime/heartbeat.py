"""
Heartbeat / Liveness

Each connection carries a small state machine:

    ALIVE --probe--> AWAITING_PONG --probe--> TERMINATED
      ^                   |
      +-------pong--------+

A single periodic task drives every connection through one sweep per
interval, so a peer that misses two consecutive probes is reclaimed
within two intervals.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class LivenessState(str, Enum):
    ALIVE = "alive"
    AWAITING_PONG = "awaiting_pong"
    TERMINATED = "terminated"


class Liveness:
    """Per-connection liveness state machine."""

    def __init__(self):
        self.state = LivenessState.ALIVE

    @property
    def is_alive(self) -> bool:
        return self.state is LivenessState.ALIVE

    @property
    def is_terminated(self) -> bool:
        return self.state is LivenessState.TERMINATED

    def on_pong(self) -> None:
        """The peer answered (or sent anything at all)."""
        if self.state is not LivenessState.TERMINATED:
            self.state = LivenessState.ALIVE

    def on_sweep(self) -> bool:
        """
        Advance one sweep.

        Returns:
            True if a probe should be sent, False if the connection
            must be reclaimed.
        """
        if self.state is LivenessState.ALIVE:
            self.state = LivenessState.AWAITING_PONG
            return True
        self.state = LivenessState.TERMINATED
        return False

    def terminate(self) -> None:
        self.state = LivenessState.TERMINATED

    def __repr__(self) -> str:
        return f"Liveness({self.state.value})"


class HeartbeatMonitor:
    """
    Runs ``sweep`` every ``interval`` seconds on one asyncio task.

    ``sleep`` is injectable so tests can drive ticks without real timers.
    """

    def __init__(
        self,
        sweep: Callable[[], Awaitable[Any]],
        interval: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._sweep = sweep
        self.interval = interval
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, max_ticks: Optional[int] = None) -> None:
        """Sweep forever, or ``max_ticks`` times."""
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            await self._sleep(self.interval)
            ticks += 1
            try:
                await self._sweep()
            except Exception:
                # One bad sweep must not stop liveness checks.
                logger.exception("[WS] Heartbeat sweep failed")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.run(), name="ws-heartbeat")
        logger.info(f"[WS] Heartbeat started (interval={self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("[WS] Heartbeat stopped")
