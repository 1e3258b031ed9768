"""Tests for the liveness state machine and heartbeat monitor."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from realtime.heartbeat import HeartbeatMonitor, Liveness, LivenessState


class TestLiveness:
    """Tests for the per-connection state machine."""

    def test_starts_alive(self):
        assert Liveness().state is LivenessState.ALIVE

    def test_sweep_from_alive_probes(self):
        liveness = Liveness()

        assert liveness.on_sweep() is True
        assert liveness.state is LivenessState.AWAITING_PONG

    def test_sweep_while_awaiting_pong_terminates(self):
        liveness = Liveness()
        liveness.on_sweep()

        assert liveness.on_sweep() is False
        assert liveness.is_terminated

    def test_pong_restores_alive(self):
        liveness = Liveness()
        liveness.on_sweep()
        liveness.on_pong()

        assert liveness.is_alive
        assert liveness.on_sweep() is True

    def test_terminated_is_absorbing(self):
        liveness = Liveness()
        liveness.terminate()
        liveness.on_pong()

        assert liveness.is_terminated
        assert liveness.on_sweep() is False


class TestHeartbeatMonitor:
    """Tests for the periodic sweep driver."""

    @pytest.mark.asyncio
    async def test_run_sweeps_once_per_tick(self):
        sweep = AsyncMock(return_value=0)
        sleep = AsyncMock()
        monitor = HeartbeatMonitor(sweep, interval=30, sleep=sleep)

        await monitor.run(max_ticks=3)

        assert sweep.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [30, 30, 30]

    @pytest.mark.asyncio
    async def test_failed_sweep_does_not_stop_monitor(self):
        sweep = AsyncMock(side_effect=[RuntimeError("boom"), 0])
        monitor = HeartbeatMonitor(sweep, interval=30, sleep=AsyncMock())

        await monitor.run(max_ticks=2)

        assert sweep.await_count == 2

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        sweep = AsyncMock(return_value=0)
        monitor = HeartbeatMonitor(sweep, interval=0.01)

        monitor.start()
        assert monitor.running
        await asyncio.sleep(0.05)
        await monitor.stop()

        assert not monitor.running
        assert sweep.await_count >= 1

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        monitor = HeartbeatMonitor(AsyncMock(), interval=30)
        await monitor.stop()
        assert not monitor.running

    @pytest.mark.asyncio
    async def test_dead_connection_reclaimed_within_two_ticks(self, manager, connect):
        """Driven by the monitor, a silent peer is gone after two intervals."""
        await connect(10)
        monitor = HeartbeatMonitor(manager.sweep, interval=30, sleep=AsyncMock())

        await monitor.run(max_ticks=1)
        assert manager.is_user_connected(10)

        await monitor.run(max_ticks=1)
        assert not manager.is_user_connected(10)
