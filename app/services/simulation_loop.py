"""
Simulation Loop

One iteration per fixed interval: a normal tick while running, one forced
tick if requested, then any pending fast-forward ticks back-to-back.
Each executed tick is followed by a heartbeat. Errors never escape an
iteration, so the loop only stops on shutdown.
"""

import asyncio
import logging

from app.services.heartbeat import HeartbeatClient
from app.services.simulation_controller import SimulationController
from app.services.tick_executor import TickExecutor

logger = logging.getLogger(__name__)

HEARTBEAT_RUNNING = "Running"
HEARTBEAT_SINGLE_TICK = "Single Tick"
HEARTBEAT_FAST_FORWARD = "FastForward Tick"


class SimulationLoop:
    """Drives the tick executor according to controller state"""

    def __init__(
        self,
        controller: SimulationController,
        executor: TickExecutor,
        heartbeat: HeartbeatClient,
        interval_seconds: float = 5.0,
    ):
        self.controller = controller
        self.executor = executor
        self.heartbeat = heartbeat
        self.interval_seconds = interval_seconds
        self.ticks_executed = 0
        self._stop_event = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self):
        """Cancel further ticks; honoured between fast-forward ticks"""
        self._stop_event.set()

    async def run_iteration(self):
        """Run one scheduler iteration"""
        if self.stopped:
            return

        try:
            if self.controller.running:
                await self._tick(HEARTBEAT_RUNNING)

            if self.controller.consume_single_tick():
                await self._tick(HEARTBEAT_SINGLE_TICK)

            while not self.stopped and self.controller.take_fast_forward_tick():
                await self._tick(HEARTBEAT_FAST_FORWARD)

        except Exception as e:
            logger.error(f"Simulation error: {e}", exc_info=True)

    async def _tick(self, heartbeat_message: str):
        await self.executor.run_tick()
        self.ticks_executed += 1
        await self.heartbeat.send(heartbeat_message)
