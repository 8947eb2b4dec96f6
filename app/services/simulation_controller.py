"""
Simulation Controller

Owns the run/pause/single-tick/fast-forward control state shared between the
Control API handlers and the simulation loop. Every mutation goes through a
named transition; the loop only consumes flags between ticks.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict

from app.services.facility_store import FacilityStore

logger = logging.getLogger(__name__)

DEFAULT_FAST_FORWARD_TICKS = 10


class SimulationController:
    """Run/pause/step/fast-forward state machine (no terminal state)"""

    def __init__(
        self,
        store: FacilityStore,
        running: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.clock = clock
        self._lock = threading.Lock()
        self._running = running
        self._single_tick_pending = False
        self._fast_forward_remaining = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def single_tick_pending(self) -> bool:
        return self._single_tick_pending

    @property
    def fast_forward_remaining(self) -> int:
        return self._fast_forward_remaining

    def start(self):
        with self._lock:
            self._running = True
        logger.info("Simulation started")

    def pause(self):
        with self._lock:
            self._running = False
        logger.info("Simulation paused")

    def request_single_tick(self):
        """Ask the loop for one extra tick, even while paused"""
        with self._lock:
            self._single_tick_pending = True
        logger.info("Single tick requested")

    def request_fast_forward(self, ticks: int = DEFAULT_FAST_FORWARD_TICKS):
        """
        Ask the loop for `ticks` extra back-to-back ticks.

        A new request replaces any remainder of a previous one.
        """
        if ticks < 0:
            raise ValueError(f"Fast-forward tick count must be non-negative, got {ticks}")
        with self._lock:
            self._fast_forward_remaining = ticks
        logger.info(f"Fast forward requested: {ticks} ticks")

    async def reset(self) -> int:
        """Zero all active car parks and clear the log immediately (bypasses the loop)"""
        reset_count = await self.store.reset_all(self.clock())
        logger.info("Simulation reset complete")
        return reset_count

    def consume_single_tick(self) -> bool:
        """Clear the single tick flag, returning whether it was set"""
        with self._lock:
            pending = self._single_tick_pending
            self._single_tick_pending = False
        return pending

    def take_fast_forward_tick(self) -> bool:
        """Decrement the fast-forward counter if positive"""
        with self._lock:
            if self._fast_forward_remaining <= 0:
                return False
            self._fast_forward_remaining -= 1
            return True

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "running": self._running,
                "status": "Running" if self._running else "Paused",
                "single_tick_pending": self._single_tick_pending,
                "fast_forward_remaining": self._fast_forward_remaining,
            }
