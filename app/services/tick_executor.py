"""
Tick Executor

Runs one simulation tick: every active car park drifts by the same
time-of-day rate plus its own noise draw. Each car park's update and log
entry form an independent unit of work, so one failing row does not abort
the rest of the tick.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.services.facility_store import FacilityStore
from app.services.occupancy_model import (
    NoiseSource,
    apply_drift,
    classify_change,
    drift_rate_for_hour,
    make_noise_source,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class TickSummary:
    """Outcome of one tick"""
    hour: int
    drift_rate: int
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    duration_ms: float = 0.0


class TickExecutor:
    """Applies the occupancy model to all active car parks (one tick)"""

    def __init__(
        self,
        store: FacilityStore,
        clock: Clock = datetime.now,
        noise_source: Optional[NoiseSource] = None,
    ):
        self.store = store
        self.clock = clock
        self.noise_source = noise_source or make_noise_source()

    async def run_tick(self) -> TickSummary:
        """
        Execute one tick.

        Snapshot load failures propagate to the caller; per car park store
        errors are logged and counted in the summary.
        """
        start_time = time.time()

        now = self.clock()
        drift_rate = drift_rate_for_hour(now.hour)
        summary = TickSummary(hour=now.hour, drift_rate=drift_rate)

        snapshot = await self.store.load_active_snapshot()

        for row in snapshot:
            total = row.total_capacity
            if total < 0:
                logger.warning(f"Car park {row.id} has negative capacity {total}, clamping to 0")
                total = 0

            noise = self.noise_source()
            new_occupied = apply_drift(row.occupied, total, drift_rate, noise)
            action = classify_change(row.occupied, new_occupied)
            detail = f"Auto-sim tick: {row.occupied} → {new_occupied}"

            logger.debug(
                f"Tick car park {row.id}: hour={now.hour}, drift={drift_rate}, "
                f"noise={noise}, {row.occupied} -> {new_occupied}"
            )

            try:
                written = await self.store.apply_occupancy(
                    row.id, row.occupied, new_occupied, action, detail, now
                )
            except SQLAlchemyError as e:
                summary.failed += 1
                logger.error(f"Failed to update car park {row.id}: {e}", exc_info=True)
                continue

            if written:
                summary.updated += 1
            else:
                summary.skipped += 1
                logger.info(f"Car park {row.id} deactivated during tick, skipped")

        summary.duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Simulation tick complete: hour={summary.hour}, drift={summary.drift_rate}, "
            f"{summary.updated} updated, {summary.skipped} skipped, {summary.failed} failed "
            f"({summary.duration_ms:.1f}ms)"
        )
        return summary
