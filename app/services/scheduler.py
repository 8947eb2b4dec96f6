"""
APScheduler Configuration

Runs the simulation loop as a fixed-interval job. max_instances=1 keeps
iterations strictly sequential, so two ticks never touch the same car park
at once.
"""
import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.services.simulation_loop import SimulationLoop

logger = logging.getLogger(__name__)

SIMULATION_JOB_ID = "carpark_simulation_tick"


def configure_scheduler(scheduler: AsyncIOScheduler, loop: SimulationLoop):
    """
    Register the simulation loop on a scheduler.

    Jobs:
        - Carpark simulation tick: immediately, then every `loop.interval_seconds`
    """
    scheduler.add_job(
        loop.run_iteration,
        trigger=IntervalTrigger(seconds=loop.interval_seconds),
        id=SIMULATION_JOB_ID,
        name="Carpark Simulation Tick",
        next_run_time=datetime.now(),  # first tick at startup
        replace_existing=True,
        coalesce=True,  # Combine missed runs into single execution
        max_instances=1  # Only one iteration at a time
    )

    logger.info(f"Scheduler configured with simulation tick every {loop.interval_seconds}s")


def start_scheduler(loop: SimulationLoop) -> AsyncIOScheduler:
    """Create, configure and start the scheduler (requires a running event loop)"""
    scheduler = AsyncIOScheduler()
    configure_scheduler(scheduler, loop)
    scheduler.start()
    logger.info("Scheduler started")
    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler, loop: SimulationLoop):
    """Stop the loop, then shut the scheduler down without waiting for a running job"""
    loop.stop()
    scheduler.shutdown(wait=False)
    logger.info("Scheduler stopped")
