#!/usr/bin/env python
"""
Run Simulation CLI

Local testing tool for the carpark simulation without the HTTP server.
Supports --interval, --start-paused, --ticks, --dry-run flags.
"""

import asyncio
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import ConfigurationError, Settings, load_settings
from app.database import create_engine_for, create_tables, make_session_factory
from app.services.facility_store import FacilityStore
from app.services.heartbeat import HeartbeatClient
from app.services.occupancy_model import make_noise_source
from app.services.scheduler import start_scheduler, stop_scheduler
from app.services.simulation_controller import SimulationController
from app.services.simulation_loop import SimulationLoop
from app.services.tick_executor import TickExecutor


def resolve_settings(args) -> Settings:
    """Load settings; CLI args override config"""
    settings = load_settings()
    if args.interval:
        settings.tick_interval_seconds = args.interval
    if args.start_paused:
        settings.start_running = False
    return settings


def print_settings(settings: Settings):
    print("=" * 60)
    print("Carpark Simulation")
    print("=" * 60)
    print(f"Database: {settings.database_url}")
    print(f"Tick interval: {settings.tick_interval_seconds} seconds")
    print(f"Fast-forward ticks: {settings.fast_forward_ticks}")
    print(f"Start running: {settings.start_running}")
    print(f"Heartbeat: {settings.heartbeat_url or 'disabled'}")
    print("=" * 60)


async def run_ticks(executor: TickExecutor, count: int):
    """Run `count` ticks back-to-back and print a summary for each"""
    for i in range(count):
        summary = await executor.run_tick()
        print(
            f"Tick {i + 1}/{count}: hour={summary.hour} drift={summary.drift_rate:+d} "
            f"updated={summary.updated} skipped={summary.skipped} failed={summary.failed}"
        )


async def run_simulation(args):
    """Execute simulation with given arguments"""
    try:
        settings = resolve_settings(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    print_settings(settings)

    if args.dry_run:
        print("\n[DRY RUN MODE] Configuration validated. No simulation started.")
        return

    if not args.ticks and not settings.start_running:
        print("\nSimulation is configured to start paused and CLI mode has no controls. "
              "Use --ticks N, or run the API server to resume it.")
        sys.exit(2)

    engine = create_engine_for(settings.database_url)
    if settings.auto_create_tables:
        await create_tables(engine)

    store = FacilityStore(make_session_factory(engine))
    executor = TickExecutor(store, noise_source=make_noise_source(settings.noise_seed))

    try:
        if args.ticks:
            await run_ticks(executor, args.ticks)
            return

        controller = SimulationController(store, running=True)
        heartbeat = HeartbeatClient(settings.heartbeat_url, settings.heartbeat_timeout_seconds)
        loop = SimulationLoop(controller, executor, heartbeat, settings.tick_interval_seconds)
        scheduler = start_scheduler(loop)

        print("\nSimulation running... Press Ctrl+C to stop.")

        try:
            while True:
                await asyncio.sleep(1)
        finally:
            print("\n\nShutting down simulation...")
            stop_scheduler(scheduler, loop)
            await heartbeat.close()
            print(f"Simulation stopped after {loop.ticks_executed} ticks.")
    finally:
        await engine.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the carpark occupancy simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with configured settings (5-second ticks)
  python scripts/run_simulation.py

  # Custom interval (1 second)
  python scripts/run_simulation.py --interval 1

  # Run 10 ticks immediately and exit
  python scripts/run_simulation.py --ticks 10

  # Dry run to validate configuration
  python scripts/run_simulation.py --dry-run
        """
    )

    parser.add_argument(
        "--interval",
        type=float,
        help="Tick interval in seconds (default: from config, 5)",
    )

    parser.add_argument(
        "--start-paused",
        action="store_true",
        help="Start with timed ticks paused (only with --ticks or --dry-run; CLI mode has no controls to resume)",
    )

    parser.add_argument(
        "--ticks",
        type=int,
        help="Run N ticks back-to-back and exit",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration without starting simulation",
    )

    return parser


def check_args(parser: argparse.ArgumentParser, args):
    """Reject flag combinations that leave the runner with nothing to do"""
    if args.start_paused and not (args.ticks or args.dry_run):
        parser.error("--start-paused needs --ticks or --dry-run: CLI mode has no controls to resume a paused loop")


def main():
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args()
    check_args(parser, args)

    try:
        asyncio.run(run_simulation(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
