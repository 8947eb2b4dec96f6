"""
Demo Car Park Loader

Creates the carpark tables and seeds demo car parks so the simulator has
something to move.
Usage: python -m app.scripts.load_demo [--clear]
"""
import asyncio
import argparse
from typing import List, Tuple

from sqlalchemy import delete, select, func

from app.config import load_settings
from app.database import create_engine_for, create_tables, make_session_factory
from app.models.facility import Facility
from app.models.change_log import ChangeLogEntry

# (hospital_code, car park name, total spaces, starting occupancy)
DEMO_CARPARKS: List[Tuple[str, str, int, int]] = [
    ("SJH", "Main Visitor Car Park", 420, 180),
    ("SJH", "Outpatients Car Park", 150, 60),
    ("SJH", "Multi-Storey", 600, 310),
    ("BMH", "Front Entrance", 90, 30),
    ("BMH", "Rear Staff & Visitor", 220, 120),
    ("CUH", "Maternity Car Park", 75, 40),
    ("CUH", "Emergency Department", 60, 25),
]


async def clear_carparks(session_factory):
    """Remove all logs and car parks"""
    async with session_factory() as session:
        await session.execute(delete(ChangeLogEntry))
        await session.execute(delete(Facility))
        await session.commit()
    print("✓ Cleared existing car parks and change log")


async def seed_carparks(session_factory) -> int:
    """
    Insert demo car parks that are not already present (matched on hospital and name).

    Returns:
        Number of car parks created
    """
    created = 0
    async with session_factory() as session:
        for hospital_code, name, total, occupied in DEMO_CARPARKS:
            existing = await session.execute(
                select(func.count())
                .select_from(Facility)
                .where(Facility.hospital_code == hospital_code, Facility.name == name)
            )
            if existing.scalar() > 0:
                continue

            session.add(Facility(
                hospital_code=hospital_code,
                name=name,
                total_capacity=total,
                occupied=occupied,
                status="OPEN",
                active=True,
            ))
            created += 1

        await session.commit()

    return created


async def load_demo(clear: bool = False) -> int:
    settings = load_settings()
    engine = create_engine_for(settings.database_url)
    try:
        await create_tables(engine)
        session_factory = make_session_factory(engine)

        if clear:
            await clear_carparks(session_factory)

        created = await seed_carparks(session_factory)
        print(f"✓ Created {created} demo car parks ({len(DEMO_CARPARKS) - created} already present)")
        return created
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Seed demo car parks for the simulator")
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete all car parks and change log entries before seeding",
    )
    args = parser.parse_args()

    asyncio.run(load_demo(clear=args.clear))


if __name__ == "__main__":
    main()
