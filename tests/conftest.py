"""Shared fixtures: a throwaway SQLite store and deterministic clock/noise helpers"""

import itertools
from datetime import datetime

import pytest
from sqlalchemy import select

from app.database import create_engine_for, create_tables, make_session_factory
from app.models.facility import Facility
from app.models.change_log import ChangeLogEntry
from app.services.facility_store import FacilityStore


@pytest.fixture
async def session_factory(tmp_path):
    """Session factory bound to a fresh SQLite file with all tables created"""
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'carpark_test.db'}")
    await create_tables(engine)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return FacilityStore(session_factory)


def clock_at(hour: int):
    """Clock returning a fixed datetime at the given hour"""
    fixed = datetime(2024, 5, 15, hour, 0, 0)
    return lambda: fixed


def noise_sequence(*values):
    """Noise source repeating the given draws"""
    cycle = itertools.cycle(values)
    return lambda: next(cycle)


async def add_facility(session_factory, **overrides) -> Facility:
    fields = {
        "hospital_code": "SJH",
        "name": "Test Car Park",
        "total_capacity": 100,
        "occupied": 0,
        "status": "OPEN",
        "active": True,
    }
    fields.update(overrides)
    async with session_factory() as session:
        facility = Facility(**fields)
        session.add(facility)
        await session.commit()
        await session.refresh(facility)
        return facility


async def get_facility(session_factory, facility_id: int) -> Facility:
    async with session_factory() as session:
        result = await session.execute(select(Facility).where(Facility.id == facility_id))
        return result.scalar_one()


async def get_log_entries(session_factory, facility_id=None):
    async with session_factory() as session:
        stmt = select(ChangeLogEntry).order_by(ChangeLogEntry.id)
        if facility_id is not None:
            stmt = stmt.where(ChangeLogEntry.facility_id == facility_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())
