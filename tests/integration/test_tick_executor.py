"""
Integration tests for TickExecutor and FacilityStore

Runs ticks against a SQLite store with a fixed clock and scripted noise.
"""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError

from app.models.facility import Facility
from app.services.simulation_controller import SimulationController
from app.services.tick_executor import TickExecutor

from conftest import add_facility, clock_at, get_facility, get_log_entries, noise_sequence


@pytest.mark.asyncio
@pytest.mark.integration
class TestTickScenarios:
    """End-to-end tick scenarios"""

    async def test_morning_tick_fills_to_capacity(self, session_factory, store):
        """48/50 at hour 10, drift +3, noise +1 -> clamps to 50"""
        facility = await add_facility(session_factory, total_capacity=50, occupied=48)
        executor = TickExecutor(store, clock=clock_at(10), noise_source=lambda: 1)

        summary = await executor.run_tick()

        assert summary.drift_rate == 3
        assert summary.updated == 1
        refreshed = await get_facility(session_factory, facility.id)
        assert refreshed.occupied == 50

        entries = await get_log_entries(session_factory, facility.id)
        assert len(entries) == 1
        assert entries[0].action == "FILLED"
        assert "48 → 50" in entries[0].detail
        assert entries[0].previous_occupied == 48
        assert entries[0].new_occupied == 50
        assert entries[0].admin_id is None

    async def test_evening_tick_empties_to_zero(self, session_factory, store):
        """1/20 at hour 21, drift -3, noise -1 -> raw -3, clamps to 0"""
        facility = await add_facility(session_factory, total_capacity=20, occupied=1)
        executor = TickExecutor(store, clock=clock_at(21), noise_source=lambda: -1)

        summary = await executor.run_tick()

        assert summary.drift_rate == -3
        refreshed = await get_facility(session_factory, facility.id)
        assert refreshed.occupied == 0

        entries = await get_log_entries(session_factory, facility.id)
        assert entries[0].action == "EMPTIED"
        assert "1 → 0" in entries[0].detail

    async def test_overnight_no_change_logged(self, session_factory, store):
        facility = await add_facility(session_factory, total_capacity=30, occupied=12)
        executor = TickExecutor(store, clock=clock_at(2), noise_source=lambda: 0)

        await executor.run_tick()

        entries = await get_log_entries(session_factory, facility.id)
        assert entries[0].action == "NOCHANGE"
        assert (await get_facility(session_factory, facility.id)).occupied == 12

    async def test_last_updated_stamped_with_tick_time(self, session_factory, store):
        facility = await add_facility(session_factory, occupied=10)
        executor = TickExecutor(store, clock=clock_at(10), noise_source=lambda: 0)

        await executor.run_tick()

        refreshed = await get_facility(session_factory, facility.id)
        assert refreshed.last_updated.replace(tzinfo=None) == datetime(2024, 5, 15, 10, 0, 0)

    async def test_fresh_noise_per_facility_same_drift(self, session_factory, store):
        first = await add_facility(session_factory, name="A", occupied=10)
        second = await add_facility(session_factory, name="B", occupied=10)
        third = await add_facility(session_factory, name="C", occupied=10)
        executor = TickExecutor(store, clock=clock_at(17), noise_source=noise_sequence(-1, 0, 1))

        await executor.run_tick()

        # drift +1 shared, noise differs per car park
        assert (await get_facility(session_factory, first.id)).occupied == 10
        assert (await get_facility(session_factory, second.id)).occupied == 11
        assert (await get_facility(session_factory, third.id)).occupied == 12


@pytest.mark.asyncio
@pytest.mark.integration
class TestInactiveFacilities:
    """Inactive car parks are never simulated"""

    async def test_inactive_untouched(self, session_factory, store):
        active = await add_facility(session_factory, name="Open", occupied=5)
        closed = await add_facility(session_factory, name="Closed", occupied=5, active=False)
        executor = TickExecutor(store, clock=clock_at(10), noise_source=lambda: 1)

        for _ in range(3):
            await executor.run_tick()

        assert (await get_facility(session_factory, closed.id)).occupied == 5
        assert await get_log_entries(session_factory, closed.id) == []
        assert (await get_facility(session_factory, active.id)).occupied == 17
        assert len(await get_log_entries(session_factory, active.id)) == 3

    async def test_deactivated_after_snapshot_is_skipped(self, session_factory, store):
        facility = await add_facility(session_factory, occupied=5)
        snapshot = await store.load_active_snapshot()

        async with session_factory() as session:
            db_facility = await session.get(Facility, facility.id)
            db_facility.active = False
            await session.commit()

        written = await store.apply_occupancy(
            snapshot[0].id, 5, 8, "FILLED", "Auto-sim tick: 5 → 8", datetime(2024, 5, 15, 10)
        )

        assert written is False
        assert (await get_facility(session_factory, facility.id)).occupied == 5
        assert await get_log_entries(session_factory, facility.id) == []


@pytest.mark.asyncio
@pytest.mark.integration
class TestTickResilience:
    """Store errors on one car park do not abort the tick"""

    async def test_failed_row_does_not_stop_others(self, session_factory, store):
        first = await add_facility(session_factory, name="A", occupied=10)
        second = await add_facility(session_factory, name="B", occupied=10)

        real_apply = store.apply_occupancy

        async def flaky_apply(facility_id, *args):
            if facility_id == first.id:
                raise OperationalError("UPDATE carpark", {}, Exception("database is locked"))
            return await real_apply(facility_id, *args)

        store.apply_occupancy = AsyncMock(side_effect=flaky_apply)
        executor = TickExecutor(store, clock=clock_at(10), noise_source=lambda: 0)

        summary = await executor.run_tick()

        assert summary.failed == 1
        assert summary.updated == 1
        assert (await get_facility(session_factory, first.id)).occupied == 10
        assert (await get_facility(session_factory, second.id)).occupied == 13

    async def test_negative_capacity_clamped(self, session_factory, store):
        facility = await add_facility(session_factory, total_capacity=-5, occupied=0)
        executor = TickExecutor(store, clock=clock_at(10), noise_source=lambda: 1)

        summary = await executor.run_tick()

        assert summary.updated == 1
        assert (await get_facility(session_factory, facility.id)).occupied == 0

    async def test_no_facilities(self, store):
        executor = TickExecutor(store, clock=clock_at(10), noise_source=lambda: 1)

        summary = await executor.run_tick()

        assert summary.updated == 0
        assert summary.failed == 0


@pytest.mark.asyncio
@pytest.mark.integration
class TestReset:
    """Reset zeroes active car parks and clears the log"""

    async def test_reset_is_idempotent(self, session_factory, store):
        first = await add_facility(session_factory, name="A", occupied=40)
        second = await add_facility(session_factory, name="B", occupied=7)
        executor = TickExecutor(store, clock=clock_at(10), noise_source=lambda: 1)
        await executor.run_tick()
        controller = SimulationController(store, clock=clock_at(11))

        assert await controller.reset() == 2
        assert await controller.reset() == 2

        assert (await get_facility(session_factory, first.id)).occupied == 0
        assert (await get_facility(session_factory, second.id)).occupied == 0
        assert await get_log_entries(session_factory) == []

    async def test_reset_skips_inactive(self, session_factory, store):
        closed = await add_facility(session_factory, occupied=9, active=False)

        await SimulationController(store).reset()

        assert (await get_facility(session_factory, closed.id)).occupied == 9

    async def test_ticks_resume_after_reset(self, session_factory, store):
        facility = await add_facility(session_factory, occupied=30)
        controller = SimulationController(store)
        await controller.reset()

        await TickExecutor(store, clock=clock_at(19), noise_source=lambda: 0).run_tick()

        assert (await get_facility(session_factory, facility.id)).occupied == 4
        entries = await get_log_entries(session_factory, facility.id)
        assert [e.detail for e in entries] == ["Auto-sim tick: 0 → 4"]
