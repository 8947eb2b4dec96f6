"""
Facility Store

Repository over the shared carpark tables. The simulator is the only writer
of occupied_spaces and carpark_log during normal operation; every write is
guarded by carpark_id and is_active so a car park deactivated by an admin is
never resurrected.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.models.facility import Facility
from app.models.change_log import ChangeLogEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FacilitySnapshot:
    """Occupancy of one active car park at the start of a tick"""
    id: int
    total_capacity: int
    occupied: int


class FacilityStore:
    """Reads and writes car park occupancy and the change log"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def load_active_snapshot(self) -> List[FacilitySnapshot]:
        """Load (id, total, occupied) for all active car parks; the session is closed on return"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Facility.id, Facility.total_capacity, Facility.occupied)
                .where(Facility.active.is_(True))
                .order_by(Facility.id)
            )
            rows = result.all()

        return [FacilitySnapshot(id=row[0], total_capacity=row[1], occupied=row[2]) for row in rows]

    async def apply_occupancy(
        self,
        facility_id: int,
        previous: int,
        new: int,
        action: str,
        detail: str,
        at: datetime,
    ) -> bool:
        """
        Persist a new occupancy and its log entry in one transaction.

        Returns:
            False if the car park was deactivated or removed since the snapshot,
            in which case nothing is written.
        """
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Facility)
                    .where(Facility.id == facility_id, Facility.active.is_(True))
                    .values({Facility.occupied: new, Facility.last_updated: at})
                )
                if result.rowcount == 0:
                    return False

                session.add(ChangeLogEntry(
                    facility_id=facility_id,
                    action=action,
                    detail=detail,
                    previous_occupied=previous,
                    new_occupied=new,
                    admin_id=None,
                    timestamp=at,
                ))
        return True

    async def reset_all(self, at: datetime) -> int:
        """
        Zero occupancy of every active car park and clear the change log.

        Returns:
            Number of car parks reset
        """
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Facility)
                    .where(Facility.active.is_(True))
                    .values({Facility.occupied: 0, Facility.last_updated: at})
                )
                await session.execute(delete(ChangeLogEntry))
                reset_count = result.rowcount

        logger.info(f"Reset {reset_count} car parks and cleared change log")
        return reset_count

    async def list_for_hospital(self, hospital_code: str) -> List[Facility]:
        """Active car parks for a hospital, ordered by name"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Facility)
                .where(Facility.hospital_code == hospital_code, Facility.active.is_(True))
                .order_by(Facility.name)
            )
            return list(result.scalars().all())
