"""Facility model - Car park capacity and live occupancy"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, CheckConstraint, Index
from sqlalchemy.sql import func

from app.database import Base


class Facility(Base):
    """Car park tracked by the occupancy simulator"""

    __tablename__ = "carpark"

    id = Column("carpark_id", Integer, primary_key=True, autoincrement=True)
    hospital_code = Column("heorg_id", String(20), nullable=False)
    name = Column("carpark_name", String(200), nullable=False)
    total_capacity = Column("total_spaces", Integer, nullable=False)
    occupied = Column(
        "occupied_spaces",
        Integer,
        CheckConstraint("occupied_spaces >= 0", name="occupied_non_negative"),
        nullable=False,
        default=0,
    )
    status = Column(String(50), nullable=False, default="OPEN")
    active = Column("is_active", Boolean, nullable=False, default=True)
    last_updated = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_carpark_heorg", "heorg_id"),
        Index("idx_carpark_active", "is_active"),
    )

    @property
    def free(self) -> int:
        return max(0, self.total_capacity - self.occupied)

    def __repr__(self):
        return f"<Facility(id={self.id}, name={self.name}, occupied={self.occupied}/{self.total_capacity})>"
