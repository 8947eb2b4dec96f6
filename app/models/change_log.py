"""ChangeLogEntry model - Append-only occupancy change log"""
from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Index
from sqlalchemy.sql import func

from app.database import Base

ACTION_FILLED = "FILLED"
ACTION_EMPTIED = "EMPTIED"
ACTION_NOCHANGE = "NOCHANGE"


class ChangeLogEntry(Base):
    """One occupancy change for one car park, written once per tick"""

    __tablename__ = "carpark_log"

    id = Column("log_id", Integer, primary_key=True, autoincrement=True)
    facility_id = Column("carpark_id", Integer, ForeignKey("carpark.carpark_id"), nullable=False)
    action = Column(String(20), nullable=False)  # FILLED, EMPTIED or NOCHANGE
    detail = Column(Text, nullable=True)
    previous_occupied = Column(Integer, nullable=True)
    new_occupied = Column(Integer, nullable=True)
    admin_id = Column(Integer, nullable=True)  # NULL for simulator entries
    timestamp = Column("logged_at", DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_carpark_log_carpark", "carpark_id"),
        Index("idx_carpark_log_logged_at", "logged_at"),
    )

    def __repr__(self):
        return f"<ChangeLogEntry(id={self.id}, facility={self.facility_id}, action={self.action})>"
