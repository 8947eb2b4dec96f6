"""SQLAlchemy ORM Models for the carpark store"""
from app.models.facility import Facility
from app.models.change_log import ChangeLogEntry

__all__ = [
    "Facility",
    "ChangeLogEntry",
]
