"""SQLAlchemy ORM models for FleetSync."""

from fleetsync.models.base import Base
from fleetsync.models.driver import DriverCache
from fleetsync.models.sync import SyncRun
from fleetsync.models.vehicle import VehicleCache

__all__ = [
    "Base",
    "DriverCache",
    "SyncRun",
    "VehicleCache",
]
