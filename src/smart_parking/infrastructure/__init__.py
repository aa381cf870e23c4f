"""
Infrastructure layer: SQLAlchemy models, repositories and the store handle
"""

from .repositories import (
    Base,
    SlotCatalog,
    VehicleRegistry,
    ActivityLedger,
    SlotAssignmentRepository,
    VehicleTypeRepository,
    FloorRepository,
    SQLAlchemyUnitOfWork,
    TYPE_POLICY_FIRST_SEEN,
    TYPE_POLICY_REJECT,
)
from .database import Database, DEFAULT_VEHICLE_TYPES, DEMO_LAYOUT, translate_store_error

__all__ = [
    "Base",
    "SlotCatalog",
    "VehicleRegistry",
    "ActivityLedger",
    "SlotAssignmentRepository",
    "VehicleTypeRepository",
    "FloorRepository",
    "SQLAlchemyUnitOfWork",
    "TYPE_POLICY_FIRST_SEEN",
    "TYPE_POLICY_REJECT",
    "Database",
    "DEFAULT_VEHICLE_TYPES",
    "DEMO_LAYOUT",
    "translate_store_error",
]
