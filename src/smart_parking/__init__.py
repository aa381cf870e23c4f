"""
Smart Parking: slot allocation and billing engine

    database = Database("sqlite:///parking.db")
    database.create_schema()
    database.seed(layout=DEMO_LAYOUT)

    service = ParkingService(database)
    service.assign("KA01AB1234", 1)
    service.process_exit("KA01AB1234")
"""

from .application import (
    AllocationEngine,
    BillingEngine,
    ParkingService,
    AssignmentResult,
    ExitResult,
)
from .config import ParkingSettings, load_settings
from .infrastructure import Database, DEMO_LAYOUT, DEFAULT_VEHICLE_TYPES
from .exceptions import (
    ParkingServiceError,
    InvalidPlateError,
    NotFoundError,
    AlreadyParkedError,
    NoSlotAvailableError,
    NotParkedError,
    AllocationError,
    VehicleTypeMismatchError,
    BillingError,
    StoreUnavailableError,
    ConfigurationError,
)

__version__ = "1.0.0"

__all__ = [
    "AllocationEngine",
    "BillingEngine",
    "ParkingService",
    "AssignmentResult",
    "ExitResult",
    "ParkingSettings",
    "load_settings",
    "Database",
    "DEMO_LAYOUT",
    "DEFAULT_VEHICLE_TYPES",
    "ParkingServiceError",
    "InvalidPlateError",
    "NotFoundError",
    "AlreadyParkedError",
    "NoSlotAvailableError",
    "NotParkedError",
    "AllocationError",
    "VehicleTypeMismatchError",
    "BillingError",
    "StoreUnavailableError",
    "ConfigurationError",
]
