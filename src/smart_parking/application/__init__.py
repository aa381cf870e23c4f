"""
Application layer: use cases and the service facade
"""

from .allocation import AllocationEngine
from .billing import BillingEngine
from .parking_service import ParkingService
from .dtos import (
    AssignmentResult,
    ExitResult,
    AvailableSlotDTO,
    ParkingLogDTO,
    VehicleTypeDTO,
    OccupancySummaryDTO,
)

__all__ = [
    "AllocationEngine",
    "BillingEngine",
    "ParkingService",
    "AssignmentResult",
    "ExitResult",
    "AvailableSlotDTO",
    "ParkingLogDTO",
    "VehicleTypeDTO",
    "OccupancySummaryDTO",
]
