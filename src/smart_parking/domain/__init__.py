"""
Domain layer: entities, value objects and strategies
"""

from .models import (
    LicensePlate,
    Money,
    TimeRange,
    VehicleClass,
    ParkingStatus,
    VehicleType,
    Floor,
    ParkingSlot,
    Vehicle,
    ParkingEvent,
    SlotAssignment,
    OpenStay,
    LedgerRow,
    AvailableSlot,
    SlotAllocation,
    Fee,
    ExitReceipt,
    UNKNOWN_OWNER,
)
from .strategies import (
    SlotSelectionStrategy,
    PricingStrategy,
    NearestSlotStrategy,
    HourlyCeilingPricingStrategy,
)

__all__ = [
    "LicensePlate",
    "Money",
    "TimeRange",
    "VehicleClass",
    "ParkingStatus",
    "VehicleType",
    "Floor",
    "ParkingSlot",
    "Vehicle",
    "ParkingEvent",
    "SlotAssignment",
    "OpenStay",
    "LedgerRow",
    "AvailableSlot",
    "SlotAllocation",
    "Fee",
    "ExitReceipt",
    "UNKNOWN_OWNER",
    "SlotSelectionStrategy",
    "PricingStrategy",
    "NearestSlotStrategy",
    "HourlyCeilingPricingStrategy",
]
