# File: src/smart_parking/application/dtos.py
"""
Data Transfer Objects (DTOs) returned to UI collaborators

DTO Principles:
- No business logic, only data
- Built from domain read models, never from ORM rows
- Serialisable to dict/JSON for display or logging
"""

from typing import Dict, Optional, Any
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        frozen=True,
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        return self.model_dump(exclude_none=exclude_none, **kwargs)

    def to_json(self, **kwargs) -> str:
        """Convert DTO to JSON string"""
        return self.model_dump_json(**kwargs)


# ============================================================================
# OPERATION RESULTS
# ============================================================================

class OperationResult(BaseDTO):
    """Outcome of a state-changing operation"""
    success: bool
    message: str
    error: Optional[str] = Field(default=None, description="Error class name when success is False")


class AssignmentResult(OperationResult):
    """Result of assign(plate, vehicle_type_id)"""
    plate_number: Optional[str] = None
    slot_label: Optional[str] = None
    distance: Optional[int] = Field(default=None, ge=0)
    entry_time: Optional[datetime] = None


class ExitResult(OperationResult):
    """Result of process_exit(plate)"""
    plate_number: Optional[str] = None
    slot_label: Optional[str] = None
    minutes_parked: Optional[int] = Field(default=None, ge=0)
    billed_hours: Optional[int] = Field(default=None, ge=0)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None


# ============================================================================
# QUERY VIEWS
# ============================================================================

class AvailableSlotDTO(BaseDTO):
    """One free slot for the availability table"""
    slot_id: int
    label: str
    floor: str
    distance: int = Field(ge=0)
    type_name: str

    @property
    def display_label(self) -> str:
        return f"{self.floor}-{self.label}"


class ParkingLogDTO(BaseDTO):
    """One row of the activity log"""
    log_id: int
    plate: str
    slot_label: str
    entry_time: datetime
    exit_time: Optional[datetime] = None
    amount: Decimal = Field(ge=0)
    status: str


class VehicleTypeDTO(BaseDTO):
    id: int
    name: str
    rate_per_hour: Decimal = Field(ge=0)


class OccupancySummaryDTO(BaseDTO):
    """Slot counts for one vehicle type"""
    type_id: int
    type_name: str
    total_slots: int = Field(ge=0)
    occupied_slots: int = Field(ge=0)
    free_slots: int = Field(ge=0)

    @property
    def occupancy_rate(self) -> float:
        if self.total_slots == 0:
            return 0.0
        return self.occupied_slots / self.total_slots


__all__ = [
    "BaseDTO",
    "OperationResult",
    "AssignmentResult",
    "ExitResult",
    "AvailableSlotDTO",
    "ParkingLogDTO",
    "VehicleTypeDTO",
    "OccupancySummaryDTO",
]
