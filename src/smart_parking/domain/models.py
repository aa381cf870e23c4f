# File: src/smart_parking/domain/models.py
"""
Domain Models for the Smart Parking engine

This module contains:
1. Value Objects: LicensePlate, Money, TimeRange
2. Enums: VehicleClass, ParkingStatus
3. Entities: VehicleType, Floor, ParkingSlot, Vehicle, ParkingEvent, SlotAssignment
4. Read models: OpenStay, LedgerRow, AvailableSlot returned by the repositories

Entities are plain dataclasses; persistence lives in the infrastructure layer
and state transitions happen only through the allocation and billing engines.
"""

from dataclasses import dataclass, field
from typing import Optional, Union
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
import re
from enum import Enum

from ..exceptions import InvalidPlateError


# ============================================================================
# DOMAIN PRIMITIVES / VALUE OBJECTS
# ============================================================================

PLATE_PATTERN = re.compile(r'^[A-Z0-9][A-Z0-9\s\-]*$')

UNKNOWN_OWNER = "Unknown Owner"


def utc_now() -> datetime:
    """Current time as naive UTC, the form every stored timestamp takes"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class LicensePlate:
    """
    Value Object: plate number, the only identity a vehicle has.
    Normalised to upper case with surrounding whitespace removed.
    """
    value: str

    def __post_init__(self):
        if self.value is None or not str(self.value).strip():
            raise InvalidPlateError("Plate number cannot be empty")

        object.__setattr__(self, 'value', str(self.value).strip().upper())

        if len(self.value) < 2 or len(self.value) > 15:
            raise InvalidPlateError(f"Plate number must be 2-15 characters, got: {self.value}")

        if not PLATE_PATTERN.match(self.value):
            raise InvalidPlateError(
                f"Plate number can only contain letters, numbers, spaces, and hyphens: {self.value}"
            )

    def __str__(self) -> str:
        return self.value


CENT = Decimal('0.01')


@dataclass(frozen=True)
class Money:
    """
    Value Object: non-negative amount in the lot's single billing currency
    """
    amount: Decimal

    def __post_init__(self):
        amount = self.amount if isinstance(self.amount, Decimal) else Decimal(str(self.amount))
        if amount < Decimal('0'):
            raise ValueError("Money amount cannot be negative")
        object.__setattr__(self, 'amount', amount.quantize(CENT, rounding=ROUND_HALF_UP))

    @classmethod
    def zero(cls) -> 'Money':
        return cls(Decimal('0'))

    def __add__(self, other: 'Money') -> 'Money':
        return Money(self.amount + other.amount)

    def __mul__(self, multiplier: Union[int, Decimal]) -> 'Money':
        """Multiply money by a whole number of units"""
        if multiplier < 0:
            raise ValueError("Multiplier cannot be negative")
        return Money(self.amount * Decimal(multiplier))

    __rmul__ = __mul__

    def format(self, symbol: str = "₹") -> str:
        """Format money for display"""
        return f"{symbol}{self.amount:.2f}"

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class TimeRange:
    """
    Value Object: a stay from entry to exit.
    A zero-length stay is allowed; an exit before entry is not.
    """
    start_time: datetime
    end_time: datetime

    def __post_init__(self):
        if self.end_time < self.start_time:
            raise ValueError("End time cannot be before start time")

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def whole_minutes(self) -> int:
        """Elapsed minutes, truncated to whole minutes"""
        return int(self.duration.total_seconds() // 60)


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class VehicleClass(Enum):
    """
    The built-in vehicle types and their default hourly rates.
    Values are the ids used in the vehicle_types table.
    """
    CAR = 1
    BIKE = 2
    TRUCK = 3

    @property
    def default_rate(self) -> Money:
        rates = {
            VehicleClass.CAR: Money(Decimal('10.00')),
            VehicleClass.BIKE: Money(Decimal('5.00')),
            VehicleClass.TRUCK: Money(Decimal('20.00')),
        }
        return rates[self]

    def __str__(self) -> str:
        return self.name


class ParkingStatus(Enum):
    """Lifecycle of a ledger entry"""
    PARKED = "PARKED"
    EXITED = "EXITED"


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

@dataclass
class VehicleType:
    """Lookup entry: a vehicle class and what it pays per hour"""
    id: int
    name: str
    rate_per_hour: Money


@dataclass
class Floor:
    id: int
    name: str


@dataclass
class ParkingSlot:
    """
    Entity: a physical space with a fixed distance from the entry and a
    fixed compatible vehicle type.
    """
    id: int
    label: str
    distance_from_entry: int
    is_occupied: bool
    floor_id: int
    vehicle_type_id: int

    def __post_init__(self):
        if self.distance_from_entry < 0:
            raise ValueError(f"Distance from entry cannot be negative: {self.distance_from_entry}")
        if not self.label:
            raise ValueError("Slot label cannot be empty")

    def accepts(self, vehicle_type_id: int) -> bool:
        """Slots only ever take the vehicle type they were built for"""
        return self.vehicle_type_id == vehicle_type_id

    def __str__(self) -> str:
        return f"{self.label} (Distance: {self.distance_from_entry})"


@dataclass
class Vehicle:
    id: int
    plate_number: str
    type_id: int
    owner_name: str = UNKNOWN_OWNER


@dataclass
class ParkingEvent:
    """
    Ledger entry: one park-to-exit record.
    Open (PARKED) while the vehicle is inside, closed (EXITED) at exit.
    """
    id: int
    vehicle_id: int
    slot_id: int
    entry_time: datetime
    exit_time: Optional[datetime] = None
    amount_charged: Money = field(default_factory=Money.zero)
    status: ParkingStatus = ParkingStatus.PARKED

    @property
    def is_open(self) -> bool:
        return self.status == ParkingStatus.PARKED


@dataclass
class SlotAssignment:
    """Audit trail of slot occupancy, closed in the exit transaction"""
    id: int
    vehicle_id: int
    slot_id: int
    assigned_time: datetime
    released_time: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.released_time is None


# ============================================================================
# READ MODELS
# ============================================================================

@dataclass(frozen=True)
class OpenStay:
    """An open ledger entry joined with its slot label and the vehicle's rate"""
    log_id: int
    vehicle_id: int
    plate_number: str
    slot_id: int
    slot_label: str
    entry_time: datetime
    rate_per_hour: Money


@dataclass(frozen=True)
class LedgerRow:
    """One line of the activity log view"""
    log_id: int
    plate_number: str
    slot_label: str
    entry_time: datetime
    exit_time: Optional[datetime]
    amount_charged: Money
    status: ParkingStatus


@dataclass(frozen=True)
class AvailableSlot:
    """A free slot with its floor and vehicle type names"""
    slot_id: int
    label: str
    floor_name: str
    distance_from_entry: int
    type_name: str

    @property
    def display_label(self) -> str:
        return f"{self.floor_name}-{self.label}"


@dataclass(frozen=True)
class SlotAllocation:
    """Outcome of a successful park transaction"""
    plate_number: str
    vehicle_id: int
    slot: ParkingSlot
    event: ParkingEvent


@dataclass(frozen=True)
class Fee:
    """Billed hours and the amount they cost"""
    minutes_parked: int
    billed_hours: int
    amount: Money


@dataclass(frozen=True)
class ExitReceipt:
    """Outcome of a successful exit transaction"""
    plate_number: str
    slot_label: str
    entry_time: datetime
    exit_time: datetime
    fee: Fee

    @property
    def billed_hours(self) -> int:
        return self.fee.billed_hours

    @property
    def amount(self) -> Money:
        return self.fee.amount
