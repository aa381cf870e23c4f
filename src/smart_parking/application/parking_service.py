# File: src/smart_parking/application/parking_service.py
"""
Parking Management Application Service

Facade used by the UI collaborators (CLI, desktop front end). It wires the
Allocation and Billing engines to one Database and turns their outcomes
into DTOs with a display message.

Responsibilities:
1. Execute the park and exit use cases
2. Answer read-only queries (free slots, activity log, occupancy)
3. Convert business errors into unsuccessful results

StoreUnavailableError is never folded into a result: the caller has to
know the store is gone.
"""

from typing import Callable, List, Optional, Union
from datetime import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError

from .allocation import AllocationEngine
from .billing import BillingEngine
from .dtos import (
    AssignmentResult, ExitResult, AvailableSlotDTO, ParkingLogDTO,
    VehicleTypeDTO, OccupancySummaryDTO
)
from ..domain.models import utc_now
from ..domain.strategies import SlotSelectionStrategy, PricingStrategy
from ..infrastructure.database import Database, translate_store_error
from ..exceptions import (
    ParkingServiceError, StoreUnavailableError, NotFoundError, AllocationError
)


class ParkingService:
    """
    Application service for the Smart Parking engine

    Uses Dependency Injection: the Database and, optionally, the slot
    selection strategy, pricing strategy and clock are passed in.
    """

    def __init__(
        self,
        database: Database,
        strategy: Optional[SlotSelectionStrategy] = None,
        pricing: Optional[PricingStrategy] = None,
        allocation_retries: int = 3,
        currency_symbol: str = "₹",
        clock: Callable[[], datetime] = utc_now
    ):
        self.database = database
        self.currency_symbol = currency_symbol
        self.allocation = AllocationEngine(
            database, strategy=strategy, allocation_retries=allocation_retries, clock=clock
        )
        self.billing = BillingEngine(database, pricing=pricing, clock=clock)
        self.logger = logging.getLogger(self.__class__.__name__)
        self.logger.info("ParkingService initialized")

    @classmethod
    def from_settings(cls, database: Database, settings, **kwargs) -> 'ParkingService':
        return cls(
            database,
            allocation_retries=settings.allocation_retries,
            currency_symbol=settings.currency_symbol,
            **kwargs
        )

    # ========================================================================
    # COMMANDS
    # ========================================================================

    def assign(self, plate_number: str, vehicle_type_id: int) -> AssignmentResult:
        """Park a vehicle in the nearest free slot of its type"""
        try:
            allocation = self.allocation.assign(plate_number, vehicle_type_id)
        except StoreUnavailableError:
            raise
        except ParkingServiceError as e:
            return AssignmentResult(success=False, message=e.message, error=e.code)

        slot = allocation.slot
        return AssignmentResult(
            success=True,
            message=(
                f"Vehicle {allocation.plate_number} assigned to slot {slot.label} "
                f"(Distance: {slot.distance_from_entry}m)"
            ),
            plate_number=allocation.plate_number,
            slot_label=slot.label,
            distance=slot.distance_from_entry,
            entry_time=allocation.event.entry_time
        )

    def process_exit(self, plate_number: str) -> ExitResult:
        """Bill a departing vehicle and free its slot"""
        try:
            receipt = self.billing.process_exit(plate_number)
        except StoreUnavailableError:
            raise
        except ParkingServiceError as e:
            return ExitResult(success=False, message=e.message, error=e.code)

        return ExitResult(
            success=True,
            message=(
                f"Vehicle {receipt.plate_number} exited from slot {receipt.slot_label}.\n"
                f"Parking Duration: {receipt.billed_hours} hours\n"
                f"Amount: {receipt.amount.format(self.currency_symbol)}"
            ),
            plate_number=receipt.plate_number,
            slot_label=receipt.slot_label,
            minutes_parked=receipt.fee.minutes_parked,
            billed_hours=receipt.billed_hours,
            amount=receipt.amount.amount,
            entry_time=receipt.entry_time,
            exit_time=receipt.exit_time
        )

    def add_slot(self, label: str, floor_name: str, distance: int,
                 vehicle_type: Union[str, int]) -> AvailableSlotDTO:
        """
        Add a free slot to a floor, creating the floor if needed.
        Raises AllocationError if the floor already has that label.
        """
        vehicle_type_dto = self.find_vehicle_type(vehicle_type)
        label = label.strip().upper()
        if distance < 0:
            raise AllocationError(f"Distance from entry cannot be negative: {distance}")

        try:
            with self.database.transaction() as uow:
                floor = uow.floors.get_or_create(floor_name.strip())
                if uow.slots.find_by_label(label, floor.id) is not None:
                    raise AllocationError(f"Slot {floor.name}-{label} already exists")
                slot = uow.slots.add_slot(
                    label=label,
                    floor_id=floor.id,
                    distance_from_entry=distance,
                    vehicle_type_id=vehicle_type_dto.id
                )
        except SQLAlchemyError as e:
            self.logger.error(f"Error adding slot {label}: {e}", exc_info=True)
            raise translate_store_error(e, AllocationError, "adding slot") from e

        self.logger.info(f"Added slot {floor.name}-{slot.label} for {vehicle_type_dto.name}")
        return AvailableSlotDTO(
            slot_id=slot.id,
            label=slot.label,
            floor=floor.name,
            distance=slot.distance_from_entry,
            type_name=vehicle_type_dto.name
        )

    # ========================================================================
    # QUERIES
    # ========================================================================

    def list_available_slots(self) -> List[AvailableSlotDTO]:
        """Every free slot, nearest first"""
        try:
            with self.database.read() as uow:
                slots = uow.slots.list_available()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing available slots: {e}", exc_info=True)
            raise translate_store_error(e, AllocationError, "listing available slots") from e

        return [
            AvailableSlotDTO(
                slot_id=slot.slot_id,
                label=slot.label,
                floor=slot.floor_name,
                distance=slot.distance_from_entry,
                type_name=slot.type_name
            )
            for slot in slots
        ]

    def list_logs(self) -> List[ParkingLogDTO]:
        """The activity log, newest entry first"""
        try:
            with self.database.read() as uow:
                rows = uow.ledger.list_rows()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing activity log: {e}", exc_info=True)
            raise translate_store_error(e, AllocationError, "listing activity log") from e

        return [
            ParkingLogDTO(
                log_id=row.log_id,
                plate=row.plate_number,
                slot_label=row.slot_label,
                entry_time=row.entry_time,
                exit_time=row.exit_time,
                amount=row.amount_charged.amount,
                status=row.status.value
            )
            for row in rows
        ]

    def occupancy_summary(self) -> List[OccupancySummaryDTO]:
        try:
            with self.database.read() as uow:
                counts = uow.slots.occupancy_by_type()
        except SQLAlchemyError as e:
            self.logger.error(f"Error computing occupancy: {e}", exc_info=True)
            raise translate_store_error(e, AllocationError, "computing occupancy") from e

        return [OccupancySummaryDTO(**entry) for entry in counts]

    def list_vehicle_types(self) -> List[VehicleTypeDTO]:
        try:
            with self.database.read() as uow:
                types = uow.vehicle_types.get_all()
        except SQLAlchemyError as e:
            raise translate_store_error(e, AllocationError, "listing vehicle types") from e

        return [
            VehicleTypeDTO(id=t.id, name=t.name, rate_per_hour=t.rate_per_hour.amount)
            for t in types
        ]

    def find_vehicle_type(self, name_or_id: Union[str, int]) -> VehicleTypeDTO:
        """
        Look up a vehicle type by id ("1", 1) or by name ("car").
        Raises NotFoundError when nothing matches.
        """
        key = str(name_or_id).strip()
        try:
            with self.database.read() as uow:
                if key.isdigit():
                    vehicle_type = uow.vehicle_types.get(int(key))
                else:
                    vehicle_type = uow.vehicle_types.get_by_name(key)
        except SQLAlchemyError as e:
            raise translate_store_error(e, AllocationError, "looking up vehicle type") from e

        if vehicle_type is None:
            raise NotFoundError(f"Unknown vehicle type: {name_or_id}")

        return VehicleTypeDTO(
            id=vehicle_type.id,
            name=vehicle_type.name,
            rate_per_hour=vehicle_type.rate_per_hour.amount
        )
