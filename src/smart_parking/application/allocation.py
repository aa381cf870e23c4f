# File: src/smart_parking/application/allocation.py
"""
Allocation Engine

Use Case: Vehicle Entry
1. Reject plates that already have an open ledger entry
2. Query free slots of the requested vehicle type, nearest first
3. Claim the nearest one with a conditional write
4. Register the vehicle (first sight), open a PARKED ledger entry and a
   slot assignment

Steps 1-4 run in a single transaction; any failure leaves no trace.
"""

from typing import Callable, List, Optional
from datetime import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError

from ..domain.models import LicensePlate, ParkingSlot, SlotAllocation, utc_now
from ..domain.strategies import SlotSelectionStrategy, NearestSlotStrategy
from ..infrastructure.database import Database, translate_store_error
from ..infrastructure.repositories import SQLAlchemyUnitOfWork
from ..exceptions import (
    ParkingServiceError, AllocationError, AlreadyParkedError,
    NoSlotAvailableError, NotFoundError
)


class AllocationEngine:
    """Assigns the nearest free compatible slot to an arriving vehicle"""

    def __init__(
        self,
        database: Database,
        strategy: Optional[SlotSelectionStrategy] = None,
        allocation_retries: int = 3,
        clock: Callable[[], datetime] = utc_now
    ):
        if allocation_retries < 0:
            raise ValueError("allocation_retries cannot be negative")

        self.database = database
        self.strategy = strategy or NearestSlotStrategy()
        self.allocation_retries = allocation_retries
        self.clock = clock
        self.logger = logging.getLogger(self.__class__.__name__)

    def assign(self, plate_number: str, vehicle_type_id: int) -> SlotAllocation:
        """
        Park a vehicle in the nearest free slot of its type.

        Raises AlreadyParkedError, NoSlotAvailableError, NotFoundError,
        InvalidPlateError, AllocationError or StoreUnavailableError.
        """
        plate = LicensePlate(plate_number)
        self.logger.info(f"Processing parking request for {plate} (type {vehicle_type_id})")

        try:
            with self.database.transaction() as uow:
                allocation = self._assign(uow, plate.value, vehicle_type_id)
        except ParkingServiceError as e:
            self.logger.warning(f"Parking request for {plate} rejected: {e.message}")
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error assigning slot to {plate}: {e}", exc_info=True)
            raise translate_store_error(e, AllocationError, "assigning slot") from e

        self.logger.info(
            f"Vehicle {plate} assigned to slot {allocation.slot.label} "
            f"(distance {allocation.slot.distance_from_entry})"
        )
        return allocation

    def _assign(self, uow: SQLAlchemyUnitOfWork, plate: str, vehicle_type_id: int) -> SlotAllocation:
        if uow.vehicle_types.get(vehicle_type_id) is None:
            raise NotFoundError(f"Unknown vehicle type: {vehicle_type_id}")

        if uow.ledger.has_open_entry(plate):
            raise AlreadyParkedError(f"Vehicle {plate} is already parked!")

        candidates = self.strategy.order(uow.slots.list_free(vehicle_type_id, lock=True))
        if not candidates:
            raise NoSlotAvailableError("No available slots for this vehicle type!")

        slot = self._claim(uow, candidates, vehicle_type_id)

        vehicle_id = uow.vehicles.resolve(plate, vehicle_type_id)
        now = self.clock()
        event = uow.ledger.open_entry(vehicle_id, slot.id, now)
        uow.assignments.open(vehicle_id, slot.id, now)

        slot.is_occupied = True
        return SlotAllocation(plate_number=plate, vehicle_id=vehicle_id, slot=slot, event=event)

    def _claim(self, uow: SQLAlchemyUnitOfWork, candidates: List[ParkingSlot],
               vehicle_type_id: int) -> ParkingSlot:
        """
        Occupy the first candidate that is still free at write time.
        A lost race moves on to the next one, up to allocation_retries times.
        Candidates built for another vehicle type are never claimed.
        """
        compatible = []
        for slot in candidates:
            if slot.accepts(vehicle_type_id):
                compatible.append(slot)
            else:
                self.logger.warning(
                    f"Skipping slot {slot.label}: built for type {slot.vehicle_type_id}, "
                    f"not {vehicle_type_id}"
                )

        for attempt, slot in enumerate(compatible[:self.allocation_retries + 1]):
            if uow.slots.set_occupied(slot.id, True, expected=False):
                return slot
            self.logger.info(f"Slot {slot.label} taken concurrently (attempt {attempt + 1})")

        raise NoSlotAvailableError("No available slots for this vehicle type!")
