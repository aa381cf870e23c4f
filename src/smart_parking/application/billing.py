# File: src/smart_parking/application/billing.py
"""
Billing Engine

Use Case: Vehicle Exit
1. Find the plate's open ledger entry with slot label and hourly rate
2. Compute whole minutes parked and the billed hours
3. Close the entry, free the slot and close the slot assignment

Step 3 runs in one transaction: the entry is closed only if it is still
open, so a stay can never be billed twice.
"""

from typing import Callable, Optional
from datetime import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError

from ..domain.models import LicensePlate, TimeRange, ExitReceipt, OpenStay, utc_now
from ..domain.strategies import PricingStrategy, HourlyCeilingPricingStrategy
from ..infrastructure.database import Database, translate_store_error
from ..infrastructure.repositories import SQLAlchemyUnitOfWork
from ..exceptions import ParkingServiceError, BillingError, NotParkedError


class BillingEngine:
    """Bills a departing vehicle and releases its slot"""

    def __init__(
        self,
        database: Database,
        pricing: Optional[PricingStrategy] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.database = database
        self.pricing = pricing or HourlyCeilingPricingStrategy()
        self.clock = clock
        self.logger = logging.getLogger(self.__class__.__name__)

    def process_exit(self, plate_number: str) -> ExitReceipt:
        """
        Close the open stay of a plate and return what was billed.

        Raises NotParkedError, InvalidPlateError, BillingError or
        StoreUnavailableError.
        """
        plate = LicensePlate(plate_number)
        self.logger.info(f"Processing exit request for {plate}")

        try:
            with self.database.transaction() as uow:
                receipt = self._process_exit(uow, plate.value)
        except ParkingServiceError as e:
            self.logger.warning(f"Exit for {plate} rejected: {e.message}")
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error processing exit for {plate}: {e}", exc_info=True)
            raise translate_store_error(e, BillingError, "processing exit") from e

        self.logger.info(
            f"Vehicle {plate} left slot {receipt.slot_label}: "
            f"{receipt.billed_hours} h, {receipt.amount}"
        )
        return receipt

    def _process_exit(self, uow: SQLAlchemyUnitOfWork, plate: str) -> ExitReceipt:
        stay = uow.ledger.find_open_stay(plate, lock=True)
        if stay is None:
            raise NotParkedError(f"Vehicle {plate} is not currently parked!")

        stay_range = self._stay_range(stay, self.clock())
        exit_time = stay_range.end_time
        fee = self.pricing.calculate_fee(stay_range, stay.rate_per_hour)

        if not uow.ledger.close_entry(stay.log_id, exit_time, fee.amount):
            raise NotParkedError(f"Vehicle {plate} was already checked out")

        if not uow.slots.set_occupied(stay.slot_id, False, expected=True):
            raise BillingError(f"Slot {stay.slot_label} was not marked occupied")

        if uow.assignments.close(stay.vehicle_id, stay.slot_id, exit_time) == 0:
            self.logger.warning(f"No open slot assignment for {plate} in {stay.slot_label}")

        return ExitReceipt(
            plate_number=plate,
            slot_label=stay.slot_label,
            entry_time=stay.entry_time,
            exit_time=exit_time,
            fee=fee
        )

    def _stay_range(self, stay: OpenStay, exit_time: datetime) -> TimeRange:
        if exit_time < stay.entry_time:
            # the clock stepped back after entry
            self.logger.warning(
                f"Exit time {exit_time:%Y-%m-%d %H:%M:%S} is before entry "
                f"{stay.entry_time:%Y-%m-%d %H:%M:%S} for {stay.plate_number}; "
                f"billing the minimum stay"
            )
            return TimeRange(stay.entry_time, stay.entry_time)
        return TimeRange(stay.entry_time, exit_time)
