#!/usr/bin/env python3
"""
Integration tests for the Allocation Engine against an in-memory store
"""

import unittest
import sys
from pathlib import Path
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError, OperationalError

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from parking_fixtures import make_database, FakeClock, CAR, BIKE, TRUCK
from smart_parking.application.allocation import AllocationEngine
from smart_parking.domain.models import ParkingStatus
from smart_parking.infrastructure.repositories import ActivityLedger, SlotCatalog, TYPE_POLICY_REJECT
from smart_parking.exceptions import (
    AlreadyParkedError, NoSlotAvailableError, NotFoundError, InvalidPlateError,
    AllocationError, VehicleTypeMismatchError, StoreUnavailableError
)


class AllocationTestBase(unittest.TestCase):

    type_policy = "first_seen"

    def setUp(self):
        self.database = make_database(type_policy=self.type_policy)
        self.clock = FakeClock()
        self.engine = AllocationEngine(self.database, clock=self.clock)

    def tearDown(self):
        self.database.dispose()

    def free_distances(self, vehicle_type_id):
        with self.database.transaction() as uow:
            return [s.distance_from_entry for s in uow.slots.list_free(vehicle_type_id)]

    def snapshot(self):
        """Counts of every table the engine writes to"""
        with self.database.transaction() as uow:
            return {
                'vehicles': uow.vehicles.count(),
                'logs': uow.ledger.count(),
                'assignments': uow.assignments.count(),
                'free_car': len(uow.slots.list_free(CAR)),
            }


class TestAssign(AllocationTestBase):

    def test_nearest_slot_first(self):
        first = self.engine.assign("KA01AB1234", CAR)
        second = self.engine.assign("KA01AB5678", CAR)

        self.assertEqual(first.slot.distance_from_entry, 3)
        self.assertEqual(first.slot.label, "A3")
        self.assertEqual(second.slot.distance_from_entry, 5)
        self.assertEqual(self.free_distances(CAR), [12])

    def test_assign_writes_ledger_and_assignment(self):
        allocation = self.engine.assign(" ka01ab1234 ", CAR)

        self.assertEqual(allocation.plate_number, "KA01AB1234")
        self.assertTrue(allocation.slot.is_occupied)
        self.assertEqual(allocation.event.status, ParkingStatus.PARKED)
        self.assertEqual(allocation.event.entry_time, self.clock.now)

        with self.database.transaction() as uow:
            stay = uow.ledger.find_open_stay("KA01AB1234")
            assignments = uow.assignments.list_for_slot(allocation.slot.id)
            vehicle = uow.vehicles.find_by_plate("KA01AB1234")

        self.assertEqual(stay.slot_id, allocation.slot.id)
        self.assertEqual(len(assignments), 1)
        self.assertTrue(assignments[0].is_open)
        self.assertEqual(vehicle.id, allocation.vehicle_id)

    def test_slots_are_type_specific(self):
        allocation = self.engine.assign("KA01AB1234", BIKE)
        self.assertEqual(allocation.slot.label, "B1")
        self.assertEqual(self.free_distances(CAR), [3, 5, 12])

    def test_no_slot_for_type(self):
        before = self.snapshot()
        with self.assertRaises(NoSlotAvailableError) as ctx:
            self.engine.assign("TRUCK01", TRUCK)

        self.assertEqual(ctx.exception.message, "No available slots for this vehicle type!")
        self.assertEqual(self.snapshot(), before)

    def test_lot_full(self):
        for plate in ("CAR001", "CAR002", "CAR003"):
            self.engine.assign(plate, CAR)

        with self.assertRaises(NoSlotAvailableError):
            self.engine.assign("CAR004", CAR)

        with self.database.transaction() as uow:
            self.assertIsNone(uow.vehicles.find_by_plate("CAR004"))

    def test_already_parked_leaves_state_unchanged(self):
        self.engine.assign("KA01AB1234", CAR)
        before = self.snapshot()

        with self.assertRaises(AlreadyParkedError) as ctx:
            self.engine.assign("KA01AB1234", CAR)

        self.assertEqual(ctx.exception.message, "Vehicle KA01AB1234 is already parked!")
        self.assertEqual(self.snapshot(), before)

    def test_already_parked_checked_case_insensitively(self):
        self.engine.assign("KA01AB1234", CAR)
        with self.assertRaises(AlreadyParkedError):
            self.engine.assign("ka01ab1234", CAR)

    def test_unknown_vehicle_type(self):
        with self.assertRaises(NotFoundError):
            self.engine.assign("KA01AB1234", 99)
        self.assertEqual(self.snapshot()['vehicles'], 0)

    def test_invalid_plate(self):
        with self.assertRaises(InvalidPlateError):
            self.engine.assign("", CAR)
        self.assertEqual(self.snapshot()['logs'], 0)

    def test_returning_vehicle_reuses_identity(self):
        first = self.engine.assign("KA01AB1234", CAR)
        with self.database.transaction() as uow:
            stay = uow.ledger.find_open_stay("KA01AB1234")
            uow.ledger.close_entry(stay.log_id, self.clock.advance(hours=1), stay.rate_per_hour)
            uow.slots.set_occupied(stay.slot_id, False)

        second = self.engine.assign("KA01AB1234", CAR)
        self.assertEqual(first.vehicle_id, second.vehicle_id)
        self.assertEqual(self.snapshot()['vehicles'], 1)

    def test_first_seen_type_kept_on_type_change(self):
        self.engine.assign("KA01AB1234", CAR)
        with self.database.transaction() as uow:
            stay = uow.ledger.find_open_stay("KA01AB1234")
            uow.ledger.close_entry(stay.log_id, self.clock.advance(hours=1), stay.rate_per_hour)
            uow.slots.set_occupied(stay.slot_id, False)

        allocation = self.engine.assign("KA01AB1234", BIKE)
        self.assertEqual(allocation.slot.label, "B1")
        with self.database.transaction() as uow:
            self.assertEqual(uow.vehicles.find_by_plate("KA01AB1234").type_id, CAR)

    def test_negative_retries_rejected(self):
        with self.assertRaises(ValueError):
            AllocationEngine(self.database, allocation_retries=-1)


class TestAssignRejectPolicy(AllocationTestBase):

    type_policy = TYPE_POLICY_REJECT

    def test_type_change_rejected_without_side_effects(self):
        self.engine.assign("KA01AB1234", CAR)
        with self.database.transaction() as uow:
            stay = uow.ledger.find_open_stay("KA01AB1234")
            uow.ledger.close_entry(stay.log_id, self.clock.advance(hours=1), stay.rate_per_hour)
            uow.slots.set_occupied(stay.slot_id, False)

        with self.assertRaises(VehicleTypeMismatchError):
            self.engine.assign("KA01AB1234", BIKE)
        self.assertEqual(self.free_distances(BIKE), [2])


class TestAssignAtomicity(AllocationTestBase):

    def test_ledger_failure_rolls_back_slot_and_vehicle(self):
        before = self.snapshot()

        with patch.object(ActivityLedger, 'open_entry', side_effect=SQLAlchemyError("disk I/O error")):
            with self.assertRaises(AllocationError):
                self.engine.assign("KA01AB1234", CAR)

        self.assertEqual(self.snapshot(), before)
        self.assertEqual(self.free_distances(CAR), [3, 5, 12])

    def test_lost_connection_is_store_unavailable(self):
        lost = OperationalError("INSERT INTO vehicle_logs", {}, Exception("connection lost"),
                                connection_invalidated=True)
        with patch.object(ActivityLedger, 'open_entry', side_effect=lost):
            with self.assertRaises(StoreUnavailableError):
                self.engine.assign("KA01AB1234", CAR)

        self.assertEqual(self.free_distances(CAR), [3, 5, 12])

    def test_lost_race_moves_to_next_candidate(self):
        original = SlotCatalog.set_occupied
        calls = []

        def set_occupied(catalog, slot_id, occupied, expected=None):
            calls.append(slot_id)
            if len(calls) == 1:
                return False
            return original(catalog, slot_id, occupied, expected)

        with patch.object(SlotCatalog, 'set_occupied', autospec=True, side_effect=set_occupied):
            allocation = self.engine.assign("KA01AB1234", CAR)

        self.assertEqual(allocation.slot.distance_from_entry, 5)
        self.assertEqual(len(calls), 2)

    def test_retries_exhausted(self):
        engine = AllocationEngine(self.database, allocation_retries=0, clock=self.clock)

        with patch.object(SlotCatalog, 'set_occupied', return_value=False):
            with self.assertRaises(NoSlotAvailableError):
                engine.assign("KA01AB1234", CAR)

        self.assertEqual(self.snapshot()['logs'], 0)

    def test_slot_of_another_type_never_claimed(self):
        original = SlotCatalog.list_free

        def list_free(catalog, vehicle_type_id, lock=False):
            # the BIKE slot (distance 2) would sort ahead of every CAR slot
            return original(catalog, BIKE, lock) + original(catalog, vehicle_type_id, lock)

        with patch.object(SlotCatalog, 'list_free', autospec=True, side_effect=list_free):
            with self.assertLogs("AllocationEngine", level="WARNING"):
                allocation = self.engine.assign("KA01AB1234", CAR)

        self.assertEqual(allocation.slot.vehicle_type_id, CAR)
        self.assertEqual(allocation.slot.distance_from_entry, 3)
        self.assertEqual(self.free_distances(BIKE), [2])

    def test_only_foreign_candidates_means_no_slot(self):
        original = SlotCatalog.list_free

        def list_free(catalog, vehicle_type_id, lock=False):
            return original(catalog, BIKE, lock)

        with patch.object(SlotCatalog, 'list_free', autospec=True, side_effect=list_free):
            with self.assertRaises(NoSlotAvailableError):
                self.engine.assign("KA01AB1234", CAR)

        self.assertEqual(self.free_distances(BIKE), [2])
        self.assertEqual(self.snapshot()['logs'], 0)


if __name__ == '__main__':
    unittest.main(verbosity=2)
