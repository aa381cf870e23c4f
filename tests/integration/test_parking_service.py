#!/usr/bin/env python3
"""
Integration tests for the ParkingService facade
"""

import unittest
import sys
from pathlib import Path
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from parking_fixtures import make_database, FakeClock, CAR, BIKE, TRUCK
from smart_parking.application.parking_service import ParkingService
from smart_parking.application.dtos import AssignmentResult, ExitResult
from smart_parking.config import ParkingSettings
from smart_parking.infrastructure.database import Database
from smart_parking.infrastructure.repositories import SlotCatalog
from smart_parking.exceptions import NotFoundError, AllocationError, StoreUnavailableError


class ParkingServiceTestBase(unittest.TestCase):

    def setUp(self):
        self.database = make_database()
        self.clock = FakeClock()
        self.service = ParkingService(self.database, clock=self.clock)

    def tearDown(self):
        self.database.dispose()


class TestParkingServiceCommands(ParkingServiceTestBase):

    def test_assign_success(self):
        result = self.service.assign("KA01AB1234", CAR)

        self.assertIsInstance(result, AssignmentResult)
        self.assertTrue(result.success)
        self.assertEqual(result.slot_label, "A3")
        self.assertEqual(result.distance, 3)
        self.assertEqual(result.message, "Vehicle KA01AB1234 assigned to slot A3 (Distance: 3m)")
        self.assertIsNone(result.error)

    def test_assign_already_parked(self):
        self.service.assign("KA01AB1234", CAR)
        result = self.service.assign("KA01AB1234", CAR)

        self.assertFalse(result.success)
        self.assertEqual(result.error, "AlreadyParkedError")
        self.assertEqual(result.message, "Vehicle KA01AB1234 is already parked!")

    def test_assign_no_slot(self):
        result = self.service.assign("TRUCK01", TRUCK)

        self.assertFalse(result.success)
        self.assertEqual(result.error, "NoSlotAvailableError")
        self.assertEqual(result.message, "No available slots for this vehicle type!")

    def test_assign_invalid_plate(self):
        result = self.service.assign("", CAR)
        self.assertFalse(result.success)
        self.assertEqual(result.error, "InvalidPlateError")

    def test_exit_success(self):
        self.service.assign("KA01AB1234", CAR)
        self.clock.advance(minutes=61)
        result = self.service.process_exit("KA01AB1234")

        self.assertIsInstance(result, ExitResult)
        self.assertTrue(result.success)
        self.assertEqual(result.billed_hours, 2)
        self.assertEqual(result.amount, Decimal("20.00"))
        self.assertEqual(result.minutes_parked, 61)
        self.assertEqual(
            result.message,
            "Vehicle KA01AB1234 exited from slot A3.\n"
            "Parking Duration: 2 hours\n"
            "Amount: ₹20.00"
        )

    def test_exit_uses_currency_symbol(self):
        service = ParkingService(self.database, currency_symbol="$", clock=self.clock)
        service.assign("KA01AB1234", BIKE)
        self.clock.advance(minutes=5)

        self.assertIn("Amount: $5.00", service.process_exit("KA01AB1234").message)

    def test_exit_not_parked(self):
        result = self.service.process_exit("KA01AB1234")

        self.assertFalse(result.success)
        self.assertEqual(result.error, "NotParkedError")
        self.assertIsNone(result.amount)

    def test_store_unavailable_is_raised(self):
        lost = OperationalError("SELECT", {}, Exception("connection lost"), connection_invalidated=True)

        with patch.object(SlotCatalog, 'list_free', side_effect=lost):
            with self.assertRaises(StoreUnavailableError):
                self.service.assign("KA01AB1234", CAR)

    def test_result_serialises(self):
        data = self.service.assign("KA01AB1234", CAR).to_dict(exclude_none=True)
        self.assertEqual(data["slot_label"], "A3")
        self.assertNotIn("error", data)
        self.assertIn('"success":true', self.service.assign("KA01AB5678", CAR).to_json())

    def test_add_slot(self):
        slot = self.service.add_slot("t1", "F1", 20, "TRUCK")

        self.assertEqual(slot.display_label, "F1-T1")
        self.assertEqual(slot.type_name, "TRUCK")
        self.assertTrue(self.service.assign("TRUCK01", TRUCK).success)

    def test_add_duplicate_slot(self):
        with self.assertRaises(AllocationError):
            self.service.add_slot("A1", "G", 7, "CAR")

    def test_from_settings(self):
        settings = ParkingSettings(database_url="sqlite://", allocation_retries=5, currency_symbol="€")
        service = ParkingService.from_settings(self.database, settings)

        self.assertEqual(service.allocation.allocation_retries, 5)
        self.assertEqual(service.currency_symbol, "€")


class TestParkingServiceQueries(ParkingServiceTestBase):

    def test_list_available_slots(self):
        self.service.assign("KA01AB1234", CAR)
        slots = self.service.list_available_slots()

        self.assertEqual([s.display_label for s in slots], ["G-B1", "G-A1", "G-A2"])
        self.assertEqual([s.distance for s in slots], [2, 5, 12])

    def test_list_logs_newest_first(self):
        self.service.assign("AAA111", CAR)
        self.clock.advance(minutes=10)
        self.service.assign("BBB222", BIKE)
        self.clock.advance(minutes=10)
        self.service.process_exit("AAA111")

        logs = self.service.list_logs()

        self.assertEqual([log.plate for log in logs], ["BBB222", "AAA111"])
        self.assertEqual(logs[0].status, "PARKED")
        self.assertIsNone(logs[0].exit_time)
        self.assertEqual(logs[0].amount, Decimal("0.00"))
        self.assertEqual(logs[1].status, "EXITED")
        self.assertEqual(logs[1].amount, Decimal("10.00"))

    def test_occupancy_summary(self):
        self.service.assign("KA01AB1234", CAR)
        summary = {row.type_name: row for row in self.service.occupancy_summary()}

        self.assertEqual(summary["CAR"].occupied_slots, 1)
        self.assertEqual(summary["CAR"].free_slots, 2)
        self.assertAlmostEqual(summary["CAR"].occupancy_rate, 1 / 3)
        self.assertEqual(summary["TRUCK"].occupancy_rate, 0.0)

    def test_find_vehicle_type(self):
        self.assertEqual(self.service.find_vehicle_type("bike").id, BIKE)
        self.assertEqual(self.service.find_vehicle_type("3").name, "TRUCK")
        self.assertEqual(self.service.find_vehicle_type(CAR).rate_per_hour, Decimal("10.00"))

        with self.assertRaises(NotFoundError):
            self.service.find_vehicle_type("BOAT")

    def test_list_vehicle_types(self):
        names = [t.name for t in self.service.list_vehicle_types()]
        self.assertEqual(names, ["CAR", "BIKE", "TRUCK"])

    def test_queries_use_read_scope(self):
        self.service.assign("KA01AB1234", CAR)
        write_scope = AssertionError("query opened a write transaction")

        with patch.object(Database, 'transaction', side_effect=write_scope):
            self.assertEqual(len(self.service.list_available_slots()), 3)
            self.assertEqual(len(self.service.list_logs()), 1)
            self.assertEqual(len(self.service.occupancy_summary()), 3)
            self.assertEqual(len(self.service.list_vehicle_types()), 3)
            self.assertEqual(self.service.find_vehicle_type("truck").id, TRUCK)



if __name__ == '__main__':
    unittest.main(verbosity=2)
