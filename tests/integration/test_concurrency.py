#!/usr/bin/env python3
"""
Concurrency tests: many threads racing for the same slot or the same plate

These run against a file-backed SQLite database so every thread gets its
own connection.
"""

import unittest
import sys
import os
import shutil
import tempfile
import threading
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from parking_fixtures import make_database, CAR
from smart_parking.application.allocation import AllocationEngine
from smart_parking.application.billing import BillingEngine
from smart_parking.application.parking_service import ParkingService
from smart_parking.infrastructure.database import Database
from smart_parking.exceptions import AlreadyParkedError, NoSlotAvailableError, NotParkedError


WORKERS = 8

ONE_CAR_SLOT = [{"name": "G", "slots": [{"label": "A1", "distance": 5, "type": "CAR"}]}]

MANY_CAR_SLOTS = [{
    "name": "G",
    "slots": [
        {"label": f"A{n}", "distance": n, "type": "CAR"} for n in range(1, WORKERS + 1)
    ],
}]


def run_concurrently(target, arguments):
    """Start one thread per argument behind a barrier; collect results and errors"""
    barrier = threading.Barrier(len(arguments))
    results, errors = [], []
    lock = threading.Lock()

    def worker(argument):
        barrier.wait()
        try:
            outcome = target(argument)
        except Exception as e:  # collected for the assertions
            with lock:
                errors.append(e)
        else:
            with lock:
                results.append(outcome)

    threads = [threading.Thread(target=worker, args=(argument,)) for argument in arguments]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results, errors


class ConcurrencyTestBase(unittest.TestCase):

    layout = ONE_CAR_SLOT

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.url = f"sqlite:///{os.path.join(self.tmp_dir, 'parking.db')}"
        self.database = make_database(self.url, layout=self.layout, busy_timeout_seconds=30)
        self.allocation = AllocationEngine(self.database)
        self.billing = BillingEngine(self.database)

    def tearDown(self):
        self.database.dispose()
        shutil.rmtree(self.tmp_dir, ignore_errors=True)


class TestLastSlotRace(ConcurrencyTestBase):

    def test_one_winner_for_last_slot(self):
        plates = [f"CAR{n:03d}" for n in range(WORKERS)]
        results, errors = run_concurrently(lambda plate: self.allocation.assign(plate, CAR), plates)

        self.assertEqual(len(results), 1)
        self.assertEqual(len(errors), WORKERS - 1)
        self.assertTrue(all(isinstance(e, NoSlotAvailableError) for e in errors), errors)

        with self.database.transaction() as uow:
            self.assertEqual(uow.ledger.count(), 1)
            self.assertEqual(uow.slots.list_free(CAR), [])
            self.assertEqual(uow.vehicles.count(), 1)


class TestSamePlateRace(ConcurrencyTestBase):

    layout = MANY_CAR_SLOTS

    def test_plate_parked_once(self):
        plates = ["KA01AB1234"] * WORKERS
        results, errors = run_concurrently(lambda plate: self.allocation.assign(plate, CAR), plates)

        self.assertEqual(len(results), 1)
        self.assertTrue(all(isinstance(e, AlreadyParkedError) for e in errors), errors)

        with self.database.transaction() as uow:
            self.assertEqual(uow.ledger.count(), 1)
            self.assertEqual(len(uow.slots.list_free(CAR)), WORKERS - 1)
            self.assertEqual(uow.vehicles.count(), 1)

    def test_distinct_plates_get_distinct_slots(self):
        plates = [f"CAR{n:03d}" for n in range(WORKERS)]
        results, errors = run_concurrently(lambda plate: self.allocation.assign(plate, CAR), plates)

        self.assertEqual(errors, [])
        self.assertEqual(len({allocation.slot.id for allocation in results}), WORKERS)

    def test_exit_billed_once(self):
        self.allocation.assign("KA01AB1234", CAR)

        results, errors = run_concurrently(self.billing.process_exit, ["KA01AB1234"] * WORKERS)

        self.assertEqual(len(results), 1)
        self.assertTrue(all(isinstance(e, NotParkedError) for e in errors), errors)

        with self.database.transaction() as uow:
            rows = uow.ledger.list_rows()
            self.assertEqual(len(uow.slots.list_free(CAR)), WORKERS)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].amount_charged, results[0].amount)


class TestQueriesAndWriters(ConcurrencyTestBase):
    """A second handle with a short busy timeout fails fast if a lock is held"""

    def setUp(self):
        super().setUp()
        self.impatient = Database(self.url, busy_timeout_seconds=0.5)

    def tearDown(self):
        self.impatient.dispose()
        super().tearDown()

    def test_open_query_leaves_write_lock_free(self):
        with self.database.read() as reader:
            self.assertEqual(len(reader.slots.list_free(CAR)), 1)

            with self.impatient.transaction() as writer:
                self.assertEqual(len(writer.slots.list_free(CAR, lock=True)), 1)

    def test_queries_run_while_writer_holds_lock(self):
        service = ParkingService(self.impatient)

        with self.database.transaction() as writer:
            writer.slots.list_free(CAR, lock=True)

            self.assertEqual([s.label for s in service.list_available_slots()], ["A1"])
            self.assertEqual(service.list_logs(), [])
            self.assertEqual(service.find_vehicle_type("CAR").id, CAR)



if __name__ == '__main__':
    unittest.main(verbosity=2)
