# File: src/smart_parking/main.py
"""
Command-line entry point for the Smart Parking engine

    smart-parking init-db --seed
    smart-parking park KA01AB1234 --type CAR
    smart-parking exit KA01AB1234
    smart-parking slots
    smart-parking logs

Exit status: 0 on success, 1 when the request was rejected, 2 when the
configuration or the store is unusable.
"""

from typing import List, Optional
import argparse
import logging
import sys
import os

from .application.parking_service import ParkingService
from .config import load_settings, apply_overrides, ParkingSettings
from .infrastructure.database import Database, DEMO_LAYOUT
from .exceptions import ParkingServiceError, StoreUnavailableError, ConfigurationError


EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_UNAVAILABLE = 2


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Setup application logging configuration"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )
    return logging.getLogger(__name__)


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_init_db(service: ParkingService, settings: ParkingSettings, args) -> int:
    database = service.database
    database.create_schema()
    layout = None
    if args.seed:
        layout = settings.layout_rows() or DEMO_LAYOUT
    counts = database.seed(settings.vehicle_type_rows(), layout)
    print(f"Database ready: {counts['vehicle_types']} vehicle types, {counts['slots']} new slots")
    return EXIT_OK


def cmd_park(service: ParkingService, settings: ParkingSettings, args) -> int:
    vehicle_type = service.find_vehicle_type(args.type)
    result = service.assign(args.plate, vehicle_type.id)
    print(result.message)
    return EXIT_OK if result.success else EXIT_REJECTED


def cmd_exit(service: ParkingService, settings: ParkingSettings, args) -> int:
    result = service.process_exit(args.plate)
    print(result.message)
    return EXIT_OK if result.success else EXIT_REJECTED


def cmd_slots(service: ParkingService, settings: ParkingSettings, args) -> int:
    slots = service.list_available_slots()
    if not slots:
        print("No free slots")
        return EXIT_OK

    print(f"{'Slot':<12} {'Type':<8} {'Distance':>8}")
    for slot in slots:
        print(f"{slot.display_label:<12} {slot.type_name:<8} {slot.distance:>8}")
    return EXIT_OK


def cmd_logs(service: ParkingService, settings: ParkingSettings, args) -> int:
    logs = service.list_logs()
    if not logs:
        print("No parking activity")
        return EXIT_OK

    symbol = settings.currency_symbol
    print(f"{'Plate':<16} {'Slot':<8} {'Entry':<19} {'Exit':<19} {'Amount':>10} Status")
    for log in logs:
        exit_time = f"{log.exit_time:%Y-%m-%d %H:%M:%S}" if log.exit_time else "-"
        amount = f"{symbol}{log.amount:.2f}" if log.amount > 0 else "-"
        print(
            f"{log.plate:<16} {log.slot_label:<8} {log.entry_time:%Y-%m-%d %H:%M:%S} "
            f"{exit_time:<19} {amount:>10} {log.status}"
        )
    return EXIT_OK


def cmd_occupancy(service: ParkingService, settings: ParkingSettings, args) -> int:
    print(f"{'Type':<8} {'Total':>6} {'Occupied':>9} {'Free':>6}")
    for row in service.occupancy_summary():
        print(f"{row.type_name:<8} {row.total_slots:>6} {row.occupied_slots:>9} {row.free_slots:>6}")
    return EXIT_OK


def cmd_add_slot(service: ParkingService, settings: ParkingSettings, args) -> int:
    slot = service.add_slot(args.label, args.floor, args.distance, args.type)
    print(f"Added slot {slot.display_label} ({slot.type_name}, Distance: {slot.distance}m)")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='smart-parking',
        description='Smart Parking slot allocation and billing'
    )
    parser.add_argument('--config', help='YAML configuration file (default: $SMART_PARKING_CONFIG)')
    parser.add_argument('--database-url', help='Override the configured database URL')
    parser.add_argument('--log-level', help='Override the configured log level')

    subparsers = parser.add_subparsers(dest='command', required=True)

    init_db = subparsers.add_parser('init-db', help='Create tables and install vehicle types')
    init_db.add_argument('--seed', action='store_true',
                         help='Also create the configured layout (or the demo layout)')
    init_db.set_defaults(handler=cmd_init_db)

    park = subparsers.add_parser('park', help='Assign the nearest free slot to a vehicle')
    park.add_argument('plate', help='License plate number')
    park.add_argument('--type', required=True, help='Vehicle type name or id (CAR, BIKE, TRUCK, ...)')
    park.set_defaults(handler=cmd_park)

    exit_ = subparsers.add_parser('exit', help='Bill a vehicle and free its slot')
    exit_.add_argument('plate', help='License plate number')
    exit_.set_defaults(handler=cmd_exit)

    slots = subparsers.add_parser('slots', help='List free slots, nearest first')
    slots.set_defaults(handler=cmd_slots)

    logs = subparsers.add_parser('logs', help='Show the activity log, newest first')
    logs.set_defaults(handler=cmd_logs)

    occupancy = subparsers.add_parser('occupancy', help='Slot counts per vehicle type')
    occupancy.set_defaults(handler=cmd_occupancy)

    add_slot = subparsers.add_parser('add-slot', help='Add a free slot to a floor')
    add_slot.add_argument('label', help='Slot label, unique within its floor')
    add_slot.add_argument('--floor', required=True, help='Floor name')
    add_slot.add_argument('--distance', required=True, type=int, help='Distance from the entry')
    add_slot.add_argument('--type', required=True, help='Vehicle type name or id')
    add_slot.set_defaults(handler=cmd_add_slot)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run one CLI command and return its exit status"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = apply_overrides(
            load_settings(args.config),
            database_url=args.database_url,
            log_level=args.log_level
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return EXIT_UNAVAILABLE

    logger = setup_logging(settings.log_level, settings.log_file)

    database = None
    try:
        database = Database.from_settings(settings)
        if args.command != 'init-db':
            database.create_schema()
        service = ParkingService.from_settings(database, settings)
        return args.handler(service, settings, args)
    except (StoreUnavailableError, ConfigurationError) as e:
        logger.error(f"{e.code}: {e.message}")
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_UNAVAILABLE
    except ParkingServiceError as e:
        print(e.message)
        return EXIT_REJECTED
    finally:
        if database is not None:
            database.dispose()


if __name__ == '__main__':
    sys.exit(main())
