# File: src/smart_parking/infrastructure/database.py
"""
Store handle for the Smart Parking engine

A Database owns one SQLAlchemy engine and session factory. It is created
once by the caller and passed to every component; nothing in the package
keeps a module-level connection.

On SQLite every write transaction starts with BEGIN IMMEDIATE, so
concurrent park/exit operations serialise on the write lock instead of
failing at commit. Read scopes start with a plain (deferred) BEGIN and
never take that lock. Other backends rely on SELECT ... FOR UPDATE plus
the conditional writes in the repositories.
"""

from typing import Optional, List, Iterable, Dict, Any, Type
from decimal import Decimal
import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import (
    SQLAlchemyError, DBAPIError, DisconnectionError, InterfaceError, OperationalError,
    ArgumentError, NoSuchModuleError
)
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .repositories import (
    Base, SQLAlchemyUnitOfWork, TYPE_POLICY_FIRST_SEEN, TYPE_POLICIES, READ_ONLY_OPTION
)
from ..domain.models import VehicleClass
from ..exceptions import ParkingServiceError, StoreUnavailableError, ConfigurationError


logger = logging.getLogger(__name__)


DEFAULT_VEHICLE_TYPES: List[Dict[str, Any]] = [
    {"id": vehicle_class.value, "name": vehicle_class.name, "rate_per_hour": vehicle_class.default_rate.amount}
    for vehicle_class in VehicleClass
]

# Used by `init-db --seed` when the configuration has no layout of its own
DEMO_LAYOUT: List[Dict[str, Any]] = [
    {
        "name": "G",
        "slots": [
            {"label": "A1", "distance": 5, "type": "CAR"},
            {"label": "A2", "distance": 12, "type": "CAR"},
            {"label": "A3", "distance": 3, "type": "CAR"},
            {"label": "B1", "distance": 2, "type": "BIKE"},
            {"label": "B2", "distance": 4, "type": "BIKE"},
        ],
    },
    {
        "name": "F1",
        "slots": [
            {"label": "A1", "distance": 25, "type": "CAR"},
            {"label": "T1", "distance": 20, "type": "TRUCK"},
        ],
    },
]


def is_store_unavailable(error: BaseException) -> bool:
    """True when the error means the connection itself is gone"""
    if isinstance(error, (DisconnectionError, InterfaceError)):
        return True
    if isinstance(error, OperationalError) and error.statement is None:
        # raised while opening the connection, before any statement ran
        return True
    return isinstance(error, DBAPIError) and bool(error.connection_invalidated)


def translate_store_error(error: SQLAlchemyError,
                          fallback: Type[ParkingServiceError],
                          action: str) -> ParkingServiceError:
    """Convert a raw SQLAlchemy error into the engine's error taxonomy"""
    if is_store_unavailable(error):
        return StoreUnavailableError(f"Store unavailable while {action}; reconnect and try again")
    detail = getattr(error, 'orig', None) or error
    return fallback(f"Error {action}: {detail}")


class Database:
    """Engine, session factory and transaction scope for one store"""

    def __init__(
        self,
        url: str,
        echo: bool = False,
        busy_timeout_seconds: float = 5.0,
        type_policy: str = TYPE_POLICY_FIRST_SEEN
    ):
        if type_policy not in TYPE_POLICIES:
            raise ConfigurationError(f"Unknown vehicle type policy: {type_policy}")

        try:
            self.url = make_url(url)
        except ArgumentError as e:
            raise ConfigurationError(f"Invalid database URL: {url}") from e
        self.type_policy = type_policy
        self._logger = logging.getLogger(self.__class__.__name__)

        engine_kwargs: Dict[str, Any] = {"echo": echo, "future": True}
        if self.is_sqlite:
            engine_kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": busy_timeout_seconds,
            }
            if self.url.database in (None, "", ":memory:"):
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True

        try:
            self.engine: Engine = create_engine(self.url, **engine_kwargs)
        except (ArgumentError, NoSuchModuleError) as e:
            raise ConfigurationError(f"Cannot create engine for {self.url.drivername}: {e}") from e
        if self.is_sqlite:
            self._install_sqlite_locking(self.engine)

        self.session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False
        )
        self._logger.debug(f"Database configured for {self.url.render_as_string(hide_password=True)}")

    @classmethod
    def from_settings(cls, settings) -> 'Database':
        return cls(
            url=settings.database_url,
            echo=settings.echo_sql,
            busy_timeout_seconds=settings.busy_timeout_seconds,
            type_policy=settings.vehicle_type_policy
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_backend_name() == "sqlite"

    @staticmethod
    def _install_sqlite_locking(engine: Engine) -> None:
        """Take the SQLite write lock when a write transaction begins"""

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            # stop pysqlite from issuing its own BEGIN
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            if conn.get_execution_options().get(READ_ONLY_OPTION):
                conn.exec_driver_sql("BEGIN")
            else:
                conn.exec_driver_sql("BEGIN IMMEDIATE")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def transaction(self) -> SQLAlchemyUnitOfWork:
        """
        Scoped transaction: `with database.transaction() as uow: ...`
        commits on normal exit and rolls back on any exception.
        """
        return SQLAlchemyUnitOfWork(self.session_factory, self.type_policy)

    def read(self) -> SQLAlchemyUnitOfWork:
        """
        Read-only scope for queries: `with database.read() as uow: ...`
        Does not take the SQLite write lock and never commits.
        """
        return SQLAlchemyUnitOfWork(self.session_factory, self.type_policy, read_only=True)

    def ping(self) -> None:
        """Raise StoreUnavailableError if the store cannot be reached"""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            self._logger.error(f"Store ping failed: {e}")
            raise StoreUnavailableError(f"Cannot reach store: {getattr(e, 'orig', None) or e}") from e

    # ------------------------------------------------------------------
    # Schema and seed data
    # ------------------------------------------------------------------

    def create_schema(self) -> None:
        """Create tables if they don't exist"""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise translate_store_error(e, StoreUnavailableError, "creating schema") from e
        self._logger.info("Schema ready")

    def seed(
        self,
        vehicle_types: Optional[Iterable[Dict[str, Any]]] = None,
        layout: Optional[Iterable[Dict[str, Any]]] = None
    ) -> Dict[str, int]:
        """
        Install vehicle types and, optionally, floors with slots.
        Safe to run repeatedly: existing types are updated, existing
        slots (same floor and label) are left alone.
        """
        vehicle_types = list(vehicle_types or DEFAULT_VEHICLE_TYPES)
        created_slots = 0

        try:
            with self.transaction() as uow:
                for entry in vehicle_types:
                    uow.vehicle_types.upsert(
                        id=int(entry["id"]),
                        name=str(entry["name"]).upper(),
                        rate_per_hour=Decimal(str(entry["rate_per_hour"]))
                    )

                for floor_entry in layout or []:
                    floor = uow.floors.get_or_create(floor_entry["name"])
                    for slot_entry in floor_entry.get("slots", []):
                        if uow.slots.find_by_label(slot_entry["label"], floor.id):
                            continue
                        vehicle_type = uow.vehicle_types.get_by_name(str(slot_entry["type"]))
                        if vehicle_type is None:
                            raise ConfigurationError(
                                f"Slot {floor_entry['name']}-{slot_entry['label']} "
                                f"has unknown vehicle type {slot_entry['type']}"
                            )
                        uow.slots.add_slot(
                            label=slot_entry["label"],
                            floor_id=floor.id,
                            distance_from_entry=int(slot_entry["distance"]),
                            vehicle_type_id=vehicle_type.id
                        )
                        created_slots += 1
        except SQLAlchemyError as e:
            raise translate_store_error(e, ConfigurationError, "seeding store") from e

        self._logger.info(f"Seeded {len(vehicle_types)} vehicle types and {created_slots} slots")
        return {"vehicle_types": len(vehicle_types), "slots": created_slots}

    def dispose(self) -> None:
        self.engine.dispose()
