# File: src/smart_parking/infrastructure/repositories.py
"""
Repository Pattern Implementation for the Smart Parking engine

Repositories give the engines a collection-like view of the store while
keeping SQLAlchemy out of the domain layer. All repositories of one
operation share a single Session owned by the Unit of Work, so their
writes commit or roll back together.

Repository Types:
1. SlotCatalog - parking slots, free-slot queries and occupancy flags
2. VehicleRegistry - plate -> vehicle identity, created on first sight
3. ActivityLedger - park/exit ledger entries (vehicle_logs)
4. SlotAssignmentRepository - occupancy audit trail (slot_assignments)
5. VehicleTypeRepository / FloorRepository - lookup tables
"""

from abc import ABC, abstractmethod
from typing import (
    Type, TypeVar, Generic, Optional, List, Dict, Any, Callable
)
from datetime import datetime
from decimal import Decimal
import logging

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey,
    UniqueConstraint, CheckConstraint, Index, Enum as SAEnum,
    func, select, update, case, text
)
from sqlalchemy.orm import declarative_base, relationship, Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from ..domain.models import (
    VehicleType, Floor, ParkingSlot, Vehicle, ParkingEvent, SlotAssignment,
    OpenStay, LedgerRow, AvailableSlot,
    ParkingStatus, Money, UNKNOWN_OWNER, utc_now
)
from ..exceptions import NotFoundError, VehicleTypeMismatchError

# Type variable for generic repositories
T = TypeVar('T')

# What to do when a known plate comes back with a different vehicle type
TYPE_POLICY_FIRST_SEEN = "first_seen"
TYPE_POLICY_REJECT = "reject"
TYPE_POLICIES = (TYPE_POLICY_FIRST_SEEN, TYPE_POLICY_REJECT)

# Connection execution option marking a read-only unit of work
READ_ONLY_OPTION = "smart_parking_read_only"


# ============================================================================
# SQLALCHEMY ORM MODELS
# ============================================================================

Base = declarative_base()


class VehicleTypeModel(Base):
    """SQLAlchemy model for the vehicle type lookup table"""
    __tablename__ = 'vehicle_types'

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(20), nullable=False, unique=True)
    rate_per_hour = Column(Numeric(10, 2), nullable=False)

    __table_args__ = (
        CheckConstraint('rate_per_hour >= 0', name='ck_vehicle_type_rate_non_negative'),
    )


class FloorModel(Base):
    """SQLAlchemy model for Floor"""
    __tablename__ = 'floors'

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)

    slots = relationship('ParkingSlotModel', back_populates='floor')


class VehicleModel(Base):
    """SQLAlchemy model for Vehicle"""
    __tablename__ = 'vehicles'

    id = Column(Integer, primary_key=True)
    plate_number = Column(String(20), nullable=False, index=True)
    type_id = Column(Integer, ForeignKey('vehicle_types.id'), nullable=False)
    owner_name = Column(String(100), nullable=False, default=UNKNOWN_OWNER)
    created_at = Column(DateTime, default=utc_now)

    vehicle_type = relationship('VehicleTypeModel')

    __table_args__ = (
        UniqueConstraint('plate_number', name='uq_vehicle_plate_number'),
    )


class ParkingSlotModel(Base):
    """SQLAlchemy model for ParkingSlot"""
    __tablename__ = 'parking_slots'

    id = Column(Integer, primary_key=True)
    label = Column(String(20), nullable=False)
    distance_from_entry = Column(Integer, nullable=False)
    is_occupied = Column(Boolean, nullable=False, default=False)
    floor_id = Column(Integer, ForeignKey('floors.id'), nullable=False)
    type_id = Column(Integer, ForeignKey('vehicle_types.id'), nullable=False)

    floor = relationship('FloorModel', back_populates='slots')
    vehicle_type = relationship('VehicleTypeModel')

    __table_args__ = (
        UniqueConstraint('floor_id', 'label', name='uq_slot_floor_label'),
        CheckConstraint('distance_from_entry >= 0', name='ck_slot_distance_non_negative'),
        Index('idx_slot_type_free_distance', 'type_id', 'is_occupied', 'distance_from_entry'),
    )


class VehicleLogModel(Base):
    """SQLAlchemy model for the park/exit ledger"""
    __tablename__ = 'vehicle_logs'

    id = Column(Integer, primary_key=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    slot_id = Column(Integer, ForeignKey('parking_slots.id'), nullable=False)
    entry_time = Column(DateTime, nullable=False, index=True)
    exit_time = Column(DateTime, nullable=True)
    amount_charged = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(SAEnum(ParkingStatus, name='parking_status'), nullable=False,
                    default=ParkingStatus.PARKED)

    vehicle = relationship('VehicleModel')
    slot = relationship('ParkingSlotModel')

    __table_args__ = (
        CheckConstraint('amount_charged >= 0', name='ck_log_amount_non_negative'),
        # At most one open entry per vehicle, on backends with partial indexes
        Index(
            'uq_vehicle_log_open_per_vehicle', 'vehicle_id', unique=True,
            sqlite_where=text("status = 'PARKED'"),
            postgresql_where=text("status = 'PARKED'"),
        ).ddl_if(dialect=('sqlite', 'postgresql')),
    )


class SlotAssignmentModel(Base):
    """SQLAlchemy model for the slot assignment audit trail"""
    __tablename__ = 'slot_assignments'

    id = Column(Integer, primary_key=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False)
    slot_id = Column(Integer, ForeignKey('parking_slots.id'), nullable=False, index=True)
    assigned_time = Column(DateTime, nullable=False)
    released_time = Column(DateTime, nullable=True)


# ============================================================================
# DOMAIN <-> ORM MAPPERS
# ============================================================================

def _money(value: Any) -> Money:
    return Money(Decimal(str(value if value is not None else 0)))


class Mapper:
    """Maps ORM rows to domain models"""

    @staticmethod
    def vehicle_type_to_domain(model: VehicleTypeModel) -> VehicleType:
        return VehicleType(id=model.id, name=model.name, rate_per_hour=_money(model.rate_per_hour))

    @staticmethod
    def floor_to_domain(model: FloorModel) -> Floor:
        return Floor(id=model.id, name=model.name)

    @staticmethod
    def parking_slot_to_domain(model: ParkingSlotModel) -> ParkingSlot:
        return ParkingSlot(
            id=model.id,
            label=model.label,
            distance_from_entry=model.distance_from_entry,
            is_occupied=bool(model.is_occupied),
            floor_id=model.floor_id,
            vehicle_type_id=model.type_id
        )

    @staticmethod
    def vehicle_to_domain(model: VehicleModel) -> Vehicle:
        return Vehicle(
            id=model.id,
            plate_number=model.plate_number,
            type_id=model.type_id,
            owner_name=model.owner_name
        )

    @staticmethod
    def parking_event_to_domain(model: VehicleLogModel) -> ParkingEvent:
        return ParkingEvent(
            id=model.id,
            vehicle_id=model.vehicle_id,
            slot_id=model.slot_id,
            entry_time=model.entry_time,
            exit_time=model.exit_time,
            amount_charged=_money(model.amount_charged),
            status=model.status
        )

    @staticmethod
    def slot_assignment_to_domain(model: SlotAssignmentModel) -> SlotAssignment:
        return SlotAssignment(
            id=model.id,
            vehicle_id=model.vehicle_id,
            slot_id=model.slot_id,
            assigned_time=model.assigned_time,
            released_time=model.released_time
        )


# ============================================================================
# SQLALCHEMY REPOSITORIES
# ============================================================================

class SQLAlchemyRepository(ABC, Generic[T]):
    """Base SQLAlchemy repository"""

    def __init__(self, session: Session):
        self.session = session
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def model_class(self) -> Type[Base]:
        """Return SQLAlchemy model class"""
        pass

    @abstractmethod
    def to_domain(self, model: Base) -> T:
        """Convert ORM model to domain model"""
        pass

    def get(self, id: int) -> Optional[T]:
        model = self.session.get(self.model_class, id)
        if model:
            return self.to_domain(model)
        return None

    def get_all(self) -> List[T]:
        models = self.session.scalars(
            select(self.model_class).order_by(self.model_class.id)
        ).all()
        return [self.to_domain(model) for model in models]

    def count(self) -> int:
        return self.session.scalar(
            select(func.count()).select_from(self.model_class)
        )

    def exists(self, id: int) -> bool:
        return self.session.get(self.model_class, id) is not None


class VehicleTypeRepository(SQLAlchemyRepository[VehicleType]):
    """Repository for the vehicle type lookup table"""

    @property
    def model_class(self) -> Type[Base]:
        return VehicleTypeModel

    def to_domain(self, model: VehicleTypeModel) -> VehicleType:
        return Mapper.vehicle_type_to_domain(model)

    def get_by_name(self, name: str) -> Optional[VehicleType]:
        model = self.session.scalars(
            select(VehicleTypeModel).where(
                func.upper(VehicleTypeModel.name) == name.strip().upper()
            )
        ).first()
        if model:
            return self.to_domain(model)
        return None

    def upsert(self, id: int, name: str, rate_per_hour: Decimal) -> VehicleType:
        """Insert a vehicle type or update its name and rate"""
        model = self.session.get(VehicleTypeModel, id)
        if model is None:
            model = VehicleTypeModel(id=id, name=name, rate_per_hour=rate_per_hour)
            self.session.add(model)
        else:
            model.name = name
            model.rate_per_hour = rate_per_hour
        self.session.flush()
        return self.to_domain(model)


class FloorRepository(SQLAlchemyRepository[Floor]):
    """Repository for floors"""

    @property
    def model_class(self) -> Type[Base]:
        return FloorModel

    def to_domain(self, model: FloorModel) -> Floor:
        return Mapper.floor_to_domain(model)

    def get_by_name(self, name: str) -> Optional[Floor]:
        model = self.session.scalars(
            select(FloorModel).where(FloorModel.name == name)
        ).first()
        if model:
            return self.to_domain(model)
        return None

    def get_or_create(self, name: str) -> Floor:
        floor = self.get_by_name(name)
        if floor:
            return floor
        model = FloorModel(name=name)
        self.session.add(model)
        self.session.flush()
        self._logger.debug(f"Created floor {name} ({model.id})")
        return self.to_domain(model)


class SlotCatalog(SQLAlchemyRepository[ParkingSlot]):
    """
    Repository for parking slots

    Free-slot queries come back nearest first (distance, then id) so the
    ordering is deterministic. Occupancy is only ever changed through
    set_occupied, which the engines call inside their transaction.
    """

    @property
    def model_class(self) -> Type[Base]:
        return ParkingSlotModel

    def to_domain(self, model: ParkingSlotModel) -> ParkingSlot:
        return Mapper.parking_slot_to_domain(model)

    def list_free(self, vehicle_type_id: int, lock: bool = False) -> List[ParkingSlot]:
        """Free slots of one vehicle type, nearest first"""
        query = select(ParkingSlotModel).where(
            ParkingSlotModel.type_id == vehicle_type_id,
            ParkingSlotModel.is_occupied == False
        ).order_by(
            ParkingSlotModel.distance_from_entry,
            ParkingSlotModel.id
        )
        if lock:
            query = query.with_for_update()

        models = self.session.scalars(query).all()
        return [self.to_domain(model) for model in models]

    def set_occupied(self, slot_id: int, occupied: bool, expected: Optional[bool] = None) -> bool:
        """
        Set the occupancy flag of a slot.

        With `expected`, the write only happens if the current flag still has
        that value (conditional write); returns False when it did not.
        Raises NotFoundError for an unknown slot id.
        """
        query = update(ParkingSlotModel).where(ParkingSlotModel.id == slot_id)
        if expected is not None:
            query = query.where(ParkingSlotModel.is_occupied == expected)

        try:
            result = self.session.execute(query.values(is_occupied=occupied))
        except SQLAlchemyError as e:
            self._logger.error(f"Database error updating occupancy of slot {slot_id}: {e}")
            raise

        if result.rowcount == 0:
            if not self.exists(slot_id):
                raise NotFoundError(f"Slot {slot_id} does not exist")
            return False
        return True

    def list_available(self) -> List[AvailableSlot]:
        """All free slots with floor and type names, nearest first"""
        rows = self.session.execute(
            select(ParkingSlotModel, FloorModel.name, VehicleTypeModel.name)
            .join(FloorModel, ParkingSlotModel.floor_id == FloorModel.id)
            .join(VehicleTypeModel, ParkingSlotModel.type_id == VehicleTypeModel.id)
            .where(ParkingSlotModel.is_occupied == False)
            .order_by(ParkingSlotModel.distance_from_entry, ParkingSlotModel.id)
        ).all()

        return [
            AvailableSlot(
                slot_id=slot.id,
                label=slot.label,
                floor_name=floor_name,
                distance_from_entry=slot.distance_from_entry,
                type_name=type_name
            )
            for slot, floor_name, type_name in rows
        ]

    def add_slot(self, label: str, floor_id: int, distance_from_entry: int, vehicle_type_id: int) -> ParkingSlot:
        """Create a free slot"""
        if distance_from_entry < 0:
            raise ValueError(f"Distance from entry cannot be negative: {distance_from_entry}")

        model = ParkingSlotModel(
            label=label,
            distance_from_entry=distance_from_entry,
            is_occupied=False,
            floor_id=floor_id,
            type_id=vehicle_type_id
        )
        try:
            self.session.add(model)
            self.session.flush()
        except IntegrityError as e:
            self._logger.error(f"Integrity error adding slot {label}: {e}")
            raise

        self._logger.debug(f"Added slot {label} (floor {floor_id}, distance {distance_from_entry})")
        return self.to_domain(model)

    def find_by_label(self, label: str, floor_id: Optional[int] = None) -> Optional[ParkingSlot]:
        query = select(ParkingSlotModel).where(ParkingSlotModel.label == label)
        if floor_id is not None:
            query = query.where(ParkingSlotModel.floor_id == floor_id)
        model = self.session.scalars(query.order_by(ParkingSlotModel.id)).first()
        if model:
            return self.to_domain(model)
        return None

    def occupancy_by_type(self) -> List[Dict[str, Any]]:
        """Total/occupied/free slot counts per vehicle type"""
        occupied = func.coalesce(
            func.sum(case((ParkingSlotModel.is_occupied == True, 1), else_=0)), 0
        )
        rows = self.session.execute(
            select(
                VehicleTypeModel.id,
                VehicleTypeModel.name,
                func.count(ParkingSlotModel.id),
                occupied
            )
            .outerjoin(ParkingSlotModel, ParkingSlotModel.type_id == VehicleTypeModel.id)
            .group_by(VehicleTypeModel.id, VehicleTypeModel.name)
            .order_by(VehicleTypeModel.id)
        ).all()

        return [
            {
                'type_id': type_id,
                'type_name': name,
                'total_slots': int(total),
                'occupied_slots': int(taken),
                'free_slots': int(total) - int(taken)
            }
            for type_id, name, total, taken in rows
        ]


class VehicleRegistry(SQLAlchemyRepository[Vehicle]):
    """
    Repository for vehicles

    resolve() never creates two rows for one plate: it looks the plate up
    first and, if a concurrent writer inserts the same plate in between,
    falls back to the row that won the unique constraint.
    """

    def __init__(self, session: Session, type_policy: str = TYPE_POLICY_FIRST_SEEN):
        super().__init__(session)
        if type_policy not in TYPE_POLICIES:
            raise ValueError(f"Unknown vehicle type policy: {type_policy}")
        self.type_policy = type_policy

    @property
    def model_class(self) -> Type[Base]:
        return VehicleModel

    def to_domain(self, model: VehicleModel) -> Vehicle:
        return Mapper.vehicle_to_domain(model)

    def _find_model(self, plate_number: str) -> Optional[VehicleModel]:
        return self.session.scalars(
            select(VehicleModel).where(VehicleModel.plate_number == plate_number)
        ).first()

    def find_by_plate(self, plate_number: str) -> Optional[Vehicle]:
        model = self._find_model(plate_number)
        if model:
            return self.to_domain(model)
        return None

    def resolve(self, plate_number: str, type_id: int) -> int:
        """Return the vehicle id for a plate, registering it on first sight"""
        existing = self._find_model(plate_number)
        if existing is not None:
            self._check_type(existing, type_id)
            return existing.id

        model = VehicleModel(plate_number=plate_number, type_id=type_id, owner_name=UNKNOWN_OWNER)
        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
        except IntegrityError:
            winner = self._find_model(plate_number)
            if winner is None:
                raise
            self._logger.info(f"Plate {plate_number} registered concurrently, reusing {winner.id}")
            self._check_type(winner, type_id)
            return winner.id

        self._logger.info(f"Registered vehicle {plate_number} as {model.id}")
        return model.id

    def _check_type(self, model: VehicleModel, type_id: int) -> None:
        if model.type_id == type_id:
            return
        if self.type_policy == TYPE_POLICY_REJECT:
            raise VehicleTypeMismatchError(
                f"Vehicle {model.plate_number} is registered as type {model.type_id}, "
                f"not {type_id}"
            )
        self._logger.warning(
            f"Vehicle {model.plate_number} requested type {type_id}; "
            f"keeping registered type {model.type_id}"
        )


class ActivityLedger(SQLAlchemyRepository[ParkingEvent]):
    """
    Repository for park/exit ledger entries

    Entries are appended at allocation and closed exactly once at exit;
    they are never deleted.
    """

    @property
    def model_class(self) -> Type[Base]:
        return VehicleLogModel

    def to_domain(self, model: VehicleLogModel) -> ParkingEvent:
        return Mapper.parking_event_to_domain(model)

    def open_entry(self, vehicle_id: int, slot_id: int, entry_time: datetime) -> ParkingEvent:
        model = VehicleLogModel(
            vehicle_id=vehicle_id,
            slot_id=slot_id,
            entry_time=entry_time,
            exit_time=None,
            amount_charged=Decimal('0'),
            status=ParkingStatus.PARKED
        )
        self.session.add(model)
        self.session.flush()
        return self.to_domain(model)

    def find_open_stay(self, plate_number: str, lock: bool = False) -> Optional[OpenStay]:
        """The open entry of a plate with its slot label and hourly rate"""
        query = (
            select(
                VehicleLogModel.id,
                VehicleLogModel.vehicle_id,
                VehicleModel.plate_number,
                VehicleLogModel.slot_id,
                ParkingSlotModel.label,
                VehicleLogModel.entry_time,
                VehicleTypeModel.rate_per_hour
            )
            .join(VehicleModel, VehicleLogModel.vehicle_id == VehicleModel.id)
            .join(ParkingSlotModel, VehicleLogModel.slot_id == ParkingSlotModel.id)
            .join(VehicleTypeModel, VehicleModel.type_id == VehicleTypeModel.id)
            .where(
                VehicleModel.plate_number == plate_number,
                VehicleLogModel.status == ParkingStatus.PARKED
            )
            .order_by(VehicleLogModel.entry_time.desc())
        )
        if lock:
            query = query.with_for_update(of=VehicleLogModel)

        row = self.session.execute(query).first()
        if row is None:
            return None

        log_id, vehicle_id, plate, slot_id, label, entry_time, rate = row
        return OpenStay(
            log_id=log_id,
            vehicle_id=vehicle_id,
            plate_number=plate,
            slot_id=slot_id,
            slot_label=label,
            entry_time=entry_time,
            rate_per_hour=_money(rate)
        )

    def has_open_entry(self, plate_number: str) -> bool:
        return self.find_open_stay(plate_number) is not None

    def close_entry(self, log_id: int, exit_time: datetime, amount: Money) -> bool:
        """Close an open entry; False unless exactly one open row matched"""
        result = self.session.execute(
            update(VehicleLogModel)
            .where(
                VehicleLogModel.id == log_id,
                VehicleLogModel.status == ParkingStatus.PARKED
            )
            .values(
                exit_time=exit_time,
                amount_charged=amount.amount,
                status=ParkingStatus.EXITED
            )
        )
        return result.rowcount == 1

    def list_events(self) -> List[ParkingEvent]:
        """All entries, newest entry time first"""
        models = self.session.scalars(
            select(VehicleLogModel).order_by(
                VehicleLogModel.entry_time.desc(),
                VehicleLogModel.id.desc()
            )
        ).all()
        return [self.to_domain(model) for model in models]

    def list_rows(self) -> List[LedgerRow]:
        """All entries joined with plate and slot label, newest first"""
        rows = self.session.execute(
            select(
                VehicleLogModel,
                VehicleModel.plate_number,
                ParkingSlotModel.label
            )
            .join(VehicleModel, VehicleLogModel.vehicle_id == VehicleModel.id)
            .join(ParkingSlotModel, VehicleLogModel.slot_id == ParkingSlotModel.id)
            .order_by(VehicleLogModel.entry_time.desc(), VehicleLogModel.id.desc())
        ).all()

        return [
            LedgerRow(
                log_id=log.id,
                plate_number=plate,
                slot_label=label,
                entry_time=log.entry_time,
                exit_time=log.exit_time,
                amount_charged=_money(log.amount_charged),
                status=log.status
            )
            for log, plate, label in rows
        ]


class SlotAssignmentRepository(SQLAlchemyRepository[SlotAssignment]):
    """Repository for the slot assignment audit trail"""

    @property
    def model_class(self) -> Type[Base]:
        return SlotAssignmentModel

    def to_domain(self, model: SlotAssignmentModel) -> SlotAssignment:
        return Mapper.slot_assignment_to_domain(model)

    def open(self, vehicle_id: int, slot_id: int, assigned_time: datetime) -> SlotAssignment:
        model = SlotAssignmentModel(
            vehicle_id=vehicle_id,
            slot_id=slot_id,
            assigned_time=assigned_time
        )
        self.session.add(model)
        self.session.flush()
        return self.to_domain(model)

    def close(self, vehicle_id: int, slot_id: int, released_time: datetime) -> int:
        """Close the open assignment(s) of a vehicle in a slot"""
        result = self.session.execute(
            update(SlotAssignmentModel)
            .where(
                SlotAssignmentModel.vehicle_id == vehicle_id,
                SlotAssignmentModel.slot_id == slot_id,
                SlotAssignmentModel.released_time.is_(None)
            )
            .values(released_time=released_time)
        )
        return result.rowcount

    def list_for_slot(self, slot_id: int) -> List[SlotAssignment]:
        models = self.session.scalars(
            select(SlotAssignmentModel)
            .where(SlotAssignmentModel.slot_id == slot_id)
            .order_by(SlotAssignmentModel.assigned_time, SlotAssignmentModel.id)
        ).all()
        return [self.to_domain(model) for model in models]


# ============================================================================
# SQLALCHEMY UNIT OF WORK
# ============================================================================

class SQLAlchemyUnitOfWork:
    """
    Unit of Work: one Session, one transaction.

    Commits when the with-block finishes normally, rolls back on any
    exception, and always closes the session. A read-only unit of work
    tags its connection with READ_ONLY_OPTION before the transaction
    begins and always rolls back.
    """

    def __init__(self, session_factory: Callable[[], Session],
                 type_policy: str = TYPE_POLICY_FIRST_SEEN,
                 read_only: bool = False):
        self.session_factory = session_factory
        self.type_policy = type_policy
        self.read_only = read_only
        self._logger = logging.getLogger(self.__class__.__name__)

    def __enter__(self) -> 'SQLAlchemyUnitOfWork':
        self.session = self.session_factory()
        if self.read_only:
            try:
                self.session.connection(execution_options={READ_ONLY_OPTION: True})
            except SQLAlchemyError:
                self.session.close()
                raise

        self.vehicle_types = VehicleTypeRepository(self.session)
        self.floors = FloorRepository(self.session)
        self.slots = SlotCatalog(self.session)
        self.vehicles = VehicleRegistry(self.session, self.type_policy)
        self.ledger = ActivityLedger(self.session)
        self.assignments = SlotAssignmentRepository(self.session)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is not None:
                self._logger.debug(f"Rolling back after {exc_type.__name__}: {exc_val}")
                self.rollback()
            elif self.read_only:
                self.rollback()
            else:
                self.commit()
        finally:
            self.session.close()
        return False

    def commit(self):
        """Commit the transaction"""
        try:
            self.session.commit()
            self._logger.debug("Transaction committed")
        except SQLAlchemyError as e:
            self._logger.error(f"Error committing transaction: {e}")
            self.session.rollback()
            raise

    def rollback(self):
        """Rollback the transaction"""
        self.session.rollback()
        self._logger.debug("Transaction rolled back")
