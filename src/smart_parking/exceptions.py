# File: src/smart_parking/exceptions.py
"""
Error taxonomy for the Smart Parking engine

Every failure that leaves the allocation or billing engine is one of the
classes below. Raw SQLAlchemy errors are translated at the engine boundary
so callers (CLI, UI collaborators) only ever see ParkingServiceError
subclasses with a human-readable message.
"""


class ParkingServiceError(Exception):
    """Base exception for parking service errors"""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__

    @property
    def code(self) -> str:
        """Stable identifier used in result DTOs"""
        return self.__class__.__name__


class InvalidPlateError(ParkingServiceError, ValueError):
    """Plate number is empty or malformed"""
    pass


class NotFoundError(ParkingServiceError):
    """Unknown slot, vehicle or vehicle type id"""
    pass


class AlreadyParkedError(ParkingServiceError):
    """Plate already has an open (PARKED) ledger entry"""
    pass


class NoSlotAvailableError(ParkingServiceError):
    """No free slot of the requested vehicle type"""
    pass


class NotParkedError(ParkingServiceError):
    """Plate has no open ledger entry to bill"""
    pass


class AllocationError(ParkingServiceError):
    """Store or transaction failure while parking a vehicle"""
    pass


class VehicleTypeMismatchError(AllocationError):
    """Known plate requested with a different vehicle type (reject policy)"""
    pass


class BillingError(ParkingServiceError):
    """Store or transaction failure while processing an exit"""
    pass


class StoreUnavailableError(ParkingServiceError):
    """
    Connection to the persistent store was lost or could not be opened.
    Never retried automatically; the caller must reconnect.
    """
    pass


class ConfigurationError(ParkingServiceError):
    """Invalid or unreadable configuration"""
    pass
