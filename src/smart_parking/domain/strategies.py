# File: src/smart_parking/domain/strategies.py
"""
Strategy Pattern Implementation for slot selection and pricing

Key Strategies:
1. Slot Selection Strategies - which free slot a vehicle gets
2. Pricing Strategies - how a stay turns into an amount

The engines take a strategy at construction, so a different selection
or tariff can be plugged in without touching the transaction code.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence
import logging
import math

from .models import ParkingSlot, Money, TimeRange, Fee


# ============================================================================
# STRATEGY INTERFACES
# ============================================================================

class SlotSelectionStrategy(ABC):
    """
    Abstract base class for slot selection strategies
    Orders free candidates; the engine claims them head first.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def order(self, candidates: Sequence[ParkingSlot]) -> List[ParkingSlot]:
        """
        Return candidates in the order they should be tried
        """
        pass

    def get_strategy_name(self) -> str:
        return self.__class__.__name__.replace("Strategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} Strategy"


class PricingStrategy(ABC):
    """
    Abstract base class for pricing strategies
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def calculate_fee(self, stay: TimeRange, rate_per_hour: Money) -> Fee:
        """
        Calculate the fee for a stay at the given hourly rate
        """
        pass


# ============================================================================
# SLOT SELECTION STRATEGIES
# ============================================================================

class NearestSlotStrategy(SlotSelectionStrategy):
    """
    Strategy: nearest free slot to the entry
    - Candidates are already filtered to the requested vehicle type
    - Sorted by distance ascending, ties broken by slot id
    """

    def order(self, candidates: Sequence[ParkingSlot]) -> List[ParkingSlot]:
        ordered = sorted(candidates, key=lambda slot: (slot.distance_from_entry, slot.id))
        if ordered:
            self.logger.debug(
                f"Nearest of {len(ordered)} candidates: {ordered[0].label} "
                f"at {ordered[0].distance_from_entry}"
            )
        return ordered


# ============================================================================
# PRICING STRATEGIES
# ============================================================================

class HourlyCeilingPricingStrategy(PricingStrategy):
    """
    Strategy: every started hour is billed in full
    - Elapsed time is truncated to whole minutes
    - Billed hours = ceil(minutes / 60), never below minimum_hours
    """

    def __init__(self, minimum_hours: int = 1):
        super().__init__()
        if minimum_hours < 0:
            raise ValueError("Minimum billed hours cannot be negative")
        self.minimum_hours = minimum_hours

    def billed_hours(self, minutes_parked: int) -> int:
        return max(self.minimum_hours, math.ceil(minutes_parked / 60))

    def calculate_fee(self, stay: TimeRange, rate_per_hour: Money) -> Fee:
        minutes = stay.whole_minutes
        hours = self.billed_hours(minutes)
        amount = rate_per_hour * hours

        self.logger.debug(f"{minutes} min -> {hours} h at {rate_per_hour} = {amount}")
        return Fee(minutes_parked=minutes, billed_hours=hours, amount=amount)
