"""
Locate Domain Layer
===================

Domain layer for the locate tracking module.

Contains:
- Entities: LocateRecord, ActionOutcome, ItemOutcome
- Value Objects: LocateSLAConfig, Address, Countdown, TagRequest
- Domain Services: DeadlineCalculator, CountdownFormatter
- Clock: injectable time source (SystemClock, TickingClock, ManualClock)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from locates.domain.clock import Clock, SystemClock, TickingClock, ManualClock
from locates.domain.entities import LocateRecord, ItemOutcome, ActionOutcome
from locates.domain.value_objects import (
    LocateSLAConfig,
    DeadlineCalculator,
    CountdownFormatter,
    Countdown,
    Address,
    TagRequest,
    normalize_tags,
)

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "TickingClock",
    "ManualClock",
    # Entities
    "LocateRecord",
    "ItemOutcome",
    "ActionOutcome",
    # Value Objects & Services
    "LocateSLAConfig",
    "DeadlineCalculator",
    "CountdownFormatter",
    "Countdown",
    "Address",
    "TagRequest",
    "normalize_tags",
]
