"""
Locate Domain Entities
=======================

Pure Python domain entities for locate tracking.

These entities hold the normalized view of upstream work orders and the
results of actions taken on them. They are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from config import ActionStatus, CallType
from locates.domain.value_objects import Address, DeadlineCalculator


@dataclass(frozen=True)
class LocateRecord:
    """
    One work order flattened out of its parent request.

    Records are replaced wholesale on every refresh and never mutated
    locally. ``locates_called`` is only True when a deadline could be
    established for the call.
    """

    # Identity
    id: str
    work_order_number: str
    customer_name: str
    address: Address

    # Call state
    priority_name: str
    needs_call: bool
    call_type: Optional[str]
    called_at: Optional[datetime]
    completion_deadline: Optional[datetime]
    locates_called: bool

    # Descriptive fields
    tech_name: str = ""
    created_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None

    # Tagging metadata
    tags: Tuple[str, ...] = ()
    manually_tagged: bool = False
    tagged_by_name: Optional[str] = None
    tagged_by_email: Optional[str] = None
    called_by_name: Optional[str] = None
    called_by_email: Optional[str] = None

    @property
    def is_emergency(self) -> bool:
        return self.call_type == CallType.EMERGENCY

    def is_expired(self, now: datetime) -> bool:
        """Check whether the completion deadline has passed."""
        return DeadlineCalculator.is_expired(self.completion_deadline, now)


@dataclass(frozen=True)
class ItemOutcome:
    """Result of one item within a single or bulk action."""
    item_id: str
    succeeded: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class ActionOutcome:
    """
    Aggregate result of an action over one or more items.

    Reports success only when nothing failed. Any failure yields a
    message carrying explicit success and failure counts.
    """

    action: str
    succeeded: int
    failed: int
    failed_ids: Tuple[str, ...] = ()
    errors: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_items(cls, action: str, outcomes: Iterable[ItemOutcome]) -> "ActionOutcome":
        outcomes = list(outcomes)
        failures = [o for o in outcomes if not o.succeeded]
        return cls(
            action=action,
            succeeded=len(outcomes) - len(failures),
            failed=len(failures),
            failed_ids=tuple(o.item_id for o in failures),
            errors={o.item_id: o.error or "unknown error" for o in failures},
        )

    @property
    def status(self) -> str:
        if self.failed == 0:
            return ActionStatus.SUCCESS
        if self.succeeded == 0:
            return ActionStatus.FAILURE
        return ActionStatus.PARTIAL

    @property
    def is_success(self) -> bool:
        return self.status == ActionStatus.SUCCESS

    @property
    def message(self) -> str:
        if self.failed == 0:
            return f"{self.succeeded} {self.action}"
        return f"{self.succeeded} {self.action}, {self.failed} failed"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "message": self.message,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failed_ids": list(self.failed_ids),
            "errors": dict(self.errors),
        }
