"""
Locate Application DTOs
========================

Data Transfer Objects for the locate tracking API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from locates.domain import ActionOutcome


# ========== Type Aliases for Literals ==========
CallTypeStr = Literal["STANDARD", "EMERGENCY"]
BucketStr = Literal["needs_call", "in_progress", "completed"]
UrgencyStr = Literal["expired", "critical", "warning", "normal"]
ActionStatusStr = Literal["success", "partial", "failure"]
TagModeStr = Literal["single", "bulk"]


# ========== Request DTOs ==========

class ToggleSelectionRequest(BaseModel):
    """Toggle one locate in a bucket's selection."""
    id: str = Field(..., min_length=1, description="Locate id")


class SelectAllRequest(BaseModel):
    """Select a set of ids; omit ``ids`` to select the whole visible bucket."""
    ids: Optional[List[str]] = Field(None, description="Ids to select")


class MarkCalledRequest(BaseModel):
    """Record a call for one or many locates."""
    call_type: Optional[CallTypeStr] = Field(
        None,
        description="Call type; defaults to the record's inferred type"
    )


class BulkDeleteRequest(BaseModel):
    """Delete the selected work orders of a bucket."""
    confirmed: bool = Field(default=False, description="Explicit confirmation")


class TagDialogOpenRequest(BaseModel):
    """Open the single or bulk tagging dialog."""
    mode: TagModeStr
    id: Optional[str] = Field(None, description="Locate id (single mode)")
    bucket: BucketStr = Field(default="needs_call", description="Selection bucket (bulk mode)")

    @model_validator(mode="after")
    def validate_target(self) -> "TagDialogOpenRequest":
        if self.mode == "single" and not self.id:
            raise ValueError("single mode requires an id")
        return self


class TagFormUpdateRequest(BaseModel):
    """Partial update of the tagging form."""
    name: Optional[str] = None
    email: Optional[str] = None
    tags: Optional[Union[List[str], str]] = None


# ========== Response DTOs ==========

class AddressResponse(BaseModel):
    street: str
    city: str = ""
    state: str = ""
    zip: str = ""


class CountdownResponse(BaseModel):
    """Countdown text with urgency tier and display color."""
    text: str
    urgency: UrgencyStr
    color: str


class LocateResponse(BaseModel):
    """Response model for one locate in a bucket."""
    id: str
    work_order_number: str
    customer_name: str
    address: AddressResponse
    priority_name: str
    needs_call: bool
    call_type: Optional[CallTypeStr] = None
    called_at: Optional[datetime] = None
    completion_deadline: Optional[datetime] = None
    locates_called: bool
    tech_name: str = ""
    created_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    manually_tagged: bool = False
    tagged_by_name: Optional[str] = None
    tagged_by_email: Optional[str] = None
    called_by_name: Optional[str] = None
    called_by_email: Optional[str] = None

    # Derived at render time
    countdown: Optional[CountdownResponse] = None
    is_expired: bool = False
    selected: bool = False

    @classmethod
    def from_view(cls, view, selected: bool = False) -> "LocateResponse":
        """Create from a rendered LocateView."""
        record = view.record
        return cls(
            id=record.id,
            work_order_number=record.work_order_number,
            customer_name=record.customer_name,
            address=AddressResponse(
                street=record.address.street,
                city=record.address.city,
                state=record.address.state,
                zip=record.address.zip_code,
            ),
            priority_name=record.priority_name,
            needs_call=record.needs_call,
            call_type=record.call_type,
            called_at=record.called_at,
            completion_deadline=record.completion_deadline,
            locates_called=record.locates_called,
            tech_name=record.tech_name,
            created_date=record.created_date,
            completed_date=record.completed_date,
            tags=list(record.tags),
            manually_tagged=record.manually_tagged,
            tagged_by_name=record.tagged_by_name,
            tagged_by_email=record.tagged_by_email,
            called_by_name=record.called_by_name,
            called_by_email=record.called_by_email,
            countdown=(
                CountdownResponse(**view.countdown.to_dict()) if view.countdown else None
            ),
            is_expired=view.is_expired,
            selected=selected,
        )


class DashboardSummary(BaseModel):
    """Summary counts for the dashboard."""
    needs_call: int
    in_progress: int
    completed: int
    emergency_in_progress: int
    untagged_needs_call: int


class DashboardResponse(BaseModel):
    """Response model for the three-bucket dashboard."""
    now: datetime = Field(..., description="Clock instant the countdowns were rendered at")
    last_refreshed_at: Optional[datetime] = None
    needs_call: List[LocateResponse] = Field(default_factory=list)
    in_progress: List[LocateResponse] = Field(default_factory=list)
    completed: List[LocateResponse] = Field(default_factory=list)
    selection: Dict[str, List[str]] = Field(default_factory=dict)
    summary: DashboardSummary


class SelectionResponse(BaseModel):
    """Selected ids per bucket."""
    selection: Dict[str, List[str]]


class ActionResponse(BaseModel):
    """Aggregate result of a single or bulk action."""
    status: ActionStatusStr
    message: str
    succeeded: int
    failed: int
    failed_ids: List[str] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_outcome(cls, outcome: ActionOutcome) -> "ActionResponse":
        return cls(**outcome.to_dict())


class RefreshResponse(BaseModel):
    record_count: int
    refreshed_at: Optional[datetime] = None


class TagFormResponse(BaseModel):
    name: str
    email: str
    tags: List[str] = Field(default_factory=list)


class TagDialogResponse(BaseModel):
    """Current tagging dialog state."""
    open: bool
    mode: Optional[TagModeStr] = None
    target_ids: List[str] = Field(default_factory=list)
    form: TagFormResponse
