"""
Locate Classifier
=================

Partitions locate records into the three life-cycle buckets and applies
the Needs Call filters.

Buckets:
- Needs Call: priority needs a call and no call has been recorded
- In Progress: called, deadline still ahead
- Completed: called, deadline reached

The bucket a called record lands in depends on the clock, so every
classification takes ``now`` explicitly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from config import (
    Bucket, CallType, DateRange,
    VALID_BUCKETS, VALID_CALL_TYPES, VALID_DATE_RANGES,
)
from core import ValidationException
from locates.domain import LocateRecord


@dataclass(frozen=True)
class LocateFilters:
    """
    Filters for the Needs Call bucket.

    They never hide In Progress or Completed records.
    """
    search: str = ""
    untagged_only: bool = False
    call_type: Optional[str] = None
    created: str = DateRange.ALL

    @classmethod
    def build(
        cls,
        search: Optional[str] = None,
        untagged_only: bool = False,
        call_type: Optional[str] = None,
        created: Optional[str] = None
    ) -> "LocateFilters":
        """Validate raw query values."""
        normalized_type = (call_type or "").strip().upper() or None
        if normalized_type == "ALL":
            normalized_type = None
        if normalized_type is not None and normalized_type not in VALID_CALL_TYPES:
            raise ValidationException(
                f"Invalid call type filter '{call_type}'",
                {"valid": VALID_CALL_TYPES + ["ALL"]}
            )

        date_range = (created or DateRange.ALL).strip().lower()
        if date_range not in VALID_DATE_RANGES:
            raise ValidationException(
                f"Invalid created filter '{created}'",
                {"valid": VALID_DATE_RANGES}
            )

        return cls(
            search=(search or "").strip(),
            untagged_only=untagged_only,
            call_type=normalized_type,
            created=date_range,
        )

    def matches(self, record: LocateRecord, now: datetime) -> bool:
        if self.untagged_only and record.manually_tagged:
            return False
        if self.call_type and (record.call_type or CallType.STANDARD) != self.call_type:
            return False
        if not in_date_range(record.created_date, self.created, now):
            return False
        return matches_search(record, self.search)


def matches_search(record: LocateRecord, term: str) -> bool:
    """Case-insensitive substring match over the searchable fields."""
    if not term:
        return True
    needle = term.lower()
    haystack = (
        record.work_order_number,
        record.customer_name,
        record.address.street,
        record.address.city,
        record.tech_name,
    )
    return any(needle in (value or "").lower() for value in haystack)


def in_date_range(created: Optional[datetime], date_range: str, now: datetime) -> bool:
    """
    Check a created date against a window relative to ``now``.

    Weeks start on Sunday. Records without a created date only pass the
    ``all`` window.
    """
    if date_range == DateRange.ALL:
        return True
    if created is None:
        return False

    if created.tzinfo is not None and now.tzinfo is not None:
        created = created.astimezone(now.tzinfo)
    created_day = created.date()
    today = now.date()

    if date_range == DateRange.TODAY:
        return created_day == today
    if date_range == DateRange.THIS_WEEK:
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        return week_start <= created_day <= today
    if date_range == DateRange.THIS_MONTH:
        return (created_day.year, created_day.month) == (today.year, today.month)
    return True


def bucket_of(record: LocateRecord, now: datetime) -> Optional[str]:
    """
    Return the bucket for a record, or None when it belongs to none.

    An uncalled record whose priority needs no call is not tracked.
    """
    if record.locates_called and record.completion_deadline is not None:
        if record.is_expired(now):
            return Bucket.COMPLETED
        return Bucket.IN_PROGRESS
    if record.needs_call:
        return Bucket.NEEDS_CALL
    return None


def _timestamp(value: Optional[datetime]) -> float:
    return value.timestamp() if value is not None else 0.0


def _needs_call_key(record: LocateRecord):
    return (
        0 if record.is_emergency else 1,
        record.created_date is None,
        _timestamp(record.created_date),
        record.work_order_number,
        record.id,
    )


def _in_progress_key(record: LocateRecord):
    return (_timestamp(record.completion_deadline), record.work_order_number, record.id)


def _completed_key(record: LocateRecord):
    return (-_timestamp(record.completion_deadline), record.work_order_number, record.id)


@dataclass
class BucketedRecords:
    """Records split by bucket, each list already sorted for display."""
    needs_call: List[LocateRecord] = field(default_factory=list)
    in_progress: List[LocateRecord] = field(default_factory=list)
    completed: List[LocateRecord] = field(default_factory=list)

    def get(self, bucket: str) -> List[LocateRecord]:
        if bucket not in VALID_BUCKETS:
            raise ValidationException(f"Unknown bucket '{bucket}'", {"valid": VALID_BUCKETS})
        return getattr(self, bucket)

    def ids(self, bucket: str) -> List[str]:
        return [record.id for record in self.get(bucket)]

    def counts(self) -> Dict[str, int]:
        return {bucket: len(self.get(bucket)) for bucket in VALID_BUCKETS}


def classify(
    records: Iterable[LocateRecord],
    now: datetime,
    filters: Optional[LocateFilters] = None
) -> BucketedRecords:
    """
    Partition records into buckets at ``now``.

    Every record lands in at most one bucket. Filters are applied to
    Needs Call only.
    """
    result = BucketedRecords()
    for record in records:
        bucket = bucket_of(record, now)
        if bucket is None:
            continue
        if bucket == Bucket.NEEDS_CALL and filters is not None and not filters.matches(record, now):
            continue
        result.get(bucket).append(record)

    result.needs_call.sort(key=_needs_call_key)
    result.in_progress.sort(key=_in_progress_key)
    result.completed.sort(key=_completed_key)
    return result
