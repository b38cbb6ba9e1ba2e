"""
Locate Application Services
============================

Application services orchestrate the locate domain and coordinate with
the upstream locates API.

Following SOLID principles:
- Single Responsibility: dashboard state, bulk actions and tagging are separate
- Dependency Inversion: Depend on abstractions (ILocatesApi), not the HTTP client
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from config import Bucket, CallType, VALID_BUCKETS, VALID_CALL_TYPES
from core import (
    ConfirmationRequiredException,
    LocatesApiException,
    NothingSelectedException,
    ResourceNotFoundException,
    ValidationException,
)
from locates.application.classifier import BucketedRecords, LocateFilters, classify
from locates.application.normalizer import RecordNormalizer
from locates.application.selection import SelectionState
from locates.domain import (
    ActionOutcome,
    Clock,
    Countdown,
    CountdownFormatter,
    ItemOutcome,
    LocateRecord,
    LocateSLAConfig,
    SystemClock,
    TagRequest,
    TickingClock,
)
from shared.infrastructure.logging import get_logger, log_latency

if TYPE_CHECKING:
    from locates.application.tagging import TaggingWorkflow, UserProfile

logger = get_logger(__name__)


# ========== Collaborator Interfaces (Dependency Inversion) ==========

class ILocatesApi(ABC):
    """Interface for the upstream work-order / locates API."""

    @abstractmethod
    async def fetch_all_locates(self) -> Any:
        """Fetch every locate request with its work orders."""

    @abstractmethod
    async def sync_dashboard(self) -> Any:
        """Ask upstream to re-sync its dashboard data."""

    @abstractmethod
    async def update_call_status(self, work_order_id: str, call_type: str, called_at: datetime) -> Any:
        """Record that a locate call was placed."""

    @abstractmethod
    async def delete_work_orders(self, ids: Sequence[str]) -> Any:
        """Delete work orders by id."""

    @abstractmethod
    async def tag_locates_needed(
        self, work_order_number: str, name: str, email: str, tags: List[str]
    ) -> Any:
        """Tag one work order as needing locates."""

    @abstractmethod
    async def bulk_tag_locates_needed(
        self, work_order_numbers: List[str], name: str, email: str, tags: List[str]
    ) -> Any:
        """Tag many work orders as needing locates."""


class ILocateConfigProvider(ABC):
    """Interface for locate SLA configuration access."""

    @abstractmethod
    def get_config(self) -> LocateSLAConfig:
        """Get current locate SLA configuration."""


class StaticConfigProvider(ILocateConfigProvider):
    """Config provider that always returns the same rules."""

    def __init__(self, config: Optional[LocateSLAConfig] = None):
        self._config = config or LocateSLAConfig()

    def get_config(self) -> LocateSLAConfig:
        return self._config


# ========== Helpers ==========

async def settle_all(
    item_ids: Iterable[str],
    operation: Callable[[str], Awaitable[Any]]
) -> List[ItemOutcome]:
    """
    Run ``operation`` for every id concurrently and wait for all of them.

    One failing item never aborts the others; each failure becomes an
    ItemOutcome carrying the error text.
    """
    async def _settle(item_id: str) -> ItemOutcome:
        try:
            await operation(item_id)
        except Exception as e:
            error = getattr(e, "message", None) or str(e) or type(e).__name__
            logger.warning("Bulk item failed", extra={"item_id": item_id, "error": error})
            return ItemOutcome(item_id=item_id, succeeded=False, error=error)
        return ItemOutcome(item_id=item_id, succeeded=True)

    return list(await asyncio.gather(*(_settle(item_id) for item_id in item_ids)))


@dataclass(frozen=True)
class LocateView:
    """A record as shown in one bucket at one instant."""
    record: LocateRecord
    bucket: str
    countdown: Optional[Countdown]
    is_expired: bool


@dataclass
class DashboardSnapshot:
    """Bucketed, formatted view of the record set at ``now``."""
    now: datetime
    needs_call: List[LocateView] = field(default_factory=list)
    in_progress: List[LocateView] = field(default_factory=list)
    completed: List[LocateView] = field(default_factory=list)

    def get(self, bucket: str) -> List[LocateView]:
        if bucket not in VALID_BUCKETS:
            raise ValidationException(f"Unknown bucket '{bucket}'", {"valid": VALID_BUCKETS})
        return getattr(self, bucket)

    def ids(self, bucket: str) -> List[str]:
        return [view.record.id for view in self.get(bucket)]

    def summary(self) -> Dict[str, int]:
        return {
            "needs_call": len(self.needs_call),
            "in_progress": len(self.in_progress),
            "completed": len(self.completed),
            "emergency_in_progress": sum(1 for v in self.in_progress if v.record.is_emergency),
            "untagged_needs_call": sum(1 for v in self.needs_call if not v.record.manually_tagged),
        }


# ========== Dashboard Service ==========

class LocateDashboardService:
    """
    Holds the last-known record set and renders it per clock tick.

    The record set is only ever replaced wholesale by ``refresh``; a
    failed refresh leaves the previous set in place.
    """

    def __init__(
        self,
        api: ILocatesApi,
        config_provider: ILocateConfigProvider,
        clock: Clock,
        selection: SelectionState,
        normalizer: Optional[RecordNormalizer] = None
    ):
        self._api = api
        self._config_provider = config_provider
        self._clock = clock
        self._selection = selection
        self._normalizer = normalizer or RecordNormalizer()
        self._records: List[LocateRecord] = []
        self._by_id: Dict[str, LocateRecord] = {}
        self._last_refreshed_at: Optional[datetime] = None
        self._latest: Optional[DashboardSnapshot] = None
        self._started_generation = 0
        self._applied_generation = 0

    @property
    def records(self) -> List[LocateRecord]:
        return list(self._records)

    @property
    def last_refreshed_at(self) -> Optional[datetime]:
        return self._last_refreshed_at

    @property
    def latest(self) -> Optional[DashboardSnapshot]:
        """Snapshot from the most recent tick or refresh."""
        return self._latest

    async def refresh(self) -> int:
        """
        Fetch and normalize the full record set.

        Refreshes may overlap. A fetch that started before the most
        recently applied one is discarded rather than applied.

        Raises:
            LocatesApiException: If the fetch fails (records are kept)
        """
        self._started_generation += 1
        generation = self._started_generation

        with log_latency(logger, "locates_refresh"):
            try:
                payload = await self._api.fetch_all_locates()
            except LocatesApiException as e:
                logger.error(
                    "Locates refresh failed, keeping last-known records",
                    extra={"error": e.message, "record_count": len(self._records)}
                )
                raise
            records = self._normalizer.normalize(payload, self._config_provider.get_config())

        if generation < self._applied_generation:
            logger.warning(
                "Discarding stale locates refresh",
                extra={"generation": generation, "applied_generation": self._applied_generation}
            )
            return len(self._records)

        self._applied_generation = generation
        self.replace_records(records)
        logger.info("Locates refreshed", extra={"record_count": len(records)})
        return len(records)

    async def sync(self) -> int:
        """Trigger an upstream re-sync, then refresh."""
        await self._api.sync_dashboard()
        logger.info("Upstream dashboard sync requested")
        return await self.refresh()

    def replace_records(self, records: Iterable[LocateRecord]) -> None:
        """Swap in a new record set and prune selections against it."""
        self._records = list(records)
        self._by_id = {record.id: record for record in self._records}
        now = self._clock.now()
        self._last_refreshed_at = now

        buckets = classify(self._records, now)
        for bucket in VALID_BUCKETS:
            dropped = self._selection.retain(bucket, buckets.ids(bucket))
            if dropped:
                logger.info(
                    "Pruned stale selections",
                    extra={"bucket": bucket, "dropped": len(dropped)}
                )
        self._latest = self._render(buckets, now)

    def get(self, record_id: str) -> Optional[LocateRecord]:
        return self._by_id.get(record_id)

    def require(self, record_id: str) -> LocateRecord:
        record = self.get(record_id)
        if record is None:
            raise ResourceNotFoundException("Locate", record_id)
        return record

    def classify(self, now: Optional[datetime] = None, filters: Optional[LocateFilters] = None) -> BucketedRecords:
        return classify(self._records, now or self._clock.now(), filters)

    def snapshot(
        self,
        filters: Optional[LocateFilters] = None,
        now: Optional[datetime] = None
    ) -> DashboardSnapshot:
        """Classify and format the record set at ``now`` (clock time by default)."""
        now = now or self._clock.now()
        return self._render(classify(self._records, now, filters), now)

    def on_tick(self, now: datetime) -> None:
        """Re-render at ``now`` and log records whose deadline just passed."""
        previous = self._latest
        self._latest = self.snapshot(now=now)
        if previous is None:
            return

        was_in_progress = set(previous.ids(Bucket.IN_PROGRESS))
        for view in self._latest.completed:
            if view.record.id in was_in_progress:
                logger.info(
                    "Locate deadline reached",
                    extra={
                        "locate_id": view.record.id,
                        "work_order_number": view.record.work_order_number,
                        "call_type": view.record.call_type,
                    }
                )

    def _render(self, buckets: BucketedRecords, now: datetime) -> DashboardSnapshot:
        config = self._config_provider.get_config()
        snapshot = DashboardSnapshot(now=now)
        for bucket in VALID_BUCKETS:
            snapshot.get(bucket).extend(
                self._view(record, bucket, now, config) for record in buckets.get(bucket)
            )
        return snapshot

    @staticmethod
    def _view(record: LocateRecord, bucket: str, now: datetime, config: LocateSLAConfig) -> LocateView:
        countdown = None
        if record.completion_deadline is not None:
            try:
                countdown = CountdownFormatter.format(
                    record.completion_deadline, now, record.call_type, config
                )
            except Exception as e:
                logger.warning(
                    "Countdown formatting failed",
                    extra={"locate_id": record.id, "error": str(e)}
                )
                countdown = Countdown.placeholder()
        return LocateView(
            record=record,
            bucket=bucket,
            countdown=countdown,
            is_expired=record.is_expired(now),
        )


# ========== Bulk Action Coordinator ==========

VERB_CALLED = "marked called"
VERB_DELETED = "deleted"
VERB_TAGGED = "tagged"


class BulkActionCoordinator:
    """
    Runs single and bulk actions against the locates API.

    Bulk actions issue one request per id, wait for all of them, and
    report partial failure with explicit counts. A successful action
    triggers a refresh; failures never mutate local records.
    """

    def __init__(
        self,
        api: ILocatesApi,
        dashboard: LocateDashboardService,
        selection: SelectionState,
        clock: Clock
    ):
        self._api = api
        self._dashboard = dashboard
        self._selection = selection
        self._clock = clock

    async def mark_called(self, record_id: str, call_type: Optional[str] = None) -> ActionOutcome:
        """Record a locate call for one work order."""
        resolved_type = self._resolve_call_type(record_id, call_type)
        called_at = self._clock.now()

        try:
            await self._api.update_call_status(record_id, resolved_type, called_at)
        except LocatesApiException as e:
            logger.error(
                "Mark called failed",
                extra={"locate_id": record_id, "call_type": resolved_type, "error": e.message}
            )
            return ActionOutcome.from_items(VERB_CALLED, [ItemOutcome(record_id, False, e.message)])

        logger.info("Locate marked called", extra={"locate_id": record_id, "call_type": resolved_type})
        await self._refresh_after_mutation()
        return ActionOutcome.from_items(VERB_CALLED, [ItemOutcome(record_id, True)])

    async def bulk_mark_called(self, bucket: str, call_type: Optional[str] = None) -> ActionOutcome:
        """Mark every selected locate in ``bucket`` as called."""
        ids = self._require_selection(bucket)
        forced_type = self._validate_call_type(call_type) if call_type else None
        called_at = self._clock.now()

        async def _call(record_id: str) -> None:
            await self._api.update_call_status(
                record_id, forced_type or self._default_call_type(record_id), called_at
            )

        outcomes = await settle_all(ids, _call)
        self._selection.clear(bucket)
        return await self._finish(VERB_CALLED, bucket, outcomes)

    async def bulk_delete(self, bucket: str, confirmed: bool = False) -> ActionOutcome:
        """
        Delete every selected work order in ``bucket``.

        Requires explicit confirmation. The selection is cleared whatever
        the outcome.
        """
        ids = self._require_selection(bucket)
        if not confirmed:
            raise ConfirmationRequiredException(bucket, len(ids))

        outcomes = await settle_all(ids, lambda record_id: self._api.delete_work_orders([record_id]))
        self._selection.clear(bucket)
        return await self._finish(VERB_DELETED, bucket, outcomes)

    async def tag(self, record: LocateRecord, request: TagRequest) -> ActionOutcome:
        """Tag one locate as needing locates."""
        request.validate()
        if not record.work_order_number:
            raise ValidationException(
                "Locate has no work order number to tag",
                {"locate_id": record.id}
            )

        try:
            await self._api.tag_locates_needed(
                record.work_order_number, request.name, request.email, list(request.tags)
            )
        except LocatesApiException as e:
            logger.error("Tagging failed", extra={"locate_id": record.id, "error": e.message})
            return ActionOutcome.from_items(VERB_TAGGED, [ItemOutcome(record.id, False, e.message)])

        logger.info(
            "Locate tagged",
            extra={"locate_id": record.id, "work_order_number": record.work_order_number}
        )
        await self._refresh_after_mutation()
        return ActionOutcome.from_items(VERB_TAGGED, [ItemOutcome(record.id, True)])

    async def bulk_tag(self, records: Sequence[LocateRecord], request: TagRequest) -> ActionOutcome:
        """
        Tag many locates in one request.

        Records without a work order number are reported as failed; if
        none has one, nothing is sent.
        """
        request.validate()
        if not records:
            raise ValidationException("Select at least one locate to tag")

        resolvable = [r for r in records if r.work_order_number]
        unresolvable = [
            ItemOutcome(r.id, False, "no work order number")
            for r in records if not r.work_order_number
        ]
        if not resolvable:
            raise ValidationException(
                "None of the selected locates has a work order number",
                {"locate_ids": [r.id for r in records]}
            )

        numbers = list(dict.fromkeys(r.work_order_number for r in resolvable))
        try:
            await self._api.bulk_tag_locates_needed(
                numbers, request.name, request.email, list(request.tags)
            )
        except LocatesApiException as e:
            outcomes = [ItemOutcome(r.id, False, e.message) for r in resolvable]
        else:
            outcomes = [ItemOutcome(r.id, True) for r in resolvable]

        return await self._finish(VERB_TAGGED, None, outcomes + unresolvable)

    # ========== Internals ==========

    def _require_selection(self, bucket: str) -> List[str]:
        ids = sorted(self._selection.selected(bucket))
        if not ids:
            raise NothingSelectedException(bucket)
        return ids

    @staticmethod
    def _validate_call_type(call_type: str) -> str:
        normalized = call_type.strip().upper()
        if normalized not in VALID_CALL_TYPES:
            raise ValidationException(
                f"Invalid call type '{call_type}'",
                {"valid": VALID_CALL_TYPES}
            )
        return normalized

    def _default_call_type(self, record_id: str) -> str:
        record = self._dashboard.get(record_id)
        if record is not None and record.call_type in VALID_CALL_TYPES:
            return record.call_type
        return CallType.STANDARD

    def _resolve_call_type(self, record_id: str, call_type: Optional[str]) -> str:
        if call_type:
            return self._validate_call_type(call_type)
        return self._default_call_type(record_id)

    async def _finish(self, action: str, bucket: Optional[str], outcomes: List[ItemOutcome]) -> ActionOutcome:
        outcome = ActionOutcome.from_items(action, outcomes)
        log = logger.info if outcome.is_success else logger.warning
        log(
            "Bulk action finished",
            extra={
                "action": action,
                "bucket": bucket,
                "status": outcome.status,
                "succeeded": outcome.succeeded,
                "failed": outcome.failed,
            }
        )
        if outcome.succeeded:
            await self._refresh_after_mutation()
        return outcome

    async def _refresh_after_mutation(self) -> None:
        try:
            await self._dashboard.refresh()
        except LocatesApiException as e:
            logger.warning("Refresh after action failed", extra={"error": e.message})


# ========== Composition ==========

@dataclass
class LocateTrackerEngine:
    """Wires the clock, dashboard, selection, coordinator and tagging together."""
    clock: Clock
    config_provider: ILocateConfigProvider
    selection: SelectionState
    dashboard: LocateDashboardService
    coordinator: BulkActionCoordinator
    tagging: "TaggingWorkflow"

    @classmethod
    def build(
        cls,
        api: ILocatesApi,
        config_provider: ILocateConfigProvider,
        clock: Optional[Clock] = None,
        profile: Optional["UserProfile"] = None
    ) -> "LocateTrackerEngine":
        from locates.application.tagging import TaggingWorkflow

        if clock is None:
            clock = TickingClock(SystemClock(config_provider.get_config().tzinfo))
        selection = SelectionState()
        dashboard = LocateDashboardService(api, config_provider, clock, selection)
        coordinator = BulkActionCoordinator(api, dashboard, selection, clock)
        if isinstance(clock, TickingClock):
            clock.subscribe(dashboard.on_tick)

        return cls(
            clock=clock,
            config_provider=config_provider,
            selection=selection,
            dashboard=dashboard,
            coordinator=coordinator,
            tagging=TaggingWorkflow(coordinator, profile),
        )

    def selected_records(self, bucket: str) -> List[LocateRecord]:
        """Live records behind the bucket's selection."""
        records = (self.dashboard.get(record_id) for record_id in sorted(self.selection.selected(bucket)))
        return [record for record in records if record is not None]
