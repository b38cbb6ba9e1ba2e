"""
Record Normalizer
=================

Flattens the nested upstream payload (requests containing work orders)
into LocateRecord instances.

Normalization never raises on malformed values: bad timestamps become
None, unparsable addresses keep the raw text, and entries that are not
objects at all are skipped with a warning.
"""

import re
from datetime import datetime, tzinfo
from typing import Any, Iterable, List, Mapping, Optional

from config import CallType, PLACEHOLDER, VALID_CALL_TYPES
from locates.domain import (
    Address,
    DeadlineCalculator,
    LocateRecord,
    LocateSLAConfig,
    normalize_tags,
)
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# "123 Main St - Springfield, IL 62704"
_ADDRESS_PATTERN = re.compile(
    r"^\s*(?P<street>.+?)\s+-\s+(?P<city>[^,]+?),\s*"
    r"(?P<state>[A-Za-z][A-Za-z .]*?)\s+(?P<zip>\d{5}(?:-\d{4})?)\s*$"
)

_ENVELOPE_KEYS = ("data", "locates")
_TRUTHY = {"true", "yes", "1", "y"}


def parse_address(raw: Any) -> Address:
    """Split a one-line address; keep the raw text as street on mismatch."""
    text = _as_text(raw)
    if not text:
        return Address(street=PLACEHOLDER)

    match = _ADDRESS_PATTERN.match(text)
    if not match:
        return Address(street=text)

    return Address(
        street=match.group("street").strip(),
        city=match.group("city").strip(),
        state=match.group("state").strip(),
        zip_code=match.group("zip"),
    )


def parse_timestamp(value: Any, tz: tzinfo) -> Optional[datetime]:
    """
    Parse an upstream timestamp into an aware datetime in ``tz``.

    Accepts ISO-8601 strings (with or without a trailing ``Z``), epoch
    seconds or milliseconds, and datetime objects. Naive values are read
    as local time in ``tz``. Anything unparsable returns None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _person(value: Any, email: Any = None) -> tuple:
    """Upstream sends either a name string or a ``{name, email}`` object."""
    if isinstance(value, Mapping):
        return (_as_text(value.get("name")) or None, _as_text(value.get("email")) or None)
    return (_as_text(value) or None, _as_text(email) or None)


def unwrap_collection(payload: Any) -> List[Any]:
    """Accept a bare list or a ``{data: [...]}`` / ``{locates: [...]}`` envelope."""
    if payload is None:
        return []
    if isinstance(payload, Mapping):
        for key in _ENVELOPE_KEYS:
            inner = payload.get(key)
            if isinstance(inner, list):
                return inner
            if isinstance(inner, Mapping):
                return unwrap_collection(inner)
        logger.warning(
            "Locates payload has no recognised collection",
            extra={"keys": sorted(str(k) for k in payload.keys())}
        )
        return []
    if isinstance(payload, list):
        return payload
    logger.warning("Locates payload is not a list", extra={"payload_type": type(payload).__name__})
    return []


class RecordNormalizer:
    """
    Turns raw upstream requests into a flat list of LocateRecords.

    Stateless; the SLA config is passed per call so hot-reloaded rules
    apply on the next refresh.
    """

    def normalize(self, payload: Any, config: LocateSLAConfig) -> List[LocateRecord]:
        records: List[LocateRecord] = []
        seen_ids = set()

        for parent_index, parent in enumerate(unwrap_collection(payload)):
            if not isinstance(parent, Mapping):
                logger.warning("Skipping malformed locate request", extra={"index": parent_index})
                continue

            work_orders = parent.get("workOrders") or []
            if not isinstance(work_orders, list):
                logger.warning(
                    "Skipping request with malformed workOrders",
                    extra={"index": parent_index}
                )
                continue

            for order_index, work_order in enumerate(work_orders):
                if not isinstance(work_order, Mapping):
                    logger.warning(
                        "Skipping malformed work order",
                        extra={"index": parent_index, "work_order_index": order_index}
                    )
                    continue

                record = self.normalize_work_order(
                    work_order, parent, parent_index, order_index, config
                )
                if record.id in seen_ids:
                    logger.warning("Duplicate locate id dropped", extra={"locate_id": record.id})
                    continue
                seen_ids.add(record.id)
                records.append(record)

        return records

    def normalize_work_order(
        self,
        work_order: Mapping,
        parent: Mapping,
        parent_index: int,
        order_index: int,
        config: LocateSLAConfig
    ) -> LocateRecord:
        tz = config.tzinfo
        priority_name = _as_text(work_order.get("priorityName"))
        upstream_called = _as_bool(work_order.get("locatesCalled"))
        called_at = parse_timestamp(work_order.get("calledAt"), tz)

        call_type = self._call_type(work_order, priority_name, upstream_called)

        deadline = None
        if upstream_called:
            deadline = DeadlineCalculator.resolve_deadline(
                called_at,
                call_type,
                parse_timestamp(work_order.get("completionDate"), tz),
                config
            )

        tagged_by_name, tagged_by_email = _person(
            work_order.get("taggedBy"), work_order.get("taggedByEmail")
        )
        called_by_name, called_by_email = _person(
            work_order.get("calledBy"), work_order.get("calledByEmail")
        )

        return LocateRecord(
            id=self._record_id(work_order, parent_index, order_index),
            work_order_number=_as_text(work_order.get("workOrderNumber")),
            customer_name=(
                _as_text(work_order.get("customerName"))
                or _as_text(parent.get("customerName"))
                or PLACEHOLDER
            ),
            address=parse_address(work_order.get("customerAddress")),
            priority_name=priority_name,
            needs_call=priority_name.upper() == config.needs_call_priority,
            call_type=call_type,
            called_at=called_at,
            completion_deadline=deadline,
            locates_called=upstream_called and deadline is not None,
            tech_name=_as_text(work_order.get("techName")),
            created_date=parse_timestamp(work_order.get("createdDate"), tz),
            completed_date=parse_timestamp(work_order.get("completedDate"), tz),
            tags=normalize_tags(self._tag_values(work_order.get("tags"))),
            manually_tagged=_as_bool(work_order.get("manuallyTagged")),
            tagged_by_name=tagged_by_name,
            tagged_by_email=tagged_by_email,
            called_by_name=called_by_name,
            called_by_email=called_by_email,
        )

    @staticmethod
    def _record_id(work_order: Mapping, parent_index: int, order_index: int) -> str:
        for key in ("_id", "id", "workOrderNumber"):
            value = _as_text(work_order.get(key))
            if value:
                return value
        return f"locate-{parent_index}-{order_index}"

    @staticmethod
    def _call_type(work_order: Mapping, priority_name: str, upstream_called: bool) -> Optional[str]:
        """
        Stored call type once called; inferred from type/priority before.

        A called record with a missing or unknown stored type gets None,
        which keeps its deadline unset.
        """
        if upstream_called:
            stored = _as_text(work_order.get("callType")).upper()
            return stored if stored in VALID_CALL_TYPES else None

        hints = f"{_as_text(work_order.get('type'))} {priority_name}".upper()
        return CallType.EMERGENCY if CallType.EMERGENCY in hints else CallType.STANDARD

    @staticmethod
    def _tag_values(raw: Any) -> Optional[Iterable[str]]:
        if raw is None or isinstance(raw, str):
            return raw
        if isinstance(raw, list):
            return [_as_text(t) for t in raw if not isinstance(t, (Mapping, list))]
        return None
