"""
Shared fixtures for the locate tracker tests.

Dates are pinned to January 2025 in America/Chicago (no DST change):
Fri Jan 3, weekend Jan 4-5, Mon Jan 6, Tue Jan 7.
"""

import copy
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo

import pytest

from core import LocatesApiException
from locates.application import ILocatesApi, LocateTrackerEngine, StaticConfigProvider, UserProfile
from locates.domain import LocateSLAConfig, ManualClock


CHICAGO = ZoneInfo("America/Chicago")


class FakeLocatesApi(ILocatesApi):
    """
    In-memory locates API.

    Mutations are applied to the held payload so a follow-up fetch sees
    them. Ids in ``fail_ids`` fail per-item calls with a 404.
    """

    def __init__(self, payload: Optional[List[Dict[str, Any]]] = None):
        self.payload = payload if payload is not None else []
        self.calls: List[tuple] = []
        self.fail_ids = set()
        self.fail_fetch = False
        self.fail_tag = False

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)

    def _work_orders(self):
        for parent in self.payload:
            for work_order in parent.get("workOrders", []):
                yield parent, work_order

    async def fetch_all_locates(self):
        self.calls.append(("fetch",))
        if self.fail_fetch:
            raise LocatesApiException("upstream unavailable", status_code=503)
        return copy.deepcopy(self.payload)

    async def sync_dashboard(self):
        self.calls.append(("sync",))

    async def update_call_status(self, work_order_id: str, call_type: str, called_at: datetime):
        self.calls.append(("call", work_order_id, call_type, called_at))
        if work_order_id in self.fail_ids:
            raise LocatesApiException("Work order not found", status_code=404)
        for _, work_order in self._work_orders():
            if work_order.get("_id") == work_order_id:
                work_order.update(
                    locatesCalled=True,
                    callType=call_type,
                    calledAt=called_at.isoformat(),
                )

    async def delete_work_orders(self, ids: Sequence[str]):
        self.calls.append(("delete", list(ids)))
        if any(record_id in self.fail_ids for record_id in ids):
            raise LocatesApiException("Work order not found", status_code=404)
        for parent in self.payload:
            parent["workOrders"] = [
                wo for wo in parent.get("workOrders", []) if wo.get("_id") not in ids
            ]

    def _apply_tag(self, number: str, name: str, tags: List[str]):
        for _, work_order in self._work_orders():
            if work_order.get("workOrderNumber") == number:
                work_order.update(tags=list(tags), manuallyTagged=True, taggedBy=name)

    async def tag_locates_needed(self, work_order_number, name, email, tags):
        self.calls.append(("tag", work_order_number, name, email, list(tags)))
        if self.fail_tag:
            raise LocatesApiException("Tagging rejected", status_code=400)
        self._apply_tag(work_order_number, name, tags)

    async def bulk_tag_locates_needed(self, work_order_numbers, name, email, tags):
        self.calls.append(("bulk_tag", list(work_order_numbers), name, email, list(tags)))
        if self.fail_tag:
            raise LocatesApiException("Tagging rejected", status_code=400)
        for number in work_order_numbers:
            self._apply_tag(number, name, tags)


@pytest.fixture
def tz():
    return CHICAGO


@pytest.fixture
def at():
    """Build an aware Chicago datetime."""
    def _at(year, month, day, hour=0, minute=0, second=0):
        return datetime(year, month, day, hour, minute, second, tzinfo=CHICAGO)
    return _at


@pytest.fixture
def sla_config():
    return LocateSLAConfig()


@pytest.fixture
def config_provider(sla_config):
    return StaticConfigProvider(sla_config)


@pytest.fixture
def make_work_order():
    """Factory for raw upstream work orders (uncalled excavator by default)."""
    def _make(record_id: str, **fields) -> Dict[str, Any]:
        work_order = {
            "_id": record_id,
            "workOrderNumber": f"WO-{record_id}",
            "customerAddress": "123 Main St - Springfield, IL 62704",
            "priorityName": "EXCAVATOR",
            "type": "LOCATE",
            "techName": "Sam Ortiz",
            "createdDate": "2025-01-02T08:00:00",
            "locatesCalled": False,
            "tags": [],
        }
        work_order.update(fields)
        return work_order
    return _make


@pytest.fixture
def payload(make_work_order):
    """
    One request per bucket case, seen from Mon Jan 6 2025 09:00.

    - wo-1: needs call, standard
    - wo-2: needs call, emergency
    - wo-3: in progress, standard, due Tue Jan 7 16:00
    - wo-4: in progress, emergency, due Mon Jan 6 12:40
    - wo-5: completed, due Wed Jan 1 10:00 (holidays count as business days)
    - wo-6: not excavator, not tracked
    """
    return [
        {
            "customerName": "Acme Utilities",
            "workOrders": [
                make_work_order("wo-1", customerAddress="45 Oak Ave - Austin, TX 78701"),
                make_work_order("wo-2", type="EMERGENCY LOCATE", createdDate="2025-01-05T07:00:00"),
            ],
        },
        {
            "customerName": "Prairie Gas",
            "workOrders": [
                make_work_order(
                    "wo-3", locatesCalled=True, callType="STANDARD",
                    calledAt="2025-01-03T22:00:00.000Z",
                ),
                make_work_order(
                    "wo-4", locatesCalled=True, callType="EMERGENCY",
                    calledAt="2025-01-06T08:40:00",
                ),
                make_work_order(
                    "wo-5", locatesCalled=True, callType="STANDARD",
                    calledAt="2024-12-30T10:00:00",
                ),
                make_work_order("wo-6", priorityName="STANDARD"),
            ],
        },
    ]


@pytest.fixture
def fake_api(payload):
    return FakeLocatesApi(payload)


@pytest.fixture
def clock(at):
    return ManualClock(at(2025, 1, 6, 9, 0))


@pytest.fixture
def profile():
    return UserProfile(name="Dana Field", email="dana@example.com")


@pytest.fixture
def engine(fake_api, config_provider, clock, profile):
    return LocateTrackerEngine.build(fake_api, config_provider, clock=clock, profile=profile)
