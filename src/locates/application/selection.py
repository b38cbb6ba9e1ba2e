"""
Selection State
===============

Per-bucket sets of selected locate ids.

Selections are independent per bucket, only ever hold ids, and are
pruned against the live record set after every refresh.
"""

from typing import Dict, FrozenSet, Iterable, List, Set

from config import VALID_BUCKETS
from core import ValidationException


class SelectionState:
    """Selected ids for each bucket."""

    def __init__(self, buckets: Iterable[str] = VALID_BUCKETS):
        self._selected: Dict[str, Set[str]] = {bucket: set() for bucket in buckets}

    def _bucket(self, bucket: str) -> Set[str]:
        try:
            return self._selected[bucket]
        except KeyError:
            raise ValidationException(
                f"Unknown bucket '{bucket}'",
                {"valid": sorted(self._selected)}
            ) from None

    def toggle(self, bucket: str, record_id: str) -> bool:
        """Flip one id; returns True when it is now selected."""
        selected = self._bucket(bucket)
        if record_id in selected:
            selected.discard(record_id)
            return False
        selected.add(record_id)
        return True

    def select_all(self, bucket: str, record_ids: Iterable[str]) -> FrozenSet[str]:
        """Replace the bucket's selection with exactly ``record_ids``."""
        selected = self._bucket(bucket)
        selected.clear()
        selected.update(record_ids)
        return frozenset(selected)

    def clear(self, bucket: str) -> FrozenSet[str]:
        """Empty the bucket's selection; returns what was selected."""
        selected = self._bucket(bucket)
        previous = frozenset(selected)
        selected.clear()
        return previous

    def selected(self, bucket: str) -> FrozenSet[str]:
        return frozenset(self._bucket(bucket))

    def is_selected(self, bucket: str, record_id: str) -> bool:
        return record_id in self._bucket(bucket)

    def retain(self, bucket: str, live_ids: Iterable[str]) -> FrozenSet[str]:
        """Drop ids no longer present in ``live_ids``; returns the dropped ids."""
        selected = self._bucket(bucket)
        stale = selected - set(live_ids)
        selected.difference_update(stale)
        return frozenset(stale)

    def as_dict(self) -> Dict[str, List[str]]:
        return {bucket: sorted(ids) for bucket, ids in self._selected.items()}
