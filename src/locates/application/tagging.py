"""
Tagging Workflow
================

Dialog state for tagging locates as "locates needed".

One dialog is active at a time, either for a single record or for the
current bulk selection. The form starts from the user's profile and is
reset to it after a successful submission.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from config import ActionStatus
from core import ValidationException
from locates.application.services import BulkActionCoordinator
from locates.domain import ActionOutcome, LocateRecord, TagRequest, normalize_tags


class TagMode(str):
    """Which dialog is open."""
    SINGLE = "single"
    BULK = "bulk"


@dataclass(frozen=True)
class UserProfile:
    """Signed-in user used to prefill the tagging form."""
    name: str = ""
    email: str = ""


@dataclass
class TagForm:
    name: str = ""
    email: str = ""
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "TagForm":
        return cls(name=profile.name, email=profile.email)

    def to_request(self) -> TagRequest:
        return TagRequest.build(self.name, self.email, self.tags)

    def to_dict(self) -> dict:
        return {"name": self.name, "email": self.email, "tags": list(self.tags)}


class TaggingWorkflow:
    """State machine behind the single and bulk tagging dialogs."""

    def __init__(self, coordinator: BulkActionCoordinator, profile: Optional[UserProfile] = None):
        self._coordinator = coordinator
        self._profile = profile or UserProfile()
        self._mode: Optional[str] = None
        self._targets: Tuple[LocateRecord, ...] = ()
        self._form = TagForm.from_profile(self._profile)

    @property
    def mode(self) -> Optional[str]:
        return self._mode

    @property
    def is_open(self) -> bool:
        return self._mode is not None

    @property
    def targets(self) -> Tuple[LocateRecord, ...]:
        return self._targets

    @property
    def form(self) -> TagForm:
        return self._form

    @property
    def profile(self) -> UserProfile:
        return self._profile

    def open_single(self, record: LocateRecord) -> None:
        self._open(TagMode.SINGLE, (record,))

    def open_bulk(self, records: Sequence[LocateRecord]) -> None:
        if not records:
            raise ValidationException("Select at least one locate to tag")
        self._open(TagMode.BULK, tuple(records))

    def update(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        tags=None
    ) -> TagForm:
        """Edit the open form; ``None`` leaves a field unchanged."""
        if not self.is_open:
            raise ValidationException("No tagging dialog is open")
        if name is not None:
            self._form.name = name
        if email is not None:
            self._form.email = email
        if tags is not None:
            self._form.tags = list(normalize_tags(tags))
        return self._form

    def cancel(self) -> None:
        self._reset()

    async def submit(self) -> ActionOutcome:
        """
        Validate and send the form.

        Raises:
            ValidationException: No dialog is open, or name/email is blank.
                Nothing is sent in either case.
        """
        if not self.is_open:
            raise ValidationException("No tagging dialog is open")

        request = self._form.to_request()
        request.validate()

        if self._mode == TagMode.SINGLE:
            outcome = await self._coordinator.tag(self._targets[0], request)
        else:
            outcome = await self._coordinator.bulk_tag(self._targets, request)

        if outcome.status != ActionStatus.FAILURE:
            self._reset()
        return outcome

    def state(self) -> dict:
        return {
            "open": self.is_open,
            "mode": self._mode,
            "target_ids": [record.id for record in self._targets],
            "form": self._form.to_dict(),
        }

    def _open(self, mode: str, targets: Tuple[LocateRecord, ...]) -> None:
        self._mode = mode
        self._targets = targets
        self._form = TagForm.from_profile(self._profile)

    def _reset(self) -> None:
        self._mode = None
        self._targets = ()
        self._form = TagForm.from_profile(self._profile)
