"""
Locate Value Objects
=====================

Immutable value objects for the locate SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import CallType, UrgencyTier, URGENCY_COLORS, PLACEHOLDER, VALID_CALL_TYPES
from core import ValidationException


class LocateSLAConfig(BaseModel):
    """
    Locate SLA rules loaded from YAML.

    EMERGENCY locates are due a fixed number of hours after the call;
    STANDARD locates are due a number of business days after the call.
    """
    model_config = ConfigDict(frozen=True)

    emergency_hours: float = Field(default=4, gt=0, description="Fixed EMERGENCY response window")
    standard_business_days: int = Field(default=2, ge=1, description="STANDARD window in business days")
    business_day_cutoff_hour: int = Field(
        default=17, ge=0, le=23,
        description="Local hour after which the current day no longer counts"
    )
    critical_minutes: int = Field(default=30, ge=0, description="EMERGENCY critical threshold")
    warning_minutes: int = Field(default=60, ge=0, description="EMERGENCY warning threshold")
    needs_call_priority: str = Field(default="EXCAVATOR", description="Priority label that needs a call")
    timezone: str = Field(default="America/Chicago", description="Business-day calendar timezone")

    @field_validator("needs_call_priority")
    @classmethod
    def normalize_priority(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject timezone names the tz database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone '{v}'") from e
        return v

    @model_validator(mode="after")
    def validate_thresholds(self) -> "LocateSLAConfig":
        if self.critical_minutes > self.warning_minutes:
            raise ValueError("critical_minutes must not exceed warning_minutes")
        return self

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc)


class DeadlineCalculator:
    """
    Pure functions for locate deadline calculations.

    Stateless utility class - all deadline arithmetic in one place.
    """

    @staticmethod
    def add_business_days(start: datetime, days: int) -> datetime:
        """
        Advance ``start`` by ``days`` business days, keeping the time of day.

        Saturdays and Sundays are skipped; holidays are not. A start on a
        weekend counts forward from that weekend day, so Saturday + 2 lands
        on Tuesday.
        """
        result = start
        remaining = days
        while remaining > 0:
            result += timedelta(days=1)
            if result.weekday() < 5:
                remaining -= 1
        return result

    @staticmethod
    def calculate_deadline(
        called_at: Optional[datetime],
        call_type: Optional[str],
        config: LocateSLAConfig
    ) -> Optional[datetime]:
        """
        Calculate the completion deadline for a called locate.

        Args:
            called_at: When the locate call was recorded
            call_type: STANDARD or EMERGENCY
            config: SLA rules

        Returns:
            The deadline, or None when either input is missing or invalid
        """
        if called_at is None or call_type not in VALID_CALL_TYPES:
            return None

        if call_type == CallType.EMERGENCY:
            window = timedelta(hours=config.emergency_hours)
            if called_at.tzinfo is None:
                return called_at + window
            # Absolute duration, independent of DST shifts in the local zone
            return (_to_utc(called_at) + window).astimezone(called_at.tzinfo)

        return DeadlineCalculator.add_business_days(called_at, config.standard_business_days)

    @staticmethod
    def resolve_deadline(
        called_at: Optional[datetime],
        call_type: Optional[str],
        completion_date: Optional[datetime],
        config: LocateSLAConfig
    ) -> Optional[datetime]:
        """Upstream completion date wins over the computed deadline."""
        if completion_date is not None:
            return completion_date
        return DeadlineCalculator.calculate_deadline(called_at, call_type, config)

    @staticmethod
    def is_expired(deadline: Optional[datetime], now: datetime) -> bool:
        """A deadline is expired at or after the deadline instant."""
        if deadline is None:
            return False
        return _to_utc(deadline) <= _to_utc(now)


@dataclass(frozen=True)
class Countdown:
    """Display text and urgency tier for a locate deadline."""
    text: str
    urgency: str

    @property
    def color(self) -> str:
        return URGENCY_COLORS.get(self.urgency, URGENCY_COLORS[UrgencyTier.NORMAL])

    @classmethod
    def placeholder(cls) -> "Countdown":
        return cls(text=PLACEHOLDER, urgency=UrgencyTier.NORMAL)

    def to_dict(self) -> dict:
        return {"text": self.text, "urgency": self.urgency, "color": self.color}


class CountdownFormatter:
    """
    Pure functions rendering the time left on a locate.

    Called once per visible record on every clock tick, so everything here
    is side-effect free and bounded by the number of days remaining.
    """

    EXPIRED_TEXT = "EXPIRED"

    @staticmethod
    def format(
        deadline: datetime,
        now: datetime,
        call_type: Optional[str],
        config: LocateSLAConfig
    ) -> Countdown:
        """
        Format the countdown for a deadline.

        EMERGENCY locates count down in hours/minutes/seconds; everything
        else counts whole business days.
        """
        if DeadlineCalculator.is_expired(deadline, now):
            return Countdown(CountdownFormatter.EXPIRED_TEXT, UrgencyTier.EXPIRED)

        remaining = int((_to_utc(deadline) - _to_utc(now)).total_seconds())

        if call_type == CallType.EMERGENCY:
            return Countdown(
                CountdownFormatter.format_duration(remaining),
                CountdownFormatter.emergency_tier(remaining, config)
            )

        days = CountdownFormatter.business_days_remaining(
            now, deadline, config.business_day_cutoff_hour
        )
        if days == 0:
            hours = remaining // 3600
            if CountdownFormatter._due_today(now, deadline):
                return Countdown(f"{hours}h remaining today", UrgencyTier.WARNING)
            return Countdown(f"{hours}h remaining", UrgencyTier.WARNING)
        if days == 1:
            return Countdown("1 business day", UrgencyTier.WARNING)
        return Countdown(f"{days} business days", UrgencyTier.NORMAL)

    @staticmethod
    def format_duration(seconds: int) -> str:
        """Render ``"{h}h {m}m"``, ``"{m}m {s}s"`` or ``"{s}s"``."""
        seconds = max(0, seconds)
        hours, rest = divmod(seconds, 3600)
        minutes, secs = divmod(rest, 60)
        if hours >= 1:
            return f"{hours}h {minutes}m"
        if minutes >= 1:
            return f"{minutes}m {secs}s"
        return f"{secs}s"

    @staticmethod
    def emergency_tier(remaining_seconds: int, config: LocateSLAConfig) -> str:
        if remaining_seconds <= config.critical_minutes * 60:
            return UrgencyTier.CRITICAL
        if remaining_seconds <= config.warning_minutes * 60:
            return UrgencyTier.WARNING
        return UrgencyTier.NORMAL

    @staticmethod
    def _due_today(now: datetime, deadline: datetime) -> bool:
        """True on a weekday whose date is the deadline's date."""
        if now.tzinfo is not None and deadline.tzinfo is not None:
            now = now.astimezone(deadline.tzinfo)
        return now.weekday() < 5 and now.date() == deadline.date()

    @staticmethod
    def business_days_remaining(now: datetime, deadline: datetime, cutoff_hour: int) -> int:
        """
        Count whole business days left before a deadline.

        The effective current day is ``now``'s date, or the next calendar
        date once ``now`` is at or past the cutoff hour. The result is the
        number of weekdays strictly after the effective day up to and
        including the deadline's date.
        """
        if now.tzinfo is not None and deadline.tzinfo is not None:
            now = now.astimezone(deadline.tzinfo)

        day: date = now.date()
        if now.hour >= cutoff_hour:
            day += timedelta(days=1)

        target = deadline.date()
        count = 0
        while day < target:
            day += timedelta(days=1)
            if day.weekday() < 5:
                count += 1
        return count


@dataclass(frozen=True)
class Address:
    """Site address parsed from the upstream one-line address."""
    street: str = PLACEHOLDER
    city: str = ""
    state: str = ""
    zip_code: str = ""

    @property
    def one_line(self) -> str:
        locality = " ".join(part for part in (self.state, self.zip_code) if part)
        tail = ", ".join(part for part in (self.city, locality) if part)
        return f"{self.street} - {tail}" if tail else self.street


def normalize_tags(tags: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    """Accept a list or comma-separated text; trim and drop blanks."""
    if tags is None:
        return ()
    if isinstance(tags, str):
        tags = tags.split(",")
    cleaned = []
    for tag in tags:
        text = str(tag).strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return tuple(cleaned)


@dataclass(frozen=True)
class TagRequest:
    """"Locates needed" metadata submitted for one or more work orders."""
    name: str
    email: str
    tags: Tuple[str, ...] = ()

    @classmethod
    def build(cls, name: Optional[str], email: Optional[str], tags=None) -> "TagRequest":
        return cls(
            name=(name or "").strip(),
            email=(email or "").strip(),
            tags=normalize_tags(tags),
        )

    def validate(self) -> None:
        """Raise before any network call when name or email is blank."""
        missing = [field for field in ("name", "email") if not getattr(self, field).strip()]
        if missing:
            raise ValidationException(
                f"Tagging requires {' and '.join(missing)}",
                {"missing_fields": missing}
            )
