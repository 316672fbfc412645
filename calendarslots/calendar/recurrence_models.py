"""Data models for recurring events and their materialized slots."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)


class RecurrenceFrequency(str, Enum):
    """How often an event repeats."""

    NEVER = "NEVER"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    ANNUALLY = "ANNUALLY"


class RecurrenceDuration(str, Enum):
    """How long a repeating event keeps repeating."""

    FOREVER = "FOREVER"
    UNTIL_DATE = "UNTIL_DATE"
    N_OCCURRENCES = "N_OCCURRENCES"


class MonthlyRecurrenceType(str, Enum):
    """Whether a monthly event keeps its day-of-month or its nth weekday."""

    SAME_DAY = "SAME_DAY"
    SAME_WEEKDAY = "SAME_WEEKDAY"


class Weekday(str, Enum):
    """Days of the week, ordered Monday first like date.weekday()."""

    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def number(self) -> int:
        """Weekday number compatible with date.weekday() (Monday=0)."""
        return _WEEKDAY_ORDER.index(self)

    @classmethod
    def of(cls, value: date) -> Weekday:
        """Weekday of a date."""
        return _WEEKDAY_ORDER[value.weekday()]


_WEEKDAY_ORDER: tuple[Weekday, ...] = tuple(Weekday)


# Recurrence rules


class _RuleBase(BaseModel):
    """Fields and behaviour shared by every rule variant."""

    FREQUENCY: ClassVar[RecurrenceFrequency]

    model_config = ConfigDict(frozen=True)

    frequency: RecurrenceFrequency

    @field_validator("frequency")
    @classmethod
    def _frequency_matches_variant(cls, v: RecurrenceFrequency) -> RecurrenceFrequency:
        if v is not cls.FREQUENCY:
            raise ValueError(f"{cls.__name__} requires frequency {cls.FREQUENCY.value}, got {v.value}")
        return v

    @property
    def is_repeating(self) -> bool:
        return self.FREQUENCY is not RecurrenceFrequency.NEVER


class NeverRule(_RuleBase):
    """A single occurrence: the anchor itself."""

    FREQUENCY: ClassVar[RecurrenceFrequency] = RecurrenceFrequency.NEVER

    frequency: RecurrenceFrequency = RecurrenceFrequency.NEVER


class _RepeatingRule(_RuleBase):
    """Step and duration policy for every frequency other than NEVER."""

    recurrence_step: int = Field(default=1, ge=1, description="Every N days/weeks/months/years")
    recurrence_duration: RecurrenceDuration = Field(..., description="Duration policy")
    recurrence_end_date: Optional[date] = Field(
        default=None, description="Inclusive end date for UNTIL_DATE rules"
    )
    number_of_occurrences: Optional[int] = Field(
        default=None, ge=0, description="Occurrences after the anchor for N_OCCURRENCES rules"
    )

    @field_validator("recurrence_step", mode="before")
    @classmethod
    def _default_step(cls, v: Any) -> Any:
        """An absent step means every single unit."""
        return 1 if v is None else v

    @model_validator(mode="after")
    def _check_duration_payload(self) -> _RepeatingRule:
        if (
            self.recurrence_duration is RecurrenceDuration.UNTIL_DATE
            and self.recurrence_end_date is None
        ):
            raise ValueError("UNTIL_DATE rules require recurrence_end_date")
        if (
            self.recurrence_duration is RecurrenceDuration.N_OCCURRENCES
            and self.number_of_occurrences is None
        ):
            raise ValueError("N_OCCURRENCES rules require number_of_occurrences")
        return self


class DailyRule(_RepeatingRule):
    """Repeat every ``recurrence_step`` days."""

    FREQUENCY: ClassVar[RecurrenceFrequency] = RecurrenceFrequency.DAILY

    frequency: RecurrenceFrequency = RecurrenceFrequency.DAILY


class WeeklyRule(_RepeatingRule):
    """Repeat on a set of weekdays every ``recurrence_step`` weeks.

    The weekday set must contain the anchor's weekday; upstream validation
    guarantees it.
    """

    FREQUENCY: ClassVar[RecurrenceFrequency] = RecurrenceFrequency.WEEKLY

    frequency: RecurrenceFrequency = RecurrenceFrequency.WEEKLY
    weekly_recurrence_days: frozenset[Weekday] = Field(..., min_length=1)

    @field_serializer("weekly_recurrence_days")
    def serialize_weekdays(self, days: frozenset[Weekday]) -> list[str]:
        return [day.value for day in sorted(days, key=lambda d: d.number)]


class MonthlyRule(_RepeatingRule):
    """Repeat every ``recurrence_step`` months on the same day or same nth weekday."""

    FREQUENCY: ClassVar[RecurrenceFrequency] = RecurrenceFrequency.MONTHLY

    frequency: RecurrenceFrequency = RecurrenceFrequency.MONTHLY
    monthly_recurrence_type: MonthlyRecurrenceType = Field(..., description="Monthly sub-type")


class AnnualRule(_RepeatingRule):
    """Repeat every ``recurrence_step`` years on the same day of the same month."""

    FREQUENCY: ClassVar[RecurrenceFrequency] = RecurrenceFrequency.ANNUALLY

    frequency: RecurrenceFrequency = RecurrenceFrequency.ANNUALLY


RepeatingRule = Union[DailyRule, WeeklyRule, MonthlyRule, AnnualRule]


def _rule_tag(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        raw = value.get("frequency", RecurrenceFrequency.NEVER)
    else:
        raw = getattr(value, "frequency", None)
    try:
        return RecurrenceFrequency(raw).value
    except ValueError:
        return None


RecurrenceRule = Annotated[
    Union[
        Annotated[NeverRule, Tag(RecurrenceFrequency.NEVER.value)],
        Annotated[DailyRule, Tag(RecurrenceFrequency.DAILY.value)],
        Annotated[WeeklyRule, Tag(RecurrenceFrequency.WEEKLY.value)],
        Annotated[MonthlyRule, Tag(RecurrenceFrequency.MONTHLY.value)],
        Annotated[AnnualRule, Tag(RecurrenceFrequency.ANNUALLY.value)],
    ],
    Discriminator(_rule_tag),
]

_rule_adapter: TypeAdapter[Any] = TypeAdapter(RecurrenceRule)


def parse_recurrence_rule(data: Any) -> Union[NeverRule, RepeatingRule]:
    """Build the rule variant matching ``data["frequency"]``.

    Args:
        data: Mapping of rule fields (or an existing rule instance)

    Returns:
        Frozen rule instance

    Raises:
        pydantic.ValidationError: If the rule shape is invalid
    """
    return _rule_adapter.validate_python(data)


# Events

_datetime_adapter: TypeAdapter[datetime] = TypeAdapter(datetime)


class _EventBase(BaseModel):
    """Descriptive fields shared by day and timed events and copied into every slot."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4, description="Event ID")
    title: str = Field(..., description="Event title")
    location: Optional[str] = Field(default=None, description="Event location")
    description: Optional[str] = Field(default=None, description="Event description")
    guest_emails: frozenset[str] = Field(default_factory=frozenset, description="Invited guests")
    recurrence: RecurrenceRule = Field(default_factory=NeverRule, description="Recurrence rule")

    @field_serializer("guest_emails")
    def serialize_guests(self, guests: frozenset[str]) -> list[str]:
        return sorted(guests)


class DayEvent(_EventBase):
    """Whole-day event spanning ``start_date`` to ``end_date`` inclusive."""

    kind: Literal["day"] = "day"
    start_date: date = Field(..., description="Anchor start date")
    end_date: date = Field(..., description="Anchor end date")

    @property
    def anchor_start(self) -> date:
        return self.start_date


class TimeEvent(_EventBase):
    """Timed event authored as wall-clock times in (possibly different) zones."""

    kind: Literal["time"] = "time"
    start_time: datetime = Field(..., description="Anchor start, local to start_time_zone_id")
    start_time_zone_id: str = Field(..., description="Zone the start was authored in")
    end_time: datetime = Field(..., description="Anchor end, local to end_time_zone_id")
    end_time_zone_id: str = Field(..., description="Zone the end was authored in")

    @model_validator(mode="before")
    @classmethod
    def _aware_times_to_zone(cls, data: Any) -> Any:
        """Read offset-carrying start/end values as wall clock in their zone id.

        "2024-09-04T13:00:00Z" with zone America/New_York becomes 09:00.
        """
        if not isinstance(data, dict):
            return data
        from calendarslots.core.timezone_utils import from_utc

        data = dict(data)
        for name, zone_name in (("start_time", "start_time_zone_id"), ("end_time", "end_time_zone_id")):
            value, zone_id = data.get(name), data.get(zone_name)
            if value is None or not isinstance(zone_id, str):
                continue
            try:
                parsed = _datetime_adapter.validate_python(value)
            except ValidationError:
                # Left for field validation to report
                continue
            if parsed.tzinfo is not None:
                data[name] = from_utc(parsed, zone_id)
        return data

    @field_validator("start_time", "end_time")
    @classmethod
    def _wall_clock(cls, v: datetime) -> datetime:
        """Keep the wall-clock reading; zones live in the *_zone_id fields."""
        return v.replace(tzinfo=None)

    @property
    def anchor_start(self) -> datetime:
        return self.start_time


CalendarEvent = Annotated[Union[DayEvent, TimeEvent], Field(discriminator="kind")]

_event_adapter: TypeAdapter[Any] = TypeAdapter(CalendarEvent)


def parse_event(data: Any) -> Union[DayEvent, TimeEvent]:
    """Build a DayEvent or TimeEvent from a mapping with a ``kind`` key."""
    return _event_adapter.validate_python(data)


# Slots


class _SlotBase(BaseModel):
    """A materialized occurrence carrying the owning event's content."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4, description="Slot ID")
    event_id: UUID = Field(..., description="Owning event")
    title: str = Field(..., description="Title copied from the event")
    location: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    guest_emails: frozenset[str] = Field(default_factory=frozenset)

    @field_serializer("guest_emails")
    def serialize_guests(self, guests: frozenset[str]) -> list[str]:
        return sorted(guests)


class DayEventSlot(_SlotBase):
    """One whole-day occurrence."""

    kind: Literal["day"] = "day"
    start_date: date
    end_date: date

    @property
    def sort_key(self) -> datetime:
        return datetime.combine(self.start_date, datetime.min.time())


class TimeEventSlot(_SlotBase):
    """One timed occurrence stored in UTC, with its authoring zones kept."""

    kind: Literal["time"] = "time"
    start_time: datetime = Field(..., description="Start instant in UTC")
    end_time: datetime = Field(..., description="End instant in UTC")
    start_time_zone_id: str
    end_time_zone_id: str

    @field_serializer("start_time", "end_time")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()

    @property
    def sort_key(self) -> datetime:
        return self.start_time.replace(tzinfo=None)

    def to_local(self) -> LocalTimeEventSlot:
        """Render the slot back into the zones it was authored in."""
        from calendarslots.core.timezone_utils import from_utc

        return LocalTimeEventSlot(
            id=self.id,
            event_id=self.event_id,
            title=self.title,
            location=self.location,
            description=self.description,
            guest_emails=self.guest_emails,
            start_time=from_utc(self.start_time, self.start_time_zone_id),
            end_time=from_utc(self.end_time, self.end_time_zone_id),
            start_time_zone_id=self.start_time_zone_id,
            end_time_zone_id=self.end_time_zone_id,
        )


class LocalTimeEventSlot(_SlotBase):
    """Read-side view of a TimeEventSlot with naive wall-clock times."""

    kind: Literal["time_local"] = "time_local"
    start_time: datetime
    end_time: datetime
    start_time_zone_id: str
    end_time_zone_id: str


EventSlot = Annotated[Union[DayEventSlot, TimeEventSlot], Field(discriminator="kind")]

slot_list_adapter: TypeAdapter[list[Any]] = TypeAdapter(list[EventSlot])
