"""Unit tests for the recurrence, event and slot models."""

from datetime import UTC, date, datetime
from uuid import uuid4

import pytest
from pydantic import ValidationError

from calendarslots.calendar.recurrence_models import (
    AnnualRule,
    DailyRule,
    DayEvent,
    DayEventSlot,
    MonthlyRecurrenceType,
    MonthlyRule,
    NeverRule,
    RecurrenceDuration,
    RecurrenceFrequency,
    TimeEvent,
    TimeEventSlot,
    Weekday,
    WeeklyRule,
    parse_event,
    parse_recurrence_rule,
    slot_list_adapter,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("data", "expected_type"),
    [
        ({"frequency": "NEVER"}, NeverRule),
        ({}, NeverRule),
        ({"frequency": "DAILY", "recurrence_duration": "FOREVER"}, DailyRule),
        (
            {
                "frequency": "WEEKLY",
                "recurrence_duration": "FOREVER",
                "weekly_recurrence_days": ["MONDAY"],
            },
            WeeklyRule,
        ),
        (
            {
                "frequency": "MONTHLY",
                "recurrence_duration": "FOREVER",
                "monthly_recurrence_type": "SAME_WEEKDAY",
            },
            MonthlyRule,
        ),
        ({"frequency": "ANNUALLY", "recurrence_duration": "FOREVER"}, AnnualRule),
    ],
)
def test_parse_recurrence_rule_picks_variant_by_frequency(data, expected_type):
    rule = parse_recurrence_rule(data)
    assert type(rule) is expected_type


def test_repeating_rule_defaults_missing_step_to_one():
    rule = parse_recurrence_rule(
        {"frequency": "DAILY", "recurrence_duration": "FOREVER", "recurrence_step": None}
    )
    assert rule.recurrence_step == 1
    assert rule.is_repeating
    assert not NeverRule().is_repeating


@pytest.mark.parametrize(
    "data",
    [
        {"frequency": "DAILY", "recurrence_duration": "UNTIL_DATE"},
        {"frequency": "DAILY", "recurrence_duration": "N_OCCURRENCES"},
        {
            "frequency": "DAILY",
            "recurrence_duration": "N_OCCURRENCES",
            "number_of_occurrences": -1,
        },
        {"frequency": "DAILY", "recurrence_duration": "FOREVER", "recurrence_step": 0},
        {"frequency": "WEEKLY", "recurrence_duration": "FOREVER", "weekly_recurrence_days": []},
        {"frequency": "MONTHLY", "recurrence_duration": "FOREVER"},
        {"frequency": "HOURLY", "recurrence_duration": "FOREVER"},
    ],
)
def test_parse_recurrence_rule_rejects_invalid_shapes(data):
    with pytest.raises(ValidationError):
        parse_recurrence_rule(data)


def test_variant_rejects_mismatched_frequency():
    with pytest.raises(ValidationError):
        DailyRule(frequency=RecurrenceFrequency.ANNUALLY, recurrence_duration=RecurrenceDuration.FOREVER)


def test_rules_are_frozen_and_comparable():
    first = MonthlyRule(
        recurrence_duration=RecurrenceDuration.FOREVER,
        monthly_recurrence_type=MonthlyRecurrenceType.SAME_DAY,
    )
    second = parse_recurrence_rule(
        {"frequency": "MONTHLY", "recurrence_duration": "FOREVER", "monthly_recurrence_type": "SAME_DAY"}
    )
    assert first == second
    with pytest.raises(ValidationError):
        first.recurrence_step = 3


def test_weekly_days_serialize_in_week_order():
    rule = WeeklyRule(
        recurrence_duration=RecurrenceDuration.FOREVER,
        weekly_recurrence_days=frozenset({Weekday.SATURDAY, Weekday.MONDAY, Weekday.WEDNESDAY}),
    )
    dumped = rule.model_dump(mode="json")
    assert dumped["weekly_recurrence_days"] == ["MONDAY", "WEDNESDAY", "SATURDAY"]
    assert parse_recurrence_rule(dumped) == rule


def test_weekday_numbers_match_date_weekday():
    assert Weekday.MONDAY.number == 0
    assert Weekday.SUNDAY.number == 6
    assert Weekday.of(date(2024, 9, 4)) is Weekday.WEDNESDAY


def test_time_event_keeps_wall_clock_reading():
    event = TimeEvent(
        title="Call",
        start_time=datetime(2024, 9, 4, 9, 0),
        start_time_zone_id="America/New_York",
        end_time=datetime(2024, 9, 4, 10, 0),
        end_time_zone_id="America/New_York",
    )
    assert event.start_time == datetime(2024, 9, 4, 9, 0)
    assert event.start_time.tzinfo is None
    assert event.anchor_start == event.start_time
    assert isinstance(event.recurrence, NeverRule)


def test_time_event_reads_offset_values_in_their_zone():
    event = parse_event(
        {
            "kind": "time",
            "title": "Call",
            "start_time": "2024-09-04T13:00:00Z",
            "start_time_zone_id": "America/New_York",
            "end_time": datetime(2024, 9, 4, 16, 0, tzinfo=UTC),
            "end_time_zone_id": "Europe/Paris",
        }
    )
    assert event.start_time == datetime(2024, 9, 4, 9, 0)
    assert event.end_time == datetime(2024, 9, 4, 18, 0)
    assert event.end_time.tzinfo is None


def test_time_event_with_offset_value_and_unknown_zone_is_rejected():
    with pytest.raises(ValidationError):
        TimeEvent(
            title="Call",
            start_time=datetime(2024, 9, 4, 13, 0, tzinfo=UTC),
            start_time_zone_id="America",
            end_time=datetime(2024, 9, 4, 14, 0),
            end_time_zone_id="America/New_York",
        )


def test_parse_event_dispatches_on_kind():
    day = parse_event(
        {
            "kind": "day",
            "title": "Holiday",
            "start_date": "2024-12-25",
            "end_date": "2024-12-26",
            "guest_emails": ["b@example.com", "a@example.com"],
            "recurrence": {"frequency": "ANNUALLY", "recurrence_duration": "FOREVER"},
        }
    )
    assert isinstance(day, DayEvent)
    assert isinstance(day.recurrence, AnnualRule)
    assert day.guest_emails == frozenset({"a@example.com", "b@example.com"})
    assert day.model_dump(mode="json")["guest_emails"] == ["a@example.com", "b@example.com"]

    timed = parse_event(
        {
            "kind": "time",
            "title": "Standup",
            "start_time": "2024-09-04T09:00:00",
            "start_time_zone_id": "Europe/London",
            "end_time": "2024-09-04T09:15:00",
            "end_time_zone_id": "Europe/London",
        }
    )
    assert isinstance(timed, TimeEvent)


def test_slot_list_round_trips_through_json():
    event_id = uuid4()
    slots = [
        DayEventSlot(event_id=event_id, title="Offsite", start_date=date(2024, 9, 4), end_date=date(2024, 9, 5)),
        TimeEventSlot(
            event_id=event_id,
            title="Standup",
            start_time=datetime(2024, 9, 4, 13, 0, tzinfo=UTC),
            end_time=datetime(2024, 9, 4, 13, 15, tzinfo=UTC),
            start_time_zone_id="America/New_York",
            end_time_zone_id="America/New_York",
        ),
    ]
    dumped = slot_list_adapter.dump_python(slots, mode="json")
    assert dumped[1]["start_time"] == "2024-09-04T13:00:00+00:00"
    assert slot_list_adapter.validate_python(dumped) == slots


def test_time_event_slot_renders_back_to_local_zones():
    slot = TimeEventSlot(
        event_id=uuid4(),
        title="Call",
        start_time=datetime(2024, 7, 1, 14, 0, tzinfo=UTC),
        end_time=datetime(2024, 7, 1, 15, 0, tzinfo=UTC),
        start_time_zone_id="America/New_York",
        end_time_zone_id="Europe/Paris",
    )
    local = slot.to_local()
    assert local.id == slot.id
    assert local.start_time == datetime(2024, 7, 1, 10, 0)
    assert local.end_time == datetime(2024, 7, 1, 17, 0)
