"""Occurrence generation for recurring events.

Each frequency contributes an unbounded, strictly increasing stream of candidate
dates. A single bounding step then cuts the stream either at the rule's end
date or after ``number_of_occurrences + 1`` items, so every frequency shares
the same termination semantics:

- the until bound is checked on the date only, inclusively
- counts include the anchor occurrence
- FOREVER is rewritten to an end date 100 years after the anchor
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import date, datetime
from itertools import count, islice, takewhile
from typing import Union

from calendarslots.calendar.recurrence_models import (
    AnnualRule,
    DailyRule,
    MonthlyRecurrenceType,
    MonthlyRule,
    NeverRule,
    RecurrenceDuration,
    RecurrenceFrequency,
    RepeatingRule,
    WeeklyRule,
)
from calendarslots.calendar.slot_exceptions import RecurrenceContractError
from calendarslots.core.calendar_math import (
    add_days,
    add_months,
    add_weeks,
    add_years,
    clamp_day_of_month,
    nth_weekday_occurrence_index,
    nth_weekday_of_month,
)

logger = logging.getLogger(__name__)

FOREVER_HORIZON_YEARS = 100

AnyRule = Union[NeverRule, RepeatingRule]
OccurrenceStart = Union[date, datetime]


def effective_end_date(anchor_date: date, rule: RepeatingRule) -> date | None:
    """Return the inclusive end date bounding generation, or None for count rules.

    FOREVER becomes ``anchor_date + 100 years`` (Feb 29 anchors end on Feb 28
    when the target year is not a leap year).
    """
    if rule.recurrence_duration is RecurrenceDuration.FOREVER:
        return add_years(anchor_date, FOREVER_HORIZON_YEARS)
    if rule.recurrence_duration is RecurrenceDuration.UNTIL_DATE:
        return rule.recurrence_end_date
    return None


def _daily_candidates(anchor: date, rule: DailyRule) -> Iterator[date]:
    for i in count():
        yield add_days(anchor, i * rule.recurrence_step)


def _weekly_candidates(anchor: date, rule: WeeklyRule) -> Iterator[date]:
    """Shift each configured weekday within every ``step``-th week from the anchor.

    Offsets are relative to the anchor's weekday, so every candidate stays in the
    Monday-Sunday week of its reference date and sorting the offsets keeps the
    stream increasing. Candidates before the anchor (earlier days of the first
    week) are dropped.
    """
    offsets = sorted(day.number - anchor.weekday() for day in rule.weekly_recurrence_days)
    for week in count():
        reference = add_weeks(anchor, week * rule.recurrence_step)
        for offset in offsets:
            candidate = add_days(reference, offset)
            if candidate >= anchor:
                yield candidate


def _monthly_same_day_candidates(anchor: date, rule: MonthlyRule) -> Iterator[date]:
    for i in count():
        month = add_months(anchor, i * rule.recurrence_step)
        yield clamp_day_of_month(anchor.day, month)


def _monthly_same_weekday_candidates(anchor: date, rule: MonthlyRule) -> Iterator[date]:
    ordinal = nth_weekday_occurrence_index(anchor)
    weekday = anchor.weekday()
    for i in count():
        month = add_months(anchor, i * rule.recurrence_step)
        yield nth_weekday_of_month(month.year, month.month, weekday, ordinal)


def _monthly_candidates(anchor: date, rule: MonthlyRule) -> Iterator[date]:
    if rule.monthly_recurrence_type is MonthlyRecurrenceType.SAME_WEEKDAY:
        return _monthly_same_weekday_candidates(anchor, rule)
    return _monthly_same_day_candidates(anchor, rule)


def _annual_candidates(anchor: date, rule: AnnualRule) -> Iterator[date]:
    for i in count():
        year = add_years(anchor, i * rule.recurrence_step)
        yield clamp_day_of_month(anchor.day, year)


_CANDIDATE_STREAMS: dict[RecurrenceFrequency, Callable[[date, RepeatingRule], Iterator[date]]] = {
    RecurrenceFrequency.DAILY: _daily_candidates,  # type: ignore[dict-item]
    RecurrenceFrequency.WEEKLY: _weekly_candidates,  # type: ignore[dict-item]
    RecurrenceFrequency.MONTHLY: _monthly_candidates,  # type: ignore[dict-item]
    RecurrenceFrequency.ANNUALLY: _annual_candidates,  # type: ignore[dict-item]
}


def _bounded(anchor: date, rule: RepeatingRule, stream: Iterator[date]) -> Iterator[date]:
    if rule.recurrence_duration is RecurrenceDuration.N_OCCURRENCES:
        if rule.number_of_occurrences is None:
            raise RecurrenceContractError(
                "N_OCCURRENCES rule reached the generator without number_of_occurrences"
            )
        return islice(stream, rule.number_of_occurrences + 1)

    end_date = effective_end_date(anchor, rule)
    if end_date is None:
        raise RecurrenceContractError(
            f"{rule.recurrence_duration.value} rule reached the generator without recurrence_end_date"
        )
    if end_date < anchor:
        logger.debug("Recurrence end date %s precedes anchor %s; no occurrences", end_date, anchor)
    return takewhile(lambda candidate: candidate <= end_date, stream)


def generate_occurrence_dates(anchor_date: date, rule: AnyRule) -> Iterator[date]:
    """Yield the occurrence dates produced by ``rule`` from ``anchor_date``.

    Args:
        anchor_date: Date of the first occurrence
        rule: Validated recurrence rule

    Yields:
        Occurrence dates in strictly increasing order

    Raises:
        RecurrenceContractError: If the rule has no generator branch or the
            sequence runs past the representable calendar range
    """
    if isinstance(anchor_date, datetime):
        anchor_date = anchor_date.date()

    if not rule.is_repeating:
        yield anchor_date
        return

    try:
        make_stream = _CANDIDATE_STREAMS[rule.frequency]
    except KeyError as e:
        raise RecurrenceContractError(f"No occurrence generator for {rule.frequency!r}") from e

    try:
        yield from _bounded(anchor_date, rule, make_stream(anchor_date, rule))  # type: ignore[arg-type]
    except (OverflowError, ValueError) as e:
        raise RecurrenceContractError(
            f"Recurrence from {anchor_date} runs outside the supported date range: {e}"
        ) from e


def generate_occurrences(anchor_start: OccurrenceStart, rule: AnyRule) -> Iterator[OccurrenceStart]:
    """Yield occurrence starts, keeping the anchor's time of day for datetimes.

    ``anchor_start`` may be a date (day events) or a naive wall-clock datetime
    (timed events); the yielded values have the same type.
    """
    if isinstance(anchor_start, datetime):
        time_of_day = anchor_start.time()
        for occurrence_date in generate_occurrence_dates(anchor_start.date(), rule):
            yield datetime.combine(occurrence_date, time_of_day)
        return

    yield from generate_occurrence_dates(anchor_start, rule)


class OccurrenceSequence:
    """Restartable, lazily evaluated occurrence starts for one anchor and rule.

    Every ``iter()`` replays the sequence from the anchor, so the same instance
    can be consumed more than once.
    """

    def __init__(self, anchor_start: OccurrenceStart, rule: AnyRule):
        self.anchor_start = anchor_start
        self.rule = rule

    def __iter__(self) -> Iterator[OccurrenceStart]:
        return generate_occurrences(self.anchor_start, self.rule)

    def __repr__(self) -> str:
        return f"OccurrenceSequence(anchor_start={self.anchor_start!r}, frequency={self.rule.frequency.value})"
