"""Turn occurrence starts into concrete slots carrying the event's content."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import date, datetime, timedelta

from calendarslots.calendar.occurrence_generator import OccurrenceSequence
from calendarslots.calendar.recurrence_models import DayEvent, DayEventSlot, TimeEvent, TimeEventSlot
from calendarslots.core.timezone_utils import DurationUnit, to_utc, zone_aware_difference

logger = logging.getLogger(__name__)


def event_duration_days(event: DayEvent) -> int:
    """Whole days between the anchor start and end dates."""
    return (event.end_date - event.start_date).days


def event_duration_minutes(event: TimeEvent) -> int:
    """Anchor duration in minutes, measured between the two instants in UTC.

    10:00 in New York and 16:00 in Paris on the same summer day are the same
    instant, so such an event lasts 0 minutes rather than 6 hours.
    """
    return zone_aware_difference(
        event.start_time,
        event.start_time_zone_id,
        event.end_time,
        event.end_time_zone_id,
        DurationUnit.MINUTES,
    )


class DaySlotMaterializer:
    """Builds DayEventSlot values; no timezone conversion applies."""

    def __init__(self, event: DayEvent):
        self.event = event
        self._span = timedelta(days=event_duration_days(event))

    def materialize(self, occurrence_start: date) -> DayEventSlot:
        event = self.event
        return DayEventSlot(
            event_id=event.id,
            title=event.title,
            location=event.location,
            description=event.description,
            guest_emails=event.guest_emails,
            start_date=occurrence_start,
            end_date=occurrence_start + self._span,
        )

    def materialize_all(self) -> Iterator[DayEventSlot]:
        for occurrence_start in OccurrenceSequence(self.event.start_date, self.event.recurrence):
            yield self.materialize(occurrence_start)  # type: ignore[arg-type]


class TimeSlotMaterializer:
    """Builds TimeEventSlot values normalized to UTC.

    The occurrence start is read in the event's start zone and converted to
    UTC; the end is that instant plus the anchor's zone-aware duration, so the
    length of every occurrence stays fixed across DST changes.
    """

    def __init__(self, event: TimeEvent):
        self.event = event
        minutes = event_duration_minutes(event)
        self._duration = timedelta(minutes=minutes)
        logger.debug("Anchor duration for event %s: %d minutes", event.id, minutes)

    def materialize(self, occurrence_start: datetime) -> TimeEventSlot:
        event = self.event
        start_utc = to_utc(occurrence_start, event.start_time_zone_id)
        return TimeEventSlot(
            event_id=event.id,
            title=event.title,
            location=event.location,
            description=event.description,
            guest_emails=event.guest_emails,
            start_time=start_utc,
            end_time=start_utc + self._duration,
            start_time_zone_id=event.start_time_zone_id,
            end_time_zone_id=event.end_time_zone_id,
        )

    def materialize_all(self) -> Iterator[TimeEventSlot]:
        for occurrence_start in OccurrenceSequence(self.event.start_time, self.event.recurrence):
            yield self.materialize(occurrence_start)  # type: ignore[arg-type]


def materializer_for(event: DayEvent | TimeEvent) -> DaySlotMaterializer | TimeSlotMaterializer:
    """Pick the materializer matching the event variant."""
    if isinstance(event, TimeEvent):
        return TimeSlotMaterializer(event)
    return DaySlotMaterializer(event)
