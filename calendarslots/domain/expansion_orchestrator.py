"""Expansion orchestration: expand an event into slots and hand them to storage.

Regenerating an event's slots is always delete-all followed by a fresh full
expansion, applied as one batch; recurrence rules are never diffed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Union
from uuid import UUID

from calendarslots.calendar.occurrence_generator import FOREVER_HORIZON_YEARS
from calendarslots.calendar.recurrence_models import (
    DayEvent,
    DayEventSlot,
    LocalTimeEventSlot,
    TimeEvent,
    TimeEventSlot,
)
from calendarslots.calendar.slot_exceptions import SlotExpansionError, SlotStoreError
from calendarslots.calendar.slot_materializer import materializer_for
from calendarslots.core.config_manager import get_config_value, get_default_timezone
from calendarslots.core.timezone_utils import ZoneLike, to_utc
from calendarslots.domain.slot_store import Slot, SlotStore

logger = logging.getLogger(__name__)

Event = Union[DayEvent, TimeEvent]


@dataclass
class ExpansionSettings:
    """Configuration for slot expansion.

    ``default_timezone`` falls back to CALENDARSLOTS_DEFAULT_TIMEZONE, or UTC when
    that is unset or does not resolve. ``forever_horizon_years`` is
    informational: FOREVER rules always end 100 years after their anchor.
    """

    default_timezone: str = field(default_factory=get_default_timezone)
    forever_horizon_years: int = FOREVER_HORIZON_YEARS

    @classmethod
    def from_settings(cls, settings: Any) -> ExpansionSettings:
        """Extract expansion configuration from a settings dict or object.

        Args:
            settings: Configuration object, dict, or None

        Returns:
            ExpansionSettings with values from settings or defaults
        """
        if settings is None:
            return cls()
        configured = get_config_value(settings, "default_timezone")
        return cls(default_timezone=configured) if configured else cls()


def has_same_recurrence_shape(previous: Event, updated: Event) -> bool:
    """True when an edit leaves the anchor span and recurrence rule untouched.

    Only then can stored slots be kept and updated in place; any other edit
    requires a full regeneration.
    """
    if type(previous) is not type(updated):
        return False
    if previous.recurrence != updated.recurrence:
        return False
    if isinstance(previous, DayEvent):
        return (previous.start_date, previous.end_date) == (
            updated.start_date,  # type: ignore[union-attr]
            updated.end_date,  # type: ignore[union-attr]
        )
    return (
        previous.start_time,
        previous.start_time_zone_id,
        previous.end_time,
        previous.end_time_zone_id,
    ) == (
        updated.start_time,  # type: ignore[union-attr]
        updated.start_time_zone_id,  # type: ignore[union-attr]
        updated.end_time,  # type: ignore[union-attr]
        updated.end_time_zone_id,  # type: ignore[union-attr]
    )


class ExpansionOrchestrator:
    """Single entry point for turning events into stored slots.

    Expansion itself is pure and synchronous; the orchestrator only adds the
    storage hand-off. Every write goes to the store as one batch, so a failure
    while expanding or persisting leaves no partial recurrence behind.
    """

    def __init__(self, store: SlotStore, settings: Any = None):
        """Initialize orchestrator.

        Args:
            store: Storage collaborator for slots
            settings: Optional settings dict/object (see ExpansionSettings)
        """
        self.store = store
        self.settings = ExpansionSettings.from_settings(settings)

    def expand(self, event: Event) -> list[Slot]:
        """Expand an event into its full ordered list of slots without storing them.

        Raises:
            InvalidTimezoneError: If a zone on a timed event cannot be resolved
            RecurrenceContractError: If the event breaks a validated precondition
        """
        start = time.perf_counter()
        try:
            slots: list[Slot] = list(materializer_for(event).materialize_all())
        except SlotExpansionError:
            logger.exception("Slot expansion failed for event %s", event.id)
            raise

        logger.debug(
            "Expanded event %s (%s): %d slots in %.1fms",
            event.id,
            event.recurrence.frequency.value,
            len(slots),
            (time.perf_counter() - start) * 1000,
        )
        return slots

    def create_slots(self, event: Event) -> list[Slot]:
        """Expand a new event and persist every slot as one batch."""
        slots = self.expand(event)
        self._write(event.id, "save", lambda: self.store.save_slots(event.id, slots))
        logger.info("Created %d slots for event %s", len(slots), event.id)
        return slots

    def regenerate_slots(self, event: Event) -> list[Slot]:
        """Drop every stored slot of the event and store a fresh expansion."""
        slots = self.expand(event)
        self._write(event.id, "regenerate", lambda: self.store.replace_event_slots(event.id, slots))
        logger.info("Regenerated %d slots for event %s", len(slots), event.id)
        return slots

    def update_slots_for_event(self, event: Event) -> list[Slot]:
        """Copy the event's descriptive fields and guests into all of its stored slots.

        Slot times are left as they are; this is not a re-expansion.
        """
        existing = self.store.find_slots_for_event(event.id)
        modified = [
            slot.model_copy(
                update={
                    "title": event.title,
                    "location": event.location,
                    "description": event.description,
                    "guest_emails": event.guest_emails,
                }
            )
            for slot in existing
        ]
        self._write(event.id, "update", lambda: self.store.replace_slots(modified))
        logger.debug("Propagated event details to %d slots of event %s", len(modified), event.id)
        return modified

    def apply_event_update(self, previous: Event, updated: Event) -> list[Slot]:
        """Bring stored slots in line with an edited event.

        Details-only edits are propagated in place; anything that changes the
        anchor span or the rule triggers a full regeneration.
        """
        if previous.id != updated.id:
            raise SlotExpansionError(f"Cannot apply update of event {updated.id} to {previous.id}")
        if has_same_recurrence_shape(previous, updated):
            return self.update_slots_for_event(updated)
        return self.regenerate_slots(updated)

    def delete_slots_for_event(self, event_id: UUID) -> int:
        removed = self._write(event_id, "delete", lambda: self.store.delete_slots_for_event(event_id))
        logger.debug("Deleted %d slots of event %s", removed, event_id)
        return removed

    def delete_slot(self, slot_id: UUID) -> bool:
        """Remove a single slot, e.g. one cancelled occurrence; False if it is not stored."""
        slot = self.store.find_slot(slot_id)
        if slot is None:
            return False
        removed = self._write(slot.event_id, "delete", lambda: self.store.delete_slot(slot_id))
        logger.debug("Deleted slot %s of event %s", slot_id, slot.event_id)
        return removed

    def find_slot(self, slot_id: UUID) -> Optional[Union[DayEventSlot, LocalTimeEventSlot]]:
        slot = self.store.find_slot(slot_id)
        return _render(slot) if slot is not None else None

    def find_slots_for_event(self, event_id: UUID) -> list[Union[DayEventSlot, LocalTimeEventSlot]]:
        """Stored slots of an event, timed ones rendered back into local time."""
        return [_render(slot) for slot in self.store.find_slots_for_event(event_id)]

    def find_slots_in_range(
        self,
        start: datetime,
        start_zone: ZoneLike | None,
        end: datetime,
        end_zone: ZoneLike | None,
    ) -> list[LocalTimeEventSlot]:
        """Timed slots starting inside a window given as wall-clock times.

        The window bounds are converted to UTC using their zones (the
        configured default zone when a zone is None) and the matching slots are
        rendered back into their own local times.
        """
        start_utc = to_utc(start, start_zone or self.settings.default_timezone)
        end_utc = to_utc(end, end_zone or self.settings.default_timezone)
        return [slot.to_local() for slot in self.store.find_time_slots_in_range(start_utc, end_utc)]

    def find_day_slots_in_range(self, start: date, end: date) -> list[DayEventSlot]:
        return self.store.find_day_slots_in_range(start, end)

    def _write(self, event_id: UUID, action: str, operation: Any) -> Any:
        try:
            return operation()
        except SlotStoreError:
            logger.exception("Slot store %s failed for event %s", action, event_id)
            raise
        except Exception as e:
            logger.exception("Slot store %s failed for event %s", action, event_id)
            raise SlotStoreError(f"Failed to {action} slots for event {event_id}: {e}") from e


def _render(slot: Slot) -> Union[DayEventSlot, LocalTimeEventSlot]:
    if isinstance(slot, TimeEventSlot):
        return slot.to_local()
    return slot
