"""Slot storage collaborators: an in-memory store and a JSON file store.

Every mutating call is applied as one batch: the new state is built on a copy
and swapped in only after it has been committed, so a failure part way through
leaves the previous state untouched.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterable
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Optional, Protocol, Union
from uuid import UUID

from pydantic import ValidationError

from calendarslots.calendar.recurrence_models import DayEventSlot, TimeEventSlot, slot_list_adapter
from calendarslots.calendar.slot_exceptions import SlotStoreError

logger = logging.getLogger(__name__)

Slot = Union[DayEventSlot, TimeEventSlot]


class SlotStore(Protocol):
    """Storage interface consumed by the expansion orchestrator."""

    def save_slots(self, event_id: UUID, slots: Iterable[Slot]) -> int: ...

    def replace_event_slots(self, event_id: UUID, slots: Iterable[Slot]) -> int: ...

    def delete_slots_for_event(self, event_id: UUID) -> int: ...

    def find_slots_for_event(self, event_id: UUID) -> list[Slot]: ...

    def find_slot(self, slot_id: UUID) -> Optional[Slot]: ...

    def replace_slots(self, slots: Iterable[Slot]) -> int: ...

    def delete_slot(self, slot_id: UUID) -> bool: ...

    def find_time_slots_in_range(self, start: datetime, end: datetime) -> list[TimeEventSlot]: ...

    def find_day_slots_in_range(self, start: date, end: date) -> list[DayEventSlot]: ...


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _check_batch(event_id: UUID, slots: Iterable[Slot]) -> list[Slot]:
    batch = list(slots)
    for slot in batch:
        if slot.event_id != event_id:
            raise SlotStoreError(f"Slot {slot.id} belongs to event {slot.event_id}, not {event_id}")
    return batch


class InMemorySlotStore:
    """Thread-safe, process-local slot store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slots: dict[UUID, Slot] = {}

    def _commit(self, slots: dict[UUID, Slot]) -> None:
        """Install a new state. Subclasses persist it before the swap."""
        self._slots = slots

    def save_slots(self, event_id: UUID, slots: Iterable[Slot]) -> int:
        """Persist a batch of slots for one event. Returns the number saved."""
        batch = _check_batch(event_id, slots)
        with self._lock:
            updated = dict(self._slots)
            updated.update((slot.id, slot) for slot in batch)
            self._commit(updated)
        logger.debug("Saved %d slots for event %s", len(batch), event_id)
        return len(batch)

    def replace_event_slots(self, event_id: UUID, slots: Iterable[Slot]) -> int:
        """Delete every slot of an event and save ``slots`` in the same batch."""
        batch = _check_batch(event_id, slots)
        with self._lock:
            updated = {sid: s for sid, s in self._slots.items() if s.event_id != event_id}
            removed = len(self._slots) - len(updated)
            updated.update((slot.id, slot) for slot in batch)
            self._commit(updated)
        logger.debug(
            "Replaced slots for event %s: removed=%d, saved=%d", event_id, removed, len(batch)
        )
        return len(batch)

    def delete_slots_for_event(self, event_id: UUID) -> int:
        """Delete all slots of an event. Returns the number removed."""
        with self._lock:
            updated = {sid: s for sid, s in self._slots.items() if s.event_id != event_id}
            removed = len(self._slots) - len(updated)
            if removed:
                self._commit(updated)
        logger.debug("Deleted %d slots for event %s", removed, event_id)
        return removed

    def find_slots_for_event(self, event_id: UUID) -> list[Slot]:
        """Slots of an event ordered by start."""
        with self._lock:
            slots = [s for s in self._slots.values() if s.event_id == event_id]
        return sorted(slots, key=lambda s: s.sort_key)

    def find_slot(self, slot_id: UUID) -> Optional[Slot]:
        with self._lock:
            return self._slots.get(slot_id)

    def replace_slots(self, slots: Iterable[Slot]) -> int:
        """Overwrite existing slots by id; every slot must already be stored."""
        batch = list(slots)
        with self._lock:
            missing = [str(slot.id) for slot in batch if slot.id not in self._slots]
            if missing:
                raise SlotStoreError(f"Cannot update unknown slots: {', '.join(missing)}")
            updated = dict(self._slots)
            updated.update((slot.id, slot) for slot in batch)
            self._commit(updated)
        return len(batch)

    def delete_slot(self, slot_id: UUID) -> bool:
        with self._lock:
            if slot_id not in self._slots:
                return False
            updated = dict(self._slots)
            del updated[slot_id]
            self._commit(updated)
        return True

    def find_time_slots_in_range(self, start: datetime, end: datetime) -> list[TimeEventSlot]:
        """Timed slots starting within [start, end]; naive bounds are read as UTC."""
        start_utc, end_utc = _as_utc(start), _as_utc(end)
        with self._lock:
            slots = [
                s
                for s in self._slots.values()
                if isinstance(s, TimeEventSlot) and start_utc <= s.start_time <= end_utc
            ]
        return sorted(slots, key=lambda s: s.start_time)

    def find_day_slots_in_range(self, start: date, end: date) -> list[DayEventSlot]:
        """Day slots starting within [start, end]."""
        with self._lock:
            slots = [
                s
                for s in self._slots.values()
                if isinstance(s, DayEventSlot) and start <= s.start_date <= end
            ]
        return sorted(slots, key=lambda s: s.start_date)

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)


class JsonSlotStore(InMemorySlotStore):
    """Slot store persisted to a JSON file with atomic writes.

    The on-disk format is ``{"slots": [...]}`` where each entry is a slot
    serialized with its ``kind`` discriminator.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Load slots from disk, replacing the in-memory state.

        Raises:
            SlotStoreError: If the file exists but cannot be read or parsed
        """
        with self._lock:
            if not self._path.exists():
                logger.debug("Slot store file not found; starting empty: %s", self._path)
                self._slots = {}
                return

            try:
                with self._path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
                if not isinstance(data, dict) or not isinstance(data.get("slots"), list):
                    raise SlotStoreError("slot store JSON root must be an object with a 'slots' list")
                slots = slot_list_adapter.validate_python(data["slots"])
            except (OSError, ValueError, ValidationError) as e:
                logger.exception("Failed to read slot store %s", self._path)
                raise SlotStoreError(f"Failed to read slot store {self._path}: {e}") from e

            self._slots = {slot.id: slot for slot in slots}
            logger.debug("Loaded slot store %s (%d slots)", self._path, len(self._slots))

    def _commit(self, slots: dict[UUID, Slot]) -> None:
        self._persist(slots)
        self._slots = slots

    def _persist(self, slots: dict[UUID, Slot]) -> None:
        """Write to a temporary file in the same directory then replace into place."""
        payload = {"slots": [slot.model_dump(mode="json") for slot in slots.values()]}

        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8", suffix=".tmp"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(payload, tf, ensure_ascii=False)
                tf.flush()
                os.fsync(tf.fileno())
            tmp_path.replace(self._path)
        except OSError as e:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            logger.warning("Failed to persist slot store to %s: %s", self._path, e)
            raise SlotStoreError(f"Failed to persist slot store {self._path}: {e}") from e
