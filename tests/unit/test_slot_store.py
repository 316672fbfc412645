"""
Tests for the in-memory and JSON slot stores.

Run with:
    pytest tests/unit/test_slot_store.py -q
"""

import json
from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest

from calendarslots.calendar.recurrence_models import DayEventSlot, TimeEventSlot
from calendarslots.calendar.slot_exceptions import SlotStoreError
from calendarslots.domain.slot_store import InMemorySlotStore, JsonSlotStore

pytestmark = pytest.mark.unit


def _time_slot(event_id, start, minutes=30):
    return TimeEventSlot(
        event_id=event_id,
        title="Standup",
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        start_time_zone_id="UTC",
        end_time_zone_id="UTC",
    )


def _day_slot(event_id, start):
    return DayEventSlot(event_id=event_id, title="Offsite", start_date=start, end_date=start)


@pytest.fixture
def event_id():
    return uuid4()


def test_save_and_find_slots_for_event_ordered(store, event_id):
    later = _time_slot(event_id, datetime(2024, 9, 5, 9, 0, tzinfo=UTC))
    earlier = _time_slot(event_id, datetime(2024, 9, 4, 9, 0, tzinfo=UTC))
    other = _time_slot(uuid4(), datetime(2024, 9, 4, 8, 0, tzinfo=UTC))

    assert store.save_slots(event_id, [later, earlier]) == 2
    store.save_slots(other.event_id, [other])

    assert store.find_slots_for_event(event_id) == [earlier, later]
    assert store.find_slot(other.id) == other
    assert len(store) == 3


def test_save_rejects_foreign_slot_without_partial_write(store, event_id):
    good = _day_slot(event_id, date(2024, 9, 4))
    foreign = _day_slot(uuid4(), date(2024, 9, 5))

    with pytest.raises(SlotStoreError):
        store.save_slots(event_id, [good, foreign])
    assert len(store) == 0


def test_replace_event_slots_drops_previous_batch(store, event_id):
    store.save_slots(event_id, [_day_slot(event_id, date(2024, 9, d)) for d in (1, 2, 3)])
    fresh = [_day_slot(event_id, date(2024, 10, 1))]

    assert store.replace_event_slots(event_id, fresh) == 1
    assert store.find_slots_for_event(event_id) == fresh


def test_delete_slots_for_event_counts_removed(store, event_id):
    store.save_slots(event_id, [_day_slot(event_id, date(2024, 9, d)) for d in (1, 2)])
    assert store.delete_slots_for_event(event_id) == 2
    assert store.delete_slots_for_event(event_id) == 0


def test_replace_slots_requires_known_ids(store, event_id):
    slot = _day_slot(event_id, date(2024, 9, 4))
    store.save_slots(event_id, [slot])

    renamed = slot.model_copy(update={"title": "Renamed"})
    assert store.replace_slots([renamed]) == 1
    assert store.find_slot(slot.id).title == "Renamed"

    with pytest.raises(SlotStoreError):
        store.replace_slots([renamed, _day_slot(event_id, date(2024, 9, 5))])
    assert store.find_slot(slot.id).title == "Renamed"


def test_delete_slot(store, event_id):
    slot = _day_slot(event_id, date(2024, 9, 4))
    store.save_slots(event_id, [slot])
    assert store.delete_slot(slot.id) is True
    assert store.delete_slot(slot.id) is False


def test_find_time_slots_in_range_is_inclusive(store, event_id):
    slots = [_time_slot(event_id, datetime(2024, 9, d, 9, 0, tzinfo=UTC)) for d in (1, 2, 3, 4)]
    store.save_slots(event_id, slots)

    found = store.find_time_slots_in_range(
        datetime(2024, 9, 2, 9, 0, tzinfo=UTC), datetime(2024, 9, 3, 9, 0)
    )
    assert found == slots[1:3]


def test_find_day_slots_in_range(store, event_id):
    slots = [_day_slot(event_id, date(2024, 9, d)) for d in (1, 5, 9)]
    store.save_slots(event_id, slots)
    assert store.find_day_slots_in_range(date(2024, 9, 2), date(2024, 9, 9)) == slots[1:]


def test_json_store_persists_and_reloads(tmp_path, event_id):
    path = tmp_path / "data" / "slots.json"
    first = JsonSlotStore(path)
    saved = [
        _time_slot(event_id, datetime(2024, 9, 4, 9, 0, tzinfo=UTC)),
        _day_slot(event_id, date(2024, 9, 5)),
    ]
    first.save_slots(event_id, saved)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert {entry["kind"] for entry in payload["slots"]} == {"time", "day"}

    reloaded = JsonSlotStore(path)
    assert sorted(s.id for s in reloaded.find_slots_for_event(event_id)) == sorted(s.id for s in saved)
    assert reloaded.find_slot(saved[0].id).start_time == datetime(2024, 9, 4, 9, 0, tzinfo=UTC)
    assert list(path.parent.glob("*.tmp")) == []


def test_json_store_starts_empty_when_missing(tmp_path):
    store = JsonSlotStore(tmp_path / "missing.json")
    assert len(store) == 0
    assert store.path == tmp_path / "missing.json"


@pytest.mark.parametrize("content", ["{not json", "[]", '{"slots": {}}', '{"slots": [{"kind": "day"}]}'])
def test_json_store_rejects_corrupt_file(tmp_path, content):
    path = tmp_path / "slots.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(SlotStoreError):
        JsonSlotStore(path)


def test_json_store_keeps_state_when_persist_fails(tmp_path, event_id, monkeypatch):
    store = JsonSlotStore(tmp_path / "slots.json")
    kept = _day_slot(event_id, date(2024, 9, 4))
    store.save_slots(event_id, [kept])

    def _fail(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("calendarslots.domain.slot_store.tempfile.NamedTemporaryFile", _fail)
    with pytest.raises(SlotStoreError):
        store.save_slots(event_id, [_day_slot(event_id, date(2024, 9, 5))])

    assert store.find_slots_for_event(event_id) == [kept]


def test_in_memory_store_is_a_slot_store_for_both_kinds(event_id):
    store = InMemorySlotStore()
    store.save_slots(
        event_id,
        [_day_slot(event_id, date(2024, 9, 4)), _time_slot(event_id, datetime(2024, 9, 3, 9, 0, tzinfo=UTC))],
    )
    kinds = [slot.kind for slot in store.find_slots_for_event(event_id)]
    assert kinds == ["time", "day"]
