from __future__ import annotations

from datetime import datetime, timezone

import pytest

from craft_motion_sync.errors import ValidationError
from craft_motion_sync.models import EntityType, MappingEntry, SyncPhase, SyncRunResult
from craft_motion_sync.services import SyncState

SYNCED = datetime(2026, 9, 1, tzinfo=timezone.utc)


def _entry(local_id: str, remote_id: str, entity_type=EntityType.TASK, category="Life") -> MappingEntry:
    return MappingEntry(local_id, remote_id, entity_type, category, SYNCED)


def _state(*entries: MappingEntry) -> SyncState:
    return SyncState(mappings={entry.key: entry for entry in entries}, result=SyncRunResult(started_at=SYNCED))


def test_lookup_by_both_sides() -> None:
    state = _state(_entry("c1", "m1"), _entry("c2", "p1", EntityType.PROJECT))

    assert state.by_local(EntityType.TASK, "c1").remote_id == "m1"
    assert state.by_remote(EntityType.PROJECT, "p1").local_id == "c2"
    assert state.by_remote(EntityType.TASK, "p1") is None
    assert state.by_local(EntityType.PROJECT, "c1") is None


def test_entries_filter_by_type_and_category() -> None:
    state = _state(_entry("c1", "m1"), _entry("c2", "m2", category="Private"), _entry("c3", "p1", EntityType.PROJECT))

    assert [entry.local_id for entry in state.entries(EntityType.TASK)] == ["c1", "c2"]
    assert [entry.local_id for entry in state.entries(EntityType.TASK, "Private")] == ["c2"]


def test_record_tracks_touched_entries() -> None:
    state = _state(_entry("c1", "m1"))

    state.record(_entry("c2", "m2"))

    assert list(state.touched) == [_entry("c2", "m2").key]
    assert state.by_remote(EntityType.TASK, "m2").local_id == "c2"


def test_record_rejects_second_owner_of_remote_id() -> None:
    state = _state(_entry("c1", "m1"))

    with pytest.raises(ValidationError):
        state.record(_entry("c2", "m1"))
    assert state.by_local(EntityType.TASK, "c2") is None
    assert state.touched == {}


def test_record_relinks_entry_to_new_remote() -> None:
    state = _state(_entry("c1", "m1"))

    state.record(_entry("c1", "m9"))

    assert state.by_remote(EntityType.TASK, "m1") is None
    assert state.by_remote(EntityType.TASK, "m9").local_id == "c1"


def test_enter_switches_result_phase() -> None:
    state = _state()

    assert state.enter(SyncPhase.TASKS) is state
    assert state.phase is SyncPhase.TASKS
    assert state.result.phase is SyncPhase.TASKS
