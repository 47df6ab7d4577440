from __future__ import annotations

from datetime import datetime, timezone

from craft_motion_sync.models import EntityType, MappingEntry, SyncEntity
from craft_motion_sync.services.matcher import match

SYNCED = datetime(2026, 9, 1, tzinfo=timezone.utc)


def _entity(entity_id: str, title: str) -> SyncEntity:
    return SyncEntity(id=entity_id, title=title)


def _entry(local_id: str, remote_id: str, entity_type: EntityType = EntityType.TASK) -> MappingEntry:
    return MappingEntry(local_id, remote_id, entity_type, "Life", SYNCED)


def test_same_title_is_matched_without_creating() -> None:
    local = [SyncEntity(id="c1", title="Trip Plan", status="todo")]
    remote = [_entity("m1", "Trip Plan")]

    result = match(local, remote, {}, EntityType.TASK)

    assert [(pair.local.id, pair.remote.id) for pair in result.matched] == [("c1", "m1")]
    assert result.unmatched == []
    assert result.unmatched_remote == []


def test_missing_counterpart_is_reported_unmatched() -> None:
    result = match([_entity("c1", "New Idea")], [_entity("m1", "Other")], {}, EntityType.TASK)

    assert [entity.id for entity in result.unmatched] == ["c1"]
    assert [entity.id for entity in result.unmatched_remote] == ["m1"]


def test_already_mapped_entities_are_excluded() -> None:
    existing = {entry.key: entry for entry in [_entry("c1", "m1")]}
    local = [_entity("c1", "Trip Plan"), _entity("c2", "Trip Plan")]
    remote = [_entity("m1", "Trip Plan")]

    result = match(local, remote, existing, EntityType.TASK)

    assert result.matched == []
    assert [entity.id for entity in result.unmatched] == ["c2"]
    assert result.unmatched_remote == []


def test_mappings_of_other_type_do_not_interfere() -> None:
    existing = {entry.key: entry for entry in [_entry("c1", "m1", EntityType.PROJECT)]}

    result = match([_entity("c1", "Home")], [_entity("m1", "Home")], existing, EntityType.TASK)

    assert [(pair.local.id, pair.remote.id) for pair in result.matched] == [("c1", "m1")]


def test_duplicate_titles_pick_first_remote_and_consume_it() -> None:
    local = [_entity("c1", "Groceries"), _entity("c2", "Groceries"), _entity("c3", "Groceries")]
    remote = [_entity("m1", "Groceries"), _entity("m2", "Groceries")]

    result = match(local, remote, {}, EntityType.TASK)

    assert [(pair.local.id, pair.remote.id) for pair in result.matched] == [("c1", "m1"), ("c2", "m2")]
    assert [entity.id for entity in result.unmatched] == ["c3"]


def test_title_comparison_is_exact() -> None:
    result = match([_entity("c1", "trip plan")], [_entity("m1", "Trip Plan")], {}, EntityType.TASK)

    assert result.matched == []
