from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from craft_motion_sync.models import EntityType, MappingEntry, MappingKey
from craft_motion_sync.services import MappingStore

SYNCED = datetime(2026, 9, 1, 8, 30, tzinfo=timezone.utc)


def _entry(local_id: str = "c1", remote_id: str = "m1", **changes) -> MappingEntry:
    values = dict(
        local_id=local_id,
        remote_id=remote_id,
        entity_type=EntityType.TASK,
        category="Life",
        last_synced_at=SYNCED,
        title="Trip Plan",
    )
    values.update(changes)
    return MappingEntry(**values)


def test_upsert_inserts_and_updates_single_row(store: MappingStore) -> None:
    store.upsert(_entry())
    store.upsert(_entry(title="Trip Plan v2", last_synced_at=SYNCED + timedelta(hours=1)))

    entries = store.read_all()

    assert len(entries) == 1
    assert entries[0].title == "Trip Plan v2"
    assert entries[0].last_synced_at == SYNCED + timedelta(hours=1)


def test_all_fields_survive_storage(store: MappingStore) -> None:
    entry = _entry(
        entity_type=EntityType.PROJECT,
        category="Private",
        local_updated_at=SYNCED - timedelta(minutes=5),
        remote_updated_at=SYNCED - timedelta(minutes=2),
    )
    store.upsert(entry)

    assert store.get(EntityType.PROJECT, "c1") == entry
    assert store.get(EntityType.TASK, "c1") is None


def test_load_keys_entries_by_type_and_local_id(store: MappingStore) -> None:
    store.upsert(_entry("c1", "m1"))
    store.upsert(_entry("c1", "p1", entity_type=EntityType.PROJECT))

    loaded = store.load()

    assert set(loaded) == {MappingKey(EntityType.TASK, "c1"), MappingKey(EntityType.PROJECT, "c1")}
    assert loaded[MappingKey(EntityType.PROJECT, "c1")].remote_id == "p1"


def test_remote_id_is_unique_per_type(store: MappingStore) -> None:
    store.upsert(_entry("c1", "m1"))

    with pytest.raises(sqlite3.IntegrityError):
        store.upsert(_entry("c2", "m1"))


def test_load_failure_yields_empty_state(store: MappingStore, monkeypatch, caplog) -> None:
    store.upsert(_entry())

    def broken() -> list:
        raise sqlite3.OperationalError("database disk image is malformed")

    monkeypatch.setattr(store, "read_all", broken)

    with caplog.at_level("ERROR"):
        assert store.load() == {}
    assert "malformed" in caplog.text


def test_store_persists_between_connections(tmp_path) -> None:
    path = tmp_path / "state.sqlite"
    first = MappingStore(path)
    first.upsert(_entry())
    first.close()

    second = MappingStore(path)
    try:
        assert [entry.remote_id for entry in second.read_all()] == ["m1"]
    finally:
        second.close()
