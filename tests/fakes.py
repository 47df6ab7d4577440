from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from craft_motion_sync.clients import EntityMapper
from craft_motion_sync.config import AppConfig
from craft_motion_sync.errors import NotFoundError, TransientIOError
from craft_motion_sync.models import EntityFields, EntityType, SyncEntity, SyncRunResult

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def make_config(tmp_path: Path, **sync: object) -> AppConfig:
    return AppConfig.model_validate(
        {
            "craft": {
                "api_token": "craft-token",
                "space_id": "space",
                "projects_folder_id": "projects",
                "areas_folder_id": "areas",
                "inbox_document_id": "inbox-doc",
            },
            "motion": {
                "api_key": "motion-key",
                "projects_workspace_id": "life",
                "areas_workspace_id": "private",
            },
            "sync": sync,
            "state_db": str(tmp_path / "state.sqlite"),
        }
    )


class FakeService:
    """In-memory task service; containers are keyed by (entity_type, category)."""

    prefix = "x"

    def __init__(self) -> None:
        self.entities: Dict[str, SyncEntity] = {}
        self.containers: Dict[Tuple[EntityType, str], List[str]] = {}
        self.created: List[Tuple[EntityType, str, EntityFields]] = []
        self.updated: List[Tuple[EntityType, str, EntityFields]] = []
        self.fetched: List[str] = []
        self.fail_on_create: Set[str] = set()
        self.fail_listing: Optional[Exception] = None
        self.bump: Optional[datetime] = None
        self._counter = 0

    def add(self, entity_type: EntityType, category: str, entity: SyncEntity) -> SyncEntity:
        self.entities[entity.id] = entity
        self.containers.setdefault((entity_type, category), []).append(entity.id)
        return entity

    def list_entities(self, category: str, entity_type: EntityType, on_invalid=None) -> List[SyncEntity]:
        if self.fail_listing is not None:
            raise self.fail_listing
        ids = self.containers.get((entity_type, category), [])
        return [replace(self.entities[entity_id], labels=list(self.entities[entity_id].labels)) for entity_id in ids]

    def get_entity(self, entity_type: EntityType, entity_id: str) -> SyncEntity:
        self.fetched.append(entity_id)
        if entity_id not in self.entities:
            raise NotFoundError(f"{entity_id} not found")
        return replace(self.entities[entity_id])

    def create_entity(self, entity_type: EntityType, category: str, fields: EntityFields) -> SyncEntity:
        if fields.title in self.fail_on_create:
            raise self.create_error(fields.title)
        self._counter += 1
        entity = self.build(f"{self.prefix}-{self._counter}", fields)
        self.add(entity_type, category, entity)
        self.created.append((entity_type, category, fields))
        return replace(entity)

    def update_entity(self, entity_type: EntityType, entity_id: str, fields: EntityFields) -> None:
        if entity_id not in self.entities:
            raise NotFoundError(f"{entity_id} not found")
        updated = self.build(entity_id, fields)
        current = self.entities[entity_id]
        current.title = updated.title
        current.status = updated.status
        current.completed = updated.completed
        current.start_date = updated.start_date or current.start_date
        current.due_date = updated.due_date or current.due_date
        if fields.labels is not None:
            current.labels = list(fields.labels)
        if self.bump is not None:
            current.updated_at = self.bump
        self.updated.append((entity_type, entity_id, fields))

    def build(self, entity_id: str, fields: EntityFields) -> SyncEntity:
        raise NotImplementedError

    def create_error(self, title: str) -> Exception:
        return TransientIOError(f"cannot create {title}")


class FakeCraft(FakeService):
    prefix = "craft"

    def build(self, entity_id: str, fields: EntityFields) -> SyncEntity:
        return SyncEntity(
            id=entity_id,
            title=fields.title,
            status=fields.status,
            start_date=fields.start_date,
            due_date=fields.due_date,
        )


class FakeMotion(FakeService):
    """Stores what the Motion task payload would carry."""

    prefix = "motion"
    mapper = EntityMapper()

    def build(self, entity_id: str, fields: EntityFields) -> SyncEntity:
        payload = self.mapper.to_motion_task_update(fields)
        return SyncEntity(
            id=entity_id,
            title=payload["name"],
            status=payload["status"],
            completed=bool(payload.get("completed")),
            start_date=fields.start_date,
            due_date=fields.due_date,
            parent_id=fields.parent_id,
            labels=list(fields.labels or []),
        )


class RecordingNotifier:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.results: List[SyncRunResult] = []
        self._error = error

    def report(self, result: SyncRunResult) -> None:
        self.results.append(result)
        if self._error is not None:
            raise self._error
