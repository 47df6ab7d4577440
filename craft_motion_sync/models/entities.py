"""Определения доменных сущностей."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, NamedTuple, Optional


class EntityType(str, Enum):
    """Тип синхронизируемой сущности."""

    PROJECT = "project"
    TASK = "task"


class MappingKey(NamedTuple):
    """Ключ соответствия: тип сущности и идентификатор Craft."""

    entity_type: EntityType
    local_id: str


@dataclass(slots=True)
class MappingEntry:
    """Соответствие сущности Craft и сущности Motion."""

    local_id: str
    remote_id: str
    entity_type: EntityType
    category: str
    last_synced_at: datetime
    title: str = ""
    local_updated_at: Optional[datetime] = None
    remote_updated_at: Optional[datetime] = None

    @property
    def key(self) -> MappingKey:
        return MappingKey(self.entity_type, self.local_id)


@dataclass(slots=True)
class SyncEntity:
    """Нормализованное представление задачи или проекта любой из систем."""

    id: str
    title: str
    status: str = "todo"
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    updated_at: Optional[datetime] = None
    parent_id: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    completed: bool = False
    recurring: bool = False
    category: Optional[str] = None


@dataclass(slots=True)
class EntityFields:
    """Набор полей, передаваемый клиенту при создании или обновлении.

    Статус всегда задан в словаре Craft; клиент Motion переводит его сам.
    """

    title: str
    status: str = "todo"
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    labels: Optional[List[str]] = None
    parent_id: Optional[str] = None


class RunStatus(str, Enum):
    SUCCESS = "Success"
    WARNING = "Warning"
    ERROR = "Error"


class SyncPhase(str, Enum):
    """Фазы прохода синхронизации."""

    LOADING = "loading"
    PROJECTS = "projects"
    TASKS = "tasks"
    AREAS = "areas"
    PERSIST = "persist"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SyncRunResult:
    """Итог одного прохода синхронизации."""

    started_at: datetime
    created: int = 0
    updated: int = 0
    linked: int = 0
    skipped: int = 0
    conflicts: int = 0
    errors: List[str] = field(default_factory=list)
    duration: float = 0.0
    phase: SyncPhase = SyncPhase.LOADING

    @property
    def status(self) -> RunStatus:
        if self.phase is SyncPhase.FAILED:
            return RunStatus.ERROR
        if self.errors:
            return RunStatus.WARNING
        return RunStatus.SUCCESS

    def summary(self) -> str:
        """Короткое текстовое описание прохода для уведомлений."""
        notes: List[str] = []
        if self.phase is SyncPhase.FAILED and self.errors:
            notes.append(f"Error: {self.errors[-1]}")
        if self.created:
            notes.append(f"Created {self.created} new tasks")
        if self.updated:
            notes.append(f"Updated {self.updated} tasks")
        if self.linked:
            notes.append(f"Linked {self.linked} existing entities")
        if self.errors and self.phase is not SyncPhase.FAILED:
            notes.append(f"{len(self.errors)} errors occurred")
        if not (self.created or self.updated or self.linked or self.errors):
            notes.append("No changes needed")
        return ". ".join(notes) + f". Duration: {self.duration:.2f}s"

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "phase": self.phase.value,
            "started_at": self.started_at.isoformat(),
            "created": self.created,
            "updated": self.updated,
            "linked": self.linked,
            "skipped": self.skipped,
            "conflicts": self.conflicts,
            "errors": list(self.errors),
            "duration": round(self.duration, 3),
        }


__all__ = [
    "EntityType",
    "MappingKey",
    "MappingEntry",
    "SyncEntity",
    "EntityFields",
    "RunStatus",
    "SyncPhase",
    "SyncRunResult",
]
