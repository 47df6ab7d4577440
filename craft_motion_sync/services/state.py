"""Состояние одного прохода синхронизации."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from craft_motion_sync.errors import ValidationError
from craft_motion_sync.models import EntityType, MappingEntry, MappingKey, SyncPhase, SyncRunResult


@dataclass
class SyncState:
    """Рабочий набор прохода: индекс соответствий, изменённые записи и итог.

    Передаётся в каждую фазу и возвращается из неё; между проходами не живёт.
    """

    mappings: Dict[MappingKey, MappingEntry]
    result: SyncRunResult
    touched: Dict[MappingKey, MappingEntry] = field(default_factory=dict)
    active_projects: List[str] = field(default_factory=list)
    seen: Set[str] = field(default_factory=set)
    _by_remote: Dict[Tuple[EntityType, str], MappingKey] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        for key, entry in self.mappings.items():
            self._by_remote[(entry.entity_type, entry.remote_id)] = key

    @property
    def phase(self) -> SyncPhase:
        return self.result.phase

    def enter(self, phase: SyncPhase) -> "SyncState":
        self.result.phase = phase
        return self

    def by_local(self, entity_type: EntityType, local_id: str) -> Optional[MappingEntry]:
        return self.mappings.get(MappingKey(entity_type, local_id))

    def by_remote(self, entity_type: EntityType, remote_id: str) -> Optional[MappingEntry]:
        key = self._by_remote.get((entity_type, remote_id))
        return self.mappings.get(key) if key else None

    def entries(self, entity_type: EntityType, category: Optional[str] = None) -> List[MappingEntry]:
        return [
            entry
            for entry in self.mappings.values()
            if entry.entity_type is entity_type and (category is None or entry.category == category)
        ]

    def record(self, entry: MappingEntry) -> None:
        """Добавляет или обновляет соответствие, не допуская двойной привязки."""
        owner = self._by_remote.get((entry.entity_type, entry.remote_id))
        if owner is not None and owner != entry.key:
            raise ValidationError(
                f"{entry.entity_type.value} {entry.remote_id} в Motion уже связан с {owner.local_id} в Craft"
            )
        previous = self.mappings.get(entry.key)
        if previous is not None and previous.remote_id != entry.remote_id:
            self._by_remote.pop((previous.entity_type, previous.remote_id), None)
        self.mappings[entry.key] = entry
        self._by_remote[(entry.entity_type, entry.remote_id)] = entry.key
        self.touched[entry.key] = entry


__all__ = ["SyncState"]
