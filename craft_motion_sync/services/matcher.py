"""Сопоставление несвязанных сущностей по названию."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, NamedTuple

from craft_motion_sync.models import EntityType, MappingEntry, MappingKey, SyncEntity


class MatchedPair(NamedTuple):
    local: SyncEntity
    remote: SyncEntity


@dataclass
class MatchResult:
    matched: List[MatchedPair] = field(default_factory=list)
    unmatched: List[SyncEntity] = field(default_factory=list)
    unmatched_remote: List[SyncEntity] = field(default_factory=list)


def match(
    local_entities: Iterable[SyncEntity],
    remote_entities: Iterable[SyncEntity],
    existing_mappings: Mapping[MappingKey, MappingEntry],
    entity_type: EntityType,
) -> MatchResult:
    """Связывает несопоставленные сущности Craft с сущностями Motion по точному названию.

    Оба списка должны относиться к одной категории. Уже связанные сущности
    с обеих сторон в сопоставлении не участвуют. При нескольких кандидатах с
    одинаковым названием выигрывает первый в порядке выдачи Motion; каждый
    кандидат связывается не более одного раза.
    """
    mapped_remote = {
        entry.remote_id for entry in existing_mappings.values() if entry.entity_type is entity_type
    }
    candidates: Dict[str, List[SyncEntity]] = {}
    free_remote: List[SyncEntity] = []
    for remote in remote_entities:
        if remote.id in mapped_remote:
            continue
        free_remote.append(remote)
        candidates.setdefault(remote.title, []).append(remote)

    result = MatchResult()
    consumed = set()
    for local in local_entities:
        if MappingKey(entity_type, local.id) in existing_mappings:
            continue
        queue = candidates.get(local.title)
        if queue:
            remote = queue.pop(0)
            consumed.add(remote.id)
            result.matched.append(MatchedPair(local, remote))
        else:
            result.unmatched.append(local)

    result.unmatched_remote = [remote for remote in free_remote if remote.id not in consumed]
    return result


__all__ = ["match", "MatchResult", "MatchedPair"]
