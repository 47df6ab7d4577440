"""Доменные модели синхронизации."""

from .entities import (
    EntityFields,
    EntityType,
    MappingEntry,
    MappingKey,
    RunStatus,
    SyncEntity,
    SyncPhase,
    SyncRunResult,
)

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
