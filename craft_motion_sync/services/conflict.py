"""Обнаружение изменений и разрешение конфликтов.

Политика «побеждает последняя запись»: при равных отметках времени или
отсутствии хотя бы одной из них побеждает Craft, чтобы значения не
колебались между системами от прохода к проходу.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from craft_motion_sync.models import MappingEntry, SyncEntity


class Side(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class ChangeType(str, Enum):
    """Какие стороны изменились с момента последней синхронизации."""

    NONE = "none"
    LOCAL_ONLY = "local_only"
    REMOTE_ONLY = "remote_only"
    BOTH_CHANGED = "both_changed"


def resolve(local_updated_at: Optional[datetime], remote_updated_at: Optional[datetime]) -> Side:
    """Возвращает сторону, чьё состояние считается актуальным."""
    if local_updated_at is None or remote_updated_at is None:
        return Side.LOCAL
    if remote_updated_at > local_updated_at:
        return Side.REMOTE
    return Side.LOCAL


def _changed(current: Optional[datetime], observed: Optional[datetime], synced_at: Optional[datetime]) -> bool:
    if current is None:
        return False
    baseline = observed or synced_at
    if baseline is None:
        return True
    return current > baseline


def detect_change(entry: MappingEntry, local: SyncEntity, remote: SyncEntity) -> ChangeType:
    local_changed = _changed(local.updated_at, entry.local_updated_at, entry.last_synced_at)
    remote_changed = _changed(remote.updated_at, entry.remote_updated_at, entry.last_synced_at)
    if local_changed and remote_changed:
        return ChangeType.BOTH_CHANGED
    if local_changed:
        return ChangeType.LOCAL_ONLY
    if remote_changed:
        return ChangeType.REMOTE_ONLY
    return ChangeType.NONE


__all__ = ["Side", "ChangeType", "resolve", "detect_change"]
