"""Перевод статусов между словарями Craft и Motion.

Функции модуля чистые и тотальные: любой вход, включая неизвестные
статусы и пустые значения, даёт результат без исключений.
"""
from __future__ import annotations

from typing import Mapping, NamedTuple, Optional

from craft_motion_sync.models import SyncEntity

DEFAULT_LOCAL_STATUS = "todo"


class RemoteStatus(NamedTuple):
    """Статус задачи в терминах Motion."""

    completed: bool
    display_status: str


StatusTable = Mapping[str, RemoteStatus]

DEFAULT_STATUS_TABLE: StatusTable = {
    "todo": RemoteStatus(completed=False, display_status="Todo"),
    "done": RemoteStatus(completed=True, display_status="Completed"),
    "canceled": RemoteStatus(completed=False, display_status="Canceled"),
}


def _table(table: Optional[StatusTable]) -> StatusTable:
    return table if table else DEFAULT_STATUS_TABLE


def local_status_to_remote(status: Optional[str], table: Optional[StatusTable] = None) -> RemoteStatus:
    """Статус Craft → статус Motion; неизвестное значение трактуется как todo."""
    rules = _table(table)
    key = (status or "").strip().lower()
    if key in rules:
        return rules[key]
    if DEFAULT_LOCAL_STATUS in rules:
        return rules[DEFAULT_LOCAL_STATUS]
    return RemoteStatus(completed=False, display_status="Todo")


def remote_status_to_local(entity: SyncEntity, table: Optional[StatusTable] = None) -> str:
    """Статус Motion → статус Craft; флаг completed важнее названия статуса."""
    rules = _table(table)
    if entity.completed:
        for local, remote in rules.items():
            if remote.completed:
                return local
        return "done"
    label = (entity.status or "").strip().lower()
    if label:
        for local, remote in rules.items():
            if not remote.completed and remote.display_status.lower() == label:
                return local
    return DEFAULT_LOCAL_STATUS


def normalize_local_status(status: Optional[str], table: Optional[StatusTable] = None) -> str:
    """Приводит статус Craft к значению, которое переживает перевод туда и обратно."""
    remote = local_status_to_remote(status, table)
    echoed = SyncEntity(id="", title="", status=remote.display_status, completed=remote.completed)
    return remote_status_to_local(echoed, table)


def is_closed_local(status: Optional[str], table: Optional[StatusTable] = None) -> bool:
    return normalize_local_status(status, table) != DEFAULT_LOCAL_STATUS


def is_closed_remote(entity: SyncEntity, table: Optional[StatusTable] = None) -> bool:
    return remote_status_to_local(entity, table) != DEFAULT_LOCAL_STATUS


__all__ = [
    "RemoteStatus",
    "StatusTable",
    "DEFAULT_STATUS_TABLE",
    "DEFAULT_LOCAL_STATUS",
    "local_status_to_remote",
    "remote_status_to_local",
    "normalize_local_status",
    "is_closed_local",
    "is_closed_remote",
]
