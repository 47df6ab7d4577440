"""Отчёты о проходах синхронизации."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Protocol

from dateutil import tz

from craft_motion_sync.clients import CraftClient
from craft_motion_sync.models import RunStatus, SyncPhase, SyncRunResult

LOGGER = logging.getLogger(__name__)


class Notifier(Protocol):
    def report(self, result: SyncRunResult) -> None:
        ...


class LogNotifier:
    """Пишет итог прохода в лог."""

    _LEVELS = {
        RunStatus.SUCCESS: logging.INFO,
        RunStatus.WARNING: logging.WARNING,
        RunStatus.ERROR: logging.ERROR,
    }

    def report(self, result: SyncRunResult) -> None:
        LOGGER.log(self._LEVELS[result.status], "Синхронизация [%s]: %s", result.status.value, result.summary())
        for error in result.errors:
            LOGGER.debug("  ошибка: %s", error)


class CraftCollectionNotifier:
    """Добавляет строку с итогом прохода в коллекцию Craft."""

    def __init__(self, client: CraftClient, collection_id: str, *, timezone: str = "UTC") -> None:
        self._client = client
        self._collection_id = collection_id
        self._tz = tz.gettz(timezone) or tz.UTC

    def build_item(self, result: SyncRunResult) -> Dict[str, object]:
        local_time = result.started_at.astimezone(self._tz)
        message = "Sync failed" if result.phase is SyncPhase.FAILED else "Sync completed"
        return {
            "notification": message,
            "properties": {
                "date": local_time.date().isoformat(),
                "time": local_time.strftime("%H:%M"),
                "type": result.status.value,
                "tasks_created": result.created,
                "tasks_updated": result.updated,
                "conflicts": result.conflicts,
                "notes": result.summary(),
            },
        }

    def report(self, result: SyncRunResult) -> None:
        self._client.add_collection_items(self._collection_id, [self.build_item(result)])


class CompositeNotifier:
    """Рассылает итог всем получателям; сбой одного не влияет на остальных и на проход."""

    def __init__(self, notifiers: Iterable[Notifier]) -> None:
        self._notifiers: List[Notifier] = list(notifiers)

    def report(self, result: SyncRunResult) -> None:
        for notifier in self._notifiers:
            try:
                notifier.report(result)
            except Exception:  # noqa: BLE001 - уведомления не должны ронять проход
                LOGGER.exception("Не удалось отправить уведомление через %s", type(notifier).__name__)


def build_notifier(craft: Optional[CraftClient], collection_id: Optional[str], timezone: str) -> CompositeNotifier:
    notifiers: List[Notifier] = [LogNotifier()]
    if craft is not None and collection_id:
        notifiers.append(CraftCollectionNotifier(craft, collection_id, timezone=timezone))
    return CompositeNotifier(notifiers)


__all__ = [
    "Notifier",
    "LogNotifier",
    "CraftCollectionNotifier",
    "CompositeNotifier",
    "build_notifier",
]
