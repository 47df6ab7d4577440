"""Сервисный слой приложения."""

from .mapping_store import MappingStore
from .notifier import CompositeNotifier, CraftCollectionNotifier, LogNotifier, Notifier, build_notifier
from .scheduler import SyncScheduler
from .state import SyncState
from .sync import ReconciliationService

__all__ = [
    "ReconciliationService",
    "MappingStore",
    "SyncScheduler",
    "SyncState",
    "Notifier",
    "LogNotifier",
    "CraftCollectionNotifier",
    "CompositeNotifier",
    "build_notifier",
]
