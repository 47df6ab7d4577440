"""Иерархия исключений синхронизации."""
from __future__ import annotations


class SyncError(RuntimeError):
    """Базовое исключение синхронизации."""


class TransientIOError(SyncError):
    """Сетевая или HTTP-ошибка; повторяется на следующем проходе."""


class NotFoundError(SyncError):
    """Сущность, на которую ссылается соответствие, исчезла."""


class ValidationError(SyncError):
    """Некорректная сущность или отклонённый сервисом запрос."""


class FatalConfigError(SyncError):
    """Отсутствует или некорректна обязательная конфигурация."""


__all__ = [
    "SyncError",
    "TransientIOError",
    "NotFoundError",
    "ValidationError",
    "FatalConfigError",
]
