"""Клиенты внешних сервисов."""

from .base import InvalidHandler, ServiceAPIError, TaskServiceClient
from .craft import INBOX, CraftClient
from .mapper import EntityMapper
from .motion import MotionClient

__all__ = [
    "CraftClient",
    "MotionClient",
    "EntityMapper",
    "TaskServiceClient",
    "InvalidHandler",
    "ServiceAPIError",
    "INBOX",
]
