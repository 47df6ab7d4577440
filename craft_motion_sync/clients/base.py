"""Общий контракт клиентов и разбор ответов HTTP."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Protocol

import requests

from craft_motion_sync.errors import NotFoundError, TransientIOError, ValidationError
from craft_motion_sync.models import EntityFields, EntityType, SyncEntity

USER_AGENT = "craft-motion-sync/0.1"
REQUEST_TIMEOUT = 30

LOGGER = logging.getLogger(__name__)

InvalidHandler = Callable[[ValidationError], None]


class TaskServiceClient(Protocol):
    """Возможности сервиса задач, которые нужны оркестратору."""

    def list_entities(
        self,
        category: str,
        entity_type: EntityType,
        on_invalid: Optional[InvalidHandler] = None,
    ) -> List[SyncEntity]:
        ...

    def get_entity(self, entity_type: EntityType, entity_id: str) -> SyncEntity:
        ...

    def create_entity(self, entity_type: EntityType, category: str, fields: EntityFields) -> SyncEntity:
        ...

    def update_entity(self, entity_type: EntityType, entity_id: str, fields: EntityFields) -> None:
        ...


class ServiceAPIError(TransientIOError):
    """Ошибка API сервиса, которую имеет смысл повторить на следующем проходе."""


def send(
    session: requests.Session,
    service: str,
    method: str,
    url: str,
    **kwargs,
) -> requests.Response:
    """Выполняет запрос и переводит HTTP-ошибки в иерархию исключений синхронизации."""
    try:
        response = session.request(method, url, timeout=REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as exc:
        raise ServiceAPIError(f"{service}: сбой запроса {method} {url}: {exc}") from exc
    if response.status_code == 404:
        raise NotFoundError(f"{service}: {method} {url} вернул 404")
    if response.status_code in (400, 422):
        raise ValidationError(
            f"{service}: запрос {method} {url} отклонён ({response.status_code}): {response.text}"
        )
    if response.status_code >= 400:
        raise ServiceAPIError(
            f"Ошибка {service} {response.status_code} при запросе {method} {url}: {response.text}"
        )
    return response


def map_items(
    service: str,
    items: Iterable[Dict],
    convert: Callable[[Dict], SyncEntity],
    on_invalid: Optional[InvalidHandler] = None,
) -> List[SyncEntity]:
    """Конвертирует элементы выдачи; некорректные пропускаются и передаются в on_invalid."""
    entities: List[SyncEntity] = []
    for item in items:
        try:
            entities.append(convert(item))
        except ValidationError as exc:
            LOGGER.warning("%s: пропуск некорректной сущности: %s", service, exc)
            if on_invalid is not None:
                on_invalid(exc)
    return entities


def decode(service: str, response: requests.Response) -> dict:
    if not response.content:
        return {}
    try:
        payload = response.json()
    except ValueError as exc:
        raise ServiceAPIError(f"{service}: ответ не является JSON: {response.text[:200]}") from exc
    return payload if isinstance(payload, dict) else {"items": payload}


__all__ = [
    "TaskServiceClient",
    "InvalidHandler",
    "ServiceAPIError",
    "USER_AGENT",
    "REQUEST_TIMEOUT",
    "send",
    "decode",
    "map_items",
]
