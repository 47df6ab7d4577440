"""HTTP-клиент для Craft REST API."""
from __future__ import annotations

from typing import Dict, List, Optional

import requests

from craft_motion_sync.clients.base import USER_AGENT, InvalidHandler, decode, map_items, send
from craft_motion_sync.clients.mapper import EntityMapper
from craft_motion_sync.config import CraftSettings
from craft_motion_sync.errors import ValidationError
from craft_motion_sync.models import EntityFields, EntityType, SyncEntity

INBOX = "inbox"


class CraftClient:
    """Минимальный клиент Craft API.

    Категория для проектов задаёт идентификатор папки, для задач идентификатор
    документа либо ``inbox``.
    """

    service = "Craft"

    def __init__(
        self,
        config: CraftSettings,
        session: Optional[requests.Session] = None,
        mapper: Optional[EntityMapper] = None,
    ) -> None:
        self._config = config
        self._mapper = mapper or EntityMapper()
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {self._config.api_token}",
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict:
        url = f"{self.base_url}/spaces/{self._config.space_id}/{endpoint.lstrip('/')}"
        response = send(self._session, self.service, method, url, **kwargs)
        return decode(self.service, response)

    # region raw API
    def list_documents(self, folder_id: str) -> List[Dict]:
        """Документы папки."""
        payload = self._request("GET", "/documents", params={"folderId": folder_id})
        return payload.get("documents") or payload.get("items") or []

    def list_tasks(self, *, document_id: Optional[str] = None) -> List[Dict]:
        """Задачи документа; без document_id возвращает задачи инбокса."""
        params = {"scope": "document", "documentId": document_id} if document_id else {"scope": INBOX}
        payload = self._request("GET", "/tasks", params=params)
        return payload.get("tasks") or []

    def get_block(self, block_id: str) -> Dict:
        return self._request("GET", f"/blocks/{block_id}")

    def add_tasks(self, tasks: List[Dict]) -> List[Dict]:
        payload = self._request("POST", "/tasks", json={"tasks": tasks})
        return payload.get("tasks") or []

    def update_tasks(self, tasks_to_update: List[Dict]) -> Dict:
        return self._request("PATCH", "/tasks", json={"tasksToUpdate": tasks_to_update})

    def add_collection_items(self, collection_id: str, items: List[Dict]) -> Dict:
        return self._request("POST", f"/collections/{collection_id}/items", json={"items": items})

    # endregion

    # region TaskServiceClient
    @staticmethod
    def _location(category: str) -> Dict[str, str]:
        if category == INBOX:
            return {"type": INBOX}
        return {"type": "document", "documentId": category}

    def list_entities(
        self,
        category: str,
        entity_type: EntityType,
        on_invalid: Optional[InvalidHandler] = None,
    ) -> List[SyncEntity]:
        if entity_type is EntityType.PROJECT:
            return map_items(self.service, self.list_documents(category), self._mapper.craft_document, on_invalid)
        document_id = None if category == INBOX else category
        tasks = self.list_tasks(document_id=document_id)
        entities = map_items(self.service, tasks, self._mapper.craft_task, on_invalid)
        for entity in entities:
            entity.category = category
        return entities

    def get_entity(self, entity_type: EntityType, entity_id: str) -> SyncEntity:
        block = self.get_block(entity_id)
        if entity_type is EntityType.PROJECT:
            return self._mapper.craft_document(block)
        return self._mapper.craft_task(block)

    def create_entity(self, entity_type: EntityType, category: str, fields: EntityFields) -> SyncEntity:
        if entity_type is not EntityType.TASK:
            raise ValidationError("Craft: документы проектов создаются только вручную")
        created = self.add_tasks([self._mapper.to_craft_task(fields, self._location(category))])
        if not created:
            raise ValidationError(f"Craft: задача «{fields.title}» не вернулась из API после создания")
        entity = self._mapper.craft_task(created[0])
        entity.category = category
        return entity

    def update_entity(self, entity_type: EntityType, entity_id: str, fields: EntityFields) -> None:
        if entity_type is not EntityType.TASK:
            raise ValidationError("Craft: документы проектов не обновляются синхронизацией")
        self.update_tasks([self._mapper.to_craft_task_update(entity_id, fields)])

    # endregion


__all__ = ["CraftClient", "INBOX"]
