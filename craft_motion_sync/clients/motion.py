"""HTTP-клиент для Motion API."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import requests

from craft_motion_sync.clients.base import USER_AGENT, InvalidHandler, decode, map_items, send
from craft_motion_sync.clients.mapper import EntityMapper
from craft_motion_sync.config import MotionSettings
from craft_motion_sync.models import EntityFields, EntityType, SyncEntity


@dataclass
class MotionPage:
    """Контейнер для страницы выдачи с курсором."""

    items: List[Dict]
    next_cursor: Optional[str]


class MotionClient:
    """Минимальный клиент Motion API. Категорией служит идентификатор workspace."""

    service = "Motion"

    def __init__(
        self,
        config: MotionSettings,
        session: Optional[requests.Session] = None,
        mapper: Optional[EntityMapper] = None,
    ) -> None:
        self._config = config
        self._mapper = mapper or EntityMapper()
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "X-API-Key": self._config.api_key,
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    # region low-level helpers
    def _request(self, method: str, endpoint: str, **kwargs) -> Dict:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        response = send(self._session, self.service, method, url, **kwargs)
        return decode(self.service, response)

    def _page(self, endpoint: str, key: str, params: Dict[str, str]) -> MotionPage:
        payload = self._request("GET", endpoint, params=params)
        meta = payload.get("meta") or {}
        return MotionPage(items=payload.get(key) or [], next_cursor=meta.get("nextCursor"))

    def _iterate(self, endpoint: str, key: str, params: Dict[str, str]) -> Iterable[Dict]:
        cursor: Optional[str] = None
        while True:
            page_params = dict(params)
            if cursor:
                page_params["cursor"] = cursor
            page = self._page(endpoint, key, page_params)
            for item in page.items:
                yield item
            if not page.next_cursor:
                break
            cursor = page.next_cursor

    # endregion

    # region raw API
    def iter_projects(self, workspace_id: str) -> Iterable[Dict]:
        """Итерирует проекты workspace с учётом пагинации."""
        return self._iterate("/projects", "projects", {"workspaceId": workspace_id})

    def iter_tasks(self, workspace_id: str, *, project_id: Optional[str] = None) -> Iterable[Dict]:
        """Итерирует задачи workspace с учётом пагинации."""
        params = {"workspaceId": workspace_id}
        if project_id:
            params["projectId"] = project_id
        return self._iterate("/tasks", "tasks", params)

    def get_task(self, task_id: str) -> Dict:
        return self._request("GET", f"/tasks/{task_id}")

    def get_project(self, project_id: str) -> Dict:
        return self._request("GET", f"/projects/{project_id}")

    def create_task(self, payload: Dict) -> Dict:
        return self._request("POST", "/tasks", json=payload)

    def update_task(self, task_id: str, payload: Dict) -> Dict:
        return self._request("PATCH", f"/tasks/{task_id}", json=payload)

    def create_project(self, payload: Dict) -> Dict:
        return self._request("POST", "/projects", json=payload)

    def update_project(self, project_id: str, payload: Dict) -> Dict:
        return self._request("PATCH", f"/projects/{project_id}", json=payload)

    # endregion

    # region TaskServiceClient
    def list_entities(
        self,
        category: str,
        entity_type: EntityType,
        on_invalid: Optional[InvalidHandler] = None,
    ) -> List[SyncEntity]:
        if entity_type is EntityType.PROJECT:
            return map_items(self.service, self.iter_projects(category), self._mapper.motion_project, on_invalid)
        entities = map_items(self.service, self.iter_tasks(category), self._mapper.motion_task, on_invalid)
        for entity in entities:
            entity.category = entity.category or category
        return entities

    def get_entity(self, entity_type: EntityType, entity_id: str) -> SyncEntity:
        if entity_type is EntityType.PROJECT:
            return self._mapper.motion_project(self.get_project(entity_id))
        return self._mapper.motion_task(self.get_task(entity_id))

    def create_entity(self, entity_type: EntityType, category: str, fields: EntityFields) -> SyncEntity:
        if entity_type is EntityType.PROJECT:
            response = self.create_project(self._mapper.to_motion_project(fields, category))
            return self._mapper.motion_project(response)
        response = self.create_task(self._mapper.to_motion_task(fields, category))
        return self._mapper.motion_task(response)

    def update_entity(self, entity_type: EntityType, entity_id: str, fields: EntityFields) -> None:
        if entity_type is EntityType.PROJECT:
            self.update_project(entity_id, {"name": fields.title})
            return
        self.update_task(entity_id, self._mapper.to_motion_task_update(fields))

    # endregion


__all__ = ["MotionClient", "MotionPage"]
