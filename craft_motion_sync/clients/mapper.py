"""Маппинг сущностей между ответами API и внутренними моделями."""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

from dateutil import parser

from craft_motion_sync.errors import ValidationError
from craft_motion_sync.models import EntityFields, SyncEntity
from craft_motion_sync.translators import StatusTable, local_status_to_remote

_CHECKBOX_PREFIX = re.compile(r"^\s*[-*+]\s*\[[ xX]?\]\s*")


class EntityMapper:
    """Конвертация данных Craft и Motion в SyncEntity и обратно."""

    def __init__(self, *, status_table: Optional[StatusTable] = None, default_duration: int = 15) -> None:
        self._status_table = status_table
        self._default_duration = default_duration

    # region parsing helpers
    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            moment = parser.isoparse(str(value))
        except (ValueError, OverflowError) as exc:
            raise ValidationError(f"Некорректная дата-время: {value!r}") from exc
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment

    @staticmethod
    def _parse_date(value: Optional[str]) -> Optional[date]:
        if not value:
            return None
        try:
            return parser.isoparse(str(value)).date()
        except (ValueError, OverflowError) as exc:
            raise ValidationError(f"Некорректная дата: {value!r}") from exc

    @staticmethod
    def _require_id(payload: Dict, service: str) -> str:
        entity_id = payload.get("id")
        if entity_id in (None, ""):
            raise ValidationError(f"{service}: сущность без идентификатора: {payload!r}")
        return str(entity_id)

    @staticmethod
    def _clean_title(value: Optional[str]) -> str:
        return _CHECKBOX_PREFIX.sub("", value or "").strip()

    @staticmethod
    def _label_names(raw: Optional[List]) -> List[str]:
        names: List[str] = []
        for item in raw or []:
            name = item.get("name") if isinstance(item, dict) else item
            if name:
                names.append(str(name))
        return names

    # endregion

    # region Craft
    def craft_document(self, payload: Dict) -> SyncEntity:
        doc_id = self._require_id(payload, "Craft")
        return SyncEntity(
            id=doc_id,
            title=self._clean_title(payload.get("title") or payload.get("markdown")),
            updated_at=self._parse_datetime(payload.get("lastModifiedAt") or payload.get("updatedAt")),
            parent_id=payload.get("folderId"),
        )

    def craft_task(self, payload: Dict) -> SyncEntity:
        task_id = self._require_id(payload, "Craft")
        info = payload.get("taskInfo") or {}
        location = payload.get("location") or {}
        return SyncEntity(
            id=task_id,
            title=self._clean_title(payload.get("markdown") or payload.get("title")),
            status=str(info.get("state") or "todo"),
            start_date=self._parse_date(info.get("scheduleDate")),
            due_date=self._parse_date(info.get("deadlineDate")),
            updated_at=self._parse_datetime(payload.get("lastModifiedAt") or payload.get("updatedAt")),
            parent_id=location.get("documentId") or payload.get("documentId"),
            recurring=bool(info.get("repeat") or info.get("recurrence")),
        )

    def to_craft_task(self, fields: EntityFields, location: Dict[str, str]) -> Dict:
        payload: Dict[str, object] = {
            "markdown": fields.title,
            "location": location,
            "taskInfo": self._craft_task_info(fields),
        }
        return payload

    def to_craft_task_update(self, task_id: str, fields: EntityFields) -> Dict:
        return {"id": task_id, "markdown": fields.title, "taskInfo": self._craft_task_info(fields)}

    @staticmethod
    def _craft_task_info(fields: EntityFields) -> Dict[str, object]:
        info: Dict[str, object] = {"state": fields.status}
        if fields.start_date:
            info["scheduleDate"] = fields.start_date.isoformat()
        if fields.due_date:
            info["deadlineDate"] = fields.due_date.isoformat()
        return info

    # endregion

    # region Motion
    def motion_project(self, payload: Dict) -> SyncEntity:
        project_id = self._require_id(payload, "Motion")
        status = payload.get("status")
        return SyncEntity(
            id=project_id,
            title=(payload.get("name") or "").strip(),
            status=str(status.get("name") if isinstance(status, dict) else status or ""),
            updated_at=self._parse_datetime(payload.get("updatedTime")),
            category=payload.get("workspaceId"),
        )

    def motion_task(self, payload: Dict) -> SyncEntity:
        task_id = self._require_id(payload, "Motion")
        status = payload.get("status")
        project = payload.get("project") or {}
        workspace = payload.get("workspace") or {}
        return SyncEntity(
            id=task_id,
            title=(payload.get("name") or "").strip(),
            status=str(status.get("name") if isinstance(status, dict) else status or ""),
            start_date=self._parse_date(payload.get("startOn")),
            due_date=self._parse_date(payload.get("dueDate")),
            updated_at=self._parse_datetime(payload.get("updatedTime")),
            parent_id=project.get("id") or payload.get("projectId"),
            labels=self._label_names(payload.get("labels")),
            completed=bool(payload.get("completed")),
            recurring=bool(payload.get("parentRecurringTaskId")),
            category=workspace.get("id") or payload.get("workspaceId"),
        )

    def to_motion_project(self, fields: EntityFields, workspace_id: str) -> Dict:
        return {"name": fields.title, "workspaceId": workspace_id}

    def to_motion_task(self, fields: EntityFields, workspace_id: str) -> Dict:
        payload = self.to_motion_task_update(fields)
        payload["workspaceId"] = workspace_id
        payload["duration"] = self._default_duration
        if fields.start_date:
            payload["autoScheduled"] = {"startDate": fields.start_date.isoformat()}
        if fields.parent_id:
            payload["projectId"] = fields.parent_id
        return payload

    def to_motion_task_update(self, fields: EntityFields) -> Dict:
        remote = local_status_to_remote(fields.status, self._status_table)
        payload: Dict[str, object] = {
            "name": fields.title,
            "status": remote.display_status,
            "completed": remote.completed,
        }
        if fields.start_date:
            payload["startOn"] = fields.start_date.isoformat()
        if fields.due_date:
            payload["dueDate"] = f"{fields.due_date.isoformat()}T00:00:00.000Z"
        if fields.labels is not None:
            payload["labels"] = list(fields.labels)
        return payload

    # endregion


__all__ = ["EntityMapper"]
