"""Загрузка и валидация конфигурации приложения."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from craft_motion_sync.errors import FatalConfigError
from craft_motion_sync.translators import DEFAULT_STATUS_TABLE, RemoteStatus, StatusTable


class CraftSettings(BaseModel):
    """Настройки подключения к Craft и раскладка пространства."""

    base_url: str = Field("https://api.craft.do/v1", description="Базовый URL REST API Craft")
    api_token: str = Field(..., description="Bearer-токен Craft API")
    space_id: str = Field(..., description="Идентификатор пространства Craft")
    projects_folder_id: str = Field(..., description="Папка с документами проектов в работе")
    areas_folder_id: Optional[str] = Field(None, description="Папка с документами сфер жизни (areas)")
    inbox_document_id: Optional[str] = Field(
        None,
        description="Документ-инбокс для задач Motion без метки; если не задан, используется инбокс Craft",
    )
    notifications_collection_id: Optional[str] = Field(
        None, description="Коллекция, куда пишутся итоги синхронизации"
    )


class MotionSettings(BaseModel):
    """Настройки подключения к Motion."""

    base_url: str = Field("https://api.usemotion.com/v1", description="Базовый URL Motion API")
    api_key: str = Field(..., description="Ключ Motion API (заголовок X-API-Key)")
    projects_workspace_id: str = Field(..., description="Рабочее пространство с проектами")
    areas_workspace_id: Optional[str] = Field(None, description="Рабочее пространство с задачами сфер жизни")


class StatusRule(BaseModel):
    """Правило перевода статуса Craft в статус Motion."""

    completed: bool = False
    display_status: str


class SyncOptions(BaseModel):
    """Параметры синхронизации."""

    dry_run: bool = Field(False, description="Если True, изменения ни в одну систему не пишутся")
    include_closed: bool = Field(
        False, description="Создавать ли двойники для уже закрытых несопоставленных задач"
    )
    show_progress: bool = Field(False, description="Показывать прогресс по проектам")
    default_duration_minutes: int = Field(15, description="Длительность задачи Motion по умолчанию")
    projects_category: str = Field("Life", description="Категория соответствий для проектов и их задач")
    areas_category: str = Field("Private", description="Категория соответствий для задач сфер жизни")


class ScheduleOptions(BaseModel):
    """Расписание: частый опрос в активные часы и редкий вне их."""

    timezone: str = Field("Asia/Bangkok", description="Часовой пояс для вычисления активного окна")
    active_start_hour: int = Field(6, ge=0, le=23)
    active_end_hour: int = Field(23, ge=0, le=24)
    active_interval_minutes: int = Field(15, gt=0)
    idle_interval_minutes: int = Field(120, gt=0)

    @model_validator(mode="after")
    def _check_window(self) -> "ScheduleOptions":
        if self.active_start_hour >= self.active_end_hour:
            raise ValueError("active_start_hour должен быть меньше active_end_hour")
        return self


class AppConfig(BaseModel):
    """Корневая конфигурация приложения."""

    craft: CraftSettings
    motion: MotionSettings
    sync: SyncOptions = Field(default_factory=SyncOptions)
    schedule: ScheduleOptions = Field(default_factory=ScheduleOptions)
    statuses: Dict[str, StatusRule] = Field(default_factory=dict)
    state_db: Path = Field(Path(".sync_state.sqlite"), description="Путь к SQLite-базе соответствий")

    @field_validator("state_db", mode="before")
    @classmethod
    def _state_db_path(cls, value: Path | str) -> Path:
        return Path(value)

    @classmethod
    def load(cls, path: Path | str) -> "AppConfig":
        """Загружает конфигурацию из YAML-файла."""
        path = Path(path)
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise FatalConfigError(f"Не удалось прочитать конфигурацию {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise FatalConfigError(f"Конфигурация {path} не является корректным YAML: {exc}") from exc
        if not isinstance(raw, dict):
            raise FatalConfigError(f"Конфигурация {path} пуста или имеет неверный формат")
        try:
            return cls.model_validate(raw)
        except PydanticValidationError as exc:
            raise FatalConfigError(f"Конфигурация {path} некорректна: {exc}") from exc

    def status_table(self) -> StatusTable:
        """Таблица перевода статусов с учётом переопределений из конфигурации."""
        table: Dict[str, RemoteStatus] = dict(DEFAULT_STATUS_TABLE)
        for status, rule in self.statuses.items():
            table[status.strip().lower()] = RemoteStatus(rule.completed, rule.display_status)
        return table

    def ensure_runtime_dirs(self) -> None:
        """Создаёт недостающие служебные каталоги."""
        self.state_db.parent.mkdir(parents=True, exist_ok=True)


__all__ = [
    "AppConfig",
    "CraftSettings",
    "MotionSettings",
    "StatusRule",
    "SyncOptions",
    "ScheduleOptions",
]
