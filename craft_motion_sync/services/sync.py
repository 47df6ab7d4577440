"""Бизнес-логика синхронизации Craft ↔ Motion."""
from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Mapping, Optional

from dateutil import tz
from tqdm import tqdm

from craft_motion_sync.clients import INBOX, TaskServiceClient
from craft_motion_sync.config import AppConfig
from craft_motion_sync.errors import NotFoundError, TransientIOError, ValidationError
from craft_motion_sync.models import (
    EntityFields,
    EntityType,
    MappingEntry,
    SyncEntity,
    SyncPhase,
    SyncRunResult,
)
from craft_motion_sync.services.conflict import ChangeType, Side, detect_change, resolve
from craft_motion_sync.services.mapping_store import MappingStore
from craft_motion_sync.services.matcher import match
from craft_motion_sync.services.notifier import CompositeNotifier, LogNotifier, Notifier
from craft_motion_sync.services.state import SyncState
from craft_motion_sync.translators import (
    is_closed_local,
    is_closed_remote,
    normalize_local_status,
    remote_status_to_local,
)

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TaskScope:
    """Куда относятся задачи одной группы и где создавать их двойников."""

    category: str
    local_container: str
    remote_container: str
    remote_project_id: Optional[str] = None
    area_label: Optional[str] = None
    name: str = ""


class ReconciliationService:
    """Оркестратор прохода синхронизации."""

    def __init__(
        self,
        config: AppConfig,
        craft_client: TaskServiceClient,
        motion_client: TaskServiceClient,
        mapping_store: MappingStore,
        notifier: Optional[Notifier] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._craft = craft_client
        self._motion = motion_client
        self._store = mapping_store
        self._notifier = notifier or CompositeNotifier([LogNotifier()])
        self._status_table = config.status_table()
        self._clock = clock

    @property
    def _dry_run(self) -> bool:
        return self._config.sync.dry_run

    # region public API
    def run_sync(self) -> SyncRunResult:
        """Полный проход: загрузка → проекты → задачи → сферы → сохранение."""
        started = time.monotonic()
        result = SyncRunResult(started_at=self._clock())
        LOGGER.info("=== Старт прохода синхронизации ===")
        try:
            state = self._load(result)
            state = self._reconcile_projects(state)
            state = self._reconcile_tasks(state)
            state = self._reconcile_areas(state)
            state = self._persist(state)
            state.enter(SyncPhase.DONE)
        except Exception as exc:  # noqa: BLE001 - проход завершается отчётом, а не падением процесса
            LOGGER.exception("Проход прерван на фазе %s", result.phase.value)
            result.errors.append(f"{result.phase.value}: {exc}")
            result.phase = SyncPhase.FAILED
        result.duration = time.monotonic() - started
        self._report(result)
        return result

    # endregion

    # region phases
    def _load(self, result: SyncRunResult) -> SyncState:
        mappings = self._store.load()
        return SyncState(mappings=dict(mappings), result=result)

    def _reconcile_projects(self, state: SyncState) -> SyncState:
        state.enter(SyncPhase.PROJECTS)
        craft_cfg, motion_cfg = self._config.craft, self._config.motion
        category = self._config.sync.projects_category
        local = self._list(state, self._craft, craft_cfg.projects_folder_id, EntityType.PROJECT)
        remote = self._list(state, self._motion, motion_cfg.projects_workspace_id, EntityType.PROJECT)
        LOGGER.info("Проекты: %s в Craft, %s в Motion", len(local), len(remote))

        outcome = match(local, remote, state.mappings, EntityType.PROJECT)
        for pair in outcome.matched:
            self._guarded(state, pair.local.title, self._link, state, EntityType.PROJECT, category, pair.local, pair.remote)
        for entity in outcome.unmatched:
            self._guarded(state, entity.title, self._create_remote_project, state, entity, category)

        state.active_projects = [
            entity.id for entity in local if state.by_local(EntityType.PROJECT, entity.id) is not None
        ]
        return state

    def _reconcile_tasks(self, state: SyncState) -> SyncState:
        state.enter(SyncPhase.TASKS)
        if not state.active_projects:
            LOGGER.info("Нет связанных проектов, задачи проектов не синхронизируются")
            return state
        workspace_id = self._config.motion.projects_workspace_id
        remote_tasks = self._list(state, self._motion, workspace_id, EntityType.TASK)
        pool = {task.id: task for task in remote_tasks}
        by_project: Dict[str, List[SyncEntity]] = {}
        for task in remote_tasks:
            if task.parent_id:
                by_project.setdefault(task.parent_id, []).append(task)

        for local_id in tqdm(state.active_projects, desc="Проекты", disable=not self._config.sync.show_progress):
            entry = state.by_local(EntityType.PROJECT, local_id)
            if entry is None:
                continue
            try:
                local_tasks = self._list(state, self._craft, entry.local_id, EntityType.TASK)
            except NotFoundError:
                LOGGER.warning("Документ проекта %s не найден в Craft, пропуск", entry.local_id)
                state.result.skipped += 1
                continue
            scope = TaskScope(
                category=entry.category,
                local_container=entry.local_id,
                remote_container=workspace_id,
                remote_project_id=entry.remote_id,
                name=entry.title,
            )
            self._reconcile_scope(state, scope, local_tasks, by_project.get(entry.remote_id, []), pool)
        return state

    def _reconcile_areas(self, state: SyncState) -> SyncState:
        state.enter(SyncPhase.AREAS)
        craft_cfg, motion_cfg = self._config.craft, self._config.motion
        if not craft_cfg.areas_folder_id or not motion_cfg.areas_workspace_id:
            LOGGER.info("Сферы жизни не настроены, фаза пропущена")
            return state
        category = self._config.sync.areas_category
        workspace_id = motion_cfg.areas_workspace_id

        documents = self._list(state, self._craft, craft_cfg.areas_folder_id, EntityType.PROJECT)
        areas = [doc for doc in documents if doc.id != craft_cfg.inbox_document_id]
        titles = {area.title for area in areas}
        remote_tasks = self._list(state, self._motion, workspace_id, EntityType.TASK)
        pool = {task.id: task for task in remote_tasks}
        buckets: Dict[str, List[SyncEntity]] = {title: [] for title in titles}
        unlabeled: List[SyncEntity] = []
        for task in remote_tasks:
            label = next((name for name in task.labels if name in titles), None)
            if label is None:
                unlabeled.append(task)
            else:
                buckets[label].append(task)
        LOGGER.info("Сферы: %s документов, %s задач в Motion", len(areas), len(remote_tasks))

        for area in areas:
            scope = TaskScope(
                category=category,
                local_container=area.id,
                remote_container=workspace_id,
                area_label=area.title,
                name=area.title,
            )
            local_tasks = self._list(state, self._craft, area.id, EntityType.TASK)
            self._reconcile_scope(state, scope, local_tasks, buckets[area.title], pool)

        inbox = craft_cfg.inbox_document_id or INBOX
        scope = TaskScope(category=category, local_container=inbox, remote_container=workspace_id, name="Inbox")
        self._reconcile_scope(state, scope, self._list(state, self._craft, inbox, EntityType.TASK), unlabeled, pool)
        self._reconcile_detached(state, category, workspace_id, pool)
        return state

    def _persist(self, state: SyncState) -> SyncState:
        state.enter(SyncPhase.PERSIST)
        for entry in state.touched.values():
            try:
                self._store.upsert(entry)
            except sqlite3.Error as exc:
                LOGGER.error("Не удалось сохранить соответствие %s: %s", entry.local_id, exc)
                state.result.errors.append(f"persist {entry.entity_type.value} {entry.local_id}: {exc}")
        LOGGER.info("Сохранено соответствий: %s", len(state.touched))
        return state

    # endregion

    # region task reconciliation
    def _reconcile_scope(
        self,
        state: SyncState,
        scope: TaskScope,
        local_tasks: List[SyncEntity],
        remote_tasks: List[SyncEntity],
        pool: Mapping[str, SyncEntity],
    ) -> None:
        state.seen.update(task.id for task in local_tasks)
        local_tasks = [task for task in local_tasks if not task.recurring]
        remote_tasks = [task for task in remote_tasks if not task.recurring]
        LOGGER.debug(
            "[%s] задач в Craft: %s, в Motion: %s", scope.name, len(local_tasks), len(remote_tasks)
        )

        for task in local_tasks:
            entry = state.by_local(EntityType.TASK, task.id)
            if entry is not None:
                self._guarded(state, task.title, self._update_pair, state, scope, entry, task, pool.get(entry.remote_id))

        outcome = match(local_tasks, remote_tasks, state.mappings, EntityType.TASK)
        for pair in outcome.matched:
            self._guarded(state, pair.local.title, self._link_task, state, scope, pair.local, pair.remote)
        for task in outcome.unmatched:
            self._guarded(state, task.title, self._create_remote_task, state, scope, task)
        for task in outcome.unmatched_remote:
            self._guarded(state, task.title, self._create_local_task, state, scope, task)

    def _reconcile_detached(
        self,
        state: SyncState,
        category: str,
        workspace_id: str,
        pool: Mapping[str, SyncEntity],
    ) -> None:
        """Задачи сфер, которых не оказалось ни в одной сфере, ни в инбоксе, ни в проектах."""
        scope = TaskScope(category=category, local_container="", remote_container=workspace_id, name="Вне сфер")
        for entry in state.entries(EntityType.TASK, category):
            if entry.local_id not in state.seen:
                self._guarded(state, entry.title, self._update_detached, state, scope, entry, pool)

    def _update_detached(
        self,
        state: SyncState,
        scope: TaskScope,
        entry: MappingEntry,
        pool: Mapping[str, SyncEntity],
    ) -> None:
        local = self._craft.get_entity(EntityType.TASK, entry.local_id)
        state.seen.add(local.id)
        if not local.recurring:
            self._update_pair(state, scope, entry, local, pool.get(entry.remote_id))

    def _update_pair(
        self,
        state: SyncState,
        scope: TaskScope,
        entry: MappingEntry,
        local: SyncEntity,
        remote: Optional[SyncEntity],
        *,
        count_skip: bool = True,
    ) -> None:
        if remote is None:
            remote = self._motion.get_entity(EntityType.TASK, entry.remote_id)
        local_fields = self._local_fields(local)
        remote_fields = self._remote_fields(remote)
        push_local = self._differs(local_fields, remote_fields)
        push_remote = self._differs(remote_fields, local_fields)
        labels = self._target_labels(scope, entry, remote)
        winner = Side.LOCAL

        if push_local or push_remote:
            change = detect_change(entry, local, remote)
            if change is ChangeType.LOCAL_ONLY:
                winner = Side.LOCAL
            elif change is ChangeType.REMOTE_ONLY:
                winner = Side.REMOTE
            else:
                winner = resolve(local.updated_at, remote.updated_at)
                if change is ChangeType.BOTH_CHANGED:
                    state.result.conflicts += 1
                    LOGGER.info("Конфликт «%s»: побеждает %s", local.title, winner.value)

        write_remote = (winner is Side.LOCAL and push_local) or labels is not None
        write_local = winner is Side.REMOTE and push_remote
        if not (write_remote or write_local):
            if not self._refresh(state, entry, local, remote) and count_skip:
                state.result.skipped += 1
            return
        if self._dry_run:
            LOGGER.info("[DRY-RUN] Обновление «%s» (%s)", local.title, "Craft" if write_local else "Motion")
            state.result.skipped += 1
            return

        if write_remote:
            fields = local_fields if winner is Side.LOCAL else remote_fields
            if labels is not None:
                fields = replace(fields, labels=labels)
            LOGGER.debug("Обновление задачи Motion %s ← Craft %s", remote.id, local.id)
            self._motion.update_entity(EntityType.TASK, remote.id, fields)
        if write_local:
            LOGGER.debug("Обновление задачи Craft %s ← Motion %s", local.id, remote.id)
            self._craft.update_entity(EntityType.TASK, local.id, remote_fields)
        state.result.updated += 1
        # базой для записанной стороны становится её отметка времени после записи
        if write_remote:
            remote = self._motion.get_entity(EntityType.TASK, remote.id)
        if write_local:
            local = self._craft.get_entity(EntityType.TASK, local.id)
        self._refresh(state, entry, local, remote, force=True)

    def _link_task(self, state: SyncState, scope: TaskScope, local: SyncEntity, remote: SyncEntity) -> None:
        entry = self._link(state, EntityType.TASK, scope.category, local, remote)
        if entry is not None:
            self._update_pair(state, scope, entry, local, remote, count_skip=False)

    def _create_remote_task(self, state: SyncState, scope: TaskScope, local: SyncEntity) -> None:
        if not self._config.sync.include_closed and is_closed_local(local.status, self._status_table):
            LOGGER.debug("Закрытая задача «%s» не переносится в Motion", local.title)
            return
        self._validate(local)
        fields = replace(self._local_fields(local), parent_id=scope.remote_project_id)
        if scope.area_label is not None:
            fields.labels = [scope.area_label]
        if fields.start_date is None:
            fields.start_date = self._today()
        if self._dry_run:
            LOGGER.info("[DRY-RUN] Создание задачи «%s» в Motion", local.title)
            state.result.skipped += 1
            return
        created = self._motion.create_entity(EntityType.TASK, scope.remote_container, fields)
        LOGGER.info("Создана задача Motion «%s» (%s)", local.title, created.id)
        if local.start_date is None:
            # подставленная дата начала дублируется в Craft
            aligned = replace(self._local_fields(local), start_date=fields.start_date)
            self._craft.update_entity(EntityType.TASK, local.id, aligned)
            local = self._craft.get_entity(EntityType.TASK, local.id)
        self._commit(state, self._entry(EntityType.TASK, scope.category, local, created))
        state.result.created += 1

    def _create_local_task(self, state: SyncState, scope: TaskScope, remote: SyncEntity) -> None:
        if not self._config.sync.include_closed and is_closed_remote(remote, self._status_table):
            LOGGER.debug("Закрытая задача Motion «%s» не переносится в Craft", remote.title)
            return
        self._validate(remote)
        if self._dry_run:
            LOGGER.info("[DRY-RUN] Создание задачи «%s» в Craft (%s)", remote.title, scope.name)
            state.result.skipped += 1
            return
        fields = self._remote_fields(remote)
        if fields.start_date is None:
            fields.start_date = self._today()
        created = self._craft.create_entity(EntityType.TASK, scope.local_container, fields)
        LOGGER.info("Создана задача Craft «%s» (%s)", remote.title, created.id)
        if remote.start_date is None:
            # подставленная дата начала дублируется в Motion
            aligned = replace(self._remote_fields(remote), start_date=fields.start_date)
            self._motion.update_entity(EntityType.TASK, remote.id, aligned)
            remote = self._motion.get_entity(EntityType.TASK, remote.id)
        self._commit(state, self._entry(EntityType.TASK, scope.category, created, remote))
        state.result.created += 1

    # endregion

    # region projects
    def _create_remote_project(self, state: SyncState, local: SyncEntity, category: str) -> None:
        self._validate(local)
        if self._dry_run:
            LOGGER.info("[DRY-RUN] Создание проекта «%s» в Motion", local.title)
            state.result.skipped += 1
            return
        created = self._motion.create_entity(
            EntityType.PROJECT, self._config.motion.projects_workspace_id, EntityFields(title=local.title)
        )
        LOGGER.info("Создан проект Motion «%s» (%s)", local.title, created.id)
        self._commit(state, self._entry(EntityType.PROJECT, category, local, created))
        state.result.created += 1

    # endregion

    # region helpers
    def _link(
        self,
        state: SyncState,
        entity_type: EntityType,
        category: str,
        local: SyncEntity,
        remote: SyncEntity,
    ) -> Optional[MappingEntry]:
        if self._dry_run:
            LOGGER.info("[DRY-RUN] Связь «%s» ↔ %s", local.title, remote.id)
            state.result.skipped += 1
            return None
        entry = self._entry(entity_type, category, local, remote)
        state.record(entry)
        state.result.linked += 1
        LOGGER.info("Связаны %s «%s»: %s ↔ %s", entity_type.value, local.title, local.id, remote.id)
        return entry

    def _entry(self, entity_type: EntityType, category: str, local: SyncEntity, remote: SyncEntity) -> MappingEntry:
        return MappingEntry(
            local_id=local.id,
            remote_id=remote.id,
            entity_type=entity_type,
            category=category,
            title=local.title,
            last_synced_at=self._clock(),
            local_updated_at=local.updated_at,
            remote_updated_at=remote.updated_at,
        )

    def _commit(self, state: SyncState, entry: MappingEntry) -> None:
        # соответствие созданного двойника пишется сразу, чтобы прерванный проход не создал его повторно
        state.record(entry)
        state.seen.add(entry.local_id)
        self._store.upsert(entry)

    @staticmethod
    def _list(
        state: SyncState,
        client: TaskServiceClient,
        category: str,
        entity_type: EntityType,
    ) -> List[SyncEntity]:
        """Список сущностей; отброшенные клиентом некорректные записи попадают в ошибки прохода."""

        def reject(exc: ValidationError) -> None:
            state.result.errors.append(f"{state.phase.value}: {exc}")

        return client.list_entities(category, entity_type, on_invalid=reject)

    def _today(self) -> date:
        zone = tz.gettz(self._config.schedule.timezone) or tz.UTC
        return self._clock().astimezone(zone).date()

    def _target_labels(self, scope: TaskScope, entry: MappingEntry, remote: SyncEntity) -> Optional[List[str]]:
        """Метки, которые нужно записать задаче Motion; None, если текущие верны.

        Задача сферы несёт метку своей сферы. Задача категории сфер, оказавшаяся
        вне сфер (инбокс, проект, другой документ), теряет метки.
        """
        if scope.area_label is not None:
            return None if scope.area_label in remote.labels else [scope.area_label]
        if entry.category == self._config.sync.areas_category and remote.labels:
            return []
        return None

    def _refresh(
        self,
        state: SyncState,
        entry: MappingEntry,
        local: SyncEntity,
        remote: SyncEntity,
        *,
        force: bool = False,
    ) -> bool:
        """Обновляет отметки времени соответствия; возвращает False, если обновлять нечего."""
        unchanged = (
            entry.title == local.title
            and entry.local_updated_at == local.updated_at
            and entry.remote_updated_at == remote.updated_at
        )
        if unchanged and not force:
            return False
        if self._dry_run:
            return True
        state.record(
            replace(
                entry,
                title=local.title,
                last_synced_at=self._clock(),
                local_updated_at=local.updated_at,
                remote_updated_at=remote.updated_at,
            )
        )
        return True

    def _local_fields(self, entity: SyncEntity) -> EntityFields:
        return EntityFields(
            title=entity.title,
            status=normalize_local_status(entity.status, self._status_table),
            start_date=entity.start_date,
            due_date=entity.due_date,
        )

    def _remote_fields(self, entity: SyncEntity) -> EntityFields:
        return EntityFields(
            title=entity.title,
            status=remote_status_to_local(entity, self._status_table),
            start_date=entity.start_date,
            due_date=entity.due_date,
        )

    @staticmethod
    def _differs(source: EntityFields, target: EntityFields) -> bool:
        """Есть ли в source значения, которых нет в target; пустые даты не затирают заполненные."""
        return (
            source.title != target.title
            or source.status != target.status
            or (source.start_date is not None and source.start_date != target.start_date)
            or (source.due_date is not None and source.due_date != target.due_date)
        )

    @staticmethod
    def _validate(entity: SyncEntity) -> None:
        if not entity.title:
            raise ValidationError(f"Сущность {entity.id} без названия")

    @staticmethod
    def _guarded(state: SyncState, title: str, action: Callable[..., object], *args) -> None:
        try:
            action(*args)
        except NotFoundError as exc:
            LOGGER.info("Пропуск «%s»: %s", title, exc)
            state.result.skipped += 1
        except (ValidationError, TransientIOError) as exc:
            LOGGER.warning("Не удалось синхронизировать «%s»: %s", title, exc)
            state.result.errors.append(f"{state.phase.value}: {title} - {exc}")

    def _report(self, result: SyncRunResult) -> None:
        try:
            self._notifier.report(result)
        except Exception:  # noqa: BLE001 - сбой уведомления не влияет на проход
            LOGGER.exception("Не удалось отправить отчёт о синхронизации")

    # endregion


__all__ = ["ReconciliationService", "TaskScope"]
