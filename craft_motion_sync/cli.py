"""CLI-интерфейс для запуска синхронизации."""
from __future__ import annotations

import json
import logging
import signal
from pathlib import Path
from typing import Optional

import typer

from craft_motion_sync.clients import CraftClient, EntityMapper, MotionClient
from craft_motion_sync.config import AppConfig
from craft_motion_sync.errors import FatalConfigError, SyncError
from craft_motion_sync.models import EntityType
from craft_motion_sync.services import MappingStore, ReconciliationService, SyncScheduler, build_notifier

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

app = typer.Typer(help="Синхронизация задач и проектов Craft ↔ Motion")


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def load_config(config_path: Path, *, dry_run_override: Optional[bool] = None) -> AppConfig:
    try:
        config = AppConfig.load(config_path)
    except FatalConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    if dry_run_override is not None:
        config.sync.dry_run = dry_run_override
    config.ensure_runtime_dirs()
    return config


def build_clients(config: AppConfig) -> tuple[CraftClient, MotionClient]:
    mapper = EntityMapper(
        status_table=config.status_table(),
        default_duration=config.sync.default_duration_minutes,
    )
    return CraftClient(config.craft, mapper=mapper), MotionClient(config.motion, mapper=mapper)


def build_service(config: AppConfig) -> tuple[ReconciliationService, MappingStore]:
    craft, motion = build_clients(config)
    mapping_store = MappingStore(config.state_db)
    notifier = build_notifier(craft, config.craft.notifications_collection_id, config.schedule.timezone)
    service = ReconciliationService(config, craft, motion, mapping_store, notifier)
    return service, mapping_store


@app.command("run-once")
def run_once(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="Путь к YAML конфигурации"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True, help="Уровень логирования"),
    dry_run: Optional[bool] = typer.Option(
        None,
        "--dry-run/--no-dry-run",
        help="Не писать изменения (по умолчанию берётся из конфигурации)",
    ),
) -> None:
    """Один полный проход синхронизации."""
    configure_logging(verbosity)
    config = load_config(config_path, dry_run_override=dry_run)
    service, store = build_service(config)
    try:
        result = service.run_sync()
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    finally:
        store.close()
    if result.errors:
        raise typer.Exit(code=1)


@app.command("serve")
def serve(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    verbosity: int = typer.Option(1, "--verbose", "-v", count=True),
    dry_run: Optional[bool] = typer.Option(None, "--dry-run/--no-dry-run"),
) -> None:
    """Фоновая синхронизация по расписанию до SIGINT/SIGTERM."""
    configure_logging(verbosity)
    config = load_config(config_path, dry_run_override=dry_run)
    service, store = build_service(config)
    scheduler = SyncScheduler(service.run_sync, config.schedule)

    def _shutdown(signum: int, _frame: object) -> None:
        logging.getLogger(__name__).info("Получен сигнал %s, остановка", signal.Signals(signum).name)
        scheduler.stop()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)
    try:
        scheduler.start()
    finally:
        store.close()


@app.command("verify")
def verify(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True),
) -> None:
    """Проверяет соединение с API и базу соответствий."""
    configure_logging(verbosity)
    config = load_config(config_path)
    craft, motion = build_clients(config)
    store = MappingStore(config.state_db)
    try:
        documents = craft.list_entities(config.craft.projects_folder_id, EntityType.PROJECT)
        projects = motion.list_entities(config.motion.projects_workspace_id, EntityType.PROJECT)
        entries = store.read_all()
    except SyncError as exc:
        typer.echo(f"Ошибка проверки: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        store.close()
    typer.echo(
        f"Соединение успешно: документов проектов {len(documents)}, "
        f"проектов в Motion {len(projects)}, соответствий {len(entries)}"
    )


@app.command("mappings")
def mappings(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    entity_type: Optional[EntityType] = typer.Option(None, "--type", help="Фильтр по типу сущности"),
) -> None:
    """Выводит сохранённые соответствия в JSON."""
    config = load_config(config_path)
    store = MappingStore(config.state_db)
    try:
        entries = store.read_all()
    finally:
        store.close()
    rows = [
        {
            "type": entry.entity_type.value,
            "category": entry.category,
            "title": entry.title,
            "craft_id": entry.local_id,
            "motion_id": entry.remote_id,
            "last_synced_at": entry.last_synced_at.isoformat() if entry.last_synced_at else None,
        }
        for entry in entries
        if entity_type is None or entry.entity_type is entity_type
    ]
    typer.echo(json.dumps(rows, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    app()
