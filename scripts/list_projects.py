"""Утилита для получения списков проектов Craft и Motion."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, List, Tuple

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from craft_motion_sync.clients import CraftClient, MotionClient
from craft_motion_sync.config import AppConfig
from craft_motion_sync.models import EntityType


def _format_table(title: str, rows: Iterable[Tuple[str, str]]) -> str:
    rows = list(rows)
    if not rows:
        return f"{title}: нет данных"
    id_width = max(len(r[0]) for r in rows)
    name_width = max(len(r[1]) for r in rows)
    header = (
        f"{title}:\n"
        f"  {'ID'.ljust(id_width)}  |  {'Name'.ljust(name_width)}\n"
        f"  {'-' * id_width}--+-{'-' * name_width}"
    )
    body = "\n".join(f"  {proj_id.ljust(id_width)}  |  {name}" for proj_id, name in rows)
    return f"{header}\n{body}"


def collect_projects(client, category: str) -> List[Tuple[str, str]]:
    return [(entity.id, entity.title) for entity in client.list_entities(category, EntityType.PROJECT)]


def main() -> None:
    parser = argparse.ArgumentParser(description="Выводит списки проектов из Craft и/или Motion")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Путь к YAML конфигурации",
    )
    parser.add_argument(
        "--source",
        choices=["craft", "motion", "both"],
        default="both",
        help="Какие проекты вывести",
    )
    parser.add_argument(
        "--areas",
        action="store_true",
        help="Вывести документы сфер жизни вместо проектов",
    )
    args = parser.parse_args()

    config = AppConfig.load(args.config)

    outputs: list[str] = []
    if args.source in ("craft", "both"):
        folder = config.craft.areas_folder_id if args.areas else config.craft.projects_folder_id
        if folder:
            projects = collect_projects(CraftClient(config.craft), folder)
            outputs.append(_format_table("Craft documents", projects))

    if args.source in ("motion", "both"):
        workspace = config.motion.areas_workspace_id if args.areas else config.motion.projects_workspace_id
        if workspace:
            projects = collect_projects(MotionClient(config.motion), workspace)
            outputs.append(_format_table("Motion projects", projects))

    print("\n\n".join(outputs))


if __name__ == "__main__":
    main()
