"""Хранилище соответствий идентификаторов."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from dateutil import parser

from craft_motion_sync.errors import SyncError
from craft_motion_sync.models import EntityType, MappingEntry, MappingKey

LOGGER = logging.getLogger(__name__)


class MappingStore:
    """Обёртка над SQLite для хранения соответствий Craft ↔ Motion.

    Одна строка на соответствие, ключ ``(entity_type, local_id)``; пара
    ``(entity_type, remote_id)`` тоже уникальна.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._conn = sqlite3.connect(self._path)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        self._conn.close()

    # region schema
    def _init_schema(self) -> None:
        with closing(self._conn.cursor()) as cursor:
            cursor.executescript(
                """
                CREATE TABLE IF NOT EXISTS mappings (
                    entity_type TEXT NOT NULL,
                    local_id TEXT NOT NULL,
                    remote_id TEXT NOT NULL,
                    category TEXT NOT NULL DEFAULT '',
                    title TEXT NOT NULL DEFAULT '',
                    last_synced_at TEXT NOT NULL,
                    local_updated_at TEXT,
                    remote_updated_at TEXT,
                    PRIMARY KEY (entity_type, local_id),
                    UNIQUE (entity_type, remote_id)
                );
                """
            )
            self._conn.commit()

    # endregion

    # region helpers
    @staticmethod
    def _dump(moment: Optional[datetime]) -> Optional[str]:
        return moment.isoformat() if moment else None

    @staticmethod
    def _parse(value: Optional[str]) -> Optional[datetime]:
        return parser.isoparse(value) if value else None

    def _row_to_entry(self, row: sqlite3.Row) -> MappingEntry:
        return MappingEntry(
            local_id=row["local_id"],
            remote_id=row["remote_id"],
            entity_type=EntityType(row["entity_type"]),
            category=row["category"],
            title=row["title"],
            last_synced_at=self._parse(row["last_synced_at"]),
            local_updated_at=self._parse(row["local_updated_at"]),
            remote_updated_at=self._parse(row["remote_updated_at"]),
        )

    # endregion

    # region persistence collaborator
    def read_all(self) -> List[MappingEntry]:
        rows = self._conn.execute(
            "SELECT * FROM mappings ORDER BY entity_type, category, local_id"
        ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def write_one(self, entry: MappingEntry) -> None:
        self._conn.execute(
            "INSERT INTO mappings (entity_type, local_id, remote_id, category, title,"
            " last_synced_at, local_updated_at, remote_updated_at)\n"
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)\n"
            "ON CONFLICT(entity_type, local_id) DO UPDATE SET"
            " remote_id = excluded.remote_id, category = excluded.category, title = excluded.title,"
            " last_synced_at = excluded.last_synced_at, local_updated_at = excluded.local_updated_at,"
            " remote_updated_at = excluded.remote_updated_at",
            (
                entry.entity_type.value,
                entry.local_id,
                entry.remote_id,
                entry.category,
                entry.title,
                self._dump(entry.last_synced_at),
                self._dump(entry.local_updated_at),
                self._dump(entry.remote_updated_at),
            ),
        )
        self._conn.commit()

    # endregion

    # region store contract
    def load(self) -> Dict[MappingKey, MappingEntry]:
        """Загружает все соответствия; при ошибке чтения возвращает пустой набор."""
        try:
            entries = self.read_all()
        except (sqlite3.Error, ValueError, SyncError) as exc:
            LOGGER.error("Не удалось загрузить соответствия, проход начнётся с пустого состояния: %s", exc)
            return {}
        LOGGER.info("Загружено соответствий: %s", len(entries))
        return {entry.key: entry for entry in entries}

    def upsert(self, entry: MappingEntry) -> None:
        self.write_one(entry)

    def get(self, entity_type: EntityType, local_id: str) -> Optional[MappingEntry]:
        row = self._conn.execute(
            "SELECT * FROM mappings WHERE entity_type = ? AND local_id = ?",
            (entity_type.value, local_id),
        ).fetchone()
        return self._row_to_entry(row) if row else None

    # endregion


__all__ = ["MappingStore"]
