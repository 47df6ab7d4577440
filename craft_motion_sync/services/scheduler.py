"""Планировщик проходов синхронизации."""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from dateutil import tz

from craft_motion_sync.config import ScheduleOptions
from craft_motion_sync.models import SyncRunResult

LOGGER = logging.getLogger(__name__)


class SyncScheduler:
    """Запускает проходы по кругу: часто в активные часы, редко вне их.

    Одновременно выполняется не больше одного прохода; запуск во время
    работы предыдущего отклоняется. ``stop()`` будит ожидающий цикл сразу,
    а идущий проход доводится до конца.
    """

    def __init__(
        self,
        run_sync: Callable[[], SyncRunResult],
        options: ScheduleOptions,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._run_sync = run_sync
        self._options = options
        self._tz = tz.gettz(options.timezone)
        if self._tz is None:
            LOGGER.warning("Неизвестный часовой пояс %s, используется UTC", options.timezone)
            self._tz = tz.UTC
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def is_active_hours(self, now: Optional[datetime] = None) -> bool:
        moment = (now or self._clock()).astimezone(self._tz)
        return self._options.active_start_hour <= moment.hour < self._options.active_end_hour

    def next_interval(self, now: Optional[datetime] = None) -> timedelta:
        if self.is_active_hours(now):
            return timedelta(minutes=self._options.active_interval_minutes)
        return timedelta(minutes=self._options.idle_interval_minutes)

    def run_once(self) -> Optional[SyncRunResult]:
        """Выполняет проход, если другой проход не идёт; иначе возвращает None."""
        with self._lock:
            if self._in_progress:
                LOGGER.warning("Проход уже выполняется, запуск пропущен")
                return None
            self._in_progress = True
        LOGGER.info("Проход запущен в %s", self._clock().isoformat())
        try:
            return self._run_sync()
        except Exception:  # noqa: BLE001 - планировщик продолжает работу после сбоя прохода
            LOGGER.exception("Непредвиденная ошибка прохода")
            return None
        finally:
            with self._lock:
                self._in_progress = False

    def start(self) -> None:
        """Блокирующий цикл: проход сразу, затем по расписанию до вызова stop()."""
        LOGGER.info(
            "Планировщик запущен: активные часы %02d:00-%02d:00 (%s), интервалы %s / %s мин",
            self._options.active_start_hour,
            self._options.active_end_hour,
            self._options.timezone,
            self._options.active_interval_minutes,
            self._options.idle_interval_minutes,
        )
        self._stop_event.clear()
        while not self._stop_event.is_set():
            self.run_once()
            if self._stop_event.is_set():
                break
            interval = self.next_interval()
            LOGGER.info("Следующий проход через %s мин", int(interval.total_seconds() // 60))
            self._stop_event.wait(interval.total_seconds())
        LOGGER.info("Планировщик остановлен")

    def stop(self) -> None:
        self._stop_event.set()


__all__ = ["SyncScheduler"]
