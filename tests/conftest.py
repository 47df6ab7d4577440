from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator

import pytest

from craft_motion_sync.config import AppConfig
from craft_motion_sync.services import MappingStore, ReconciliationService
from tests.fakes import NOW, FakeCraft, FakeMotion, RecordingNotifier, make_config


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return make_config(tmp_path)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[MappingStore]:
    mapping_store = MappingStore(tmp_path / "state.sqlite")
    try:
        yield mapping_store
    finally:
        mapping_store.close()


@pytest.fixture
def craft() -> FakeCraft:
    return FakeCraft()


@pytest.fixture
def motion() -> FakeMotion:
    return FakeMotion()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_service(
    config: AppConfig,
    craft: FakeCraft,
    motion: FakeMotion,
    store: MappingStore,
    notifier: RecordingNotifier,
) -> Callable[..., ReconciliationService]:
    def factory(**overrides: object) -> ReconciliationService:
        service_config = config.model_copy(
            update={"sync": config.sync.model_copy(update=overrides)}
        )
        return ReconciliationService(
            service_config,
            craft,
            motion,
            store,
            notifier,
            clock=lambda: NOW,
        )

    return factory
