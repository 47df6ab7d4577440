from __future__ import annotations

from pathlib import Path

import pytest

from craft_motion_sync.config import AppConfig
from craft_motion_sync.errors import FatalConfigError
from craft_motion_sync.translators import RemoteStatus

MINIMAL = """
craft:
  api_token: secret
  space_id: space-1
  projects_folder_id: folder-projects
motion:
  api_key: key
  projects_workspace_id: ws-life
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_minimal_config_gets_defaults(tmp_path: Path) -> None:
    config = AppConfig.load(_write(tmp_path, MINIMAL))

    assert config.craft.base_url == "https://api.craft.do/v1"
    assert config.motion.base_url == "https://api.usemotion.com/v1"
    assert config.craft.areas_folder_id is None
    assert config.sync.dry_run is False
    assert config.sync.include_closed is False
    assert config.sync.projects_category == "Life"
    assert config.sync.areas_category == "Private"
    assert config.schedule.timezone == "Asia/Bangkok"
    assert (config.schedule.active_start_hour, config.schedule.active_end_hour) == (6, 23)
    assert (config.schedule.active_interval_minutes, config.schedule.idle_interval_minutes) == (15, 120)
    assert config.state_db == Path(".sync_state.sqlite")


def test_status_overrides_extend_default_table(tmp_path: Path) -> None:
    text = MINIMAL + """
statuses:
  Waiting:
    display_status: Blocked
  done:
    completed: true
    display_status: Finished
"""
    table = AppConfig.load(_write(tmp_path, text)).status_table()

    assert table["waiting"] == RemoteStatus(False, "Blocked")
    assert table["done"] == RemoteStatus(True, "Finished")
    assert table["todo"] == RemoteStatus(False, "Todo")


def test_missing_file_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(FatalConfigError):
        AppConfig.load(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "",
        "- just\n- a list\n",
        "craft: [unclosed\n",
        "craft:\n  api_token: x\nmotion:\n  api_key: y\n",
        MINIMAL + "schedule:\n  active_start_hour: 20\n  active_end_hour: 8\n",
    ],
)
def test_invalid_config_is_fatal(tmp_path: Path, text: str) -> None:
    with pytest.raises(FatalConfigError):
        AppConfig.load(_write(tmp_path, text))


def test_ensure_runtime_dirs_creates_state_parent(tmp_path: Path) -> None:
    text = MINIMAL + f"state_db: {tmp_path / 'var' / 'state.sqlite'}\n"
    config = AppConfig.load(_write(tmp_path, text))

    config.ensure_runtime_dirs()

    assert (tmp_path / "var").is_dir()
