from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from grundy.services.steam_service import SteamService  # noqa: E402
from grundy.settings.app import AppSettings  # noqa: E402
from grundy.settings.known_games import KnownGamesSettings  # noqa: E402
from grundy.settings.launchers import Launcher, LaunchersSettings  # noqa: E402
from grundy.utils.steam_user import SteamTopology  # noqa: E402


def make_topology(steam_root: Path, *user_ids: str) -> SteamTopology:
    users = {}
    for user_id in user_ids:
        user_dir = steam_root / "userdata" / user_id
        user_dir.mkdir(parents=True, exist_ok=True)
        users[user_id] = str(user_dir)
    return SteamTopology(steam_root_path=str(steam_root), user_ids_to_dir_paths=users)


@pytest.fixture
def steam_root(tmp_path: Path) -> Path:
    root = tmp_path / "Steam"
    (root / "userdata").mkdir(parents=True)
    return root


@pytest.fixture
def topology(steam_root: Path) -> SteamTopology:
    return make_topology(steam_root, "U1")


@pytest.fixture
def collection_dir(tmp_path: Path) -> Path:
    path = tmp_path / "g"
    path.mkdir()
    return path


@pytest.fixture
def settings_dir(tmp_path: Path) -> Path:
    path = tmp_path / "config"
    path.mkdir()
    return path


@pytest.fixture
def app_settings(collection_dir: Path) -> AppSettings:
    app = AppSettings()
    app.add_collection(str(collection_dir), "steam")
    return app


@pytest.fixture
def launchers_settings() -> LaunchersSettings:
    launchers = LaunchersSettings()
    launchers.add_or_update(Launcher(name="steam", exe_path="/usr/bin/steam", default_args="-applaunch"))
    return launchers


@pytest.fixture
def known_games(settings_dir: Path) -> KnownGamesSettings:
    known, _ = KnownGamesSettings.load_or_create(str(settings_dir / ".internal"))
    return known


@pytest.fixture
def steam_service(steam_root: Path) -> SteamService:
    return SteamService(steam_root=str(steam_root))
