"""
End-to-end reconciliation scenarios for ShortcutsManager.
"""
import shutil
from pathlib import Path
from unittest.mock import Mock

import pytest

from grundy.controllers.results import Operation, Outcome
from grundy.controllers.shortcuts_manager import ShortcutsManager
from grundy.settings.launchers import Launcher
from grundy.utils.artwork import generate_app_id, tile_basename
from grundy.utils.vdf import load_shortcuts_vdf

from conftest import make_topology


@pytest.fixture
def manager(app_settings, launchers_settings, known_games, steam_service, settings_dir):
    return ShortcutsManager(app_settings, launchers_settings, known_games, steam_service,
                            ignore_path_prefix=str(settings_dir))


@pytest.fixture
def hades(collection_dir: Path) -> Path:
    game_dir = collection_dir / "Hades"
    game_dir.mkdir()
    (game_dir / "hades.exe").write_text("")
    return game_dir


def _shortcuts(topology, user_id="U1") -> list:
    return list(load_shortcuts_vdf(topology.shortcuts_path(user_id))["shortcuts"].values())


def _summary(results) -> list:
    return [(r.operation, r.outcome) for r in results]


def test_create(manager, topology, hades, known_games):
    results = manager.update([str(hades / "hades.exe")], False, topology)

    assert _summary(results) == [(Operation.CREATE, Outcome.SUCCEEDED)]
    assert results[0].game_name == "Hades"
    assert results[0].steam_user_id == "U1"

    entry = _shortcuts(topology)[-1]
    assert entry["AppName"] == "Hades"
    assert entry["Exe"] == "/usr/bin/steam"
    assert entry["StartDir"] == "/usr/bin"
    assert entry["LaunchOptions"] == f'-applaunch "{hades / "hades.exe"}"'
    assert entry["icon"] == ""
    assert entry["tags"] == {}
    assert known_games.game_dirs_to_names() == {str(hades): "Hades"}


def test_update_picks_up_new_icon(manager, topology, hades):
    manager.update([str(hades / "hades.exe")], False, topology)
    (hades / "icon.png").write_bytes(b"png")

    results = manager.update([str(hades / "icon.png")], False, topology)

    assert _summary(results) == [(Operation.UPDATE, Outcome.SUCCEEDED)]
    shortcuts = _shortcuts(topology)
    assert len(shortcuts) == 1
    assert shortcuts[0]["icon"] == str(hades / "icon.png")


def test_delete_after_executable_removed(manager, topology, hades, known_games):
    manager.update([str(hades / "hades.exe")], False, topology)
    (hades / "hades.exe").unlink()

    results = manager.delete([str(hades / "hades.exe")], False, topology)

    assert _summary(results) == [(Operation.DELETE, Outcome.SUCCEEDED)]
    assert _shortcuts(topology) == []
    assert not known_games.has(str(hades))


def test_name_collision_is_skipped(manager, topology, hades, collection_dir):
    manager.update([str(hades / "hades.exe")], False, topology)
    before = Path(topology.shortcuts_path("U1")).read_bytes()

    hades2 = collection_dir / "Hades2"
    hades2.mkdir()
    (hades2 / "hades.exe").write_text("")
    (hades2 / "game.grundy.ini").write_text("name = Hades\n")

    results = manager.update([str(hades2 / "game.grundy.ini")], False, topology)

    assert _summary(results) == [(Operation.UPDATE, Outcome.SKIPPED)]
    assert "already exists" in results[0].reason
    assert Path(topology.shortcuts_path("U1")).read_bytes() == before


def test_launcher_change_is_applied_by_refresh(manager, topology, hades, launchers_settings):
    manager.update([str(hades)], True, topology)
    launchers_settings.add_or_update(Launcher(name="steam", exe_path="/usr/bin/steam", default_args="-silent"))

    results = manager.refresh_all(topology)

    assert _summary(results) == [(Operation.UPDATE, Outcome.SUCCEEDED)]
    assert _shortcuts(topology)[0]["LaunchOptions"] == f'-silent "{hades / "hades.exe"}"'


def test_two_steam_users(manager, steam_root, hades):
    topology = make_topology(steam_root, "U1", "U2")

    results = manager.update([str(hades)], True, topology)

    assert sorted((r.steam_user_id, r.outcome) for r in results) == \
        [("U1", Outcome.SUCCEEDED), ("U2", Outcome.SUCCEEDED)]
    assert len(_shortcuts(topology, "U1")) == 1
    assert len(_shortcuts(topology, "U2")) == 1


def test_two_steam_users_one_unwritable(manager, steam_root, hades):
    topology = make_topology(steam_root, "U1", "U2")
    (Path(topology.user_ids_to_dir_paths["U2"]) / "config").write_text("not a directory")

    results = manager.update([str(hades)], True, topology)

    by_user = {r.steam_user_id: r.outcome for r in results}
    assert by_user == {"U1": Outcome.SUCCEEDED, "U2": Outcome.FAILED}
    assert len(_shortcuts(topology, "U1")) == 1


def test_refresh_all_is_idempotent(manager, topology, hades, collection_dir):
    celeste = collection_dir / "Celeste"
    celeste.mkdir()
    (celeste / "Celeste.exe").write_text("")
    (celeste / "tile.png").write_bytes(b"png")
    manager.update([str(hades), str(celeste)], True, topology)

    first = manager.refresh_all(topology)
    first_bytes = Path(topology.shortcuts_path("U1")).read_bytes()
    second = manager.refresh_all(topology)

    assert [r.outcome for r in first] == [r.outcome for r in second]
    assert {r.operation for r in second} == {Operation.UPDATE}
    assert Path(topology.shortcuts_path("U1")).read_bytes() == first_bytes


def test_delete_guardrail_makes_no_steam_calls(app_settings, launchers_settings, known_games,
                                               topology, hades):
    steam = Mock()
    manager = ShortcutsManager(app_settings, launchers_settings, known_games, steam)

    results = manager.delete([str(hades)], True, topology)

    assert _summary(results) == [(Operation.DELETE, Outcome.SKIPPED)]
    assert "still exists" in results[0].reason
    steam.delete_shortcut.assert_not_called()
    steam.delete.assert_not_called()


def test_refresh_all_deletes_vanished_directories(manager, topology, hades, known_games):
    manager.update([str(hades)], True, topology)
    (hades / "hades.exe").unlink()
    hades.rmdir()

    results = manager.refresh_all(topology)

    assert _summary(results) == [(Operation.DELETE, Outcome.SUCCEEDED)]
    assert _shortcuts(topology) == []
    assert known_games.game_dirs_to_names() == {}


def test_unknown_collection_is_skipped(manager, topology, tmp_path):
    stray = tmp_path / "elsewhere" / "Game"
    stray.mkdir(parents=True)
    (stray / "game.exe").write_text("")

    results = manager.update([str(stray)], True, topology)

    assert _summary(results) == [(Operation.UPDATE, Outcome.SKIPPED)]
    assert "does not exist" in results[0].reason


def test_unknown_launcher_is_skipped(manager, topology, hades, app_settings, collection_dir):
    app_settings.add_collection(str(collection_dir), "lutris")

    results = manager.update([str(hades)], True, topology)

    assert _summary(results) == [(Operation.UPDATE, Outcome.SKIPPED)]


def test_missing_executable_fails(manager, topology, collection_dir):
    empty = collection_dir / "Empty"
    empty.mkdir()
    (empty / "icon.png").write_bytes(b"png")

    results = manager.update([str(empty / "icon.png")], False, topology)

    assert _summary(results) == [(Operation.UPDATE, Outcome.FAILED)]


def test_missing_manual_icon_fails(manager, topology, hades):
    (hades / "game.grundy.ini").write_text("icon = missing.png\n")

    results = manager.update([str(hades)], True, topology)

    assert _summary(results) == [(Operation.UPDATE, Outcome.FAILED)]
    assert "manual icon" in results[0].reason


def test_paths_under_settings_dir_are_ignored(manager, topology, settings_dir):
    assert manager.update([str(settings_dir / "app.grundy.ini")], False, topology) == []


def test_rename_deletes_old_shortcut(manager, topology, hades, known_games):
    manager.update([str(hades)], True, topology)
    (hades / "game.grundy.ini").write_text("name = Hades Deluxe\n")

    results = manager.update([str(hades / "game.grundy.ini")], False, topology)

    assert (Operation.DELETE, Outcome.SUCCEEDED) in _summary(results)
    assert (Operation.CREATE, Outcome.SUCCEEDED) in _summary(results)
    assert [e["AppName"] for e in _shortcuts(topology)] == ["Hades Deluxe"]
    assert known_games.name_for(str(hades)) == "Hades Deluxe"


def test_cleanup_vanished_games(manager, topology, hades, known_games):
    manager.update([str(hades)], True, topology)
    (hades / "hades.exe").unlink()
    hades.rmdir()

    results = manager.cleanup_vanished_games(topology)

    assert _summary(results) == [(Operation.DELETE, Outcome.SUCCEEDED)]
    assert known_games.game_dirs_to_names() == {}


def test_cleanup_without_topology_keeps_ledger(manager, topology, hades, known_games):
    manager.update([str(hades)], True, topology)
    hades.joinpath("hades.exe").unlink()
    hades.rmdir()

    assert manager.cleanup_vanished_games(None) == []
    assert known_games.has(str(hades))


def test_launcher_exe_change_refreshes_appid_and_tile(manager, topology, hades, launchers_settings):
    (hades / "tile.png").write_bytes(b"png")
    manager.update([str(hades)], True, topology)
    launchers_settings.add_or_update(Launcher(name="steam", exe_path="/opt/steam/steam",
                                              default_args="-applaunch"))

    results = manager.refresh_all(topology)

    assert _summary(results) == [(Operation.UPDATE, Outcome.SUCCEEDED)]
    entry = _shortcuts(topology)[0]
    assert entry["appid"] == generate_app_id("/opt/steam/steam", "Hades")
    assert [p.name for p in Path(topology.grid_dir("U1")).iterdir()] == \
        [tile_basename("/opt/steam/steam", "Hades") + ".png"]


def test_removed_game_directory_with_images_is_only_deleted(manager, topology, hades, known_games):
    (hades / "icon.png").write_bytes(b"png")
    manager.update([str(hades)], True, topology)
    shutil.rmtree(hades)

    results = (manager.update([str(hades / "icon.png")], False, topology)
               + manager.delete([str(hades / "hades.exe")], False, topology))

    assert _summary(results) == [(Operation.DELETE, Outcome.SUCCEEDED)]
    assert _shortcuts(topology) == []
    assert not known_games.has(str(hades))
