"""
Tests for DirectoryWatcher scanning and change publication.
"""
import asyncio
from pathlib import Path

import pytest

from grundy.controllers.directory_watcher import Change, DirectoryWatcher, ScanMode, WatcherConfig
from grundy.errors import WatcherSetupFailed


def _watcher(root: Path, scan_mode=ScanMode.FILES_IN_SUBDIRECTORIES, suffixes=(".exe", ".png"),
             changes=None, refresh_delay=10.0) -> DirectoryWatcher:
    return DirectoryWatcher(WatcherConfig(
        root_dir_path=str(root),
        file_suffixes=suffixes,
        scan_mode=scan_mode,
        changes=changes if changes is not None else asyncio.Queue(),
        refresh_delay=refresh_delay,
    ))


class TestScan:

    def test_first_scan_reports_existing_files(self, tmp_path: Path) -> None:
        (tmp_path / "Hades").mkdir()
        (tmp_path / "Hades" / "hades.exe").write_text("")
        (tmp_path / "Hades" / "readme.txt").write_text("")

        change = _watcher(tmp_path).scan()

        assert change.updated_paths == [str(tmp_path / "Hades" / "hades.exe")]
        assert change.deleted_paths == []
        assert not change.is_err()

    def test_unchanged_tree_produces_empty_change(self, tmp_path: Path) -> None:
        (tmp_path / "Hades").mkdir()
        (tmp_path / "Hades" / "hades.exe").write_text("")
        watcher = _watcher(tmp_path)
        watcher.scan()

        assert watcher.scan().is_empty()

    def test_modified_and_deleted_files(self, tmp_path: Path) -> None:
        game = tmp_path / "Hades"
        game.mkdir()
        (game / "hades.exe").write_text("")
        (game / "icon.png").write_bytes(b"a")
        watcher = _watcher(tmp_path)
        watcher.scan()

        (game / "hades.exe").write_text("patched")
        (game / "icon.png").unlink()
        change = watcher.scan()

        assert change.updated_paths == [str(game / "hades.exe")]
        assert change.deleted_paths == [str(game / "icon.png")]
        assert change.deleted_image_paths() == [str(game / "icon.png")]
        assert change.deleted_non_image_paths() == []

    def test_removed_game_directory_reports_deletions(self, tmp_path: Path) -> None:
        game = tmp_path / "Hades"
        game.mkdir()
        (game / "hades.exe").write_text("")
        watcher = _watcher(tmp_path)
        watcher.scan()

        (game / "hades.exe").unlink()
        game.rmdir()

        assert watcher.scan().deleted_non_image_paths() == [str(game / "hades.exe")]

    def test_subdirectory_mode_ignores_root_files(self, tmp_path: Path) -> None:
        (tmp_path / "loose.exe").write_text("")

        assert _watcher(tmp_path).scan().is_empty()

    def test_directory_mode_ignores_subdirectories(self, tmp_path: Path) -> None:
        (tmp_path / "app.grundy.ini").write_text("")
        (tmp_path / "examples").mkdir()
        (tmp_path / "examples" / "app-example.grundy.ini").write_text("")

        change = _watcher(tmp_path, ScanMode.FILES_IN_DIRECTORY, (".grundy.ini",)).scan()

        assert change.updated_paths == [str(tmp_path / "app.grundy.ini")]

    def test_suffix_match_is_case_insensitive(self, tmp_path: Path) -> None:
        (tmp_path / "Game").mkdir()
        (tmp_path / "Game" / "GAME.EXE").write_text("")

        assert _watcher(tmp_path).scan().updated_paths == [str(tmp_path / "Game" / "GAME.EXE")]

    def test_missing_root_is_an_error_and_keeps_state(self, tmp_path: Path) -> None:
        root = tmp_path / "collection"
        (root / "Hades").mkdir(parents=True)
        (root / "Hades" / "hades.exe").write_text("")
        watcher = _watcher(root)
        watcher.scan()

        (root / "Hades" / "hades.exe").rename(tmp_path / "hades.exe")
        (root / "Hades").rmdir()
        root.rmdir()
        change = watcher.scan()

        assert change.is_err()
        assert change.deleted_paths == []
        assert change.watcher_id == watcher.id


class TestConfig:

    @pytest.mark.parametrize("kwargs", [
        {"root_dir_path": " "},
        {"file_suffixes": ()},
        {"changes": None},
        {"refresh_delay": 0},
    ])
    def test_invalid_config(self, tmp_path: Path, kwargs) -> None:
        values = dict(root_dir_path=str(tmp_path), file_suffixes=(".exe",),
                      scan_mode=ScanMode.FILES_IN_DIRECTORY, changes=object(), refresh_delay=1.0)
        values.update(kwargs)

        with pytest.raises(WatcherSetupFailed):
            DirectoryWatcher(WatcherConfig(**values))

    def test_watchers_get_distinct_ids(self, tmp_path: Path) -> None:
        assert _watcher(tmp_path).id != _watcher(tmp_path).id


@pytest.mark.asyncio
async def test_started_watcher_publishes_changes(tmp_path: Path) -> None:
    game = tmp_path / "Hades"
    game.mkdir()
    (game / "hades.exe").write_text("")
    changes: asyncio.Queue = asyncio.Queue()
    watcher = _watcher(tmp_path, changes=changes, refresh_delay=0.05)

    watcher.start()
    try:
        first: Change = await asyncio.wait_for(changes.get(), timeout=5)
        assert first.updated_paths == [str(game / "hades.exe")]

        (game / "icon.png").write_bytes(b"png")
        second: Change = await asyncio.wait_for(changes.get(), timeout=5)
        assert second.updated_paths == [str(game / "icon.png")]
    finally:
        watcher.destroy()

    assert watcher.is_destroyed


@pytest.mark.asyncio
async def test_destroyed_watcher_cannot_restart(tmp_path: Path) -> None:
    watcher = _watcher(tmp_path, refresh_delay=0.05)
    watcher.destroy()
    watcher.start()

    assert watcher._task is None
