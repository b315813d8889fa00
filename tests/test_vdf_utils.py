from __future__ import annotations

from pathlib import Path

import pytest

from grundy.errors import ShortcutFileIO
from grundy.utils.vdf import (
    find_key,
    find_shortcut,
    load_shortcuts_vdf,
    remove_shortcuts,
    save_shortcuts_vdf,
    upsert_shortcut,
)


def _entry(name: str, name_key: str = "AppName") -> dict:
    return {
        name_key: name,
        "Exe": "/usr/bin/steam",
        "StartDir": "/usr/bin",
        "icon": "",
        "ShortcutPath": "",
        "LaunchOptions": "",
        "IsHidden": 0,
        "AllowDesktopConfig": 1,
        "AllowOverlay": 1,
        "OpenVR": 0,
        "Devkit": 0,
        "DevkitGameID": "",
        "DevkitOverrideAppID": 0,
        "LastPlayTime": 0,
        "tags": {},
    }


def test_load_shortcuts_missing_file(tmp_path: Path) -> None:
    missing_path = tmp_path / "does_not_exist.vdf"
    assert load_shortcuts_vdf(str(missing_path)) == {"shortcuts": {}}


def test_load_shortcuts_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "shortcuts.vdf"
    path.write_bytes(b"")
    assert load_shortcuts_vdf(str(path)) == {"shortcuts": {}}


def test_load_shortcuts_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "shortcuts.vdf"
    path.write_bytes(b"\x0fjunk\x00")
    with pytest.raises(ShortcutFileIO):
        load_shortcuts_vdf(str(path))


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "config" / "shortcuts.vdf"
    data = {"shortcuts": {"0": _entry("Test Game", "appname")}}
    save_shortcuts_vdf(str(path), data)
    loaded = load_shortcuts_vdf(str(path))
    assert "shortcuts" in loaded
    assert len(loaded["shortcuts"]) == len(data["shortcuts"])


def test_save_into_unwritable_location(tmp_path: Path) -> None:
    blocker = tmp_path / "config"
    blocker.write_text("not a directory")
    with pytest.raises(ShortcutFileIO):
        save_shortcuts_vdf(str(blocker / "shortcuts.vdf"), {"shortcuts": {}})


def test_upsert_appends_when_missing() -> None:
    data = {"shortcuts": {"0": _entry("Other")}}
    updated = upsert_shortcut(data, "Hades", lambda e: e, lambda: _entry("Hades"))
    assert updated is False
    assert data["shortcuts"]["1"]["AppName"] == "Hades"


def test_upsert_updates_first_match_with_either_name_key() -> None:
    data = {"shortcuts": {"0": _entry("Hades", "appname"), "1": _entry("Hades")}}

    def transform(entry):
        entry["LaunchOptions"] = "-silent"
        return entry

    updated = upsert_shortcut(data, "Hades", transform, lambda: _entry("Hades"))
    assert updated is True
    assert data["shortcuts"]["0"]["LaunchOptions"] == "-silent"
    assert data["shortcuts"]["1"]["LaunchOptions"] == ""


def test_remove_shortcuts_removes_duplicates_and_renumbers() -> None:
    data = {"shortcuts": {"0": _entry("Hades"), "1": _entry("Other"), "2": _entry("Hades", "appname")}}
    assert remove_shortcuts(data, "Hades") == 2
    assert list(data["shortcuts"]) == ["0"]
    assert data["shortcuts"]["0"]["AppName"] == "Other"


def test_remove_shortcuts_no_match() -> None:
    data = {"shortcuts": {"0": _entry("Other")}}
    assert remove_shortcuts(data, "Hades") == 0
    assert find_shortcut(data, "Other") is not None


def test_find_key_keeps_existing_spelling() -> None:
    assert find_key({"exe": "x"}, "Exe") == "exe"
    assert find_key({}, "Exe") == "Exe"
