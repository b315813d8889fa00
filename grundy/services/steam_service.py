"""
Steam Service - Steam Adapter for non-Steam shortcuts and grid tiles

Every operation is applied to all Steam users of a topology. A failure for
one user becomes that user's Result and never stops the others.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from grundy.controllers.results import Operation, Result, failed, skipped, succeeded, succeeded_with_warning
from grundy.errors import ShortcutFileIO, TileIO
from grundy.utils import artwork
from grundy.utils.launch_options import quote_if_needed, unquote
from grundy.utils.steam_user import SteamTopology, discover_topology
from grundy.utils.vdf import (
    find_key,
    find_shortcut,
    load_shortcuts_vdf,
    remove_shortcuts,
    save_shortcuts_vdf,
    upsert_shortcut,
)

logger = logging.getLogger(__name__)

NO_MATCHING_SHORTCUT = "no matching shortcut was found"


@dataclass
class ShortcutSpec:
    """Desired state of one game's shortcut"""
    name: str
    exe_path: str
    launch_options: str
    icon_path: str = ""
    tile_path: str = ""
    tags: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def cleaned(self) -> "ShortcutRecord":
        exe_path = quote_if_needed(self.exe_path)
        return ShortcutRecord(
            app_name=self.name,
            exe_path=exe_path,
            start_dir=quote_if_needed(os.path.dirname(unquote(exe_path))),
            icon_path=quote_if_needed(self.icon_path),
            launch_options=self.launch_options,
            tags=list(self.tags),
        )


@dataclass
class ShortcutRecord:
    """The managed fields of a shortcuts.vdf entry, as Steam stores them"""
    app_name: str
    exe_path: str
    start_dir: str
    icon_path: str
    launch_options: str
    tags: List[str] = field(default_factory=list)

    def tags_dict(self) -> Dict[str, str]:
        return {str(i): tag for i, tag in enumerate(self.tags)}

    def apply_to(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite the managed fields of an existing entry, keeping the rest."""
        exe_key = find_key(entry, "Exe")
        if entry.get(exe_key) != self.exe_path:
            # Steam derives the shortcut id from Exe and AppName
            entry[find_key(entry, "appid")] = artwork.generate_app_id(self.exe_path, self.app_name)
        entry[exe_key] = self.exe_path
        entry[find_key(entry, "StartDir")] = self.start_dir
        entry[find_key(entry, "LaunchOptions")] = self.launch_options
        entry[find_key(entry, "icon")] = self.icon_path
        entry[find_key(entry, "tags")] = self.tags_dict()
        return entry

    def new_entry(self) -> Dict[str, Any]:
        return {
            'appid': artwork.generate_app_id(self.exe_path, self.app_name),
            'AppName': self.app_name,
            'Exe': self.exe_path,
            'StartDir': self.start_dir,
            'icon': self.icon_path,
            'ShortcutPath': '',
            'LaunchOptions': self.launch_options,
            'IsHidden': 0,
            'AllowDesktopConfig': 1,
            'AllowOverlay': 1,
            'OpenVR': 0,
            'Devkit': 0,
            'DevkitGameID': '',
            'DevkitOverrideAppID': 0,
            'LastPlayTime': 0,
            'FlatpakAppID': '',
            'tags': self.tags_dict(),
        }


class SteamService:
    """Mutates shortcuts.vdf and grid directories of every Steam user"""

    def __init__(self, steam_root: Optional[str] = None):
        self.steam_root = steam_root

    def discover(self) -> SteamTopology:
        """Locate Steam and its users. Never cached.

        Raises:
            SteamTopologyUnavailable: Steam could not be located
        """
        return discover_topology(self.steam_root)

    # Single-user primitives

    def create_or_update(self, record: ShortcutRecord, user_id: str, topology: SteamTopology) -> bool:
        """Write record into the user's shortcuts file.

        When an existing shortcut's Exe changes, its id changes too and the
        tile stored under the old id is removed.

        Returns:
            True if an existing shortcut was updated, False if one was created

        Raises:
            ShortcutFileIO: The shortcuts file could not be read or written
            TileIO: The tile under the previous id could not be removed
        """
        path = topology.shortcuts_path(user_id)
        data = load_shortcuts_vdf(path)

        existing = find_shortcut(data, record.app_name)
        previous_exe = existing.get(find_key(existing, "Exe"), "") if existing is not None else ""

        updated = upsert_shortcut(data, record.app_name, record.apply_to, record.new_entry)
        save_shortcuts_vdf(path, data)

        if previous_exe and previous_exe != record.exe_path:
            logger.info(f"[Steam] Exe of '{record.app_name}' changed for user {user_id}, removing old tile")
            self.remove_tile(user_id, record.app_name, previous_exe, topology)

        logger.debug(f"[Steam] {'Updated' if updated else 'Created'} '{record.app_name}' for user {user_id}")
        return updated

    def delete(self, name: str, user_id: str, topology: SteamTopology) -> bool:
        """Remove every shortcut named name from the user's shortcuts file.

        Returns:
            True if at least one shortcut was removed

        Raises:
            ShortcutFileIO: The shortcuts file could not be read or written
        """
        path = topology.shortcuts_path(user_id)
        data = load_shortcuts_vdf(path)
        removed = remove_shortcuts(data, name)
        if not removed:
            return False

        save_shortcuts_vdf(path, data)
        logger.debug(f"[Steam] Removed {removed} shortcut(s) named '{name}' for user {user_id}")
        return True

    def upsert_tile(self, user_id: str, name: str, exe_path: str, source_path: str,
                    topology: SteamTopology) -> None:
        """Copy source_path in as the shortcut's tile, or remove the tile if empty.

        Raises:
            TileIO: The tile could not be copied or removed
        """
        grid_dir = topology.grid_dir(user_id)
        if not source_path:
            artwork.remove_tile(grid_dir, exe_path, name)
            return
        artwork.add_tile(grid_dir, exe_path, name, source_path)

    def remove_tile(self, user_id: str, name: str, exe_path: str, topology: SteamTopology) -> None:
        artwork.remove_tile(topology.grid_dir(user_id), exe_path, name)

    # Per-topology operations reporting Results

    def create_or_update_shortcut(self, spec: ShortcutSpec, topology: SteamTopology) -> List[Result]:
        record = spec.cleaned()
        warning = ", ".join(spec.warnings)
        results = []

        for user_id in topology.user_ids():
            try:
                updated = self.create_or_update(record, user_id, topology)
                self.upsert_tile(user_id, record.app_name, record.exe_path, spec.tile_path, topology)
            except (ShortcutFileIO, TileIO) as e:
                results.append(failed(Operation.UPDATE, spec.name, user_id, str(e)))
                continue

            operation = Operation.UPDATE if updated else Operation.CREATE
            if warning:
                results.append(succeeded_with_warning(operation, spec.name, user_id, warning))
            else:
                results.append(succeeded(operation, spec.name, user_id))

        return results

    def delete_shortcut(self, name: str, topology: SteamTopology,
                        launcher_exe_path: str = "", skip_tile_delete: bool = False) -> List[Result]:
        """Delete a game's shortcuts (and tiles) for every user.

        Args:
            name: Registered game name
            topology: Steam users to update
            launcher_exe_path: Exe of the game's launcher, used to locate its tile
            skip_tile_delete: Leave tiles alone (the launcher is unknown)
        """
        exe_path = quote_if_needed(launcher_exe_path)
        results = []

        for user_id in topology.user_ids():
            try:
                was_deleted = self.delete(name, user_id, topology)
            except ShortcutFileIO as e:
                results.append(failed(Operation.DELETE, name, user_id, str(e)))
                continue

            if not was_deleted:
                results.append(skipped(Operation.DELETE, name, user_id, NO_MATCHING_SHORTCUT))
                continue

            if not skip_tile_delete:
                try:
                    self.remove_tile(user_id, name, exe_path, topology)
                except TileIO as e:
                    results.append(succeeded_with_warning(Operation.DELETE, name, user_id,
                                                          f"failed to delete game grid image - {e}"))
                    continue

            results.append(succeeded(Operation.DELETE, name, user_id))

        return results
