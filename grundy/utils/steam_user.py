"""
Steam User Discovery Utilities

Locates the Steam installation on this host and enumerates every Steam user
that has a userdata directory. Shortcuts are maintained for all of them, so
the result is a topology rather than a single "logged-in" user.
"""

import os
import sys
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from grundy.errors import SteamTopologyUnavailable

logger = logging.getLogger(__name__)

USERDATA_DIRNAME = "userdata"
SHORTCUTS_FILENAME = "shortcuts.vdf"
GRID_DIRNAME = "grid"


@dataclass
class SteamTopology:
    """Steam root plus the userdata directory of each Steam user"""
    steam_root_path: str
    user_ids_to_dir_paths: Dict[str, str] = field(default_factory=dict)

    def user_ids(self) -> List[str]:
        return sorted(self.user_ids_to_dir_paths)

    def user_config_dir(self, user_id: str) -> str:
        return os.path.join(self.user_ids_to_dir_paths[user_id], "config")

    def shortcuts_path(self, user_id: str) -> str:
        return os.path.join(self.user_config_dir(user_id), SHORTCUTS_FILENAME)

    def grid_dir(self, user_id: str) -> str:
        return os.path.join(self.user_config_dir(user_id), GRID_DIRNAME)


def _windows_registry_steam_path() -> Optional[str]:
    try:
        import winreg
    except ImportError:
        return None

    try:
        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, r"Software\Valve\Steam") as key:
            value, _ = winreg.QueryValueEx(key, "SteamPath")
            return str(value).replace("\\", "/")
    except OSError:
        return None


def candidate_steam_paths() -> List[str]:
    """Steam root candidates for this OS, most likely first."""
    home = os.path.expanduser("~")

    if sys.platform == "win32":
        candidates = []
        registry_path = _windows_registry_steam_path()
        if registry_path:
            candidates.append(registry_path)
        candidates.append("C:/Program Files (x86)/Steam")
        return candidates

    if sys.platform == "darwin":
        return [os.path.join(home, "Library", "Application Support", "Steam")]

    return [
        os.path.join(home, ".steam", "steam"),
        os.path.join(home, ".local", "share", "Steam"),
        os.path.join(home, ".var", "app", "com.valvesoftware.Steam", ".local", "share", "Steam"),  # Flatpak
        os.path.join(home, "snap", "steam", "common", ".local", "share", "Steam"),  # Snap
    ]


def find_steam_path(candidates: Optional[List[str]] = None) -> Optional[str]:
    """Find the Steam root directory (the one holding userdata/)"""
    for path in candidates if candidates is not None else candidate_steam_paths():
        if os.path.isdir(os.path.join(path, USERDATA_DIRNAME)):
            return path

    return None


def list_user_dirs(steam_path: str) -> Dict[str, str]:
    """
    Map Steam user account IDs to their userdata directories.

    EXPLICITLY EXCLUDES user 0 which is a meta-directory.

    Raises:
        SteamTopologyUnavailable: userdata cannot be listed
    """
    userdata_path = os.path.join(steam_path, USERDATA_DIRNAME)

    try:
        names = os.listdir(userdata_path)
    except OSError as e:
        raise SteamTopologyUnavailable(f"failed to list Steam user data directory '{userdata_path}' - {e}") from e

    ids_to_dirs = {}
    for name in names:
        # Skip non-numeric directories
        if not name.isdigit():
            continue

        if name == '0':
            logger.debug("[SteamUser] Skipping user 0 (meta-directory)")
            continue

        dir_path = os.path.join(userdata_path, name)
        if os.path.isdir(dir_path):
            ids_to_dirs[name] = dir_path

    return ids_to_dirs


def discover_topology(steam_path: Optional[str] = None) -> SteamTopology:
    """
    Discover the Steam root and all of its users.

    Args:
        steam_path: Steam root to use instead of searching the usual locations

    Returns:
        A fresh SteamTopology (never cached)

    Raises:
        SteamTopologyUnavailable: Steam could not be located
    """
    root = steam_path or find_steam_path()
    if not root:
        raise SteamTopologyUnavailable("could not find the Steam installation directory")

    topology = SteamTopology(steam_root_path=root, user_ids_to_dir_paths=list_user_dirs(root))
    logger.debug(f"[SteamUser] Found {len(topology.user_ids_to_dir_paths)} Steam user(s) under {root}")
    return topology
