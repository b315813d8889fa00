"""
Shortcuts Manager - turns changed game paths into Steam shortcut operations

Paths arrive from the collection watchers (or from the known games ledger
during a full refresh). Each one is mapped to its game directory, resolved
into a Game and then created, updated or deleted for every Steam user.
"""

import os
import logging
from typing import Iterable, List, Optional

from grundy.controllers.results import Operation, Result, failed, skipped
from grundy.errors import ConfigLoadFailed, MissingExecutable
from grundy.services.steam_service import ShortcutSpec, SteamService
from grundy.settings.app import AppSettings
from grundy.settings.game import Game, build_game, executable_present, load_game_settings
from grundy.settings.known_games import KnownGamesSettings
from grundy.settings.launchers import Launcher, LaunchersSettings
from grundy.utils.launch_options import compose_launch_options
from grundy.utils.paths import is_under
from grundy.utils.steam_user import SteamTopology

logger = logging.getLogger(__name__)


def _game_dirs(paths: Iterable[str], paths_are_dirs: bool, ignore_path_prefix: str) -> List[str]:
    """Unique game directories for a batch of paths, in batch order."""
    game_dirs = []
    for path in paths:
        if ignore_path_prefix and is_under(path, ignore_path_prefix):
            continue
        game_dir = os.path.normpath(path if paths_are_dirs else os.path.dirname(path))
        if game_dir not in game_dirs:
            game_dirs.append(game_dir)
    return game_dirs


class ShortcutsManager:
    """Reconciles game directories with the shortcuts of every Steam user"""

    def __init__(self, app: AppSettings, launchers: LaunchersSettings,
                 known_games: KnownGamesSettings, steam: SteamService,
                 ignore_path_prefix: str = ""):
        """
        Args:
            app: Application settings (game collections)
            launchers: Launcher definitions
            known_games: Ledger of games that have shortcuts
            steam: Steam Adapter
            ignore_path_prefix: Paths under this directory (the configuration
                directory) are never treated as games
        """
        self.app = app
        self.launchers = launchers
        self.known_games = known_games
        self.steam = steam
        self.ignore_path_prefix = ignore_path_prefix

    def refresh_all(self, topology: SteamTopology) -> List[Result]:
        """Re-apply every known game; delete the ones whose directory vanished."""
        existing_dirs = []
        vanished_dirs = []

        for dir_path in self.known_games.game_dirs_to_names():
            if os.path.isdir(dir_path):
                existing_dirs.append(dir_path)
            else:
                vanished_dirs.append(dir_path)

        results = self.update(existing_dirs, True, topology)
        results.extend(self.delete(vanished_dirs, True, topology))
        return results

    def update(self, paths: Iterable[str], paths_are_dirs: bool, topology: SteamTopology) -> List[Result]:
        results: List[Result] = []
        for game_dir in _game_dirs(paths, paths_are_dirs, self.ignore_path_prefix):
            results.extend(self._update_game(game_dir, topology))
        return results

    def _update_game(self, game_dir: str, topology: SteamTopology) -> List[Result]:
        if not os.path.isdir(game_dir):
            # Removed along with its images; the delete batch handles it
            logger.debug(f"[Shortcuts] Not updating {game_dir}, it no longer exists")
            return []

        collection_dir = os.path.dirname(game_dir)

        launcher_name = self.app.has_collection(collection_dir)
        if launcher_name is None:
            return [skipped(Operation.UPDATE, game_dir,
                            reason=f"game collection '{collection_dir}' does not exist")]

        launcher = self.launchers.has(launcher_name)
        if launcher is None:
            return [skipped(Operation.UPDATE, game_dir,
                            reason=f"the specified launcher does not exist in the launchers settings - '{launcher_name}'")]

        try:
            game = build_game(game_dir, launcher, load_game_settings(game_dir))
        except (ConfigLoadFailed, MissingExecutable) as e:
            return [failed(Operation.UPDATE, game_dir, reason=str(e))]

        previous_name = self.known_games.name_for(game_dir)
        if not self.known_games.add_unique(game, game_dir):
            return [skipped(Operation.UPDATE, game.name, reason="the game already exists")]

        results: List[Result] = []

        if previous_name and previous_name != game.name:
            logger.info(f"[Shortcuts] '{previous_name}' was renamed to '{game.name}', removing old shortcuts")
            results.extend(self.steam.delete_shortcut(previous_name, topology, launcher.exe_path))

        for label, choice in (("icon", game.icon), ("tile", game.tile)):
            if choice.explicit and not choice.exists():
                results.append(failed(Operation.UPDATE, game.name,
                                      reason=f"manual {label} does not exist at - '{choice.file_path}'"))
                return results
            if not choice.exists():
                logger.warning(f"[Shortcuts] No {label} was provided for '{game.name}'")

        results.extend(self.steam.create_or_update_shortcut(self._shortcut_spec(game, launcher), topology))
        return results

    @staticmethod
    def _shortcut_spec(game: Game, launcher: Launcher) -> ShortcutSpec:
        return ShortcutSpec(
            name=game.name,
            exe_path=launcher.exe_path,
            launch_options=compose_launch_options(launcher.default_args, game.additional_args,
                                                  game.override_args, game.exe_full_path()),
            icon_path=game.icon.file_path if game.icon.exists() else "",
            tile_path=game.tile.file_path if game.tile.exists() else "",
            tags=game.categories,
        )

    def delete(self, paths: Iterable[str], paths_are_dirs: bool, topology: SteamTopology) -> List[Result]:
        results: List[Result] = []

        for game_dir in _game_dirs(paths, paths_are_dirs, self.ignore_path_prefix):
            launcher = self._launcher_for(game_dir)
            launcher_exe_path = launcher.exe_path if launcher is not None else ""

            # Do not delete while the game's executable is still on disk
            if launcher is not None:
                exe_path = executable_present(game_dir, launcher) if os.path.isdir(game_dir) else None
                if exe_path:
                    name = self.known_games.name_for(game_dir) or os.path.basename(game_dir)
                    results.append(skipped(Operation.DELETE, name,
                                           reason=f"a game executable still exists in its directory at '{exe_path}'"))
                    continue

            name, owned = self.known_games.disown(game_dir)
            if not owned:
                continue

            results.extend(self.steam.delete_shortcut(name, topology, launcher_exe_path,
                                                      skip_tile_delete=not launcher_exe_path))

        return results

    def _launcher_for(self, game_dir: str) -> Optional[Launcher]:
        """Launcher of the collection holding game_dir, if both are still configured."""
        launcher_name = self.app.has_collection(os.path.dirname(game_dir))
        return self.launchers.has(launcher_name) if launcher_name is not None else None

    def cleanup_vanished_games(self, topology: Optional[SteamTopology]) -> List[Result]:
        """Disown ledger entries whose directory is gone and delete their shortcuts.

        Run once at startup. Without a topology nothing is disowned, so the
        next start can retry.
        """
        if topology is None:
            return []

        results: List[Result] = []
        for dir_path, name in self.known_games.disown_nonexisting().items():
            logger.info(f"[Shortcuts] Game directory {dir_path} no longer exists, removing '{name}'")
            launcher = self._launcher_for(dir_path)
            launcher_exe_path = launcher.exe_path if launcher is not None else ""
            results.extend(self.steam.delete_shortcut(name, topology, launcher_exe_path,
                                                      skip_tile_delete=not launcher_exe_path))
        return results
