"""Per-game settings (game.grundy.ini) and game resolution.

A game is a subdirectory of a game collection. Without a game.grundy.ini
the game is implicit: its name is the directory's basename and its
executable is the first file matching the launcher's executable suffixes.
A game.grundy.ini overrides any of these defaults using top-level keys.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from grundy.errors import ConfigLoadFailed, MissingExecutable
from grundy.settings.ini_file import IniDocument, SaveableSettings, split_comma_separated
from grundy.settings.launchers import Launcher
from grundy.utils.paths import FILE_EXTENSION, IMAGE_FILE_SUFFIXES, has_suffix

logger = logging.getLogger(__name__)

GAME_SETTINGS_BASENAME = "game" + FILE_EXTENSION

NAME_KEY = "name"
EXE_PATH_KEY = "exe_path"
LAUNCHER_KEY = "launcher"
OVERRIDE_ARGS_KEY = "override_args"
ADDITIONAL_ARGS_KEY = "additional_args"
ICON_KEY = "icon"
TILE_KEY = "tile"
CATEGORIES_KEY = "categories_comma_separated"

ICON_BASENAME = "icon"
TILE_BASENAME = "tile"


class GameSettings(SaveableSettings):
    """Explicit overrides for a single game, stored as top-level keys"""

    def __init__(self, config: Optional[IniDocument] = None):
        super().__init__(config)

    def filename(self, additional_suffix: str = "") -> str:
        return "game" + additional_suffix + FILE_EXTENSION

    def reset_to_defaults(self) -> None:
        self.config.clear()

    def example(self) -> "GameSettings":
        example = GameSettings()
        for key, value in (
                (NAME_KEY, "example-game"),
                (EXE_PATH_KEY, "example-game.exe"),
                (LAUNCHER_KEY, "example-launcher"),
                (OVERRIDE_ARGS_KEY, ""),
                (ADDITIONAL_ARGS_KEY, "--fullscreen"),
                (ICON_KEY, "my-icon.png"),
                (TILE_KEY, "my-tile.png"),
                (CATEGORIES_KEY, "Action, Favorites")):
            example.config.set(None, key, value)
        return example

    def value(self, key: str) -> str:
        return self.config.get(None, key).strip()

    def name(self) -> str:
        return self.value(NAME_KEY)

    def exe_path(self) -> str:
        return self.value(EXE_PATH_KEY)

    def launcher(self) -> str:
        return self.value(LAUNCHER_KEY)

    def override_args(self) -> str:
        return self.value(OVERRIDE_ARGS_KEY)

    def additional_args(self) -> str:
        return self.value(ADDITIONAL_ARGS_KEY)

    def icon(self) -> str:
        return self.value(ICON_KEY)

    def tile(self) -> str:
        return self.value(TILE_KEY)

    def categories(self) -> List[str]:
        return split_comma_separated(self.value(CATEGORIES_KEY))


@dataclass(frozen=True)
class ImageChoice:
    """An icon or tile path and whether the user chose it explicitly"""
    file_path: str = ""
    explicit: bool = False

    def exists(self) -> bool:
        return bool(self.file_path) and os.path.isfile(self.file_path)


@dataclass
class Game:
    name: str
    directory_path: str
    executable_relative_path: str
    launcher_name: str
    override_args: str = ""
    additional_args: str = ""
    icon: ImageChoice = field(default_factory=ImageChoice)
    tile: ImageChoice = field(default_factory=ImageChoice)
    categories: List[str] = field(default_factory=list)

    def exe_full_path(self) -> str:
        return os.path.join(self.directory_path, self.executable_relative_path)

    def exe_exists(self) -> bool:
        return os.path.isfile(self.exe_full_path())


def _resolve(game_dir: str, value: str) -> str:
    if not value or os.path.isabs(value):
        return value
    return os.path.join(game_dir, value)


def _sorted_files(dir_path: str) -> List[str]:
    try:
        names = sorted(os.listdir(dir_path))
    except OSError:
        return []
    return [n for n in names if os.path.isfile(os.path.join(dir_path, n))]


def find_executable(game_dir: str, launcher: Launcher) -> Optional[str]:
    """Basename of the first file in game_dir ending with an executable suffix."""
    for name in _sorted_files(game_dir):
        if has_suffix(name, launcher.exe_suffixes):
            return name
    return None


def find_image(game_dir: str, basename: str) -> Optional[str]:
    """Full path of the first file named <basename><image suffix>, if any."""
    for name in _sorted_files(game_dir):
        stem, ext = os.path.splitext(name)
        if stem == basename and ext.lower() in IMAGE_FILE_SUFFIXES:
            return os.path.join(game_dir, name)
    return None


def load_game_settings(game_dir: str) -> Optional[GameSettings]:
    """Load game_dir/game.grundy.ini, or return None if there is none.

    Raises:
        ConfigLoadFailed: The file exists but could not be read or parsed
    """
    file_path = os.path.join(game_dir, GAME_SETTINGS_BASENAME)
    if not os.path.isfile(file_path):
        return None
    return GameSettings(IniDocument.from_file(file_path))


def _choose_image(game_dir: str, explicit_value: str, basename: str) -> ImageChoice:
    if explicit_value:
        return ImageChoice(file_path=_resolve(game_dir, explicit_value), explicit=True)
    return ImageChoice(file_path=find_image(game_dir, basename) or "", explicit=False)


def build_game(game_dir: str, launcher: Launcher,
               settings: Optional[GameSettings] = None) -> Game:
    """Build the Game living in game_dir.

    Args:
        game_dir: The game's directory (an immediate child of a collection)
        launcher: Launcher of the game's collection
        settings: Explicit overrides from game.grundy.ini, if present

    Returns:
        The resolved Game

    Raises:
        MissingExecutable: No executable exists for the game
    """
    game_dir = os.path.normpath(game_dir)
    settings = settings or GameSettings()

    exe_value = settings.exe_path()
    if exe_value:
        exe_relative = os.path.relpath(_resolve(game_dir, exe_value), game_dir)
    else:
        exe_relative = find_executable(game_dir, launcher)
        if exe_relative is None:
            raise MissingExecutable(
                f"no executable matching {', '.join(launcher.exe_suffixes)} exists in '{game_dir}'")

    game = Game(
        name=settings.name() or os.path.basename(game_dir),
        directory_path=game_dir,
        executable_relative_path=exe_relative,
        launcher_name=settings.launcher() or launcher.name,
        override_args=settings.override_args(),
        additional_args=settings.additional_args(),
        icon=_choose_image(game_dir, settings.icon(), ICON_BASENAME),
        tile=_choose_image(game_dir, settings.tile(), TILE_BASENAME),
        categories=settings.categories(),
    )

    if not game.exe_exists():
        raise MissingExecutable(f"the executable does not exist - '{game.exe_full_path()}'")

    return game


def executable_present(game_dir: str, launcher: Launcher) -> Optional[str]:
    """Full path of the game's executable if one is still on disk.

    Explicit exe_path values in game.grundy.ini are honored; an unreadable
    game.grundy.ini falls back to the implicit executable search.
    """
    try:
        settings = load_game_settings(game_dir)
    except ConfigLoadFailed as e:
        logger.debug(f"[Game] Ignoring unreadable game settings in {game_dir}: {e}")
        settings = None

    if settings is not None and settings.exe_path():
        exe_path = _resolve(game_dir, settings.exe_path())
        return exe_path if os.path.isfile(exe_path) else None

    exe_name = find_executable(game_dir, launcher)
    return os.path.join(game_dir, exe_name) if exe_name else None
