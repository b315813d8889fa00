"""Launcher definitions (launchers.grundy.ini).

Each launcher is one section named after the launcher:

[steam]
exe_path = /usr/bin/steam
default_args = -applaunch
game_file_suffixes = .exe, .sh
"""

import os
import sys
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

from grundy.errors import InvalidLauncher
from grundy.settings.ini_file import SaveableSettings, split_comma_separated
from grundy.utils.launch_options import unquote
from grundy.utils.paths import FILE_EXTENSION

EXE_PATH_KEY = "exe_path"
DEFAULT_ARGS_KEY = "default_args"
GAME_FILE_SUFFIXES_KEY = "game_file_suffixes"

DEFAULT_EXE_SUFFIXES = (".exe",)
EXAMPLE_LAUNCHER_NAME = "example-launcher"


@dataclass(frozen=True)
class Launcher:
    """An external program plus default arguments used to run games"""
    name: str
    exe_path: str
    default_args: str = ""
    exe_suffixes: Tuple[str, ...] = DEFAULT_EXE_SUFFIXES

    @classmethod
    def example(cls) -> "Launcher":
        if sys.platform == "win32":
            exe_path = "C:\\path\\to\\launcher\\executable.file"
        else:
            exe_path = "/path/to/launcher/executable.file"
        return cls(name=EXAMPLE_LAUNCHER_NAME, exe_path=exe_path)

    def exe_dir_path(self) -> str:
        return os.path.dirname(unquote(self.exe_path))

    def game_file_suffixes(self) -> Tuple[str, ...]:
        """Suffixes of files that identify a game for this launcher.

        Executables plus per-game settings files.
        """
        return tuple(self.exe_suffixes) + (FILE_EXTENSION,)

    def validate(self) -> None:
        """Raise InvalidLauncher if the definition is unusable."""
        if not self.name.strip():
            raise InvalidLauncher("launcher name cannot be empty")
        if not self.exe_path.strip():
            raise InvalidLauncher(f"launcher '{self.name}' has no '{EXE_PATH_KEY}'")
        if not self.exe_suffixes:
            raise InvalidLauncher(f"launcher '{self.name}' has no game file suffixes")


class LaunchersSettings(SaveableSettings):
    """All launchers known to the application"""

    def __init__(self, config=None):
        super().__init__(config)
        self._mutex = threading.Lock()
        if config is None:
            self.reset_to_defaults()

    def filename(self, additional_suffix: str = "") -> str:
        return "launchers" + additional_suffix + FILE_EXTENSION

    def reset_to_defaults(self) -> None:
        self.config.clear()
        self.add_or_update(Launcher.example())

    def example(self) -> "LaunchersSettings":
        example = LaunchersSettings()
        example.add_or_update(Launcher(
            name="another-launcher",
            exe_path=Launcher.example().exe_path,
            default_args="--some-arg",
            exe_suffixes=(".exe", ".sh"),
        ))
        return example

    def names(self) -> List[str]:
        return self.config.sections()

    def has(self, name: str) -> Optional[Launcher]:
        """Return the named launcher, or None if it is not defined."""
        config = self.config
        if not name or not config.has_section(name):
            return None

        suffixes_value = config.get(name, GAME_FILE_SUFFIXES_KEY)
        suffixes = tuple(split_comma_separated(suffixes_value)) if suffixes_value else DEFAULT_EXE_SUFFIXES

        return Launcher(
            name=name,
            exe_path=config.get(name, EXE_PATH_KEY).strip(),
            default_args=config.get(name, DEFAULT_ARGS_KEY).strip(),
            exe_suffixes=suffixes,
        )

    def add_or_update(self, launcher: Launcher) -> None:
        with self._mutex:
            self.config.set(launcher.name, EXE_PATH_KEY, launcher.exe_path)
            self.config.set(launcher.name, DEFAULT_ARGS_KEY, launcher.default_args)
            if tuple(launcher.exe_suffixes) != DEFAULT_EXE_SUFFIXES:
                self.config.set(launcher.name, GAME_FILE_SUFFIXES_KEY, ", ".join(launcher.exe_suffixes))
            else:
                self.config.delete_key(launcher.name, GAME_FILE_SUFFIXES_KEY)

    def remove(self, launcher: Launcher) -> None:
        with self._mutex:
            self.config.delete_section(launcher.name)
