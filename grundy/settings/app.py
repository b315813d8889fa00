"""Application settings (app.grundy.ini).

[settings]
auto_start = true

[/absolute/path/to/game/collection]
launcher = launcher-name
"""

import os
import sys
from typing import Dict, Optional

from grundy.settings.ini_file import SaveableSettings, parse_bool
from grundy.utils.paths import FILE_EXTENSION

SETTINGS_SECTION = "settings"
AUTO_START_KEY = "auto_start"
COLLECTION_LAUNCHER_KEY = "launcher"


def normalize_dir_path(dir_path: str) -> str:
    return os.path.normpath(dir_path.strip())


class AppSettings(SaveableSettings):
    """Application-wide settings and the game collections to watch"""

    def __init__(self, config=None):
        super().__init__(config)
        if config is None:
            self.reset_to_defaults()

    def filename(self, additional_suffix: str = "") -> str:
        return "app" + additional_suffix + FILE_EXTENSION

    def reset_to_defaults(self) -> None:
        self.config.clear()
        self.config.set(SETTINGS_SECTION, AUTO_START_KEY, "true")

    def example(self) -> "AppSettings":
        example = AppSettings()
        if sys.platform == "win32":
            example.add_collection("C:/path/to/game/collection", "example-launcher")
        else:
            example.add_collection("/path/to/game/collection", "example-launcher")
        return example

    def is_auto_start(self) -> bool:
        return parse_bool(self.config.get(SETTINGS_SECTION, AUTO_START_KEY, "false"))

    def set_auto_start(self, value: bool) -> None:
        self.config.set(SETTINGS_SECTION, AUTO_START_KEY, "true" if value else "false")

    def watch_paths(self) -> Dict[str, str]:
        """Map each game collection directory to its launcher name.

        Duplicate directories collapse; the latest value wins.
        """
        collections: Dict[str, str] = {}
        for section in self.config.sections():
            if section == SETTINGS_SECTION:
                continue
            launcher = self.config.get(section, COLLECTION_LAUNCHER_KEY).strip()
            collections[normalize_dir_path(section)] = launcher
        return collections

    def has_collection(self, dir_path: str) -> Optional[str]:
        """Return the launcher name for a collection directory, or None."""
        return self.watch_paths().get(normalize_dir_path(dir_path))

    def add_collection(self, dir_path: str, launcher_name: str) -> None:
        self.config.set(dir_path, COLLECTION_LAUNCHER_KEY, launcher_name)

    def remove_collection(self, dir_path: str) -> None:
        target = normalize_dir_path(dir_path)
        for section in self.config.sections():
            if section != SETTINGS_SECTION and normalize_dir_path(section) == target:
                self.config.delete_section(section)
