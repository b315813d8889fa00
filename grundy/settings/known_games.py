"""Known games ledger (.internal/.known-games.grundy.ini).

Maps each game directory the engine created a Steam shortcut for to the
name it registered. Every mutation is written through to disk atomically.
"""

import os
import logging
import tempfile
import threading
from typing import Dict, Optional, Tuple

from grundy.settings.ini_file import IniDocument
from grundy.utils.paths import FILE_EXTENSION

logger = logging.getLogger(__name__)

KNOWN_GAMES_BASENAME = ".known-games" + FILE_EXTENSION
HEADER_COMMENT = "[WARNING] DO NOT EDIT THIS FILE"


class KnownGamesSettings:
    """Ordered directory -> game name registry, safe to share across threads"""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._lock = threading.RLock()
        self._dirs_to_names: Dict[str, str] = {}

    @classmethod
    def load_or_create(cls, internal_dir: str) -> Tuple["KnownGamesSettings", bool]:
        """Load the ledger from internal_dir, creating an empty one if missing.

        Returns:
            The ledger and whether an existing file was loaded

        Raises:
            ConfigLoadFailed: The file exists but cannot be read or parsed
        """
        known_games = cls(os.path.join(internal_dir, KNOWN_GAMES_BASENAME))

        if os.path.isfile(known_games.file_path):
            known_games.reload()
            return known_games, True

        known_games._persist()
        return known_games, False

    def reload(self) -> None:
        doc = IniDocument.from_file(self.file_path)
        entries = {}
        for dir_path, name in doc.items(None).items():
            if name:
                entries[os.path.normpath(dir_path)] = name
        with self._lock:
            self._dirs_to_names = entries

    def _persist(self) -> None:
        doc = IniDocument()
        doc.add_section(None)
        for dir_path, name in self._dirs_to_names.items():
            doc.set(None, dir_path, name)

        dir_name = os.path.dirname(self.file_path)
        tmp_path = None
        try:
            os.makedirs(dir_name, exist_ok=True)
            with tempfile.NamedTemporaryFile(mode='w', dir=dir_name, delete=False, encoding='utf-8',
                                             prefix='.known-games.', suffix='.tmp') as tmp:
                tmp_path = tmp.name
                doc.write(tmp, HEADER_COMMENT)
                tmp.flush()
                os.fsync(tmp.fileno())  # Ensure data is on disk

            os.replace(tmp_path, self.file_path)
        except OSError as e:
            logger.error(f"[KnownGames] Failed to save {self.file_path}: {e}")
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError as cleanup_error:
                    logger.warning(f"[KnownGames] Failed to remove {tmp_path}: {cleanup_error}")

    def add_unique(self, game, dir_path: str) -> bool:
        """Register game.name for dir_path.

        A directory already registered under another name is renamed.

        Returns:
            False if the name belongs to a different directory
        """
        dir_path = os.path.normpath(dir_path)
        with self._lock:
            for existing_dir, existing_name in self._dirs_to_names.items():
                if existing_name == game.name and existing_dir != dir_path:
                    return False

            if self._dirs_to_names.get(dir_path) == game.name:
                return True

            previous = self._dirs_to_names.get(dir_path)
            self._dirs_to_names[dir_path] = game.name
            self._persist()

        if previous:
            logger.info(f"[KnownGames] Renamed {dir_path}: '{previous}' -> '{game.name}'")
        else:
            logger.debug(f"[KnownGames] Registered '{game.name}' for {dir_path}")
        return True

    def disown(self, dir_path: str) -> Tuple[str, bool]:
        """Forget dir_path and return the name it was registered under."""
        dir_path = os.path.normpath(dir_path)
        with self._lock:
            name = self._dirs_to_names.pop(dir_path, None)
            if name is None:
                return "", False
            self._persist()

        logger.debug(f"[KnownGames] Disowned '{name}' at {dir_path}")
        return name, True

    def disown_nonexisting(self) -> Dict[str, str]:
        """Forget every directory that no longer exists and return them."""
        with self._lock:
            vanished = {d: n for d, n in self._dirs_to_names.items() if not os.path.isdir(d)}
            if not vanished:
                return {}
            for dir_path in vanished:
                del self._dirs_to_names[dir_path]
            self._persist()

        return vanished

    def has(self, dir_path: str) -> bool:
        with self._lock:
            return os.path.normpath(dir_path) in self._dirs_to_names

    def name_for(self, dir_path: str) -> Optional[str]:
        with self._lock:
            return self._dirs_to_names.get(os.path.normpath(dir_path))

    def game_dirs_to_names(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._dirs_to_names)
