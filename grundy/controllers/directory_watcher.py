"""
Directory Watcher - periodic scans of a root directory

Each scan is compared with the previous one and the difference is published
as a single Change on the watcher's queue. Scanning runs in the default
executor so slow file systems never block the event loop.
"""

import os
import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from grundy.errors import WatcherSetupFailed
from grundy.utils.paths import has_suffix, is_image_file

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_DELAY = 10.0

_watcher_ids = itertools.count(1)

# path -> (modification time, size)
Snapshot = Dict[str, Tuple[float, int]]


class ScanMode(str, Enum):
    FILES_IN_DIRECTORY = "files_in_directory"
    FILES_IN_SUBDIRECTORIES = "files_in_subdirectories"


@dataclass
class Change:
    """Result of one scan: what changed, or why the scan failed"""
    root_dir_path: str
    watcher_id: int = 0
    updated_paths: List[str] = field(default_factory=list)
    deleted_paths: List[str] = field(default_factory=list)
    error: Optional[Exception] = None

    def is_err(self) -> bool:
        return self.error is not None

    def deleted_image_paths(self) -> List[str]:
        return [p for p in self.deleted_paths if is_image_file(p)]

    def deleted_non_image_paths(self) -> List[str]:
        return [p for p in self.deleted_paths if not is_image_file(p)]

    def is_empty(self) -> bool:
        return not self.updated_paths and not self.deleted_paths and not self.is_err()


@dataclass
class WatcherConfig:
    root_dir_path: str
    file_suffixes: Tuple[str, ...]
    scan_mode: ScanMode
    changes: asyncio.Queue
    refresh_delay: float = DEFAULT_REFRESH_DELAY

    def validate(self) -> None:
        if not self.root_dir_path or not self.root_dir_path.strip():
            raise WatcherSetupFailed("the directory path to watch cannot be empty")
        if not self.file_suffixes:
            raise WatcherSetupFailed(f"no file suffixes were specified for '{self.root_dir_path}'")
        if self.changes is None:
            raise WatcherSetupFailed("the changes queue cannot be None")
        if self.refresh_delay <= 0:
            raise WatcherSetupFailed(f"invalid refresh delay: {self.refresh_delay}")


def _regular_files(dir_path: str) -> List[os.DirEntry]:
    with os.scandir(dir_path) as it:
        return [e for e in it if e.is_file()]


class DirectoryWatcher:
    """Publishes Change messages for one directory tree"""

    def __init__(self, config: WatcherConfig):
        config.validate()
        self._config = config
        self.id = next(_watcher_ids)
        self._previous: Snapshot = {}
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._destroyed = False

    def config(self) -> WatcherConfig:
        return self._config

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def _snapshot(self) -> Snapshot:
        root = self._config.root_dir_path
        suffixes = self._config.file_suffixes

        if self._config.scan_mode == ScanMode.FILES_IN_DIRECTORY:
            listings = [_regular_files(root)]
        else:
            with os.scandir(root) as it:
                dirs = [e.path for e in it if e.is_dir()]
            listings = []
            for dir_path in dirs:
                try:
                    listings.append(_regular_files(dir_path))
                except OSError as e:
                    # Vanished between listings; its files are reported deleted
                    logger.debug(f"[Watcher] Skipping {dir_path}: {e}")

        snapshot: Snapshot = {}
        for entries in listings:
            for entry in entries:
                if not has_suffix(entry.name, suffixes):
                    continue
                try:
                    stat = entry.stat()
                except OSError:
                    continue
                snapshot[os.path.normpath(entry.path)] = (stat.st_mtime, stat.st_size)

        return snapshot

    def scan(self) -> Change:
        """Scan once and diff against the previous scan.

        On failure the previous snapshot is kept so nothing is reported as
        deleted because of a transient error.
        """
        change = Change(root_dir_path=self._config.root_dir_path, watcher_id=self.id)

        try:
            current = self._snapshot()
        except OSError as e:
            change.error = e
            return change

        for path, signature in current.items():
            if self._previous.get(path) != signature:
                change.updated_paths.append(path)

        change.deleted_paths = [p for p in self._previous if p not in current]
        self._previous = current
        return change

    def start(self) -> None:
        """Begin scanning: once immediately, then every refresh_delay seconds"""
        if self._destroyed or self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._scan_loop())
        logger.debug(f"[Watcher] Started watching {self._config.root_dir_path}")

    def stop(self) -> None:
        """Pause scanning. The queue stays usable and start() resumes."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None

    def destroy(self) -> None:
        """Stop permanently. Anything already queued by this watcher is stale."""
        self.stop()
        self._destroyed = True
        logger.debug(f"[Watcher] Destroyed watcher for {self._config.root_dir_path}")

    async def _scan_loop(self) -> None:
        loop = asyncio.get_running_loop()

        while self._running:
            try:
                change = await loop.run_in_executor(None, self.scan)

                if not self._running:
                    break

                if not change.is_empty():
                    await self._config.changes.put(change)

                await asyncio.sleep(self._config.refresh_delay)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"[Watcher] Error scanning {self._config.root_dir_path}: {e}", exc_info=True)
                await asyncio.sleep(self._config.refresh_delay)
