"""
Reconciliation Loop - the engine's single event loop

Owns the configuration watcher, one watcher per game collection and the two
debounce timers. Every event is handled on the loop, one at a time; file
system and Steam work is awaited in the default executor.
"""

import os
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from grundy.controllers.directory_watcher import Change, DirectoryWatcher, ScanMode, WatcherConfig
from grundy.controllers.results import log_results
from grundy.controllers.shortcuts_manager import ShortcutsManager
from grundy.errors import ConfigLoadFailed, InvalidLauncher, SteamTopologyUnavailable, WatcherSetupFailed
from grundy.services.steam_service import SteamService
from grundy.settings.app import AppSettings
from grundy.settings.known_games import KnownGamesSettings
from grundy.settings.launchers import LaunchersSettings
from grundy.utils.paths import FILE_EXTENSION, IMAGE_FILE_SUFFIXES

logger = logging.getLogger(__name__)

TIMER_DELAY = 5.0


class DebounceTimer:
    """One-shot timer whose expiration is consumed by the loop.

    reset() discards an expiration that fired but was not consumed yet, so a
    burst of resets always ends in exactly one expiration.
    """

    def __init__(self, name: str):
        self.name = name
        self._handle: Optional[asyncio.TimerHandle] = None
        self._event = asyncio.Event()
        self._fired = False

    @property
    def is_pending(self) -> bool:
        return self._handle is not None

    def stop(self) -> bool:
        """Cancel the timer. Returns True if it was pending."""
        was_pending = self._handle is not None
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._fired = False
        self._event.clear()
        return was_pending

    def reset(self, delay: float) -> None:
        self.stop()
        self._handle = asyncio.get_running_loop().call_later(delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self._fired = True
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def consume(self) -> bool:
        """Take the current expiration. False if it went stale."""
        fired = self._fired
        self._fired = False
        self._event.clear()
        return fired


class ReconciliationLoop:
    """Turns configuration and game collection changes into shortcut updates"""

    def __init__(self, settings_dir: str, app: AppSettings, launchers: LaunchersSettings,
                 known_games: KnownGamesSettings, steam: SteamService,
                 shortcuts_manager: Optional[ShortcutsManager] = None,
                 timer_delay: float = TIMER_DELAY, refresh_delay: Optional[float] = None):
        """
        Args:
            settings_dir: Configuration directory to watch
            app: Application settings, reloaded in place
            launchers: Launchers settings, reloaded in place
            known_games: Known games ledger
            steam: Steam Adapter
            shortcuts_manager: Manager to use instead of one built from the above
            timer_delay: Debounce delay in seconds
            refresh_delay: Scan interval of every watcher (watcher default if None)
        """
        self.settings_dir = settings_dir
        self.app = app
        self.launchers = launchers
        self.known_games = known_games
        self.steam = steam
        self.shortcuts_manager = shortcuts_manager or ShortcutsManager(
            app, launchers, known_games, steam, ignore_path_prefix=settings_dir)
        self.timer_delay = timer_delay
        self.refresh_delay = refresh_delay

        self.config_watcher: Optional[DirectoryWatcher] = None
        self.collection_watchers: Dict[str, DirectoryWatcher] = {}

        self._config_changes: Optional[asyncio.Queue] = None
        self._collection_changes: Optional[asyncio.Queue] = None
        self._stop_requests: Optional[asyncio.Queue] = None
        self.update_collections_timer: Optional[DebounceTimer] = None
        self.refresh_known_games_timer: Optional[DebounceTimer] = None

    def _watcher_config(self, root_dir_path: str, suffixes, scan_mode: ScanMode,
                        changes: asyncio.Queue) -> WatcherConfig:
        config = WatcherConfig(root_dir_path=root_dir_path, file_suffixes=tuple(suffixes),
                               scan_mode=scan_mode, changes=changes)
        if self.refresh_delay is not None:
            config.refresh_delay = self.refresh_delay
        return config

    def _setup(self) -> None:
        """Create queues, timers and the configuration watcher (on the loop)"""
        self._config_changes = asyncio.Queue(maxsize=1)
        self._collection_changes = asyncio.Queue(maxsize=1)
        self._stop_requests = asyncio.Queue()
        self.update_collections_timer = DebounceTimer("update_collections")
        self.refresh_known_games_timer = DebounceTimer("refresh_known_games")

        self.config_watcher = DirectoryWatcher(self._watcher_config(
            self.settings_dir, (FILE_EXTENSION,), ScanMode.FILES_IN_DIRECTORY, self._config_changes))

    async def run(self) -> None:
        """Handle events until stop() is called"""
        self._setup()
        self.config_watcher.start()
        logger.info(f"[Loop] Watching settings in {self.settings_dir}")

        sources: Dict[str, Callable[[], Awaitable]] = {
            "stop": self._stop_requests.get,
            "config": self._config_changes.get,
            "update_collections": self.update_collections_timer.wait,
            "refresh_known_games": self.refresh_known_games_timer.wait,
            "collection": self._collection_changes.get,
        }
        tasks = {name: asyncio.create_task(source()) for name, source in sources.items()}

        try:
            while True:
                done, _ = await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_COMPLETED)

                for name, source in sources.items():
                    task = tasks[name]
                    if task not in done:
                        continue

                    if name == "stop":
                        self._shutdown()
                        task.result().set_result(None)
                        return

                    await self._dispatch(name, task.result())
                    tasks[name] = asyncio.create_task(source())
        finally:
            for task in tasks.values():
                task.cancel()

    async def _dispatch(self, name: str, value) -> None:
        try:
            if name == "config":
                self._handle_config_change(value)
            elif name == "update_collections":
                if self.update_collections_timer.consume():
                    self._update_collection_watchers()
            elif name == "refresh_known_games":
                if self.refresh_known_games_timer.consume():
                    await self._refresh_known_games()
            elif name == "collection":
                await self._handle_collection_change(value)
        except Exception as e:
            logger.error(f"[Loop] Error handling {name} event: {e}", exc_info=True)

    async def stop(self) -> None:
        """Ask the loop to destroy its watchers and exit; wait until it has"""
        if self._stop_requests is None:
            return
        done = asyncio.get_running_loop().create_future()
        await self._stop_requests.put(done)
        await done

    def _shutdown(self) -> None:
        for dir_path in list(self.collection_watchers):
            self.collection_watchers.pop(dir_path).destroy()
        if self.config_watcher is not None:
            self.config_watcher.destroy()
        self.update_collections_timer.stop()
        self.refresh_known_games_timer.stop()
        logger.info("[Loop] Stopped")

    def _handle_config_change(self, change: Change) -> None:
        if change.is_err():
            logger.error(f"[Loop] Failed to scan settings directory - {change.error}")
            return

        for file_path in change.updated_paths:
            basename = os.path.basename(file_path)

            if basename == self.app.filename():
                logger.info(f"[Loop] Application settings have been updated: {file_path}")
                try:
                    self.app.reload(file_path)
                except ConfigLoadFailed as e:
                    logger.error(f"[Loop] Failed to load application settings - {e}")
                    continue
                self.update_collections_timer.reset(self.timer_delay)

            elif basename == self.launchers.filename():
                logger.info(f"[Loop] Launchers settings have been updated: {file_path}")
                try:
                    self.launchers.reload(file_path)
                except ConfigLoadFailed as e:
                    logger.error(f"[Loop] Failed to load launchers settings - {e}")
                    continue
                self.update_collections_timer.reset(self.timer_delay)
                self.refresh_known_games_timer.reset(self.timer_delay)

    def _update_collection_watchers(self) -> None:
        logger.info("[Loop] Updating game collection watchers...")
        collections = self.app.watch_paths()

        for dir_path in list(self.collection_watchers):
            if dir_path not in collections:
                logger.info(f"[Loop] No longer watching {dir_path}")
                self.collection_watchers.pop(dir_path).destroy()

        for dir_path, launcher_name in collections.items():
            launcher = self.launchers.has(launcher_name)
            if launcher is None:
                logger.warning(f"[Loop] The collection '{dir_path}' will not be added - launcher "
                               f"'{launcher_name}' does not exist in the launchers settings")
                continue

            try:
                launcher.validate()
            except InvalidLauncher as e:
                logger.warning(f"[Loop] The collection '{dir_path}' will not be added - "
                               f"the launcher is invalid - {e}")
                continue

            suffixes = launcher.game_file_suffixes() + IMAGE_FILE_SUFFIXES

            current = self.collection_watchers.get(dir_path)
            if current is not None:
                if set(current.config().file_suffixes) == set(suffixes):
                    continue
                current.destroy()
                del self.collection_watchers[dir_path]

            try:
                watcher = DirectoryWatcher(self._watcher_config(
                    dir_path, suffixes, ScanMode.FILES_IN_SUBDIRECTORIES, self._collection_changes))
            except WatcherSetupFailed as e:
                logger.error(f"[Loop] Failed to create game collection watcher for {dir_path} - {e}")
                continue

            watcher.start()
            self.collection_watchers[dir_path] = watcher
            logger.info(f"[Loop] Now watching '{dir_path}' as a game collection")

    def _is_registered(self, watcher_id: int) -> bool:
        return any(w.id == watcher_id for w in self.collection_watchers.values())

    async def _discover_topology(self):
        try:
            return await asyncio.get_running_loop().run_in_executor(None, self.steam.discover)
        except SteamTopologyUnavailable as e:
            logger.error(f"[Loop] Failed to get Steam info - {e}")
            return None

    async def _refresh_known_games(self) -> None:
        logger.info("[Loop] Refreshing shortcuts for known games...")
        topology = await self._discover_topology()
        if topology is None:
            return

        results = await asyncio.get_running_loop().run_in_executor(
            None, self.shortcuts_manager.refresh_all, topology)
        log_results(results, logger)

    async def _handle_collection_change(self, change: Change) -> None:
        if not self._is_registered(change.watcher_id):
            logger.debug(f"[Loop] Dropping change from retired watcher of {change.root_dir_path}")
            return

        if change.is_err():
            logger.error(f"[Loop] Failed to get changes for game collection {change.root_dir_path} - {change.error}")
            return

        topology = await self._discover_topology()
        if topology is None:
            return

        # A deleted image only changes how the game looks
        updated = change.updated_paths + change.deleted_image_paths()
        deleted = change.deleted_non_image_paths()

        def reconcile():
            return (self.shortcuts_manager.update(updated, False, topology)
                    + self.shortcuts_manager.delete(deleted, False, topology))

        results = await asyncio.get_running_loop().run_in_executor(None, reconcile)
        log_results(results, logger)
