"""
Grundy command line entry point.

With no arguments the engine acquires the instance lock, opens today's log
file, prepares the configuration directory and runs the reconciliation loop
until SIGINT or SIGTERM. The -install, -uninstall and -daemon options manage
the OS service instead and exit.
"""

import os
import sys
import signal
import asyncio
import logging
import argparse
from dataclasses import dataclass
from typing import List, Optional

from grundy import DESCRIPTION, NAME, __version__
from grundy.controllers.reconciliation_loop import ReconciliationLoop
from grundy.controllers.results import log_results
from grundy.controllers.shortcuts_manager import ShortcutsManager
from grundy.errors import ConfigLoadFailed, DaemonError, GrundyError, SteamTopologyUnavailable
from grundy.services.daemon_service import COMMANDS, DaemonService
from grundy.services.steam_service import SteamService
from grundy.settings.app import AppSettings
from grundy.settings.game import GameSettings
from grundy.settings.ini_file import IniDocument, SaveableSettings
from grundy.settings.known_games import KnownGamesSettings
from grundy.settings.launchers import LaunchersSettings
from grundy.utils.instance_lock import InstanceLock
from grundy.utils.logging_setup import setup_console_logging, setup_logging
from grundy.utils.paths import (
    EXAMPLE_SUFFIX,
    default_settings_dir,
    ensure_dir,
    examples_dir,
    internal_dir,
    lock_path,
)

logger = logging.getLogger(__name__)


@dataclass
class PrimarySettings:
    settings_dir: str
    app: AppSettings
    launchers: LaunchersSettings
    known_games: KnownGamesSettings
    known_games_loaded: bool


def _write_settings(dir_path: str, filename: str, settings: SaveableSettings) -> None:
    with open(os.path.join(dir_path, filename), 'w', encoding='utf-8') as f:
        settings.save(f)


def setup_primary_settings(settings_dir: str) -> PrimarySettings:
    """Create the configuration directory layout and load the ledger.

    Example documents are rewritten on every start. app and launchers
    documents are only created when missing; their contents are loaded once
    the settings watcher reports them.

    Raises:
        OSError: A file or directory could not be created
        ConfigLoadFailed: The known games ledger could not be loaded
    """
    ensure_dir(settings_dir)
    examples = ensure_dir(examples_dir(settings_dir))

    app = AppSettings()
    launchers = LaunchersSettings()

    for settings, create_in_settings_dir in ((app, True), (launchers, True), (GameSettings(), False)):
        _write_settings(examples, settings.filename(EXAMPLE_SUFFIX), settings.example())

        if create_in_settings_dir and not os.path.exists(os.path.join(settings_dir, settings.filename())):
            logger.info(f"[Setup] Creating default {settings.filename()}")
            _write_settings(settings_dir, settings.filename(), settings)

    known_games, loaded = KnownGamesSettings.load_or_create(ensure_dir(internal_dir(settings_dir)))

    return PrimarySettings(
        settings_dir=settings_dir,
        app=app,
        launchers=launchers,
        known_games=known_games,
        known_games_loaded=loaded,
    )


def _load_app_settings(settings_dir: str) -> AppSettings:
    app = AppSettings()
    file_path = os.path.join(settings_dir, app.filename())
    if os.path.isfile(file_path):
        try:
            app.config = IniDocument.from_file(file_path)
        except ConfigLoadFailed as e:
            logger.warning(f"[Main] Using default application settings - {e}")
    return app


async def run_engine(primary: PrimarySettings, steam: Optional[SteamService] = None) -> None:
    steam = steam or SteamService()
    loop = asyncio.get_running_loop()

    manager = ShortcutsManager(primary.app, primary.launchers, primary.known_games, steam,
                               ignore_path_prefix=primary.settings_dir)

    if primary.known_games_loaded:
        try:
            topology = await loop.run_in_executor(None, steam.discover)
        except SteamTopologyUnavailable as e:
            logger.error(f"[Main] Failed to cleanup known game shortcuts - {e}")
            topology = None
        results = await loop.run_in_executor(None, manager.cleanup_vanished_games, topology)
        log_results(results, logger)

    reconciler = ReconciliationLoop(primary.settings_dir, primary.app, primary.launchers,
                                    primary.known_games, steam, shortcuts_manager=manager)

    stop_tasks = []

    def request_stop():
        logger.info("[Main] Stop requested")
        stop_tasks.append(asyncio.create_task(reconciler.stop()))

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_stop)
        except (NotImplementedError, RuntimeError):
            # Windows event loops deliver Ctrl+C as KeyboardInterrupt instead
            pass

    await reconciler.run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=NAME, description=DESCRIPTION)
    parser.add_argument("-settings", dest="settings_dir", default=default_settings_dir(),
                        help="The directory to store application settings")
    parser.add_argument("-install", action="store_true", help="Installs the application")
    parser.add_argument("-uninstall", action="store_true", help="Uninstalls the application")
    parser.add_argument("-daemon", dest="daemon_command", default="",
                        help="Manage the application's daemon with one of: " + ", ".join(COMMANDS))
    parser.add_argument("-version", action="version", version=f"{NAME} {__version__}")
    return parser


def run_daemon_command(settings_dir: str, command: str) -> int:
    daemon = DaemonService(settings_dir)
    auto_start = _load_app_settings(settings_dir).is_auto_start()

    try:
        output = daemon.execute(command, auto_start=auto_start)
    except DaemonError as e:
        logger.error(f"[Main] {e}")
        return 1

    if output:
        print(output)
    return 0


def run(settings_dir: str) -> int:
    try:
        ensure_dir(settings_dir)
    except OSError as e:
        logger.error(f"[Main] Failed to create settings directory {settings_dir} - {e}")
        return 1

    instance_lock = InstanceLock(lock_path(settings_dir))
    try:
        instance_lock.acquire()
    except GrundyError as e:
        logger.error(f"[Main] {e}")
        return 1

    try:
        try:
            log_path = setup_logging(settings_dir)
        except OSError as e:
            logger.error(f"[Main] Failed to open log file - {e}")
            return 1

        logger.info(f"[Main] {NAME} {__version__} starting, logging to {log_path}")

        try:
            primary = setup_primary_settings(settings_dir)
        except (OSError, GrundyError) as e:
            logger.error(f"[Main] Failed to set up settings in {settings_dir} - {e}")
            return 1

        try:
            asyncio.run(run_engine(primary))
        except KeyboardInterrupt:
            logger.info("[Main] Interrupted")

        return 0
    finally:
        instance_lock.release()


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    setup_console_logging()

    settings_dir = args.settings_dir

    if args.install:
        code = run_daemon_command(settings_dir, "install")
    elif args.uninstall:
        code = run_daemon_command(settings_dir, "uninstall")
    elif args.daemon_command.strip():
        logger.info(f"[Main] Executing daemon command '{args.daemon_command}'...")
        code = run_daemon_command(settings_dir, args.daemon_command.strip())
    else:
        code = run(settings_dir)

    sys.exit(code)
