"""Exception types raised by Grundy components.

Each class maps to one error kind. Per-game problems are normally reported
as Result values instead of exceptions; see grundy.controllers.results.
"""


class GrundyError(Exception):
    """Base class for all Grundy errors"""


class ConfigLoadFailed(GrundyError):
    """A settings document could not be read or parsed"""


class WatcherSetupFailed(GrundyError):
    """A directory watcher was given an unusable configuration"""


class SteamTopologyUnavailable(GrundyError):
    """The Steam installation or its user data could not be located"""


class ShortcutFileIO(GrundyError):
    """Reading or writing a user's shortcuts.vdf failed"""


class TileIO(GrundyError):
    """Copying or removing a grid tile image failed"""


class LockHeld(GrundyError):
    """Another instance of the application owns the instance lock"""


class LockIO(GrundyError):
    """The instance lock file could not be created or locked"""


class InvalidLauncher(GrundyError):
    """A launcher definition is incomplete"""


class MissingExecutable(GrundyError):
    """A game directory has no executable for its launcher"""


class DaemonError(GrundyError):
    """The OS service manager failed or is unsupported"""
