# Settings package for Grundy
# INI-backed documents: application, launchers, per-game overrides and the known games ledger.

from .ini_file import IniDocument, SaveableSettings
from .app import AppSettings
from .launchers import Launcher, LaunchersSettings
from .game import Game, GameSettings, ImageChoice, build_game, load_game_settings
from .known_games import KnownGamesSettings
