"""Per-game outcomes of shortcut operations"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class Operation(str, Enum):
    CREATE = "create_shortcut"
    UPDATE = "update_shortcut"
    DELETE = "delete_shortcut"


class Outcome(str, Enum):
    SUCCEEDED = "succeeded"
    SUCCEEDED_WITH_WARNING = "succeeded with warning(s)"
    FAILED = "failed"
    SKIPPED = "skipped"


_LOG_LEVELS = {
    Outcome.SUCCEEDED: logging.INFO,
    Outcome.SUCCEEDED_WITH_WARNING: logging.WARNING,
    Outcome.SKIPPED: logging.INFO,
    Outcome.FAILED: logging.ERROR,
}


@dataclass(frozen=True)
class Result:
    operation: Operation
    outcome: Outcome
    game_name: str = ""
    steam_user_id: str = ""
    reason: str = ""

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self.outcome]

    def printable(self) -> str:
        text = f"Operation {self.operation.value} has {self.outcome.value}"
        if self.game_name:
            text += f" for game '{self.game_name}'"
        if self.steam_user_id:
            text += f" for Steam user ID '{self.steam_user_id}'"
        if self.reason:
            text += f" - {self.reason}"
        return text

    def __str__(self) -> str:
        return self.printable()


def succeeded(operation: Operation, game_name: str, user_id: str = "", reason: str = "") -> Result:
    return Result(operation, Outcome.SUCCEEDED, game_name, user_id, reason)


def succeeded_with_warning(operation: Operation, game_name: str, user_id: str = "", reason: str = "") -> Result:
    return Result(operation, Outcome.SUCCEEDED_WITH_WARNING, game_name, user_id, reason)


def failed(operation: Operation, game_name: str, user_id: str = "", reason: str = "") -> Result:
    return Result(operation, Outcome.FAILED, game_name, user_id, reason)


def skipped(operation: Operation, game_name: str, user_id: str = "", reason: str = "") -> Result:
    return Result(operation, Outcome.SKIPPED, game_name, user_id, reason)


def log_results(results: Iterable[Result], logger: logging.Logger) -> None:
    for result in results:
        logger.log(result.log_level, f"[Results] {result.printable()}")
