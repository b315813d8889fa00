"""Log file setup: <config_dir>/logs/<YYYY-MM-DD>.log plus stderr."""

import os
import logging
from datetime import datetime
from typing import Optional

from grundy.utils.paths import ensure_dir, logs_dir

LOG_FILE_EXTENSION = ".log"

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_FORMAT = '%(levelname)s: %(message)s'


def log_file_path(settings_dir: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return os.path.join(logs_dir(settings_dir), now.strftime("%Y-%m-%d") + LOG_FILE_EXTENSION)


def setup_logging(settings_dir: str, console_level: int = logging.INFO) -> str:
    """Send log records to today's log file and to stderr.

    Args:
        settings_dir: Configuration directory holding logs/
        console_level: Minimum level echoed to stderr

    Returns:
        Path of the log file being appended to

    Raises:
        OSError: The log directory or file could not be created
    """
    ensure_dir(logs_dir(settings_dir))
    file_path = log_file_path(settings_dir)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for handler in list(root.handlers):
        if getattr(handler, "_grundy_handler", False):
            root.removeHandler(handler)
            handler.close()

    file_handler = logging.FileHandler(file_path, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    file_handler._grundy_handler = True

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    console_handler._grundy_handler = True

    root.addHandler(file_handler)
    root.addHandler(console_handler)

    return file_path


def setup_console_logging(level: int = logging.INFO) -> None:
    """Log to stderr only. setup_logging() replaces this handler later."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    if any(getattr(h, "_grundy_handler", False) for h in root.handlers):
        return

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    console_handler._grundy_handler = True
    root.addHandler(console_handler)
