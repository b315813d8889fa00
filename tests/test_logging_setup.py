"""
Tests for log file naming and handler setup.
"""
import logging
from datetime import datetime
from pathlib import Path

import pytest

from grundy.utils.logging_setup import log_file_path, setup_console_logging, setup_logging


@pytest.fixture
def clean_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)


def _grundy_handlers(root: logging.Logger) -> list:
    return [h for h in root.handlers if getattr(h, "_grundy_handler", False)]


def test_log_file_is_named_after_the_day(tmp_path: Path) -> None:
    path = log_file_path(str(tmp_path), datetime(2024, 3, 9, 23, 59))

    assert path == str(tmp_path / "logs" / "2024-03-09.log")


def test_setup_logging_writes_to_file(tmp_path: Path, clean_root_logger) -> None:
    path = setup_logging(str(tmp_path))

    logging.getLogger("grundy.test").info("[Test] hello")
    for handler in _grundy_handlers(clean_root_logger):
        handler.flush()

    assert "[Test] hello" in Path(path).read_text()


def test_setup_logging_replaces_console_handler(tmp_path: Path, clean_root_logger) -> None:
    setup_console_logging()
    setup_console_logging()
    assert len(_grundy_handlers(clean_root_logger)) == 1

    setup_logging(str(tmp_path))
    setup_logging(str(tmp_path))

    assert len(_grundy_handlers(clean_root_logger)) == 2
