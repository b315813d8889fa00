"""Grundy configuration directory layout and path helpers."""

import os
import sys
from typing import Iterable


# Settings file naming
FILE_EXTENSION = ".grundy.ini"
EXAMPLE_SUFFIX = "-example"

# Configuration directory layout
DEFAULT_SETTINGS_DIRNAME = ".grundy"
EXAMPLES_DIRNAME = "examples"
LOGS_DIRNAME = "logs"
INTERNAL_DIRNAME = ".internal"
LOCK_FILENAME = "lock"

DEFAULT_DIR_MODE = 0o755
DEFAULT_FILE_MODE = 0o600

# Images recognized for icon and tile selection
IMAGE_FILE_SUFFIXES = (".png", ".jpg", ".jpeg", ".ico")


def default_settings_dir() -> str:
    """Get the OS-dependent default configuration directory.

    $HOME/.grundy on Unix, %ProgramData%/.grundy on Windows (with
    backslashes normalized to forward slashes), ./.grundy when neither
    variable is set.
    """
    if sys.platform == "win32":
        parent = os.environ.get("ProgramData", "").replace("\\", "/")
    else:
        parent = os.environ.get("HOME", "")

    if not parent.strip():
        return "./" + DEFAULT_SETTINGS_DIRNAME

    return parent.rstrip("/") + "/" + DEFAULT_SETTINGS_DIRNAME


def examples_dir(settings_dir: str) -> str:
    return os.path.join(settings_dir, EXAMPLES_DIRNAME)


def logs_dir(settings_dir: str) -> str:
    return os.path.join(settings_dir, LOGS_DIRNAME)


def internal_dir(settings_dir: str) -> str:
    return os.path.join(settings_dir, INTERNAL_DIRNAME)


def lock_path(settings_dir: str) -> str:
    return os.path.join(internal_dir(settings_dir), LOCK_FILENAME)


def ensure_dir(dir_path: str) -> str:
    """Create a directory (and parents) if needed and return its path."""
    os.makedirs(dir_path, mode=DEFAULT_DIR_MODE, exist_ok=True)
    return dir_path


def has_suffix(file_path: str, suffixes: Iterable[str]) -> bool:
    """Check if a path's basename ends with one of the suffixes (case-insensitive)."""
    name = os.path.basename(file_path).lower()
    return any(name.endswith(s.lower()) for s in suffixes)


def is_image_file(file_path: str) -> bool:
    return has_suffix(file_path, IMAGE_FILE_SUFFIXES)


def is_under(path: str, parent: str) -> bool:
    """Check if path is parent itself or lives somewhere beneath it.

    Args:
        path: Path to check
        parent: Candidate ancestor directory

    Returns:
        True if path is inside parent
    """
    if not parent:
        return False

    path = os.path.normpath(path)
    parent = os.path.normpath(parent)
    return path == parent or path.startswith(parent.rstrip(os.sep) + os.sep)
