"""shortcuts.vdf file utilities using the ValvePython vdf library"""

import os
import logging
from typing import Any, Callable, Dict, Optional

import vdf

from grundy.errors import ShortcutFileIO

logger = logging.getLogger(__name__)

SHORTCUTS_KEY = "shortcuts"
DEFAULT_SHORTCUTS_FILE_MODE = 0o644

# Steam has written both spellings over the years
APP_NAME_KEYS = ("AppName", "appname")


def empty_shortcuts() -> Dict[str, Any]:
    return {SHORTCUTS_KEY: {}}


def load_shortcuts_vdf(path: str) -> Dict[str, Any]:
    """Load and parse a shortcuts.vdf file.

    A missing or empty file yields an empty shortcuts structure.

    Raises:
        ShortcutFileIO: The file exists but cannot be read or parsed
    """
    try:
        with open(path, 'rb') as f:
            raw = f.read()
    except FileNotFoundError:
        return empty_shortcuts()
    except OSError as e:
        raise ShortcutFileIO(f"failed to read shortcuts file '{path}' - {e}") from e

    if not raw:
        return empty_shortcuts()

    try:
        data = vdf.binary_loads(raw)
    except Exception as e:
        raise ShortcutFileIO(f"failed to parse shortcuts file '{path}' - {e}") from e

    if not isinstance(data.get(SHORTCUTS_KEY), dict):
        data[SHORTCUTS_KEY] = {}

    return data


def save_shortcuts_vdf(path: str, data: Dict[str, Any]) -> None:
    """Write shortcuts data in one pass (truncate, then write).

    The file is re-read afterwards and the record count compared with what
    was written.

    Raises:
        ShortcutFileIO: The write or its validation failed
    """
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)

        binary_data = vdf.binary_dumps(data)

        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, DEFAULT_SHORTCUTS_FILE_MODE)
        with os.fdopen(fd, 'wb') as f:
            f.write(binary_data)
            f.flush()
            os.fsync(f.fileno())  # Force write to disk
    except OSError as e:
        raise ShortcutFileIO(f"failed to write shortcuts file '{path}' - {e}") from e

    expected_count = len(data.get(SHORTCUTS_KEY, {}))
    actual_count = len(load_shortcuts_vdf(path).get(SHORTCUTS_KEY, {}))
    if actual_count != expected_count:
        raise ShortcutFileIO(f"write validation failed for '{path}' - "
                             f"expected {expected_count} shortcuts, found {actual_count}")

    logger.debug(f"[VDF] Wrote {actual_count} shortcuts to {path}")


def entry_name(entry: Dict[str, Any]) -> str:
    for key in APP_NAME_KEYS:
        if key in entry:
            return str(entry[key])
    return ""


def find_key(entry: Dict[str, Any], key: str) -> str:
    """Return the spelling of key already used by an entry, or key itself."""
    lowered = key.lower()
    for existing in entry:
        if existing.lower() == lowered:
            return existing
    return key


def _next_index(shortcuts: Dict[str, Any]) -> str:
    indices = [int(k) for k in shortcuts.keys() if str(k).isdigit()]
    return str(max(indices, default=-1) + 1)


def upsert_shortcut(data: Dict[str, Any], name: str,
                    transform_existing: Callable[[Dict[str, Any]], Dict[str, Any]],
                    make_new: Callable[[], Dict[str, Any]]) -> bool:
    """Update the first shortcut named name, or append a new one.

    Args:
        data: Parsed shortcuts.vdf structure (modified in place)
        name: AppName to match
        transform_existing: Returns the replacement for a matched entry
        make_new: Returns the entry to append when nothing matched

    Returns:
        True if an existing entry was updated, False if one was appended
    """
    shortcuts = data.setdefault(SHORTCUTS_KEY, {})

    for idx, entry in shortcuts.items():
        if entry_name(entry) == name:
            shortcuts[idx] = transform_existing(entry)
            return True

    shortcuts[_next_index(shortcuts)] = make_new()
    return False


def remove_shortcuts(data: Dict[str, Any], name: str) -> int:
    """Remove every shortcut named name and renumber the rest.

    Returns:
        Number of entries removed
    """
    shortcuts = data.get(SHORTCUTS_KEY, {})
    kept = [entry for entry in shortcuts.values() if entry_name(entry) != name]
    removed = len(shortcuts) - len(kept)

    if removed:
        data[SHORTCUTS_KEY] = {str(i): entry for i, entry in enumerate(kept)}

    return removed


def find_shortcut(data: Dict[str, Any], name: str) -> Optional[Dict[str, Any]]:
    for entry in data.get(SHORTCUTS_KEY, {}).values():
        if entry_name(entry) == name:
            return entry
    return None
