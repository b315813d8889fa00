"""Artwork utilities for managing Steam grid tile images of shortcuts."""

import binascii
import os
import shutil
import logging
import struct
from typing import List, Optional

from grundy.errors import TileIO
from grundy.utils.paths import IMAGE_FILE_SUFFIXES

logger = logging.getLogger(__name__)

# Portrait grid capsule, the tile shown in the library view
TILE_SUFFIX = "p"


def generate_app_id(exe_path: str, name: str) -> int:
    """Generate the signed AppID Steam derives for a non-Steam shortcut.

    Args:
        exe_path: Exe value exactly as stored in shortcuts.vdf (quotes included)
        name: Shortcut AppName

    Returns:
        Signed int32 app ID, as stored in shortcuts.vdf
    """
    key = f"{exe_path}{name}"
    crc = binascii.crc32(key.encode('utf-8')) & 0xFFFFFFFF
    app_id = crc | 0x80000000
    return struct.unpack('i', struct.pack('I', app_id))[0]


def convert_to_unsigned_appid(app_id: int) -> int:
    """Convert signed int32 app ID to unsigned for artwork filenames.

    Steam artwork files use unsigned app IDs even though shortcuts.vdf stores signed.
    Example: -1257913040 (signed) -> 3037054256 (unsigned)
    """
    return app_id if app_id >= 0 else app_id + 2**32


def tile_basename(exe_path: str, name: str) -> str:
    return f"{convert_to_unsigned_appid(generate_app_id(exe_path, name))}{TILE_SUFFIX}"


def get_tile_paths(grid_dir: str, exe_path: str, name: str) -> List[str]:
    """All candidate tile paths (one per image suffix) for a shortcut."""
    base = tile_basename(exe_path, name)
    return [os.path.join(grid_dir, base + suffix) for suffix in IMAGE_FILE_SUFFIXES]


def find_tile(grid_dir: str, exe_path: str, name: str) -> Optional[str]:
    for candidate in get_tile_paths(grid_dir, exe_path, name):
        if os.path.isfile(candidate):
            return candidate
    return None


def remove_tile(grid_dir: str, exe_path: str, name: str) -> int:
    """Delete any tile image for a shortcut. Missing tiles are not an error.

    Returns:
        Number of files removed

    Raises:
        TileIO: An existing tile could not be removed
    """
    removed = 0
    for candidate in get_tile_paths(grid_dir, exe_path, name):
        try:
            os.remove(candidate)
            removed += 1
            logger.debug(f"[Artwork] Removed tile {candidate}")
        except FileNotFoundError:
            continue
        except OSError as e:
            raise TileIO(f"failed to remove grid image '{candidate}' - {e}") from e
    return removed


def add_tile(grid_dir: str, exe_path: str, name: str, source_path: str) -> str:
    """Copy source_path into the grid directory as the shortcut's tile.

    Existing tiles for the shortcut (of any image type) are replaced.

    Returns:
        Path of the written tile

    Raises:
        TileIO: The source is missing or the copy failed
    """
    suffix = os.path.splitext(source_path)[1].lower()
    if suffix not in IMAGE_FILE_SUFFIXES:
        raise TileIO(f"unsupported grid image type '{source_path}'")

    target = os.path.join(grid_dir, tile_basename(exe_path, name) + suffix)

    try:
        os.makedirs(grid_dir, exist_ok=True)
        for candidate in get_tile_paths(grid_dir, exe_path, name):
            if candidate != target and os.path.isfile(candidate):
                os.remove(candidate)
        shutil.copyfile(source_path, target)
    except OSError as e:
        raise TileIO(f"failed to copy grid image '{source_path}' to '{target}' - {e}") from e

    logger.debug(f"[Artwork] Copied tile {source_path} -> {target}")
    return target
