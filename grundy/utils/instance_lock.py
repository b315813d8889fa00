"""Cross-process instance lock rooted in the configuration directory.

Uses an advisory exclusive lock on <config_dir>/.internal/lock. Two processes
holding the same lock path cannot both have acquired it.
"""

import os
import sys
import time
import logging
from typing import Optional

from grundy.errors import LockHeld, LockIO

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

ACQUIRE_TIMEOUT = 3.0
RETRY_INTERVAL = 0.1

IN_USE_MESSAGE = "another instance is running"


def _try_lock(fd: int) -> bool:
    try:
        if sys.platform == "win32":
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        else:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        return True
    except (BlockingIOError, PermissionError):
        return False
    except OSError as e:
        if sys.platform == "win32":
            return False
        raise LockIO(f"failed to lock '{fd}' - {e}") from e


def _unlock(fd: int) -> None:
    if sys.platform == "win32":
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)


class InstanceLock:
    """Named mutex that keeps a second engine instance from starting"""

    def __init__(self, path: str):
        self.path = path
        self._fd: Optional[int] = None

    @property
    def is_acquired(self) -> bool:
        return self._fd is not None

    def acquire(self, timeout: float = ACQUIRE_TIMEOUT) -> None:
        """Acquire the lock, waiting up to timeout seconds.

        Raises:
            LockHeld: Another holder kept the lock for the whole wait
            LockIO: The lock file could not be created or opened
        """
        if self._fd is not None:
            return

        try:
            os.makedirs(os.path.dirname(self.path), exist_ok=True)
        except OSError as e:
            raise LockIO(f"unable to create lock directory - {e}") from e

        deadline = time.monotonic() + timeout

        while True:
            try:
                fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
            except OSError as e:
                raise LockIO(f"unable to create lock file '{self.path}' - {e}") from e

            if _try_lock(fd):
                if self._still_linked(fd):
                    self._fd = fd
                    self._write_pid()
                    logger.debug(f"[Lock] Acquired {self.path}")
                    return
                # The previous holder removed the file while we waited
                _unlock(fd)

            os.close(fd)

            if time.monotonic() >= deadline:
                raise LockHeld(IN_USE_MESSAGE)

            time.sleep(RETRY_INTERVAL)

    def _still_linked(self, fd: int) -> bool:
        try:
            current = os.stat(self.path)
        except FileNotFoundError:
            return False
        opened = os.fstat(fd)
        if sys.platform == "win32":
            return True
        return (current.st_dev, current.st_ino) == (opened.st_dev, opened.st_ino)

    def _write_pid(self) -> None:
        try:
            os.ftruncate(self._fd, 0)
            os.lseek(self._fd, 0, os.SEEK_SET)
            os.write(self._fd, f"{os.getpid()}\n".encode())
        except OSError as e:
            logger.warning(f"[Lock] Failed to record PID in lock file: {e}")

    def release(self) -> None:
        """Release the lock and remove the lock file. Safe to call twice."""
        if self._fd is None:
            return

        fd, self._fd = self._fd, None

        # Windows refuses to delete a file that is still open
        if sys.platform != "win32":
            self._remove_file()

        try:
            _unlock(fd)
        finally:
            os.close(fd)

        if sys.platform == "win32":
            self._remove_file()

        logger.debug(f"[Lock] Released {self.path}")

    def _remove_file(self) -> None:
        try:
            os.remove(self.path)
        except OSError as e:
            logger.warning(f"[Lock] Failed to remove lock file {self.path}: {e}")

    def __enter__(self) -> "InstanceLock":
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()
