"""
ScanGate Run Lock

An exclusive lock file in the scan root whose content is the creation time
in epoch milliseconds. A lock older than the staleness threshold is treated
as abandoned and may be taken over.

States: UNLOCKED -> ACQUIRING -> HELD -> RELEASED
"""

from __future__ import annotations

import logging
import os
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".scangate.lock"
STALE_AFTER_SECONDS = 10 * 60


def _now_ms() -> int:
    return int(time.time() * 1000)


class LockState(Enum):
    UNLOCKED = "unlocked"
    ACQUIRING = "acquiring"
    HELD = "held"
    RELEASED = "released"


class LockManager:
    """Acquires and releases the run lock for one scan root."""

    def __init__(
        self,
        root_dir: Path,
        stale_after: float = STALE_AFTER_SECONDS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.lock_path = Path(root_dir) / LOCK_FILENAME
        self.stale_after = stale_after
        self._clock = clock
        self.state = LockState.UNLOCKED

    @property
    def held(self) -> bool:
        return self.state is LockState.HELD

    def acquire(self) -> bool:
        """
        Take the lock without blocking.

        Returns:
            True if the lock is now held by this manager, False if a fresh
            lock belongs to someone else or the file cannot be written.
        """
        if self.held:
            return True
        self.state = LockState.ACQUIRING

        if self._create():
            return True

        lock_time = self._read_timestamp()
        if self._is_fresh(lock_time):
            logger.debug("Lock %s is held (created at %d)", self.lock_path, lock_time)
            self.state = LockState.UNLOCKED
            return False

        # Another scan may have replaced the stale lock since it was read.
        current = self._read_timestamp()
        if current != lock_time and self._is_fresh(current):
            logger.debug("Stale lock %s was taken over (created at %d)", self.lock_path, current)
            self.state = LockState.UNLOCKED
            return False

        logger.warning("Removing stale lock %s", self.lock_path)
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Cannot remove stale lock %s: %s", self.lock_path, exc)
            self.state = LockState.UNLOCKED
            return False

        if self._create():
            return True
        self.state = LockState.UNLOCKED
        return False

    def release(self) -> None:
        """Delete the lock file if this manager holds it."""
        if not self.held:
            return
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove lock %s: %s", self.lock_path, exc)
        self.state = LockState.RELEASED

    def _is_fresh(self, lock_time: Optional[int]) -> bool:
        return lock_time is not None and self._clock() - lock_time < self.stale_after * 1000

    def _create(self) -> bool:
        try:
            fd = os.open(self.lock_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError:
            return False
        except OSError as exc:
            logger.warning("Cannot create lock %s: %s", self.lock_path, exc)
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(str(self._clock()))
        self.state = LockState.HELD
        return True

    def _read_timestamp(self) -> Optional[int]:
        try:
            raw = self.lock_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.debug("Cannot read lock %s: %s", self.lock_path, exc)
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def __enter__(self) -> "LockManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
