"""
Advisory locking of the repos root.

Two synchronizers pointed at the same repos root would race on clone staging
and working-tree replacement. The lock is a file created atomically with
O_CREAT | O_EXCL that records the owner's PID and host; locks whose owner is
gone are reclaimed.
"""

import os
import socket
import time
import logging
from pathlib import Path
from typing import Optional, Tuple

import psutil

from .errors import LockTimeoutError


class RootLock:
    """
    Exclusive advisory lock on a repos root.

    Use as a context manager; LockTimeoutError is raised when another live
    process keeps the lock for longer than the timeout.
    """

    def __init__(self, lock_file_path: Path, timeout: float = 30.0, foreign_stale_after: float = 3600.0):
        """
        Initialize the lock.

        Args:
            lock_file_path: Path to the lock file
            timeout: Maximum time to wait for lock acquisition (seconds)
            foreign_stale_after: Age after which a lock written on another host is reclaimed
        """
        self.lock_file_path = lock_file_path
        self.timeout = timeout
        self.foreign_stale_after = foreign_stale_after
        self.logger = logging.getLogger('secureclone.file_lock')
        self._lock_acquired = False

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Returns:
            True if lock was acquired, False if timeout occurred
        """
        deadline = time.monotonic() + self.timeout

        while True:
            if self._try_create():
                self._lock_acquired = True
                self.logger.debug(f"Acquired lock: {self.lock_file_path}")
                return True

            if self._check_and_cleanup_stale_lock():
                continue

            if time.monotonic() >= deadline:
                break
            time.sleep(0.2)

        self.logger.warning(f"Failed to acquire lock {self.lock_file_path} within {self.timeout}s")
        return False

    def _try_create(self) -> bool:
        try:
            fd = os.open(self.lock_file_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False

        with os.fdopen(fd, 'w') as f:
            f.write(f"pid={os.getpid()} host={socket.gethostname()}\n")
        return True

    def _read_owner(self) -> Tuple[Optional[int], Optional[str]]:
        content = self.lock_file_path.read_text()
        fields = dict(part.split("=", 1) for part in content.split() if "=" in part)
        pid = int(fields["pid"]) if "pid" in fields else None
        return pid, fields.get("host")

    def _check_and_cleanup_stale_lock(self) -> bool:
        """
        Remove the existing lock if its owner is gone.

        Returns:
            True if a stale lock was removed (or vanished) and acquisition can be retried
        """
        try:
            pid, host = self._read_owner()
            lock_age = time.time() - self.lock_file_path.stat().st_mtime
        except FileNotFoundError:
            return True
        except (ValueError, OSError) as e:
            self.logger.warning(f"Cleaning up unparseable lock file {self.lock_file_path}: {e}")
            return self._remove_lock_file()

        if host and host != socket.gethostname():
            if lock_age > self.foreign_stale_after:
                self.logger.warning(f"Cleaning up {int(lock_age)}s old lock from host {host}: {self.lock_file_path}")
                return self._remove_lock_file()
            return False

        # A PID equal to ours is a leftover from an earlier run in a recycled PID namespace
        if pid is None or pid == os.getpid() or not self._is_process_running(pid):
            self.logger.warning(f"Cleaning up lock from dead process {pid}: {self.lock_file_path}")
            return self._remove_lock_file()

        return False

    def _remove_lock_file(self) -> bool:
        try:
            self.lock_file_path.unlink()
        except FileNotFoundError:
            pass
        return True

    @staticmethod
    def _is_process_running(pid: int) -> bool:
        """Check if a process with given PID is still running (zombies count as gone)."""
        try:
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            return True

    def release(self) -> None:
        """Release the lock if this instance holds it."""
        if not self._lock_acquired:
            return

        try:
            self.lock_file_path.unlink()
            self.logger.debug(f"Released lock: {self.lock_file_path}")
        except FileNotFoundError:
            self.logger.warning(f"Lock file {self.lock_file_path} disappeared before release")
        finally:
            self._lock_acquired = False

    def __enter__(self):
        """Context manager entry."""
        if not self.acquire():
            raise LockTimeoutError(
                f"Could not acquire lock {self.lock_file_path} within {self.timeout}s",
                context={"lock_file": str(self.lock_file_path)},
                hint="another secure-clone run is using this repos root; wait for it or remove a stale lock file",
            )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.release()
