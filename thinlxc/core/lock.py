"""Host-wide lock serializing thin-lxc invocations.

Two lifecycle operations against the same container name interleave their
mount and iptables calls unpredictably, so the CLI takes this lock around
every mutating command.
"""
import fcntl
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from thinlxc.core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LOCK_FILE = Path("/run/thin-lxc/operation.lock")


class LockError(Exception):
    """Raised when unable to acquire lock."""
    pass


class OperationLock:
    """File-based lock held for the duration of one CLI operation."""

    def __init__(self, lock_file: Optional[Path] = None, timeout: int = 0):
        """Initialize lock.

        Args:
            lock_file: Path to lock file (default: /run/thin-lxc/operation.lock)
            timeout: Seconds to wait for lock (0 = fail immediately)
        """
        self.lock_file = Path(lock_file) if lock_file else DEFAULT_LOCK_FILE
        self.timeout = timeout
        self.lock_fd = None

    def acquire(self) -> bool:
        """Acquire the lock.

        Returns:
            True if lock acquired successfully

        Raises:
            LockError: If unable to acquire lock
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)

        # append mode keeps the holder's info readable until we own the lock
        self.lock_fd = open(self.lock_file, 'a+')

        start_time = time.time()
        while True:
            try:
                fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

                self.lock_fd.seek(0)
                self.lock_fd.truncate()
                self.lock_fd.write(f"{os.getpid()}\n")
                self.lock_fd.write(f"{time.strftime('%Y-%m-%d %H:%M:%S')}\n")
                self.lock_fd.flush()

                logger.debug(f"Acquired lock: {self.lock_file}")
                return True

            except OSError:
                elapsed = time.time() - start_time
                if elapsed >= self.timeout:
                    lock_info = self._read_lock_info()
                    self.lock_fd.close()
                    self.lock_fd = None
                    raise LockError(
                        f"Another thin-lxc operation is in progress.\n"
                        f"Lock held by PID {lock_info['pid']} since {lock_info['time']}\n"
                        f"Wait for it to complete, or remove {self.lock_file} if stale."
                    )

                time.sleep(0.5)

    def release(self):
        """Release the lock."""
        if self.lock_fd is None:
            return

        try:
            fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_UN)
            self.lock_fd.close()
            logger.debug(f"Released lock: {self.lock_file}")
        finally:
            self.lock_fd = None

        try:
            self.lock_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Error removing lock file: {e}")

    def _read_lock_info(self) -> dict:
        """Read info from lock file about who holds it."""
        try:
            with open(self.lock_file) as f:
                lines = f.readlines()
        except OSError:
            lines = []

        if len(lines) >= 2:
            return {'pid': lines[0].strip(), 'time': lines[1].strip()}
        return {'pid': 'unknown', 'time': 'unknown'}

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


@contextmanager
def operation_lock(lock_file: Optional[Path] = None, timeout: int = 0):
    """Context manager serializing one thin-lxc operation.

    Raises:
        LockError: If unable to acquire lock
    """
    lock = OperationLock(lock_file=lock_file, timeout=timeout)
    lock.acquire()
    try:
        yield lock
    finally:
        lock.release()
