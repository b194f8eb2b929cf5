"""Tests for the host-wide operation lock."""
import os
import time

import pytest

from thinlxc.core.lock import LockError, OperationLock, operation_lock


class TestOperationLock:
    """Test file-based locking mechanism."""

    def test_acquire_and_release(self, tmp_path):
        lock_file = tmp_path / "operation.lock"
        lock = OperationLock(lock_file=lock_file)

        assert lock.acquire() is True
        assert lock_file.exists()

        lock.release()
        assert not lock_file.exists()

    def test_concurrent_lock_fails(self, tmp_path):
        """Second lock attempt fails when first is held."""
        lock_file = tmp_path / "operation.lock"
        lock1 = OperationLock(lock_file=lock_file, timeout=0)
        lock1.acquire()

        lock2 = OperationLock(lock_file=lock_file, timeout=0)
        with pytest.raises(LockError) as exc_info:
            lock2.acquire()

        assert "Another thin-lxc operation is in progress" in str(exc_info.value)
        assert f"PID {os.getpid()}" in str(exc_info.value)

        lock1.release()

    def test_lock_timeout(self, tmp_path):
        lock_file = tmp_path / "operation.lock"
        lock1 = OperationLock(lock_file=lock_file)
        lock1.acquire()

        lock2 = OperationLock(lock_file=lock_file, timeout=1)
        start = time.time()
        with pytest.raises(LockError):
            lock2.acquire()

        elapsed = time.time() - start
        assert 1.0 <= elapsed < 3.0

        lock1.release()

    def test_lock_info_written(self, tmp_path):
        lock_file = tmp_path / "operation.lock"
        lock = OperationLock(lock_file=lock_file)
        lock.acquire()

        lines = lock_file.read_text().splitlines()

        assert str(os.getpid()) == lines[0]
        assert '-' in lines[1]

        lock.release()

    def test_release_twice_is_harmless(self, tmp_path):
        lock = OperationLock(lock_file=tmp_path / "operation.lock")
        lock.acquire()
        lock.release()
        lock.release()

    def test_lock_directory_creation(self, tmp_path):
        lock_file = tmp_path / "run" / "thin-lxc" / "operation.lock"

        with OperationLock(lock_file=lock_file):
            assert lock_file.parent.is_dir()
            assert lock_file.exists()

        assert not lock_file.exists()

    def test_reacquire_after_release(self, tmp_path):
        lock_file = tmp_path / "operation.lock"
        with OperationLock(lock_file=lock_file):
            pass
        with OperationLock(lock_file=lock_file, timeout=0):
            pass


class TestOperationLockContext:

    def test_released_on_error(self, tmp_path):
        lock_file = tmp_path / "operation.lock"

        with pytest.raises(RuntimeError):
            with operation_lock(lock_file):
                raise RuntimeError("boom")

        assert not lock_file.exists()
        with operation_lock(lock_file):
            pass

    def test_blocks_nested_operation(self, tmp_path):
        lock_file = tmp_path / "operation.lock"
        with operation_lock(lock_file):
            with pytest.raises(LockError):
                with operation_lock(lock_file):
                    pass
