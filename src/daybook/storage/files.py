"""Atomic JSON files and the bucket lock.

Atomic write protocol: tmp file in the same directory → fsync(tmp) →
rename → fsync(dir). A crash leaves either the old or the new file,
never a partial one.

:class:`BucketLock` is the single mutual-exclusion boundary around the
current bucket: a re-entrant in-process lock plus an ``fcntl`` advisory
file lock taken at the outermost depth.
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, TypeVar

from ..core.errors import StorageError, ValidationError

__all__ = [
    "BucketLock",
    "atomic_write_json",
    "decode_record",
    "read_json",
]

T = TypeVar("T")


def atomic_write_json(file_path: Path, data: dict[str, Any], *, fsync: bool = True) -> None:
    """Write JSON atomically (temp file + rename + fsync).

    Parameters
    ----------
    file_path
        Target file path
    data
        JSON-serializable mapping
    fsync
        Flush file and directory to disk

    Raises
    ------
    OSError
        If the write fails; the target is left untouched
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, indent=2, ensure_ascii=False, sort_keys=False)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=file_path.parent,
        prefix=f".{file_path.name}.tmp",
        delete=False,
    ) as tmp_file:
        tmp_path = Path(tmp_file.name)
        try:
            tmp_file.write(payload)
            tmp_file.flush()
            if fsync:
                os.fsync(tmp_file.fileno())
        except BaseException:
            tmp_file.close()
            tmp_path.unlink(missing_ok=True)
            raise

    try:
        tmp_path.replace(file_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    if fsync:
        dir_fd = os.open(file_path.parent, os.O_RDONLY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)


def read_json(file_path: Path) -> dict[str, Any] | None:
    """Read a JSON object from disk.

    Returns
    -------
    dict or None
        Parsed object, or None if the file does not exist

    Raises
    ------
    OSError
        If the file exists but cannot be read
    StorageError
        If the file is not a valid JSON object
    """
    try:
        text = file_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except UnicodeDecodeError as exc:
        raise StorageError(f"Corrupt encoding in {file_path}: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StorageError(f"Corrupt JSON in {file_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise StorageError(f"Expected a JSON object in {file_path}")

    return data


def decode_record(from_dict: Callable[[dict[str, Any]], T], data: dict[str, Any], file_path: Path) -> T:
    """Build a record from its stored dict.

    Raises
    ------
    StorageError
        If fields are missing or malformed
    """
    try:
        return from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError, ValidationError) as exc:
        raise StorageError(f"Malformed record in {file_path}: {exc!r}") from exc


class BucketLock:
    """Re-entrant exclusive lock around the current bucket.

    Example:
        >>> lock = BucketLock(Path("data/.locks/bucket.lock"))
        >>> with lock:
        ...     with lock:  # re-entrant within one thread
        ...         pass
    """

    def __init__(self, lock_file: Path, *, timeout: float = 10.0, enable_file_lock: bool = True) -> None:
        """Initialize bucket lock.

        Parameters
        ----------
        lock_file
            Path of the advisory lock file
        timeout
            Lock acquisition timeout in seconds
        enable_file_lock
            Also take an fcntl lock (guards other processes on the same host)
        """
        self.lock_file = lock_file
        self.timeout = timeout
        self.enable_file_lock = enable_file_lock
        self._rlock = threading.RLock()
        self._depth = 0
        self._fd: int | None = None

    def acquire(self) -> None:
        if not self._rlock.acquire(timeout=self.timeout):
            raise StorageError(f"Failed to acquire bucket lock after {self.timeout}s timeout")

        try:
            if self._depth == 0 and self.enable_file_lock:
                self._acquire_file_lock()
        except BaseException:
            self._rlock.release()
            raise

        self._depth += 1

    def release(self) -> None:
        self._depth -= 1
        try:
            if self._depth == 0 and self._fd is not None:
                try:
                    fcntl.flock(self._fd, fcntl.LOCK_UN)
                finally:
                    os.close(self._fd)
                    self._fd = None
        finally:
            self._rlock.release()

    def _acquire_file_lock(self) -> None:
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.lock_file, os.O_CREAT | os.O_RDWR, 0o644)
        start_time = time.monotonic()

        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() - start_time > self.timeout:
                    os.close(fd)
                    raise StorageError(
                        f"Failed to acquire file lock {self.lock_file} after {self.timeout}s timeout"
                    ) from None
                time.sleep(0.05)

        self._fd = fd

    def __enter__(self) -> BucketLock:
        self.acquire()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()
