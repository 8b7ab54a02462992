"""Crash-safe JSON file persistence.

Writes go to a temp file in the target directory, are fsynced, and are then
renamed over the target so readers never observe a half-written document.
The previous version is kept as ``<file>.bak``. An adjacent ``<file>.lock``
file coordinates readers and writers across processes via fcntl.flock.

Usage:
    from common.atomic_file import atomic_write_json, read_json_with_lock

    atomic_write_json("/path/to/main.json", {"questionSets": {}})
    document = read_json_with_lock("/path/to/main.json")
"""

import fcntl
import json
import os
import tempfile
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, TextIO

from common.base.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_LOCK_TIMEOUT = 30
LOCK_POLL_INTERVAL = 0.1


class AtomicWriteError(Exception):
    """Raised when a write fails and the previous version cannot be restored."""
    pass


class FileLockError(Exception):
    """Raised when a file lock cannot be acquired."""
    pass


@contextmanager
def file_lock(file_path: str, timeout: int = DEFAULT_LOCK_TIMEOUT, shared: bool = False) -> Iterator[TextIO]:
    """Hold a lock on ``file_path`` for the duration of the block.

    Args:
        file_path: Path of the file being protected (the lock lives beside it)
        timeout: Seconds to keep retrying. 0 means a single non-blocking attempt.
        shared: Take a shared (read) lock instead of an exclusive one

    Raises:
        FileLockError: If the lock is still held elsewhere when the timeout expires
    """
    lock_path = file_path + ".lock"
    lock_dir = os.path.dirname(lock_path)
    if lock_dir:
        os.makedirs(lock_dir, exist_ok=True)

    mode = fcntl.LOCK_SH if shared else fcntl.LOCK_EX
    deadline = time.monotonic() + timeout

    with open(lock_path, 'w') as lock_handle:
        while True:
            try:
                fcntl.flock(lock_handle.fileno(), mode | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise FileLockError(
                        f"Could not acquire lock on {file_path} within {timeout} seconds"
                    )
                time.sleep(LOCK_POLL_INTERVAL)
        try:
            yield lock_handle
        finally:
            fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)


def _replace_file(file_path: str, content: str, backup: bool) -> None:
    """Write ``content`` to a temp file and rename it over ``file_path``."""
    file_dir = os.path.dirname(file_path) or '.'
    backup_path = file_path + ".bak"

    temp_fd, temp_path = tempfile.mkstemp(
        dir=file_dir, prefix='.tmp_', suffix=os.path.basename(file_path)
    )
    try:
        with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        if backup and os.path.exists(file_path):
            os.replace(file_path, backup_path)

        os.replace(temp_path, file_path)
    except OSError as e:
        if os.path.exists(temp_path):
            os.remove(temp_path)

        # Put the previous version back if it had already been moved aside
        if backup and not os.path.exists(file_path) and os.path.exists(backup_path):
            try:
                os.replace(backup_path, file_path)
                logger.info(f"Restored {file_path} from backup after failed write")
            except OSError as restore_error:
                logger.error(f"CRITICAL: Failed to restore {file_path} from backup: {restore_error}")
                raise AtomicWriteError(
                    f"Write failed and could not restore from backup: {e}"
                ) from e
        raise


def atomic_write_json(
    file_path: str,
    data: Dict[str, Any],
    backup: bool = True,
    use_lock: bool = True,
    lock_timeout: int = DEFAULT_LOCK_TIMEOUT,
    indent: Optional[int] = None
) -> bool:
    """Atomically replace ``file_path`` with ``data`` serialized as JSON.

    Returns:
        True on success, False if serialization, locking or the write failed

    Raises:
        AtomicWriteError: If the write failed and the backup could not be restored
    """
    try:
        content = json.dumps(data, indent=indent, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize JSON for {file_path}: {e}")
        return False

    os.makedirs(os.path.dirname(file_path) or '.', exist_ok=True)

    try:
        if use_lock:
            with file_lock(file_path, timeout=lock_timeout):
                _replace_file(file_path, content, backup)
        else:
            _replace_file(file_path, content, backup)
        return True
    except FileLockError as e:
        logger.error(f"Could not acquire lock for {file_path}: {e}")
        return False
    except OSError as e:
        logger.error(f"Error during atomic write to {file_path}: {e}")
        return False


def read_json_with_lock(
    file_path: str,
    lock_timeout: int = DEFAULT_LOCK_TIMEOUT
) -> Optional[Dict[str, Any]]:
    """Read and parse a JSON file while holding a shared lock.

    Returns:
        The parsed document, or None if the file is missing

    Raises:
        FileLockError: If the shared lock cannot be acquired
        json.JSONDecodeError: If the file holds invalid JSON
    """
    if not os.path.exists(file_path):
        return None

    with file_lock(file_path, timeout=lock_timeout, shared=True):
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)


def recover_from_backup(file_path: str) -> bool:
    """Replace a corrupted JSON file with its ``.bak`` copy.

    The corrupted file is kept as ``<file>.corrupted``.

    Returns:
        True if recovery succeeded, False otherwise
    """
    backup_path = file_path + ".bak"

    if not os.path.exists(backup_path):
        logger.warning(f"No backup file found at {backup_path}")
        return False

    try:
        with open(backup_path, 'r', encoding='utf-8') as f:
            json.load(f)

        corrupted_path = file_path + ".corrupted"
        if os.path.exists(file_path):
            os.replace(file_path, corrupted_path)
        os.replace(backup_path, file_path)

        logger.info(f"Recovered {file_path} from backup. Corrupted version saved as {corrupted_path}")
        return True
    except json.JSONDecodeError as e:
        logger.error(f"Backup file {backup_path} is also corrupted: {e}")
        return False
    except OSError as e:
        logger.error(f"Failed to recover {file_path} from backup: {e}")
        return False
