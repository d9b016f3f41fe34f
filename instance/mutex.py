"""
Named cross-process lock.

A lock file per name under the system temp directory. The OS drops the lock
when its holder dies, so a crashed worker never blocks the others.
"""

import errno
import re
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar

from filelock import FileLock

from core.errors import LockContentionError
from core.logger import log

LOCK_DIR = Path(tempfile.gettempdir()) / "batch-launcher-locks"
RETRY_DELAY_SECONDS = 0.1

_CONTENTION_ERRNOS = {
    getattr(errno, name) for name in ("EAGAIN", "EWOULDBLOCK", "EBUSY", "ETXTBSY") if hasattr(errno, name)
}
# Windows sharing and lock violations
_CONTENTION_WINERRORS = {32, 33}

T = TypeVar("T")


def lock_path(name: str, lock_dir: Optional[Path] = None) -> Path:
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", name) or "_"
    return Path(lock_dir or LOCK_DIR) / f"{safe}.lock"


def is_contention(exc: OSError) -> bool:
    """True for a momentary 'file is in use elsewhere' failure."""
    if isinstance(exc, (LockContentionError, BlockingIOError)):
        return True
    if getattr(exc, "winerror", None) in _CONTENTION_WINERRORS:
        return True
    return exc.errno in _CONTENTION_ERRNOS


@contextmanager
def named_lock(name: str, lock_dir: Optional[Path] = None) -> Iterator[None]:
    """Hold the system-wide lock ``name`` for the block. Waits indefinitely."""
    path = lock_path(name, lock_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    with FileLock(str(path), timeout=-1):
        yield


def with_lock(
    name: str,
    action: Callable[[], T],
    lock_dir: Optional[Path] = None,
    retry_delay: float = RETRY_DELAY_SECONDS
) -> T:
    """
    Run ``action`` while holding the named lock.

    The action is retried, without limit, while it fails on file contention.
    Any other error propagates and the lock is released.
    """
    with named_lock(name, lock_dir):
        attempt = 0
        while True:
            try:
                return action()
            except OSError as e:
                if not is_contention(e):
                    raise
                attempt += 1
                log(f"Lock '{name}': shared file busy ({e}), retry {attempt} in {retry_delay:.1f}s")
                time.sleep(retry_delay)


def safely_write_file(text: str, file_path: Path, overwrite: bool = True, lock_dir: Optional[Path] = None) -> None:
    """Write (or append) text under a lock named after the file stem."""
    file_path = Path(file_path)

    def write():
        with open(file_path, "w" if overwrite else "a") as f:
            f.write(text)

    with_lock(file_path.stem, write, lock_dir=lock_dir)
