import os
import tempfile
from contextlib import contextmanager
from typing import Iterator, Optional

from filelock import FileLock, Timeout

from rentalhub.config import settings
from rentalhub.services.errors import ConcurrencyConflictError


def locks_dir() -> str:
    path = settings.RESERVATION_LOCKS_DIR or os.path.join(
        tempfile.gettempdir(), "rentalhub_locks"
    )
    os.makedirs(path, exist_ok=True)
    return path


@contextmanager
def product_lock(product_id, timeout: Optional[float] = None) -> Iterator[None]:
    """
    Hold the reservation lock file for one product. Serializes reserve attempts
    across threads and worker processes on this host.
    """
    if timeout is None:
        timeout = settings.RESERVATION_LOCK_TIMEOUT_SECONDS
    lock = FileLock(os.path.join(locks_dir(), f"reserve_{product_id}.lock"))
    try:
        lock.acquire(timeout=timeout)
    except Timeout:
        raise ConcurrencyConflictError(
            f"Could not acquire reservation lock for product {product_id}; try again"
        )
    try:
        yield
    finally:
        lock.release()
