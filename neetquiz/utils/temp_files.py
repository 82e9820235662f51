"""
Scoped tracking of request-local temporary files
"""
import logging
import os
import tempfile
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


class TempFileGuard:
    """
    Tracks temporary files created for one request and deletes each of them
    exactly once when released.

    Use as a context manager; release() is idempotent so nested ``with``
    blocks over the same guard only clean up once.
    """

    def __init__(self, paths: Optional[Iterable[str]] = None):
        self._paths: List[str] = list(paths or [])
        self.released = False

    def __enter__(self) -> "TempFileGuard":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    @property
    def paths(self) -> List[str]:
        return list(self._paths)

    def track(self, path: str) -> str:
        if self.released:
            raise RuntimeError("Cannot track files on a released guard")
        self._paths.append(path)
        return path

    def create(self, suffix: str = "", prefix: str = "neetquiz-") -> str:
        """Create an empty temp file and track it"""
        fd, path = tempfile.mkstemp(suffix=suffix, prefix=prefix)
        os.close(fd)
        return self.track(path)

    def release(self) -> int:
        """Delete all tracked files; returns how many were removed"""
        if self.released:
            return 0
        self.released = True

        removed = 0
        for path in self._paths:
            try:
                os.remove(path)
                removed += 1
            except FileNotFoundError:
                logger.warning(f"Temporary file already gone: {path}")
            except OSError as e:
                logger.error(f"Error deleting {path}: {str(e)}")

        logger.info(f"Temporary files cleaned up: {removed}/{len(self._paths)}")
        return removed
