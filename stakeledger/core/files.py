"""Advisory file locks and atomic writes for data shared between processes."""
import fcntl
import os
import tempfile
from pathlib import Path
from typing import Union


class FileLock:
    """Exclusive ``flock`` on a lock file.

    Every acquisition opens its own descriptor, so the lock excludes other
    threads of this process as well as other processes. Not reentrant.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._fd = None

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fd = open(self.path, "a")
        try:
            fcntl.flock(self._fd, fcntl.LOCK_EX)
        except OSError:
            self._fd.close()
            self._fd = None
            raise

    def release(self) -> None:
        if self._fd:
            try:
                fcntl.flock(self._fd, fcntl.LOCK_UN)
            finally:
                self._fd.close()
                self._fd = None

    def __enter__(self) -> "FileLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def write_atomic(path: Union[str, Path], data: bytes) -> None:
    """Replace ``path`` with ``data`` through a uniquely named temp file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(dir=path.parent, prefix=f".{path.name}.",
                                     suffix=".tmp", delete=False) as f:
        f.write(data)
        tmp = f.name
    try:
        os.replace(tmp, path)
    except OSError:
        os.unlink(tmp)
        raise
