"""libdigest.storage -- whole-file storage backend for digest collections"""

from __future__ import annotations

import contextlib
import dataclasses
import os
import stat
import tempfile
import time
from typing import IO, TYPE_CHECKING, Optional, Union
from warnings import warn

from libdigest._logging import logger
from libdigest.exc import DigestStorageWarning, StorageUnavailable

try:
    import fcntl
except ImportError:  # pragma: no cover -- non-posix platforms
    fcntl = None

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = [
    "FileStorage",
    "WriteOptions",
]

StrPath = Union[str, "os.PathLike[str]"]

#: permission bits given to newly created files
DEFAULT_FILE_MODE = 0o644

_LOCK_SUFFIX = ".lock"


@dataclasses.dataclass(frozen=True)
class WriteOptions:
    """Options controlling how :meth:`FileStorage.write_text` replaces the file.

    :param lock:
        hold an exclusive lock on ``<path>.lock`` while replacing the file,
        so concurrent writers in other processes are serialized.
    :param timeout:
        seconds to wait for the lock before giving up, ``None`` waits forever.
    :param poll_interval:
        seconds between attempts to acquire the lock.
    :param mode:
        permission bits for the written file. If ``None``, the mode of
        the existing file is kept (new files get ``0o644``).
    """

    lock: bool = True
    timeout: Optional[float] = 10.0
    poll_interval: float = 0.05
    mode: Optional[int] = None

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout < 0:
            raise ValueError("timeout must be >= 0")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")


class FileStorage:
    """Reads & atomically rewrites the whole content of a single local file."""

    def __init__(self, path: StrPath, encoding: str = "utf-8") -> None:
        self._path = path
        self.encoding = encoding

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} path={self._path!r}>"

    @property
    def path(self) -> StrPath:
        return self._path

    @property
    def lock_path(self) -> str:
        return os.fspath(self._path) + _LOCK_SUFFIX

    def exists(self) -> bool:
        return os.path.exists(self._path)

    def read_text(self) -> Optional[str]:
        """Return file content, or ``None`` if the file does not exist.

        :raises StorageUnavailable: if the file exists but can't be read.
        """
        try:
            with open(self._path, encoding=self.encoding, newline="") as fh:
                return fh.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as err:
            raise StorageUnavailable(
                f"cannot read digest file {self._path!r}: {err}"
            ) from err

    def write_text(self, content: str, options: Optional[WriteOptions] = None) -> None:
        """Replace file content with ``content``.

        The content is written to a temporary file in the same directory
        which is then renamed over the target, so readers see either the
        old or the new content, never a partial file.

        :raises StorageUnavailable:
            if the file can't be written, the lock wasn't acquired in time,
            or ``content`` can't be encoded using the file's encoding.
        """
        if options is None:
            options = WriteOptions()
        try:
            data = content.encode(self.encoding)
        except UnicodeEncodeError as err:
            raise StorageUnavailable(
                f"cannot encode digest file {self._path!r} as {self.encoding!r}: {err}"
            ) from err
        with self._maybe_lock(options):
            self._replace(data, options)

    def _replace(self, data: bytes, options: WriteOptions) -> None:
        path = os.fspath(self._path)
        mode = options.mode
        if mode is None:
            try:
                mode = stat.S_IMODE(os.stat(path).st_mode)
            except FileNotFoundError:
                mode = DEFAULT_FILE_MODE
            except OSError as err:
                raise StorageUnavailable(
                    f"cannot stat digest file {path!r}: {err}"
                ) from err

        dirname, basename = os.path.split(path)
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{basename}.", suffix=".tmp", dir=dirname or None
            )
        except OSError as err:
            raise StorageUnavailable(
                f"cannot write digest file {path!r}: {err}"
            ) from err

        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, path)
        except OSError as err:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_path)
            raise StorageUnavailable(
                f"cannot write digest file {path!r}: {err}"
            ) from err
        logger.debug("replaced digest file %r (%d bytes)", path, len(data))

    @contextlib.contextmanager
    def _maybe_lock(self, options: WriteOptions) -> Iterator[None]:
        if not options.lock:
            yield
            return
        if fcntl is None:  # pragma: no cover -- non-posix platforms
            warn(
                "FileStorage: file locking is not available on this platform, "
                f"writing {self._path!r} without an exclusive lock",
                DigestStorageWarning,
            )
            yield
            return
        handle = self._acquire_lock(options)
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            handle.close()

    def _acquire_lock(self, options: WriteOptions) -> IO[str]:
        lock_path = self.lock_path
        try:
            handle = open(lock_path, "a+", encoding="utf-8")
        except OSError as err:
            raise StorageUnavailable(
                f"cannot open lock file {lock_path!r}: {err}"
            ) from err

        deadline = None
        if options.timeout is not None:
            deadline = time.monotonic() + options.timeout
        while True:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return handle
            except BlockingIOError:
                if deadline is not None and time.monotonic() >= deadline:
                    handle.close()
                    raise StorageUnavailable(
                        f"timed out after {options.timeout}s waiting for lock {lock_path!r}"
                    ) from None
                time.sleep(options.poll_interval)
            except OSError as err:
                handle.close()
                raise StorageUnavailable(
                    f"cannot lock {lock_path!r}: {err}"
                ) from err
