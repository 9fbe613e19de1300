"""libdigest.exc -- exceptions & warnings raised by libdigest"""

from __future__ import annotations

__all__ = [
    "DigestError",
    "NotFound",
    "MalformedRecord",
    "EncoderUnavailable",
    "StorageUnavailable",
    "ExpectedStringError",
    "DigestStorageWarning",
]


class DigestError(Exception):
    """base class for all errors raised by libdigest"""


class NotFound(DigestError, IndexError):
    """Error raised when a collection index does not refer to a record.

    :attr index: the offending index
    """

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"No digest at index {index}")


class MalformedRecord(DigestError, ValueError):
    """Error raised when a line of a digest file cannot be parsed.

    :attr lineno: 1-based line number of the offending line
    """

    def __init__(self, msg: str, lineno: int) -> None:
        self.lineno = lineno
        super().__init__(f"{msg} (error reading line {lineno})")


class EncoderUnavailable(DigestError, RuntimeError):
    """Error raised by ``add()`` when no encoder is bound to the collection"""


class StorageUnavailable(DigestError, OSError):
    """Error raised when the backing file cannot be read or written.

    A missing file is not reported this way; it is a valid empty store.
    """


class ExpectedStringError(DigestError, TypeError):
    """error raised when a field isn't a string"""

    def __init__(self, value: object, param: str) -> None:
        name = type(value).__name__
        super().__init__(f"{param} must be str, not {name}")


class DigestStorageWarning(UserWarning):
    """Warning issued when a write proceeds with weaker guarantees
    than requested (e.g. file locking is not available on this platform).
    """
