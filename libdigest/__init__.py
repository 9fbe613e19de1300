"""libdigest -- flat-file store for HTTP digest authentication credentials"""

from libdigest.collection import (
    DigestCollection,
    HtdigestCollection,
    HtpasswdCollection,
)
from libdigest.record import DigestRecord
from libdigest.storage import FileStorage, WriteOptions

__version__ = "1.0.0"

__all__ = [
    "DigestCollection",
    "DigestRecord",
    "FileStorage",
    "HtdigestCollection",
    "HtpasswdCollection",
    "WriteOptions",
]
