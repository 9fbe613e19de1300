from __future__ import annotations

import dataclasses
from typing import Optional

__all__ = ["DigestRecord"]


@dataclasses.dataclass(frozen=True)
class DigestRecord:
    """One entry of a digest collection.

    ``realm`` is ``None`` for file formats which don't store one.
    ``digest`` is opaque encoder output, never a plaintext password.
    """

    uid: str
    realm: Optional[str]
    digest: str
