from __future__ import annotations

import dataclasses
from typing import Callable, Optional

from libdigest.encoders.abc import DigestEncoder

EncodeFunc = Callable[[str, str, Optional[str]], str]


@dataclasses.dataclass(frozen=True)
class CallableEncoder(DigestEncoder):
    """adapts a plain ``func(uid, password, realm) -> digest`` to :class:`DigestEncoder`"""

    func: EncodeFunc

    def encode(self, uid: str, password: str, realm: Optional[str]) -> str:
        return self.func(uid, password, realm)
