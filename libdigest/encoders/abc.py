from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

__all__ = ["DigestEncoder"]


@runtime_checkable
class DigestEncoder(Protocol):
    def encode(self, uid: str, password: str, realm: Optional[str]) -> str:
        """Return the digest for ``password``, in the context of ``uid`` and ``realm``.

        The result is stored verbatim and never inspected by the collection.
        """
        ...
