from __future__ import annotations

from typing import Protocol


class ObjectStore(Protocol):
    """Where raw scan manifests live. The store itself is external."""

    def put_bytes(self, path: str, content: bytes) -> None:
        raise NotImplementedError

    def get_bytes(self, path: str) -> bytes:
        raise NotImplementedError
