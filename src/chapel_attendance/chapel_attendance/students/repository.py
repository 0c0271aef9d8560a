from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Level, Student


class StudentRepository(Protocol):
    """Read-only directory access.

    Note (DIP): services depend on this interface, never on a concrete DB.
    """

    def find_active_by_level(self, level_id: str) -> Sequence[Student]:
        raise NotImplementedError

    def find_by_identifier(self, identifier: str) -> Optional[Student]:
        """Look a student up by id or matric number (case-insensitive), any status."""

        raise NotImplementedError

    def list_active(self) -> Sequence[Student]:
        raise NotImplementedError

    def get_level(self, level_id: str) -> Optional[Level]:
        raise NotImplementedError
