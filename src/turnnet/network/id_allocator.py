"""Sequential identifier allocation for synthetic nodes."""

from __future__ import annotations

from typing import Iterable


class IdAllocator:
    """Hands out consecutive integer ids starting at ``next_id``."""

    def __init__(self, next_id: int = 1):
        self._next_id = int(next_id)

    @classmethod
    def after(cls, existing_ids: Iterable[int]) -> "IdAllocator":
        """Seed the allocator just past the largest id in ``existing_ids``."""
        highest = max((int(node_id) for node_id in existing_ids), default=0)
        return cls(highest + 1)

    def next(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def peek(self) -> int:
        return self._next_id
