"""Customer allow-list filtering."""

from __future__ import annotations

from typing import Iterable


class CustomerFilter:
    """
    Decides whether a customer's events are tracked at all.

    An empty allow-list tracks every customer. The set is built once
    and never mutated, so lookups need no locking.
    """

    def __init__(self, allowed: Iterable[str] = ()):
        self._allowed: frozenset[str] = frozenset(allowed)

    def allows(self, customer_external_id: str) -> bool:
        if not self._allowed:
            return True
        return customer_external_id in self._allowed

    def __bool__(self) -> bool:
        """True when filtering is active."""
        return bool(self._allowed)

    def __len__(self) -> int:
        return len(self._allowed)

    def __repr__(self) -> str:
        return f"CustomerFilter({sorted(self._allowed)!r})"
