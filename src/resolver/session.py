"""Resolved-identity registry owned by the caller."""

from __future__ import annotations

import threading
from typing import FrozenSet, Set

from versioning.models import Coordinate, Dependency


class ResolutionSession:
    """Coordinates that have been fully resolved during this session.

    Doubles as the visited set of the traversal, so diamonds and cycles are
    expanded once. Entries are never removed; start a new session to resolve
    a coordinate again (e.g. after its cached files were deleted).
    """

    def __init__(self) -> None:
        self._resolved: Set[Coordinate] = set()
        self._lock = threading.Lock()

    def is_resolved(self, dependency: Dependency) -> bool:
        with self._lock:
            return dependency.coordinate in self._resolved

    def mark_resolved(self, dependency: Dependency) -> bool:
        """Record ``dependency``; returns False if it was already present."""
        with self._lock:
            if dependency.coordinate in self._resolved:
                return False
            self._resolved.add(dependency.coordinate)
            return True

    @property
    def resolved(self) -> FrozenSet[Coordinate]:
        with self._lock:
            return frozenset(self._resolved)

    def __contains__(self, dependency: object) -> bool:
        return isinstance(dependency, Dependency) and self.is_resolved(dependency)

    def __len__(self) -> int:
        return len(self._resolved)
