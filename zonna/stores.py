"""
Conquest and Conflict Stores for the Zonna Territory Engine

The stores are external collaborators; only their shape matters to the
core. Conquests are append-only. Conflicts are append-only apart from their
read flags.

The in-memory implementations back the HTTP app, the replay CLI and the
tests. They are safe to share between threads.
"""

import logging
import threading
import uuid
from dataclasses import replace
from typing import Dict, List, Optional, Protocol, Sequence
from .errors import ConflictNotFoundError, ConquestNotFoundError
from .models import CaptureMode, ClosedPolygon, Conquest, TerritoryConflict

logger = logging.getLogger(__name__)


class ConquestStore(Protocol):
    def create(self, owner_id: str, polygon: ClosedPolygon, area: int, distance: float,
               duration: Optional[int] = None,
               mode: CaptureMode = CaptureMode.DOMINIO) -> Conquest:
        ...

    def get(self, conquest_id: str) -> Conquest:
        ...

    def list_all(self) -> List[Conquest]:
        ...

    def list_by_owner(self, owner_id: str) -> List[Conquest]:
        ...


class ConflictStore(Protocol):
    def create_batch(self, conflicts: Sequence[TerritoryConflict]) -> List[TerritoryConflict]:
        ...

    def list_all(self) -> List[TerritoryConflict]:
        ...

    def list_by_victim(self, victim_id: str) -> List[TerritoryConflict]:
        ...

    def unread_count(self, victim_id: str) -> int:
        ...

    def mark_read(self, conflict_id: str) -> TerritoryConflict:
        ...

    def mark_all_read(self, victim_id: str) -> int:
        ...

    def mark_read_by_admin(self, conflict_id: str) -> TerritoryConflict:
        ...


def _new_id() -> str:
    return uuid.uuid4().hex


class InMemoryConquestStore:
    """Conquests kept in insertion order."""

    def __init__(self):
        self._conquests: Dict[str, Conquest] = {}
        self._lock = threading.Lock()

    def create(self, owner_id: str, polygon: ClosedPolygon, area: int, distance: float,
               duration: Optional[int] = None,
               mode: CaptureMode = CaptureMode.DOMINIO) -> Conquest:
        conquest = Conquest(
            id=_new_id(),
            owner_id=owner_id,
            path=polygon,
            area=area,
            distance=distance,
            duration=duration,
            mode=mode,
        )
        with self._lock:
            self._conquests[conquest.id] = conquest
        logger.debug("Stored conquest %s for %s", conquest.id, owner_id)
        return conquest

    def add(self, conquest: Conquest) -> Conquest:
        """Insert an already identified conquest (fixtures, imports)."""
        with self._lock:
            self._conquests[conquest.id] = conquest
        return conquest

    def get(self, conquest_id: str) -> Conquest:
        with self._lock:
            conquest = self._conquests.get(conquest_id)
        if conquest is None:
            raise ConquestNotFoundError(f"Conquest {conquest_id} not found")
        return conquest

    def list_all(self) -> List[Conquest]:
        with self._lock:
            return list(self._conquests.values())

    def list_by_owner(self, owner_id: str) -> List[Conquest]:
        return [c for c in self.list_all() if c.owner_id == owner_id]


class InMemoryConflictStore:
    """Conflicts kept in insertion order; read flags are the only mutation."""

    def __init__(self):
        self._conflicts: Dict[str, TerritoryConflict] = {}
        self._lock = threading.Lock()

    def create_batch(self, conflicts: Sequence[TerritoryConflict]) -> List[TerritoryConflict]:
        stored = [c if c.id is not None else c.with_id(_new_id()) for c in conflicts]
        with self._lock:
            for conflict in stored:
                self._conflicts[conflict.id] = conflict
        return stored

    def get(self, conflict_id: str) -> TerritoryConflict:
        with self._lock:
            conflict = self._conflicts.get(conflict_id)
        if conflict is None:
            raise ConflictNotFoundError(f"Conflict {conflict_id} not found")
        return conflict

    def list_all(self) -> List[TerritoryConflict]:
        with self._lock:
            return list(self._conflicts.values())

    def list_by_victim(self, victim_id: str) -> List[TerritoryConflict]:
        """Conflicts suffered by ``victim_id``, newest first."""
        mine = [c for c in self.list_all() if c.victim_id == victim_id]
        return sorted(mine, key=lambda c: c.created_at, reverse=True)

    def unread_count(self, victim_id: str) -> int:
        return sum(1 for c in self.list_all()
                   if c.victim_id == victim_id and not c.is_read_by_victim)

    def mark_read(self, conflict_id: str) -> TerritoryConflict:
        return self._update(conflict_id, is_read_by_victim=True)

    def mark_read_by_admin(self, conflict_id: str) -> TerritoryConflict:
        return self._update(conflict_id, is_read_by_admin=True)

    def mark_all_read(self, victim_id: str) -> int:
        """Mark every unread conflict of ``victim_id`` as read. Returns how many changed."""
        changed = 0
        with self._lock:
            for conflict_id, conflict in self._conflicts.items():
                if conflict.victim_id == victim_id and not conflict.is_read_by_victim:
                    self._conflicts[conflict_id] = replace(conflict, is_read_by_victim=True)
                    changed += 1
        return changed

    def _update(self, conflict_id: str, **flags) -> TerritoryConflict:
        with self._lock:
            conflict = self._conflicts.get(conflict_id)
            if conflict is None:
                raise ConflictNotFoundError(f"Conflict {conflict_id} not found")
            updated = replace(conflict, **flags)
            self._conflicts[conflict_id] = updated
        return updated
