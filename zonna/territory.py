"""
Territory Service for the Zonna Territory Engine

This module runs what happens after a recording is finalized:

1. Persist the conquest. A store failure raises ConquestSaveError and
   nothing else happens, so the caller can simply retry.
2. Snapshot every existing conquest and detect conflicts against the new
   polygon.
3. Persist the conflicts. Detection and persistence failures here are
   logged and never undo the conquest.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from . import constants
from .conflicts import LabelFn, RivalPolygon, detect_conflicts, find_invaded_conquest
from .errors import ConflictSaveError, ConquestSaveError
from .models import Conquest, ConquestRequest, GeoPoint, TerritoryConflict
from .stores import ConflictStore, ConquestStore

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    """Outcome of saving one conquest."""

    conquest: Conquest
    conflicts: List[TerritoryConflict] = field(default_factory=list)
    conflicts_saved: bool = True
    error: Optional[ConflictSaveError] = None


class TerritoryService:
    """
    Saves conquests and derives their conflicts.

    Attributes:
        conquests: Conquest store.
        conflicts: Conflict store.
        min_conflict_area_m2: Significance threshold for overlaps.
        label_for: Optional ``(lat, lng) -> label`` lookup for conflict
            locations.
    """

    def __init__(self, conquests: ConquestStore, conflicts: ConflictStore,
                 min_conflict_area_m2: float = constants.MIN_CONFLICT_AREA_M2,
                 label_for: Optional[LabelFn] = None):
        self.conquests = conquests
        self.conflicts = conflicts
        self.min_conflict_area_m2 = min_conflict_area_m2
        self.label_for = label_for

    def save_conquest(self, request: ConquestRequest) -> SaveResult:
        """
        Persist a finalized recording and record the territory it invades.

        Args:
            request: ConquestRequest from TrackingSession.finalize.

        Returns:
            SaveResult with the stored conquest and the detected conflicts.
            ``conflicts_saved`` is False when the conflicts could not be
            detected or persisted; a persistence failure is reported as a
            ConflictSaveError in ``error``.

        Raises:
            ConquestSaveError: The conquest store failed; nothing was saved.
        """
        try:
            conquest = self.conquests.create(
                request.owner_id,
                request.polygon,
                request.area,
                request.distance,
                duration=request.duration,
                mode=request.mode,
            )
        except Exception as exc:
            raise ConquestSaveError(f"Could not save conquest for {request.owner_id}: {exc}") from exc

        logger.info("Saved conquest %s for %s (%d m², %.3f km)",
                    conquest.id, conquest.owner_id, conquest.area, conquest.distance)

        try:
            rivals = [RivalPolygon.from_conquest(c) for c in self.conquests.list_all()
                      if c.id != conquest.id]
            found = detect_conflicts(
                conquest.path,
                conquest.owner_id,
                rivals,
                conquest.id,
                min_area_m2=self.min_conflict_area_m2,
                label_for=self.label_for,
            )
        except Exception:
            logger.exception("Conflict detection failed for conquest %s", conquest.id)
            return SaveResult(conquest, [], conflicts_saved=False)

        if not found:
            return SaveResult(conquest)

        try:
            stored = self.conflicts.create_batch(found)
        except Exception as exc:
            if isinstance(exc, ConflictSaveError):
                error = exc
            else:
                error = ConflictSaveError(
                    f"Could not save {len(found)} conflict(s) for conquest {conquest.id}: {exc}")
                error.__cause__ = exc
            logger.warning("%s", error)
            return SaveResult(conquest, found, conflicts_saved=False, error=error)

        return SaveResult(conquest, stored)

    def owner_stats(self, owner_id: str) -> Dict[str, float]:
        """Conquest count, total area (m²) and total distance (km) for an owner."""
        owned = self.conquests.list_by_owner(owner_id)
        return {
            "conquests": len(owned),
            "total_area": sum(c.area for c in owned),
            "total_km": round(sum(c.distance for c in owned), 3),
        }

    def check_invasion(self, owner_id: str, point: GeoPoint) -> Optional[Conquest]:
        """Rival conquest the owner is currently standing in, if any."""
        return find_invaded_conquest(point, self.conquests.list_all(), owner_id)
