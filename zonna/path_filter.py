"""
GPS Fix Filtering for the Zonna Territory Engine

This module turns a stream of raw location fixes into an accepted trace by
applying, per fix in arrival order:

1. Accuracy gate: drop fixes whose accuracy exceeds ``max_accuracy_m``.
   Unknown accuracy counts as infinitely inaccurate.
2. Movement gate: drop fixes closer than ``min_movement_m`` to the last
   accepted fix. The first fix of a session has nothing to compare against,
   so it bypasses the movement gate. It never bypasses the accuracy gate.
3. Accepted fixes append to the trace and add their incremental haversine
   distance to the running total.

Fixes are never reordered.
"""

import logging
from typing import Iterable, List, Optional
from . import constants
from . import geo_math
from .models import GeoPoint, RawFix

logger = logging.getLogger(__name__)


class PathFilter:
    """
    Stateful accuracy and movement filter for one recording.

    Attributes:
        max_accuracy_m: Largest accepted accuracy radius in meters.
        min_movement_m: Smallest accepted step from the last accepted fix.
    """

    def __init__(self, max_accuracy_m: float = constants.MAX_ACCURACY_M,
                 min_movement_m: float = constants.MIN_MOVEMENT_M):
        self.max_accuracy_m = max_accuracy_m
        self.min_movement_m = min_movement_m
        self._points: List[GeoPoint] = []
        self._distance_m = 0.0

    @property
    def points(self) -> List[GeoPoint]:
        """Accepted trace (a copy)."""
        return list(self._points)

    @property
    def distance_m(self) -> float:
        """Cumulative distance of the accepted trace in meters."""
        return self._distance_m

    @property
    def last_point(self) -> Optional[GeoPoint]:
        return self._points[-1] if self._points else None

    def passes_accuracy(self, fix: RawFix) -> bool:
        return fix.effective_accuracy_m <= self.max_accuracy_m

    def accept(self, fix: RawFix) -> bool:
        """
        Run one fix through both gates.

        Args:
            fix: Incoming raw fix.

        Returns:
            True if the fix was appended to the trace.
        """
        if not self.passes_accuracy(fix):
            logger.debug("Dropped fix %s: accuracy %.1f m > %.1f m",
                         fix.point, fix.effective_accuracy_m, self.max_accuracy_m)
            return False

        last = self.last_point
        if last is not None:
            step = geo_math.haversine_m(last, fix.point)
            if step < self.min_movement_m:
                logger.debug("Dropped fix %s: moved %.2f m < %.1f m",
                             fix.point, step, self.min_movement_m)
                return False
            self._distance_m += step

        self._points.append(fix.point)
        return True

    def reset(self) -> None:
        self._points = []
        self._distance_m = 0.0


def filter_gps_points(fixes: Iterable[RawFix],
                      max_accuracy_m: float = constants.MAX_ACCURACY_M,
                      min_movement_m: float = constants.MIN_MOVEMENT_M) -> List[GeoPoint]:
    """
    Batch form of ``PathFilter`` for an already recorded list of fixes.

    Args:
        fixes: Raw fixes in arrival order.
        max_accuracy_m: Accuracy gate threshold. Default 20 m.
        min_movement_m: Movement gate threshold. Default 3 m.

    Returns:
        Accepted trace.
    """
    path_filter = PathFilter(max_accuracy_m, min_movement_m)
    for fix in fixes:
        path_filter.accept(fix)
    return path_filter.points
