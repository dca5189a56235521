"""
Loop Closure Detection for the Zonna Territory Engine

This module decides whether an in-progress trace forms a closable loop:
the latest accepted point is back near the recorded start point and the
walked length is long enough to enclose something.

The detector is a pure predicate with no memory. If the walker drifts away
and comes back, it reports False and then True again; one-shot side effects
on the False -> True transition belong to the caller.
"""

from typing import Optional, Sequence
from . import constants
from . import geo_math
from .models import GeoPoint


def distance_to_start_m(trace: Sequence[GeoPoint], start: Optional[GeoPoint]) -> Optional[float]:
    """
    Distance from the latest trace point back to the start point.

    Returns:
        Meters, or None when there is no start point or no trace yet.
    """
    if start is None or not trace:
        return None
    return geo_math.haversine_m(trace[-1], start)


def is_closable(trace: Sequence[GeoPoint], start: Optional[GeoPoint],
                closure_radius_m: float = constants.CLOSURE_RADIUS_M,
                min_loop_length_m: float = constants.MIN_LOOP_LENGTH_M,
                length_m: Optional[float] = None) -> bool:
    """
    Check whether the trace can be closed into a loop.

    Both conditions must hold:
    - the latest point is strictly within ``closure_radius_m`` of the start
    - the traversed length strictly exceeds ``min_loop_length_m``

    Args:
        trace: Accepted trace so far.
        start: Session start point.
        closure_radius_m: Closure radius in meters. Default 20.
        min_loop_length_m: Minimum loop length in meters. Default 100.
        length_m: Traversed length if the caller already tracks it;
            measured from ``trace`` otherwise.

    Returns:
        True if the loop is closable.
    """
    to_start = distance_to_start_m(trace, start)
    if to_start is None or to_start >= closure_radius_m:
        return False
    if length_m is None:
        length_m = geo_math.trace_length_km(trace) * 1000.0
    return length_m > min_loop_length_m


class ClosureDetector:
    """
    ``is_closable`` bound to a pair of thresholds.

    Usage:
        detector = ClosureDetector(closure_radius_m=25)
        if detector(trace, start):
            ...
    """

    def __init__(self, closure_radius_m: float = constants.CLOSURE_RADIUS_M,
                 min_loop_length_m: float = constants.MIN_LOOP_LENGTH_M):
        self.closure_radius_m = closure_radius_m
        self.min_loop_length_m = min_loop_length_m

    def __call__(self, trace: Sequence[GeoPoint], start: Optional[GeoPoint],
                 length_m: Optional[float] = None) -> bool:
        return is_closable(trace, start, self.closure_radius_m, self.min_loop_length_m, length_m)
