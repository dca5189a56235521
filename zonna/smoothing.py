"""
Path Smoothing for the Zonna Territory Engine

This module provides optional post-processing for a *finished* trace:
a centered moving average to reduce jitter and Douglas-Peucker
simplification to reduce point count. Neither pass is applied to a live
recording, which would delay closure detection.
"""

import numpy as np
import pandas as pd
from typing import List, Sequence
from . import constants
from .models import GeoPoint


def smooth_path(points: Sequence[GeoPoint], window: int = constants.SMOOTH_WINDOW) -> List[GeoPoint]:
    """
    Apply a centered moving average to lat and lng independently.

    The first and last ``window // 2`` points are left untouched; every
    interior point is replaced by the mean of the ``2 * (window // 2) + 1``
    points centered on it.

    Args:
        points: Finished trace.
        window: Window size. Default 3.

    Returns:
        Smoothed trace of the same length. A window of 1 or less, or one at
        least as long as the trace, returns the input unchanged.
    """
    points = list(points)
    if window <= 1 or len(points) <= window:
        return points

    half = window // 2
    frame = pd.DataFrame({
        "lat": [p.lat for p in points],
        "lng": [p.lng for p in points],
    })
    averaged = frame.rolling(window=2 * half + 1, center=True).mean()

    smoothed = list(points)
    for i in range(half, len(points) - half):
        smoothed[i] = GeoPoint(float(averaged["lat"].iat[i]), float(averaged["lng"].iat[i]))

    return smoothed


def _segment_distances(coords: np.ndarray, start: int, end: int) -> np.ndarray:
    """
    Distance from each interior point to the chord coords[start]-coords[end].

    Distances are measured to the closed segment, so points projecting
    beyond an endpoint measure to that endpoint.
    """
    a = coords[start]
    d = coords[end] - a
    inner = coords[start + 1:end]

    len_sq = float(d @ d)
    if len_sq == 0.0:
        nearest = np.broadcast_to(a, inner.shape)
    else:
        param = np.clip((inner - a) @ d / len_sq, 0.0, 1.0)
        nearest = a + param[:, None] * d

    return np.hypot(inner[:, 0] - nearest[:, 0], inner[:, 1] - nearest[:, 1])


def simplify_path(points: Sequence[GeoPoint],
                  tolerance_m: float = constants.SIMPLIFY_TOLERANCE_M) -> List[GeoPoint]:
    """
    Simplify a trace with the Douglas-Peucker algorithm.

    The tolerance is converted to degrees with 1 degree ~ 111,000 m. That is
    an equatorial approximation; longitude degrees shrink with latitude, so
    the effective east-west tolerance is tighter away from the equator. It is
    good enough for dropping redundant GPS points and is not geodetically
    exact.

    Args:
        points: Trace to simplify.
        tolerance_m: Perpendicular distance tolerance in meters. Default 5.

    Returns:
        Simplified trace. The first and last input points are always kept
        exactly; inputs of two points or fewer are returned unchanged.
    """
    points = list(points)
    if len(points) <= 2:
        return points

    epsilon = tolerance_m / constants.METERS_PER_DEGREE
    coords = np.array([[p.lat, p.lng] for p in points], dtype=float)
    keep = np.zeros(len(points), dtype=bool)
    keep[0] = keep[-1] = True

    # Explicit stack instead of recursion; long traces exceed the recursion limit
    stack = [(0, len(points) - 1)]
    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue

        distances = _segment_distances(coords, start, end)
        max_idx = int(np.argmax(distances))
        if distances[max_idx] > epsilon:
            split = start + 1 + max_idx
            keep[split] = True
            stack.append((start, split))
            stack.append((split, end))

    return [p for p, kept in zip(points, keep) if kept]


def optimize_path(points: Sequence[GeoPoint],
                  smooth_window: int = constants.SMOOTH_WINDOW,
                  simplify_tolerance_m: float = constants.SIMPLIFY_TOLERANCE_M) -> List[GeoPoint]:
    """
    Smooth then simplify a finished trace.

    Args:
        points: Finished trace.
        smooth_window: Window size for the moving average. Default 3.
        simplify_tolerance_m: Douglas-Peucker tolerance in meters. Default 5.

    Returns:
        Optimized trace.
    """
    points = list(points)
    if not points:
        return points

    smoothed = smooth_path(points, smooth_window)
    return simplify_path(smoothed, simplify_tolerance_m)
