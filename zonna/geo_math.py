"""
Geodesic Math for the Zonna Territory Engine

This module computes distances, bearings, trace lengths and pace from
lat/lng points. All functions are pure.
"""

import numpy as np
from typing import Sequence
from . import constants
from .models import GeoPoint


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Uses the Haversine formula on a sphere of radius 6,371,000 m. No
    ellipsoidal correction; error is well below normal GPS noise.

    Args:
        a: First point.
        b: Second point.

    Returns:
        Distance in meters between the two points.
    """
    lat1_rad, lon1_rad = np.deg2rad(a.lat), np.deg2rad(a.lng)
    lat2_rad, lon2_rad = np.deg2rad(b.lat), np.deg2rad(b.lng)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    h = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    h = np.clip(h, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))

    return float(constants.EARTH_RADIUS_M * c)


def segment_lengths_m(points: Sequence[GeoPoint]) -> np.ndarray:
    """
    Compute haversine lengths of consecutive segments of a trace.

    Args:
        points: Ordered trace.

    Returns:
        Array of len(points) - 1 segment lengths in meters (empty for
        fewer than two points).
    """
    if len(points) < 2:
        return np.zeros(0)

    lat = np.deg2rad(np.array([p.lat for p in points], dtype=float))
    lon = np.deg2rad(np.array([p.lng for p in points], dtype=float))

    dlat = np.diff(lat)
    dlon = np.diff(lon)

    h = np.sin(dlat / 2) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(dlon / 2) ** 2
    h = np.clip(h, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))

    return constants.EARTH_RADIUS_M * c


def trace_length_km(points: Sequence[GeoPoint]) -> float:
    """
    Sum of haversine distances between consecutive points, in kilometers.

    Returns 0.0 for traces with fewer than two points.
    """
    return float(segment_lengths_m(points).sum()) / 1000.0


def bearing_deg(origin: GeoPoint, target: GeoPoint) -> float:
    """
    Initial great-circle bearing from origin to target.

    Used for map orientation only.

    Args:
        origin: Starting point.
        target: Destination point.

    Returns:
        Bearing in degrees in [0, 360), clockwise from north. Identical
        points give 0.0.
    """
    lat1, lat2 = np.deg2rad(origin.lat), np.deg2rad(target.lat)
    dlon = np.deg2rad(target.lng - origin.lng)

    x = np.sin(dlon) * np.cos(lat2)
    y = np.cos(lat1) * np.sin(lat2) - np.sin(lat1) * np.cos(lat2) * np.cos(dlon)

    bearing = float(np.rad2deg(np.arctan2(x, y))) % 360.0
    # -1e-15 % 360 rounds to 360.0
    return 0.0 if bearing >= 360.0 else bearing


def pace_min_per_km(duration_s: float, distance_km: float) -> float:
    """
    Running pace in minutes per kilometer.

    Returns 0.0 when no distance has been covered.
    """
    if distance_km <= 0:
        return 0.0
    return (duration_s / 60.0) / distance_km


def format_duration(seconds: int) -> str:
    """
    Format elapsed seconds as ``m:ss`` or ``h:mm:ss``.
    """
    seconds = max(0, int(seconds))
    hrs, rem = divmod(seconds, 3600)
    mins, secs = divmod(rem, 60)
    if hrs > 0:
        return f"{hrs}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"
