"""
Area Computation for the Zonna Territory Engine

Territory size is the game score, so both strategies here are
deterministic, winding-order independent and never raise for degenerate
input.

Strategies:
- loop area (``dominio``): geodesic area of the closed ring on the WGS84
  ellipsoid.
- corridor area (``livre``): the walked line buffered outward by a fixed
  radius in a local metric projection. Where the line loops back on itself
  the buffer keeps the enclosed gap as a hole, and the stored polygon
  carries that hole so conflicts see exactly the scored ground.
"""

import logging
import math
from typing import Optional, Sequence, Tuple
import numpy as np
from pyproj import Geod
from . import constants
from .models import CaptureMode, ClosedPolygon, GeoPoint
from .projection import LocalProjection

logger = logging.getLogger(__name__)

# Created once and reused
geod = Geod(ellps="WGS84")


def _flat_area_m2(ring: Sequence[GeoPoint]) -> float:
    """
    Shoelace area of a ring on an equirectangular plane.

    Points sharing a parallel or a meridian give exactly 0 here, whereas the
    ellipsoid measures the sliver between a parallel and the geodesic.
    """
    lats = np.radians([p.lat for p in ring])
    lngs = np.radians([p.lng for p in ring])
    x = (lngs - lngs.mean()) * np.cos(lats.mean()) * constants.EARTH_RADIUS_M
    y = (lats - lats.mean()) * constants.EARTH_RADIUS_M
    return 0.5 * abs(float(np.dot(x[:-1], y[1:]) - np.dot(x[1:], y[:-1])))


def _ring_area_m2(ring: Sequence[GeoPoint]) -> float:
    if len(set(ring)) < 3 or round(_flat_area_m2(ring)) == 0:
        return 0.0
    area, _perimeter = geod.polygon_area_perimeter([p.lng for p in ring],
                                                   [p.lat for p in ring])
    return abs(area)


def loop_area_m2(polygon: ClosedPolygon) -> int:
    """
    Area enclosed by a closed ring in square meters.

    Args:
        polygon: Closed ring (first point == last point).

    Returns:
        Absolute area, less any holes, rounded to the nearest integer.
        Rings with fewer than three distinct vertices, and collinear rings,
        give 0.
    """
    if not polygon.is_valid:
        return 0

    area = _ring_area_m2(polygon.ring) - sum(_ring_area_m2(h) for h in polygon.holes)
    if not math.isfinite(area):
        logger.warning("Non-finite area for ring of %d points; using 0", len(polygon))
        return 0
    return int(round(max(area, 0.0)))


def _buffer(trace: Sequence[GeoPoint], radius_m: float):
    projection = LocalProjection.around(trace)
    return projection, projection.line(trace).buffer(radius_m)


def corridor_polygon(trace: Sequence[GeoPoint],
                     radius_m: float = constants.CORRIDOR_RADIUS_M) -> Optional[ClosedPolygon]:
    """
    Buffer a walked line into a claimed strip.

    Args:
        trace: Walked trace.
        radius_m: Corridor half-width in meters. Default 10.

    Returns:
        The buffered line as a polygon whose holes are the gaps enclosed by
        loops, or None for traces with fewer than two distinct points.
    """
    if len(set(trace)) < 2 or radius_m <= 0:
        return None

    projection, strip = _buffer(trace, radius_m)
    return projection.polygon_to_geo(strip)


def corridor_area_m2(trace: Sequence[GeoPoint],
                     radius_m: float = constants.CORRIDOR_RADIUS_M) -> int:
    """
    Area of the walked line buffered by ``radius_m``, in square meters.

    Holes left where the line loops back on itself are excluded. Traces
    with fewer than two distinct points give 0.
    """
    if len(set(trace)) < 2 or radius_m <= 0:
        return 0

    _projection, strip = _buffer(trace, radius_m)
    return int(round(strip.area))


def area_for_mode(mode: CaptureMode, trace: Sequence[GeoPoint],
                  corridor_radius_m: float = constants.CORRIDOR_RADIUS_M) -> Tuple[ClosedPolygon, int]:
    """
    Build the claimed polygon and its area for a capture mode.

    Args:
        mode: ``DOMINIO`` closes the trace into a loop; ``LIVRE`` claims a
            corridor around it.
        trace: Finished, accepted trace.
        corridor_radius_m: Corridor half-width for ``LIVRE``.

    Returns:
        (polygon, area_m2). A degenerate trace gives a degenerate polygon
        and an area of 0.
    """
    if mode == CaptureMode.LIVRE:
        if len(set(trace)) < 2 or corridor_radius_m <= 0:
            return ClosedPolygon.from_trace(trace), 0
        projection, strip = _buffer(trace, corridor_radius_m)
        return projection.polygon_to_geo(strip), int(round(strip.area))

    polygon = ClosedPolygon.from_trace(trace)
    return polygon, loop_area_m2(polygon)
