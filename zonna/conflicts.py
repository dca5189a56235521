"""
Territory Conflict Detection for the Zonna Territory Engine

This module compares a newly claimed polygon against every previously
claimed polygon owned by other users and emits one TerritoryConflict per
significant overlap.

Detection is forward-only: a new conquest is checked against older ones,
never the other way around, and conflicts are never recomputed later.

Every rival is checked (O(n) per new conquest). A bounding-box test runs
before each exact intersection; it only skips pairs that cannot overlap,
so the result is identical to checking every rival exactly.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union
from shapely.errors import GEOSException
from shapely.geometry import Point
from shapely.validation import make_valid
from . import constants
from .errors import GeometryError
from .models import ClosedPolygon, Conquest, GeoPoint, TerritoryConflict
from .projection import LocalProjection

logger = logging.getLogger(__name__)

LabelFn = Callable[[float, float], Optional[str]]
Bounds = Tuple[float, float, float, float]


@dataclass(frozen=True)
class RivalPolygon:
    """
    A previously claimed polygon as read from the conquest store.

    ``polygon`` may be a ClosedPolygon or the raw ``[[lat, lng], ...]``
    data of a stored record; raw data is parsed lazily so a corrupt record
    only affects itself.
    """

    owner_id: str
    polygon: Union[ClosedPolygon, Any]
    conquest_id: str

    @classmethod
    def from_conquest(cls, conquest: Conquest) -> "RivalPolygon":
        return cls(conquest.owner_id, conquest.path, conquest.id)

    def resolve(self) -> ClosedPolygon:
        if isinstance(self.polygon, ClosedPolygon):
            return self.polygon
        return ClosedPolygon.from_pairs(self.polygon)


def _bounds(polygon: ClosedPolygon) -> Bounds:
    lats = [p.lat for p in polygon.ring]
    lngs = [p.lng for p in polygon.ring]
    return min(lats), min(lngs), max(lats), max(lngs)


def _boxes_overlap(a: Bounds, b: Bounds) -> bool:
    return not (a[2] < b[0] or b[2] < a[0] or a[3] < b[1] or b[3] < a[1])


def _planar_shape(projection: LocalProjection, polygon: ClosedPolygon):
    """Project a ring and repair self-intersections (figure-eight loops)."""
    shape = projection.polygon(polygon)
    if not shape.is_valid:
        shape = make_valid(shape)
    return shape


def _resolve_label(label_for: Optional[LabelFn], location: GeoPoint) -> Optional[str]:
    if label_for is None:
        return None
    try:
        return label_for(location.lat, location.lng)
    except Exception as exc:  # labels are cosmetic
        logger.warning("Location label lookup failed for %s: %s", location, exc)
        return None


def detect_conflicts(new_polygon: ClosedPolygon,
                     owner_id: str,
                     rivals: Iterable[RivalPolygon],
                     conquest_id: str,
                     min_area_m2: float = constants.MIN_CONFLICT_AREA_M2,
                     label_for: Optional[LabelFn] = None) -> List[TerritoryConflict]:
    """
    Compute conflicts between a new polygon and all rival polygons.

    Algorithm:
    1. Skip rivals owned by ``owner_id``.
    2. Skip rivals that cannot be parsed or have fewer than three distinct
       vertices (logged, never fatal).
    3. Intersect with the new polygon in a local metric projection; drop
       empty intersections and those whose rounded area is below
       ``min_area_m2``.
    4. Emit a conflict carrying the intersection area and centroid.

    Args:
        new_polygon: Newly claimed closed polygon.
        owner_id: Owner of the new polygon (the invader).
        rivals: Snapshot of existing polygons system-wide.
        conquest_id: Id of the newly saved conquest.
        min_area_m2: Significance threshold. Default 10 m².
        label_for: Optional ``(lat, lng) -> label`` lookup for display names.

    Returns:
        Conflicts in rival order. Empty if the new polygon is degenerate.
    """
    if not new_polygon.is_valid:
        logger.warning("Conquest %s has a degenerate polygon; no conflicts computed", conquest_id)
        return []

    projection = LocalProjection.around(new_polygon.vertices)
    new_shape = _planar_shape(projection, new_polygon)
    new_bounds = _bounds(new_polygon)

    conflicts = []
    checked = 0

    for rival in rivals:
        if rival.owner_id == owner_id:
            continue

        try:
            rival_polygon = rival.resolve()
        except GeometryError as exc:
            logger.warning("Skipping rival conquest %s: %s", rival.conquest_id, exc)
            continue

        if not rival_polygon.is_valid:
            logger.warning("Skipping rival conquest %s: only %d distinct vertices",
                           rival.conquest_id, rival_polygon.distinct_vertex_count)
            continue

        if not _boxes_overlap(new_bounds, _bounds(rival_polygon)):
            continue

        checked += 1
        try:
            overlap = new_shape.intersection(_planar_shape(projection, rival_polygon))
        except (GEOSException, ValueError) as exc:
            logger.warning("Skipping rival conquest %s: intersection failed: %s",
                           rival.conquest_id, exc)
            continue

        if overlap.is_empty:
            continue

        area = int(round(overlap.area))
        if area < min_area_m2:
            logger.debug("Ignoring %d m² overlap with conquest %s", area, rival.conquest_id)
            continue

        centroid = overlap.centroid
        location = projection.to_geo(centroid.x, centroid.y)

        conflicts.append(TerritoryConflict(
            invader_id=owner_id,
            victim_id=rival.owner_id,
            conquest_id=conquest_id,
            victim_conquest_id=rival.conquest_id,
            area_invaded=area,
            latitude=location.lat,
            longitude=location.lng,
            location_name=_resolve_label(label_for, location),
        ))

    logger.info("Conquest %s: %d rival(s) intersected, %d conflict(s)",
                conquest_id, checked, len(conflicts))
    return conflicts


def find_invaded_conquest(point: GeoPoint, conquests: Iterable[Conquest],
                          owner_id: str) -> Optional[Conquest]:
    """
    Find the first rival conquest containing a point.

    Used for the live "enemy territory" alert while walking. Own conquests
    and malformed ones are skipped.

    Args:
        point: Current position.
        conquests: Conquests to test.
        owner_id: Current user; their conquests never count.

    Returns:
        The containing rival conquest, or None.
    """
    projection = LocalProjection(point)
    here = projection.to_xy([point])[0]

    for conquest in conquests:
        if conquest.owner_id == owner_id or not conquest.path.is_valid:
            continue

        min_lat, min_lng, max_lat, max_lng = _bounds(conquest.path)
        if not (min_lat <= point.lat <= max_lat and min_lng <= point.lng <= max_lng):
            continue

        try:
            shape = _planar_shape(projection, conquest.path)
            if shape.covers(Point(here)):
                return conquest
        except (GEOSException, ValueError) as exc:
            logger.warning("Skipping conquest %s in invasion check: %s", conquest.id, exc)

    return None
