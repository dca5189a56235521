"""
Local Metric Projection

Shapely works in planar coordinates, so polygon intersection and line
buffering run in an azimuthal equidistant projection centered on the
geometry being processed. Distortion stays negligible at city scale.

pyproj and shapely expect (x=lng, y=lat); this is the only module, besides
GeoJSON export, that sees that ordering.
"""

from typing import Iterable, List, Tuple
from pyproj import Transformer
from shapely.geometry import LineString, Polygon
from .models import ClosedPolygon, GeoPoint


class LocalProjection:
    """
    WGS84 <-> local meters around an origin point.

    Attributes:
        origin: Projection center.
    """

    def __init__(self, origin: GeoPoint):
        self.origin = origin
        local_crs = (
            f"+proj=aeqd +lat_0={origin.lat} +lon_0={origin.lng} "
            "+datum=WGS84 +units=m +no_defs"
        )
        self._forward = Transformer.from_crs("EPSG:4326", local_crs, always_xy=True)
        self._inverse = Transformer.from_crs(local_crs, "EPSG:4326", always_xy=True)

    @classmethod
    def around(cls, points: Iterable[GeoPoint]) -> "LocalProjection":
        """Projection centered on the mean of the given points."""
        pts = list(points)
        if not pts:
            raise ValueError("Cannot center a projection on zero points")
        lat = sum(p.lat for p in pts) / len(pts)
        lng = sum(p.lng for p in pts) / len(pts)
        return cls(GeoPoint(lat, lng))

    def to_xy(self, points: Iterable[GeoPoint]) -> List[Tuple[float, float]]:
        pts = list(points)
        if not pts:
            return []
        xs, ys = self._forward.transform([p.lng for p in pts], [p.lat for p in pts])
        return list(zip(xs, ys))

    def to_geo(self, x: float, y: float) -> GeoPoint:
        lng, lat = self._inverse.transform(x, y)
        return GeoPoint(float(lat), float(lng))

    def polygon(self, polygon: ClosedPolygon) -> Polygon:
        holes = [self.to_xy(hole) for hole in polygon.holes if len(set(hole)) >= 3]
        return Polygon(self.to_xy(polygon.ring), holes)

    def line(self, points: Iterable[GeoPoint]) -> LineString:
        return LineString(self.to_xy(points))

    def _ring_to_geo(self, ring) -> List[GeoPoint]:
        lngs, lats = self._inverse.transform(*ring.xy)
        return [GeoPoint(float(lat), float(lng)) for lng, lat in zip(lngs, lats)]

    def polygon_to_geo(self, geometry: Polygon) -> ClosedPolygon:
        """Projected polygon back in lat/lng, interior rings kept as holes."""
        return ClosedPolygon.from_ring(
            self._ring_to_geo(geometry.exterior),
            [self._ring_to_geo(interior) for interior in geometry.interiors],
        )
