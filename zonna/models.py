"""
Data Models for the Zonna Territory Engine

This module defines the value types exchanged between the engine's
components: points, raw fixes, closed polygons, conquests and territory
conflicts.

Coordinate convention:
    Every internal type is ordered latitude-then-longitude. The swap to
    (lng, lat) happens only at the projection and GeoJSON boundaries.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidPolygonError


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class CaptureMode(str, Enum):
    """Capture strategy selected when a recording starts."""

    LIVRE = "livre"      # open-ended corridor claim
    DOMINIO = "dominio"  # strict closed-loop claim


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    CLOSABLE = "closable"
    FINISHED = "finished"


class GpsStatus(str, Enum):
    SEARCHING = "searching"
    OK = "ok"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class GeoPoint:
    """
    A WGS84 position in decimal degrees.

    Equality is exact-float. Use ``geo_math.haversine_m`` for closeness.
    """

    lat: float
    lng: float

    @classmethod
    def from_pair(cls, pair: Sequence[Any]) -> "GeoPoint":
        """
        Build a point from a stored ``[lat, lng]`` pair.

        Raises:
            InvalidPolygonError: If the pair is not two finite numbers within
                [-90, 90] latitude and [-180, 180] longitude.
        """
        try:
            lat, lng = pair
            lat, lng = float(lat), float(lng)
        except (TypeError, ValueError) as exc:
            raise InvalidPolygonError(f"Expected a [lat, lng] pair, got {pair!r}") from exc
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise InvalidPolygonError(f"Non-finite coordinate in {pair!r}")
        if abs(lat) > 90.0 or abs(lng) > 180.0:
            raise InvalidPolygonError(f"Coordinate out of range in {pair!r}")
        return cls(lat, lng)

    def to_pair(self) -> List[float]:
        return [self.lat, self.lng]

    def to_lnglat(self) -> Tuple[float, float]:
        return (self.lng, self.lat)


@dataclass(frozen=True)
class RawFix:
    """
    A single sample pushed by the location provider.

    Attributes:
        point: Reported position.
        accuracy_m: Horizontal accuracy in meters. None or NaN means unknown.
        heading_deg: Device heading in degrees, 0-360. None or NaN means unknown.
    """

    point: GeoPoint
    accuracy_m: Optional[float] = None
    heading_deg: Optional[float] = None

    @classmethod
    def from_coords(cls, lat: float, lng: float, accuracy_m: Optional[float] = None,
                    heading_deg: Optional[float] = None) -> "RawFix":
        return cls(GeoPoint(float(lat), float(lng)), accuracy_m, heading_deg)

    @property
    def effective_accuracy_m(self) -> float:
        """Accuracy with unknown values mapped to infinity."""
        if self.accuracy_m is None or math.isnan(self.accuracy_m):
            return math.inf
        return float(self.accuracy_m)


def _close(points: Iterable[GeoPoint]) -> Tuple[GeoPoint, ...]:
    pts = tuple(points)
    if pts and pts[0] != pts[-1]:
        pts = pts + (pts[0],)
    return pts


def _parse_pairs(pairs: Any) -> List[GeoPoint]:
    if pairs is None or isinstance(pairs, (str, bytes)):
        raise InvalidPolygonError(f"Expected a list of [lat, lng] pairs, got {pairs!r}")
    try:
        return [GeoPoint.from_pair(p) for p in pairs]
    except TypeError as exc:
        raise InvalidPolygonError(f"Expected a list of [lat, lng] pairs, got {pairs!r}") from exc


@dataclass(frozen=True)
class ClosedPolygon:
    """
    A ring of points whose first and last point are identical.

    Build through ``from_trace`` (which appends the start point) or
    ``from_ring`` (which accepts already-closed stored rings). Degenerate
    rings are allowed; check ``is_valid`` before treating it as an area.

    ``holes`` are closed interior rings left unclaimed, such as the middle
    of a corridor that loops back on itself. Area, intersection and
    containment all exclude them.
    """

    ring: Tuple[GeoPoint, ...]
    holes: Tuple[Tuple[GeoPoint, ...], ...] = ()

    @classmethod
    def from_trace(cls, points: Iterable[GeoPoint]) -> "ClosedPolygon":
        pts = tuple(points)
        if not pts:
            return cls(())
        return cls(pts + (pts[0],))

    @classmethod
    def from_ring(cls, points: Iterable[GeoPoint],
                  holes: Iterable[Iterable[GeoPoint]] = ()) -> "ClosedPolygon":
        return cls(_close(points), tuple(_close(h) for h in holes))

    @classmethod
    def from_pairs(cls, pairs: Iterable[Sequence[Any]],
                   holes: Optional[Iterable[Any]] = None) -> "ClosedPolygon":
        """
        Parse a stored ``[[lat, lng], ...]`` ring and optional hole rings.

        Raises:
            InvalidPolygonError: If the data is not a list of numeric pairs.
        """
        points = _parse_pairs(pairs)
        if holes is None:
            return cls.from_ring(points)
        if isinstance(holes, (str, bytes)):
            raise InvalidPolygonError(f"Expected a list of hole rings, got {holes!r}")
        try:
            parsed = [_parse_pairs(h) for h in holes]
        except TypeError as exc:
            raise InvalidPolygonError(f"Expected a list of hole rings, got {holes!r}") from exc
        return cls.from_ring(points, parsed)

    @property
    def vertices(self) -> Tuple[GeoPoint, ...]:
        """Ring without the closing point."""
        return self.ring[:-1]

    @property
    def distinct_vertex_count(self) -> int:
        return len(set(self.ring))

    @property
    def is_valid(self) -> bool:
        return self.distinct_vertex_count >= 3

    def to_pairs(self) -> List[List[float]]:
        return [p.to_pair() for p in self.ring]

    def hole_pairs(self) -> List[List[List[float]]]:
        return [[p.to_pair() for p in hole] for hole in self.holes]

    def __len__(self) -> int:
        return len(self.ring)


@dataclass(frozen=True)
class ConquestRequest:
    """Creation request emitted by a finalized tracking session."""

    owner_id: str
    polygon: ClosedPolygon
    area: int
    distance: float
    mode: CaptureMode
    duration: Optional[int] = None
    pace: float = 0.0
    trace: Tuple[GeoPoint, ...] = ()


@dataclass(frozen=True)
class Conquest:
    """
    A persisted claimed polygon.

    Attributes:
        id: Store assigned identifier.
        owner_id: Single owning user.
        path: Closed polygon claimed, with any unclaimed holes.
        area: Square meters, non-negative, rounded.
        distance: Kilometers walked before closure.
        duration: Seconds, optional.
        created_at: Creation timestamp (UTC).
    """

    id: str
    owner_id: str
    path: ClosedPolygon
    area: int
    distance: float
    duration: Optional[int] = None
    mode: CaptureMode = CaptureMode.DOMINIO
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "path": self.path.to_pairs(),
            "holes": self.path.hole_pairs(),
            "area": self.area,
            "distance": self.distance,
            "duration": self.duration,
            "mode": self.mode.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class TerritoryConflict:
    """
    Overlap between a new conquest and a prior rival conquest.

    Created once per (new conquest, rival conquest) pair; only the read
    flags change afterwards, through ``dataclasses.replace``.
    """

    invader_id: str
    victim_id: str
    conquest_id: str
    area_invaded: int
    victim_conquest_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_name: Optional[str] = None
    is_read_by_victim: bool = False
    is_read_by_admin: bool = False
    id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def with_id(self, conflict_id: str) -> "TerritoryConflict":
        return replace(self, id=conflict_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "invader_id": self.invader_id,
            "victim_id": self.victim_id,
            "conquest_id": self.conquest_id,
            "victim_conquest_id": self.victim_conquest_id,
            "area_invaded": self.area_invaded,
            "location_name": self.location_name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "is_read_by_victim": self.is_read_by_victim,
            "is_read_by_admin": self.is_read_by_admin,
            "created_at": self.created_at.isoformat(),
        }
