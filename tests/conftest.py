import math
from typing import List, Sequence, Tuple

import pytest

from zonna import (
    ClosedPolygon,
    GeoPoint,
    InMemoryConflictStore,
    InMemoryConquestStore,
    RawFix,
    TerritoryService,
)

# Praça da Sé, São Paulo
ORIGIN = GeoPoint(-23.5505, -46.6333)

METERS_PER_DEG_LAT = 111320.0


def offset(origin: GeoPoint, east_m: float, north_m: float) -> GeoPoint:
    """Point ``east_m`` / ``north_m`` meters away from ``origin`` (flat-earth, city scale)."""
    dlat = north_m / METERS_PER_DEG_LAT
    dlng = east_m / (METERS_PER_DEG_LAT * math.cos(math.radians(origin.lat)))
    return GeoPoint(origin.lat + dlat, origin.lng + dlng)


def rectangle(origin: GeoPoint, width_m: float, height_m: float,
              east_m: float = 0.0, north_m: float = 0.0) -> ClosedPolygon:
    corners = [(0, 0), (width_m, 0), (width_m, height_m), (0, height_m)]
    return ClosedPolygon.from_trace(
        offset(origin, east_m + x, north_m + y) for x, y in corners
    )


def walk(origin: GeoPoint, corners_m: Sequence[Tuple[float, float]],
         step_m: float = 5.0, accuracy_m: float = 5.0) -> List[RawFix]:
    """Fixes every ``step_m`` meters along the polyline through ``corners_m``."""
    fixes = [RawFix(offset(origin, *corners_m[0]), accuracy_m)]
    for (x0, y0), (x1, y1) in zip(corners_m, corners_m[1:]):
        length = math.hypot(x1 - x0, y1 - y0)
        steps = max(1, int(round(length / step_m)))
        for i in range(1, steps + 1):
            t = i / steps
            point = offset(origin, x0 + (x1 - x0) * t, y0 + (y1 - y0) * t)
            fixes.append(RawFix(point, accuracy_m))
    return fixes


SQUARE_50M = [(0, 0), (50, 0), (50, 50), (0, 50), (0, 0)]


@pytest.fixture
def origin() -> GeoPoint:
    return ORIGIN


@pytest.fixture
def square_walk() -> List[RawFix]:
    return walk(ORIGIN, SQUARE_50M)


@pytest.fixture
def stores():
    return InMemoryConquestStore(), InMemoryConflictStore()


@pytest.fixture
def service(stores) -> TerritoryService:
    conquests, conflicts = stores
    return TerritoryService(conquests, conflicts)
