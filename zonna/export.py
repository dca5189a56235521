"""
Export Functions for the Zonna Territory Engine

This module converts conquests and conflicts to GeoJSON for map rendering
and exports conflicts to CSV. GeoJSON is the one place where coordinates
are written longitude-first.
"""

import csv
import io
from typing import Dict, Iterable, List
from . import utils
from .models import Conquest, TerritoryConflict


def conquests_to_geojson(conquests: Iterable[Conquest]) -> Dict:
    """
    Convert conquests to a GeoJSON FeatureCollection of Polygons.

    Args:
        conquests: Conquests to export.

    Returns:
        FeatureCollection with one Polygon feature per conquest; holes
        follow the exterior ring. Degenerate rings are skipped.
    """
    features = []
    for conquest in conquests:
        if not conquest.path.is_valid:
            continue
        rings = [conquest.path.ring] + list(conquest.path.holes)
        features.append({
            "type": "Feature",
            "id": conquest.id,
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[p.lng, p.lat] for p in ring] for ring in rings],
            },
            "properties": {
                "userId": conquest.owner_id,
                "area": conquest.area,
                "distanceKm": utils.round_float(conquest.distance),
                "duration": conquest.duration,
                "mode": conquest.mode.value,
                "createdAt": conquest.created_at.isoformat(),
            },
        })

    return {"type": "FeatureCollection", "features": features}


def conflicts_to_geojson(conflicts: Iterable[TerritoryConflict]) -> Dict:
    """
    Convert conflicts to a GeoJSON FeatureCollection of Points at the
    invaded area's centroid. Conflicts without a location are skipped.
    """
    features = []
    for conflict in conflicts:
        if conflict.latitude is None or conflict.longitude is None:
            continue
        features.append({
            "type": "Feature",
            "id": conflict.id,
            "geometry": {
                "type": "Point",
                "coordinates": [conflict.longitude, conflict.latitude],
            },
            "properties": {
                "invaderId": conflict.invader_id,
                "victimId": conflict.victim_id,
                "conquestId": conflict.conquest_id,
                "areaInvaded": conflict.area_invaded,
                "locationName": conflict.location_name,
            },
        })

    return {"type": "FeatureCollection", "features": features}


CONFLICT_CSV_COLUMNS: List[str] = [
    "id",
    "created_at",
    "invader_id",
    "victim_id",
    "conquest_id",
    "victim_conquest_id",
    "area_invaded",
    "latitude",
    "longitude",
    "location_name",
    "is_read_by_victim",
    "is_read_by_admin",
]


def export_conflicts_csv(conflicts: Iterable[TerritoryConflict]) -> str:
    """
    Export conflicts to CSV format.

    Args:
        conflicts: Conflicts to export, in the order given.

    Returns:
        CSV string with a header row.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    # Write header
    writer.writerow(CONFLICT_CSV_COLUMNS)

    # Write data rows
    for conflict in conflicts:
        writer.writerow([
            conflict.id,
            conflict.created_at.isoformat(),
            conflict.invader_id,
            conflict.victim_id,
            conflict.conquest_id,
            conflict.victim_conquest_id,
            conflict.area_invaded,
            utils.round_float(conflict.latitude, 6),
            utils.round_float(conflict.longitude, 6),
            conflict.location_name,
            conflict.is_read_by_victim,
            conflict.is_read_by_admin,
        ])

    return buffer.getvalue()
