"""
FastAPI Web Application for the Zonna Territory Engine

This module provides a REST API over the conquest and conflict stores:
creating conquests (with area scoring and conflict detection), listing and
exporting territory, conflict notifications and owner totals.
"""

import json
from typing import List, Optional
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field
import zonna


# ============================================================================
# APPLICATION SETUP
# ============================================================================

config = zonna.load_config()
zonna.configure_logging()

app = FastAPI(title="Zonna")

conquest_store = zonna.InMemoryConquestStore()
conflict_store = zonna.InMemoryConflictStore()
territory = zonna.TerritoryService(
    conquest_store,
    conflict_store,
    min_conflict_area_m2=config.conflicts.min_area_m2,
)


class ConquestIn(BaseModel):
    """Body of POST /api/conquests."""

    owner_id: str
    path: List[List[float]] = Field(..., description="Walked trace as [[lat, lng], ...]")
    mode: zonna.CaptureMode = zonna.CaptureMode.DOMINIO
    duration: Optional[int] = Field(None, ge=0, description="Recording duration in seconds")


# ============================================================================
# API ROUTES - CONQUESTS
# ============================================================================

@app.post("/api/conquests", status_code=201)
def create_conquest(body: ConquestIn):
    """
    Create a conquest from a walked trace.

    The area is computed with the mode's strategy (closed loop for
    ``dominio``, buffered corridor for ``livre``) and the new polygon is
    checked against every rival conquest.

    Returns:
        Dictionary with the stored conquest and the conflicts it created.

    Raises:
        HTTPException: 422 for a malformed path, 503 if the conquest could
        not be stored.
    """
    try:
        trace = [zonna.GeoPoint.from_pair(pair) for pair in body.path]
    except zonna.InvalidPolygonError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    # Stored rings arrive already closed
    if len(trace) > 1 and trace[0] == trace[-1]:
        trace = trace[:-1]

    polygon, area = zonna.area_for_mode(body.mode, trace, config.area.corridor_radius_m)
    if not polygon.is_valid:
        raise HTTPException(status_code=422, detail="Path needs at least three distinct points")

    distance_km = zonna.trace_length_km(trace)
    request = zonna.ConquestRequest(
        owner_id=body.owner_id,
        polygon=polygon,
        area=area,
        distance=distance_km,
        mode=body.mode,
        duration=body.duration,
        pace=zonna.pace_min_per_km(body.duration or 0, distance_km),
        trace=tuple(trace),
    )

    try:
        result = territory.save_conquest(request)
    except zonna.ConquestSaveError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return {
        "conquest": result.conquest.to_dict(),
        "conflicts": [c.to_dict() for c in result.conflicts],
        "conflicts_saved": result.conflicts_saved,
    }


@app.get("/api/conquests")
def list_conquests(owner: Optional[str] = Query(None, description="Only conquests of this user")):
    """
    List conquests, optionally filtered by owner.

    Returns:
        List of conquest dictionaries.
    """
    if owner is None:
        conquests = conquest_store.list_all()
    else:
        conquests = conquest_store.list_by_owner(owner)
    return [c.to_dict() for c in conquests]


@app.get("/api/conquests.geojson")
def get_conquests_geojson(owner: Optional[str] = Query(None, description="Only conquests of this user")):
    """
    Get conquests as a GeoJSON FeatureCollection of Polygons.
    """
    conquests = conquest_store.list_all() if owner is None else conquest_store.list_by_owner(owner)
    return zonna.conquests_to_geojson(conquests)


@app.get("/api/conquests/{conquest_id}")
def get_conquest(conquest_id: str):
    """
    Get a single conquest.

    Raises:
        HTTPException: 404 if no conquest has this id.
    """
    try:
        return conquest_store.get(conquest_id).to_dict()
    except zonna.ConquestNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


# ============================================================================
# API ROUTES - CONFLICTS
# ============================================================================

@app.get("/api/conflicts")
def list_conflicts(victim: str = Query(..., description="User whose territory was invaded")):
    """
    List conflicts suffered by a user, newest first.
    """
    return [c.to_dict() for c in conflict_store.list_by_victim(victim)]


@app.get("/api/conflicts.geojson")
def get_conflicts_geojson(victim: Optional[str] = Query(None, description="Only conflicts of this victim")):
    """
    Get conflicts as a GeoJSON FeatureCollection of Points.
    """
    conflicts = conflict_store.list_all() if victim is None else conflict_store.list_by_victim(victim)
    return zonna.conflicts_to_geojson(conflicts)


@app.get("/api/conflicts/unread-count")
def get_unread_count(victim: str = Query(..., description="User whose territory was invaded")):
    """
    Get the number of conflicts the user has not read yet.
    """
    return {"victim": victim, "unread": conflict_store.unread_count(victim)}


@app.post("/api/conflicts/read-all")
def mark_all_conflicts_read(victim: str = Query(..., description="User whose territory was invaded")):
    """
    Mark every conflict of a user as read.
    """
    return {"victim": victim, "updated": conflict_store.mark_all_read(victim)}


@app.post("/api/conflicts/{conflict_id}/read")
def mark_conflict_read(conflict_id: str, admin: bool = Query(False, description="Mark as read by admin")):
    """
    Mark one conflict as read by its victim (or by an admin).

    Raises:
        HTTPException: 404 if no conflict has this id.
    """
    try:
        if admin:
            conflict = conflict_store.mark_read_by_admin(conflict_id)
        else:
            conflict = conflict_store.mark_read(conflict_id)
    except zonna.ConflictNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return conflict.to_dict()


# ============================================================================
# API ROUTES - OWNERS
# ============================================================================

@app.get("/api/owners/{owner}/stats")
def get_owner_stats(owner: str):
    """
    Get a user's totals: conquest count, total area (m²) and distance (km).
    """
    return {"owner": owner, **territory.owner_stats(owner)}


@app.get("/api/invasion")
def check_invasion(
    owner: str = Query(..., description="Current user"),
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
):
    """
    Check whether a position lies inside another user's territory.

    Returns:
        Dictionary with ``invaded`` and, when true, the rival conquest.
    """
    conquest = territory.check_invasion(owner, zonna.GeoPoint(lat, lng))
    if conquest is None:
        return {"invaded": False, "conquest": None}
    return {"invaded": True, "conquest": conquest.to_dict()}


# ============================================================================
# API ROUTES - EXPORT
# ============================================================================

@app.get("/api/export/conflicts.csv")
def export_conflicts(victim: Optional[str] = Query(None, description="Only conflicts of this victim")):
    """
    Export conflicts as CSV.

    Returns:
        PlainTextResponse: CSV file with Content-Disposition header
        for download. Filename: zonna_conflicts.csv
    """
    conflicts = conflict_store.list_all() if victim is None else conflict_store.list_by_victim(victim)
    headers = {"Content-Disposition": "attachment; filename=zonna_conflicts.csv"}
    return PlainTextResponse(
        zonna.export_conflicts_csv(conflicts),
        media_type="text/csv",
        headers=headers
    )


@app.get("/api/export/conquests")
def export_conquests(owner: Optional[str] = Query(None, description="Only conquests of this user")):
    """
    Export conquests as a JSON download.

    Returns:
        PlainTextResponse: JSON file with Content-Disposition header
        for download. Filename: zonna_conquests.json
    """
    conquests = conquest_store.list_all() if owner is None else conquest_store.list_by_owner(owner)
    body = json.dumps([c.to_dict() for c in conquests], indent=2)
    headers = {"Content-Disposition": "attachment; filename=zonna_conquests.json"}
    return PlainTextResponse(
        body,
        media_type="application/json",
        headers=headers
    )
