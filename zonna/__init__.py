"""
Zonna Territory Engine

Turns a live GPS stream into claimed territory: fixes are filtered into a
trace, the trace is closed into a polygon (or buffered into a corridor),
its area is scored and overlaps with other players' territory are recorded
as conflicts.

This package root re-exports the public API of the submodules.
"""

# Import constants
from .constants import REPO_CONFIG_FILE, USER_CONFIG_FILE

# Import errors
from .errors import (
    ZonnaError,
    ConfigError,
    SessionError,
    NoFixAvailableError,
    FinalizeNotAllowedError,
    SessionStateError,
    GeometryError,
    InvalidPolygonError,
    StoreError,
    ConquestSaveError,
    ConflictSaveError,
    ConquestNotFoundError,
    ConflictNotFoundError,
    LocationError,
    LocationPermissionDenied,
)

# Import models
from .models import (
    CaptureMode,
    SessionState,
    GpsStatus,
    GeoPoint,
    RawFix,
    ClosedPolygon,
    ConquestRequest,
    Conquest,
    TerritoryConflict,
)

# Import utility functions
from .utils import (
    safe_float,
    round_float,
    configure_logging,
)

# Import geometry functions
from .geo_math import (
    haversine_m,
    segment_lengths_m,
    trace_length_km,
    bearing_deg,
    pace_min_per_km,
    format_duration,
)
from .path_filter import PathFilter, filter_gps_points
from .smoothing import smooth_path, simplify_path, optimize_path
from .closure import ClosureDetector, distance_to_start_m, is_closable
from .projection import LocalProjection
from .area import loop_area_m2, corridor_polygon, corridor_area_m2, area_for_mode
from .conflicts import RivalPolygon, detect_conflicts, find_invaded_conquest

# Import configuration
from .config import ZonnaConfig, load_config

# Import session orchestration
from .session import TrackingSession
from .location import LocationProvider, ReplayLocationProvider
from .driver import SessionDriver
from .stores import (
    ConquestStore,
    ConflictStore,
    InMemoryConquestStore,
    InMemoryConflictStore,
)
from .territory import SaveResult, TerritoryService

# Import loading and export functions
from .data_loading import load_raw_fixes, load_conquests
from .export import conquests_to_geojson, conflicts_to_geojson, export_conflicts_csv


__all__ = [
    # Constants
    "REPO_CONFIG_FILE",
    "USER_CONFIG_FILE",
    # Errors
    "ZonnaError",
    "ConfigError",
    "SessionError",
    "NoFixAvailableError",
    "FinalizeNotAllowedError",
    "SessionStateError",
    "GeometryError",
    "InvalidPolygonError",
    "StoreError",
    "ConquestSaveError",
    "ConflictSaveError",
    "ConquestNotFoundError",
    "ConflictNotFoundError",
    "LocationError",
    "LocationPermissionDenied",
    # Models
    "CaptureMode",
    "SessionState",
    "GpsStatus",
    "GeoPoint",
    "RawFix",
    "ClosedPolygon",
    "ConquestRequest",
    "Conquest",
    "TerritoryConflict",
    # Utils
    "safe_float",
    "round_float",
    "configure_logging",
    # Geometry
    "haversine_m",
    "segment_lengths_m",
    "trace_length_km",
    "bearing_deg",
    "pace_min_per_km",
    "format_duration",
    "PathFilter",
    "filter_gps_points",
    "smooth_path",
    "simplify_path",
    "optimize_path",
    "ClosureDetector",
    "distance_to_start_m",
    "is_closable",
    "LocalProjection",
    "loop_area_m2",
    "corridor_polygon",
    "corridor_area_m2",
    "area_for_mode",
    "RivalPolygon",
    "detect_conflicts",
    "find_invaded_conquest",
    # Config
    "ZonnaConfig",
    "load_config",
    # Session
    "TrackingSession",
    "LocationProvider",
    "ReplayLocationProvider",
    "SessionDriver",
    "ConquestStore",
    "ConflictStore",
    "InMemoryConquestStore",
    "InMemoryConflictStore",
    "SaveResult",
    "TerritoryService",
    # Loading & export
    "load_raw_fixes",
    "load_conquests",
    "conquests_to_geojson",
    "conflicts_to_geojson",
    "export_conflicts_csv",
]
