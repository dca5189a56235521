"""
zonna.errors

Central exception hierarchy for the territory engine.

Callers can catch ZonnaError (broad) or specific subclasses (narrow).
Pure geometry never raises for degenerate input; these errors cover
configuration, session misuse and the external stores.
"""


class ZonnaError(RuntimeError):
    """Base class for all Zonna runtime errors."""


# ---- Configuration errors ----------------------

class ConfigError(ZonnaError):
    """Configuration file could not be parsed or holds an invalid value."""


# ---- Session errors ----------------------------

class SessionError(ZonnaError):
    """Errors driving a tracking session."""

class NoFixAvailableError(SessionError):
    """Recording was requested before any GPS fix was accepted."""

class FinalizeNotAllowedError(SessionError):
    """Finalize was requested while the capture rules do not allow it yet."""

class SessionStateError(SessionError):
    """Operation is not valid in the session's current state."""


# ---- Geometry errors ---------------------------

class GeometryError(ZonnaError):
    """Errors building geometry from stored or user supplied data."""

class InvalidPolygonError(GeometryError):
    """Polygon data is malformed (not a list of numeric lat/lng pairs)."""


# ---- Store errors ------------------------------

class StoreError(ZonnaError):
    """Errors talking to the conquest or conflict store."""

class ConquestSaveError(StoreError):
    """The conquest could not be persisted; the action may be retried."""

class ConflictSaveError(StoreError):
    """A conflict batch could not be persisted."""

class ConquestNotFoundError(StoreError):
    """No conquest exists with the requested id."""

class ConflictNotFoundError(StoreError):
    """No conflict exists with the requested id."""


# ---- Location provider errors ------------------

class LocationError(ZonnaError):
    """The location provider reported a failure."""

class LocationPermissionDenied(LocationError):
    """Location permission was denied; terminal until the user changes it."""
