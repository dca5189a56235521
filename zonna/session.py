"""
Tracking Session for the Zonna Territory Engine

This module holds the recording state machine. It orchestrates the path
filter, the closure detector and the elapsed-time counter across one
recording, then hands the finished trace to the area strategy of the
capture mode.

States:
    IDLE -> RECORDING <-> CLOSABLE -> FINISHED -> IDLE
    RECORDING/CLOSABLE -> IDLE on stop (trace discarded)

CLOSABLE only exists in ``dominio`` mode. In ``livre`` mode finalize unlocks
once the walked distance reaches ``session.livre_finalize_distance_m``.

The session is not thread-safe. ``zonna.driver.SessionDriver`` serializes
fixes, timer ticks and user actions onto one queue.
"""

import logging
from typing import Any, Callable, Dict, List, Optional
from . import geo_math
from .area import area_for_mode
from .closure import ClosureDetector, distance_to_start_m
from .config import ZonnaConfig
from .errors import FinalizeNotAllowedError, NoFixAvailableError, SessionStateError
from .models import (
    CaptureMode,
    ConquestRequest,
    GeoPoint,
    GpsStatus,
    RawFix,
    SessionState,
)
from .path_filter import PathFilter

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]

_ACTIVE = (SessionState.RECORDING, SessionState.CLOSABLE)


class TrackingSession:
    """
    One user's recording lifecycle.

    Attributes:
        owner_id: User that will own the resulting conquest.
        mode: Capture mode of the current or next recording.
        state: Current SessionState.
        gps_status: SEARCHING until a fix arrives, BLOCKED on permission denial.
        elapsed_s: Seconds recorded; advances only while recording.

    Callbacks:
        on_state_change(old, new): every transition, including the transient
            FINISHED state during finalize.
        on_finalize_ready(): once per recording when finalize first unlocks,
            and again in ``dominio`` each time the walker re-approaches the
            start after drifting away.
    """

    def __init__(self, owner_id: str, mode: CaptureMode = CaptureMode.DOMINIO,
                 config: Optional[ZonnaConfig] = None,
                 on_state_change: Optional[StateCallback] = None,
                 on_finalize_ready: Optional[Callable[[], None]] = None):
        self.owner_id = owner_id
        self.mode = mode
        self.config = config or ZonnaConfig()
        self.on_state_change = on_state_change
        self.on_finalize_ready = on_finalize_ready

        self.state = SessionState.IDLE
        self.gps_status = GpsStatus.SEARCHING
        self.elapsed_s = 0
        self.start_point: Optional[GeoPoint] = None
        self.current_fix: Optional[RawFix] = None

        self._filter = PathFilter(self.config.filter.max_accuracy_m,
                                  self.config.filter.min_movement_m)
        self._closure = ClosureDetector(self.config.closure.radius_m,
                                        self.config.closure.min_loop_length_m)
        self._finalize_ready = False

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def is_recording(self) -> bool:
        return self.state in _ACTIVE

    @property
    def trace(self) -> List[GeoPoint]:
        return self._filter.points

    @property
    def distance_m(self) -> float:
        return self._filter.distance_m

    @property
    def distance_km(self) -> float:
        return self._filter.distance_m / 1000.0

    @property
    def can_close(self) -> bool:
        return self.state == SessionState.CLOSABLE

    @property
    def distance_to_start_m(self) -> Optional[float]:
        if not self.is_recording:
            return None
        return distance_to_start_m(self._filter.points, self.start_point)

    @property
    def pace_min_per_km(self) -> float:
        return geo_math.pace_min_per_km(self.elapsed_s, self.distance_km)

    @property
    def can_finalize(self) -> bool:
        """
        Whether finalize is currently allowed.

        ``dominio``: the loop is closable and has at least three distinct
        points. ``livre``: the walked distance reached the unlock threshold.
        """
        if not self.is_recording:
            return False
        if self.mode == CaptureMode.DOMINIO:
            return self.can_close and len(set(self._filter.points)) >= 3
        return self.distance_m >= self.config.session.livre_finalize_distance_m

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of the session for display layers."""
        to_start = self.distance_to_start_m
        return {
            "state": self.state.value,
            "mode": self.mode.value,
            "gps_status": self.gps_status.value,
            "points": len(self._filter.points),
            "distance_km": self.distance_km,
            "elapsed_s": self.elapsed_s,
            "pace_min_per_km": self.pace_min_per_km,
            "can_close": self.can_close,
            "can_finalize": self.can_finalize,
            "distance_to_start_m": round(to_start) if to_start is not None else None,
        }

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on_fix(self, fix: RawFix) -> bool:
        """
        Handle one fix from the location provider.

        While idle, a fix that passes the accuracy gate becomes the candidate
        start point. While recording, it goes through the path filter and,
        in ``dominio`` mode, the closure detector is re-evaluated.

        Returns:
            True if the fix was appended to the active trace.
        """
        if self.gps_status != GpsStatus.BLOCKED:
            self.gps_status = GpsStatus.OK

        if not self.is_recording:
            if self._filter.passes_accuracy(fix):
                self.current_fix = fix
            return False

        accepted = self._filter.accept(fix)
        if not accepted:
            return False

        self.current_fix = fix
        if self.mode == CaptureMode.DOMINIO:
            closable = self._closure(self._filter.points, self.start_point,
                                     self._filter.distance_m)
            if closable and self.state == SessionState.RECORDING:
                self._set_state(SessionState.CLOSABLE)
            elif not closable and self.state == SessionState.CLOSABLE:
                self._set_state(SessionState.RECORDING)

        self._check_finalize_ready()
        return True

    def on_permission_denied(self) -> None:
        logger.warning("Location permission denied for %s", self.owner_id)
        self.gps_status = GpsStatus.BLOCKED

    def tick(self, seconds: int = 1) -> int:
        """Advance the elapsed timer. Ignored unless recording."""
        if self.is_recording:
            self.elapsed_s += seconds
        return self.elapsed_s

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------
    def start(self, mode: Optional[CaptureMode] = None) -> GeoPoint:
        """
        Begin recording from the latest accurate fix.

        Args:
            mode: Capture mode for this recording; keeps the current mode
                if omitted.

        Returns:
            The start point.

        Raises:
            NoFixAvailableError: No accurate fix has been received yet.
            SessionStateError: Already recording.
        """
        if self.is_recording:
            raise SessionStateError(f"Cannot start while {self.state.value}")
        if self.current_fix is None:
            raise NoFixAvailableError("No accurate GPS fix yet; recording is blocked")

        if mode is not None:
            self.mode = mode

        self._filter.reset()
        self._filter.accept(self.current_fix)
        self.start_point = self.current_fix.point
        self.elapsed_s = 0
        self._finalize_ready = False

        self._set_state(SessionState.RECORDING)
        logger.info("Recording started for %s in %s mode at %s",
                    self.owner_id, self.mode.value, self.start_point)
        return self.start_point

    def stop(self) -> None:
        """Stop without finalizing; the trace is discarded."""
        if not self.is_recording:
            return
        logger.info("Recording discarded for %s after %d point(s)",
                    self.owner_id, len(self._filter.points))
        self._reset()
        self._set_state(SessionState.IDLE)

    def finalize(self) -> ConquestRequest:
        """
        Finish the recording and build the conquest creation request.

        The session leaves the recording states before the trace is
        snapshotted, so no further fix can reach it. The area is computed
        with the mode's strategy and the session resets to IDLE, also when
        the area computation fails.

        Raises:
            FinalizeNotAllowedError: The capture rules do not allow it yet.
        """
        if not self.can_finalize:
            raise FinalizeNotAllowedError(
                f"Finalize not allowed: state={self.state.value}, mode={self.mode.value}, "
                f"distance={self.distance_m:.0f} m"
            )

        self._set_state(SessionState.FINISHED)
        trace = tuple(self._filter.points)
        distance_km = self.distance_km
        duration = self.elapsed_s

        try:
            polygon, area = area_for_mode(self.mode, trace, self.config.area.corridor_radius_m)
        finally:
            self._reset()
            self._set_state(SessionState.IDLE)

        request = ConquestRequest(
            owner_id=self.owner_id,
            polygon=polygon,
            area=area,
            distance=distance_km,
            mode=self.mode,
            duration=duration,
            pace=geo_math.pace_min_per_km(duration, distance_km),
            trace=trace,
        )
        logger.info("Recording finalized for %s: %d m², %.3f km, %s",
                    self.owner_id, area, distance_km, geo_math.format_duration(duration))
        return request

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _check_finalize_ready(self) -> None:
        ready = self.can_finalize
        if ready and not self._finalize_ready and self.on_finalize_ready is not None:
            self.on_finalize_ready()
        self._finalize_ready = ready

    def _reset(self) -> None:
        self._filter.reset()
        self.start_point = None
        self._finalize_ready = False

    def _set_state(self, new_state: SessionState) -> None:
        old_state = self.state
        if old_state == new_state:
            return
        self.state = new_state
        logger.debug("Session %s: %s -> %s", self.owner_id, old_state.value, new_state.value)
        if self.on_state_change is not None:
            self.on_state_change(old_state, new_state)
