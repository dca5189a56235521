import pytest

from zonna import (
    CaptureMode,
    FinalizeNotAllowedError,
    GpsStatus,
    NoFixAvailableError,
    RawFix,
    SessionState,
    SessionStateError,
    TrackingSession,
    ZonnaConfig,
)
from zonna.config import SessionConfig
from conftest import ORIGIN, SQUARE_50M, offset, walk


def recording_session(fixes, mode=CaptureMode.DOMINIO, config=None, **callbacks):
    session = TrackingSession("alice", mode, config, **callbacks)
    session.on_fix(fixes[0])
    session.start()
    for fix in fixes[1:]:
        session.on_fix(fix)
    return session


def test_start_requires_an_accurate_fix():
    session = TrackingSession("alice")
    assert session.gps_status == GpsStatus.SEARCHING
    with pytest.raises(NoFixAvailableError):
        session.start()

    session.on_fix(RawFix(ORIGIN, 80.0))
    assert session.gps_status == GpsStatus.OK
    with pytest.raises(NoFixAvailableError):
        session.start()
    assert session.state == SessionState.IDLE


def test_start_uses_latest_fix_as_origin():
    session = TrackingSession("alice")
    session.on_fix(RawFix(offset(ORIGIN, 30, 0), 5.0))
    session.on_fix(RawFix(ORIGIN, 5.0))

    assert session.start() == ORIGIN
    assert session.state == SessionState.RECORDING
    assert session.trace == [ORIGIN]

    with pytest.raises(SessionStateError):
        session.start()


def test_square_walk_becomes_closable_and_finalizes(square_walk):
    session = recording_session(square_walk)
    assert session.state == SessionState.CLOSABLE
    assert session.can_finalize is True
    assert session.distance_to_start_m < 20

    for _ in range(120):
        session.tick()
    request = session.finalize()

    assert request.owner_id == "alice"
    assert request.mode == CaptureMode.DOMINIO
    assert request.area == pytest.approx(2500, rel=0.05)
    assert request.distance == pytest.approx(0.2, rel=0.02)
    assert request.duration == 120
    assert request.pace == pytest.approx(10.0, rel=0.02)
    assert request.polygon.ring[0] == request.polygon.ring[-1] == ORIGIN

    assert session.state == SessionState.IDLE
    assert session.trace == []
    assert session.can_finalize is False


def test_closable_toggles_when_walking_away_and_back():
    ready = []
    corners = SQUARE_50M + [(0, -40), (0, 0)]
    fixes = walk(ORIGIN, corners)
    session = TrackingSession("alice", on_finalize_ready=lambda: ready.append(session.distance_m))

    states = []
    session.on_state_change = lambda old, new: states.append(new)
    session.on_fix(fixes[0])
    session.start()
    for fix in fixes[1:]:
        session.on_fix(fix)

    assert session.state == SessionState.CLOSABLE
    assert len(ready) == 2
    assert states.count(SessionState.CLOSABLE) == 2
    assert SessionState.RECORDING in states[states.index(SessionState.CLOSABLE):]


def test_finalize_before_closure_is_refused():
    fixes = walk(ORIGIN, [(0, 0), (50, 0), (50, 50)])
    session = recording_session(fixes)
    assert session.state == SessionState.RECORDING
    with pytest.raises(FinalizeNotAllowedError):
        session.finalize()
    assert session.state == SessionState.RECORDING


def test_finalize_passes_through_finished():
    states = []
    session = recording_session(walk(ORIGIN, SQUARE_50M),
                                on_state_change=lambda old, new: states.append(new))
    session.finalize()
    assert states[-2:] == [SessionState.FINISHED, SessionState.IDLE]


def test_stop_discards_the_trace(square_walk):
    session = recording_session(square_walk)
    session.tick()
    session.stop()
    assert session.state == SessionState.IDLE
    assert session.trace == []
    assert session.distance_m == 0.0
    assert session.distance_to_start_m is None


def test_timer_only_runs_while_recording():
    session = TrackingSession("alice")
    session.tick()
    assert session.elapsed_s == 0
    session.on_fix(RawFix(ORIGIN, 5.0))
    session.start()
    session.tick()
    session.tick()
    assert session.elapsed_s == 2


def test_fixes_are_ignored_for_the_trace_while_idle():
    session = TrackingSession("alice")
    assert session.on_fix(RawFix(ORIGIN, 5.0)) is False
    assert session.trace == []


def test_livre_has_no_closable_state_and_unlocks_by_distance():
    config = ZonnaConfig(session=SessionConfig(livre_finalize_distance_m=50))
    line = walk(ORIGIN, [(0, 0), (100, 0)])

    session = TrackingSession("bob", CaptureMode.LIVRE, config)
    session.on_fix(line[0])
    session.start()
    for fix in line[1:5]:
        session.on_fix(fix)
    assert session.can_finalize is False

    for fix in line[5:]:
        session.on_fix(fix)
    assert session.state == SessionState.RECORDING
    assert session.can_finalize is True

    request = session.finalize()
    assert request.mode == CaptureMode.LIVRE
    assert request.area == pytest.approx(2314, rel=0.03)
    assert request.polygon.is_valid


def test_livre_default_unlock_is_500_m():
    session = recording_session(walk(ORIGIN, [(0, 0), (100, 0)]), CaptureMode.LIVRE)
    assert session.can_finalize is False
    with pytest.raises(FinalizeNotAllowedError):
        session.finalize()


def test_permission_denied_blocks_gps_status():
    session = TrackingSession("alice")
    session.on_permission_denied()
    session.on_fix(RawFix(ORIGIN, 5.0))
    assert session.gps_status == GpsStatus.BLOCKED


def test_snapshot(square_walk):
    session = recording_session(square_walk)
    snap = session.snapshot()
    assert snap["state"] == "closable"
    assert snap["mode"] == "dominio"
    assert snap["points"] == len(session.trace)
    assert snap["can_finalize"] is True


def test_failed_area_computation_returns_to_idle(monkeypatch, square_walk):
    def broken(*args, **kwargs):
        raise ValueError("projection failed")

    monkeypatch.setattr("zonna.session.area_for_mode", broken)
    session = recording_session(square_walk)
    with pytest.raises(ValueError):
        session.finalize()

    assert session.state == SessionState.IDLE
    assert session.trace == []
    assert session.distance_to_start_m is None
    session.stop()
    assert session.state == SessionState.IDLE
