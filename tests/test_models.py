import math

import pytest

from zonna import ClosedPolygon, Conquest, GeoPoint, InvalidPolygonError, RawFix, ReplayLocationProvider
from conftest import ORIGIN, rectangle


@pytest.mark.parametrize("pairs", [None, "abc", [[1.0]], [[1.0, "north"]], [[math.nan, 1.0]], 42])
def test_from_pairs_rejects_malformed_data(pairs):
    with pytest.raises(InvalidPolygonError):
        ClosedPolygon.from_pairs(pairs)


def test_from_pairs_closes_open_rings():
    polygon = ClosedPolygon.from_pairs([[0, 0], [0, 1], [1, 1]])
    assert polygon.ring[0] == polygon.ring[-1] == GeoPoint(0.0, 0.0)
    assert len(polygon) == 4
    assert ClosedPolygon.from_pairs(polygon.to_pairs()) == polygon


def test_raw_fix_effective_accuracy():
    assert RawFix(ORIGIN).effective_accuracy_m == math.inf
    assert RawFix(ORIGIN, math.nan).effective_accuracy_m == math.inf
    assert RawFix.from_coords(1, 2, 4).effective_accuracy_m == 4.0


def test_conquest_to_dict():
    conquest = Conquest("c1", "alice", rectangle(ORIGIN, 10, 10), 100, 0.04, duration=60)
    data = conquest.to_dict()
    assert data["user_id"] == "alice"
    assert data["mode"] == "dominio"
    assert data["path"][0] == [ORIGIN.lat, ORIGIN.lng]


def test_replay_provider_cancel_stops_callbacks():
    provider = ReplayLocationProvider([RawFix(ORIGIN, 5.0)])
    received = []
    subscription = provider.subscribe(received.append)
    assert provider.replay() == 1
    subscription.cancel()
    provider.push(RawFix(ORIGIN, 5.0))
    assert len(received) == 1
    assert provider.current_fix() == RawFix(ORIGIN, 5.0)


@pytest.mark.parametrize("pair", [[90.5, 0.0], [-91.0, 10.0], [10.0, 180.5], [10.0, -200.0]])
def test_from_pair_rejects_out_of_range_coordinates(pair):
    with pytest.raises(InvalidPolygonError):
        GeoPoint.from_pair(pair)


def test_from_pair_accepts_the_range_limits():
    assert GeoPoint.from_pair([90, -180]) == GeoPoint(90.0, -180.0)


def test_holes_survive_stored_pairs():
    outer = rectangle(ORIGIN, 100, 100)
    inner = rectangle(ORIGIN, 20, 20, east_m=40, north_m=40)
    polygon = ClosedPolygon.from_ring(outer.ring, [inner.ring])

    data = Conquest("c1", "alice", polygon, 9600, 0.4).to_dict()
    assert len(data["holes"]) == 1
    assert ClosedPolygon.from_pairs(data["path"], data["holes"]) == polygon

    with pytest.raises(InvalidPolygonError):
        ClosedPolygon.from_pairs(data["path"], "garbage")
