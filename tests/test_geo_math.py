import math

import pytest

from zonna import GeoPoint, bearing_deg, format_duration, haversine_m, pace_min_per_km, trace_length_km
from zonna.geo_math import segment_lengths_m
from conftest import ORIGIN, offset


def test_haversine_is_symmetric_and_zero_on_itself():
    a = GeoPoint(-23.5505, -46.6333)
    b = GeoPoint(-22.9068, -43.1729)
    assert haversine_m(a, b) == pytest.approx(haversine_m(b, a))
    assert haversine_m(a, a) == 0.0


def test_haversine_one_degree_of_latitude():
    # 2 * pi * 6371000 / 360
    assert haversine_m(GeoPoint(0, 0), GeoPoint(1, 0)) == pytest.approx(111194.9, rel=1e-4)


def test_haversine_antipodal_points_do_not_fail():
    d = haversine_m(GeoPoint(0, 0), GeoPoint(0, 180))
    assert d == pytest.approx(math.pi * 6371000.0, rel=1e-9)


def test_trace_length_km():
    points = [ORIGIN, offset(ORIGIN, 100, 0), offset(ORIGIN, 100, 100)]
    assert trace_length_km(points) == pytest.approx(0.2, rel=0.01)
    assert trace_length_km([ORIGIN]) == 0.0
    assert trace_length_km([]) == 0.0


def test_segment_lengths_match_pairwise_haversine():
    points = [ORIGIN, offset(ORIGIN, 30, 40), offset(ORIGIN, -10, 5)]
    lengths = segment_lengths_m(points)
    assert len(lengths) == 2
    assert lengths[0] == pytest.approx(haversine_m(points[0], points[1]))
    assert lengths[1] == pytest.approx(haversine_m(points[1], points[2]))


@pytest.mark.parametrize("target, expected", [
    (GeoPoint(1, 0), 0.0),
    (GeoPoint(0, 1), 90.0),
    (GeoPoint(-1, 0), 180.0),
    (GeoPoint(0, -1), 270.0),
])
def test_bearing_cardinal_directions(target, expected):
    assert bearing_deg(GeoPoint(0, 0), target) == pytest.approx(expected)


def test_bearing_stays_in_range():
    for east, north in [(1, 1), (-1, 1), (-1, -1), (1, -1), (0, 0)]:
        b = bearing_deg(ORIGIN, offset(ORIGIN, east * 50, north * 50))
        assert 0.0 <= b < 360.0


def test_pace():
    assert pace_min_per_km(600, 2.0) == pytest.approx(5.0)
    assert pace_min_per_km(600, 0.0) == 0.0


@pytest.mark.parametrize("seconds, expected", [
    (0, "0:00"),
    (65, "1:05"),
    (3599, "59:59"),
    (3661, "1:01:01"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
