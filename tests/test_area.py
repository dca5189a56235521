import math
import warnings

import pytest

from zonna import CaptureMode, ClosedPolygon, GeoPoint, area_for_mode, corridor_area_m2, corridor_polygon, loop_area_m2
from conftest import ORIGIN, offset, rectangle, walk


def test_rectangle_100_by_50_is_about_5000_m2():
    assert loop_area_m2(rectangle(ORIGIN, 100, 50)) == pytest.approx(5000, rel=0.05)


def test_area_is_winding_independent():
    ring = rectangle(ORIGIN, 100, 50)
    reversed_ring = ClosedPolygon.from_ring(reversed(ring.ring))
    assert loop_area_m2(ring) == loop_area_m2(reversed_ring)
    assert loop_area_m2(ring) > 0


def test_area_is_an_integer():
    assert isinstance(loop_area_m2(rectangle(ORIGIN, 33.3, 21.7)), int)


def test_degenerate_rings_have_zero_area():
    assert loop_area_m2(ClosedPolygon.from_trace([])) == 0
    assert loop_area_m2(ClosedPolygon.from_trace([ORIGIN])) == 0
    assert loop_area_m2(ClosedPolygon.from_trace([ORIGIN, offset(ORIGIN, 10, 0)])) == 0
    # Repeated points do not count as distinct vertices
    assert loop_area_m2(ClosedPolygon.from_trace([ORIGIN, ORIGIN, offset(ORIGIN, 10, 0)])) == 0


def test_collinear_ring_has_zero_area():
    meridian = [GeoPoint(-23.55, -46.63), GeoPoint(-23.54, -46.63), GeoPoint(-23.53, -46.63)]
    assert loop_area_m2(ClosedPolygon.from_trace(meridian)) == 0


def test_from_trace_closes_the_ring():
    polygon = ClosedPolygon.from_trace([ORIGIN, offset(ORIGIN, 10, 0), offset(ORIGIN, 10, 10)])
    assert polygon.ring[0] == polygon.ring[-1]
    assert len(polygon) == 4
    assert polygon.is_valid


def test_corridor_area_of_a_straight_line():
    line = [ORIGIN, offset(ORIGIN, 100, 0)]
    # 100 m x 20 m strip plus two half-disc caps of radius 10 m
    expected = 100 * 20 + math.pi * 10 ** 2
    assert corridor_area_m2(line, 10.0) == pytest.approx(expected, rel=0.02)


def test_corridor_requires_two_distinct_points():
    assert corridor_area_m2([ORIGIN], 10.0) == 0
    assert corridor_area_m2([ORIGIN, ORIGIN], 10.0) == 0
    assert corridor_polygon([ORIGIN], 10.0) is None


def test_corridor_polygon_is_closed_and_covers_the_line():
    line = [ORIGIN, offset(ORIGIN, 100, 0), offset(ORIGIN, 100, 100)]
    strip = corridor_polygon(line, 10.0)
    assert strip.is_valid
    assert strip.ring[0] == strip.ring[-1]
    lats = [p.lat for p in strip.ring]
    assert min(lats) < ORIGIN.lat < max(lats)


def test_area_for_mode():
    trace = list(rectangle(ORIGIN, 100, 50).vertices)

    polygon, area = area_for_mode(CaptureMode.DOMINIO, trace)
    assert polygon == ClosedPolygon.from_trace(trace)
    assert area == loop_area_m2(polygon)

    strip, corridor = area_for_mode(CaptureMode.LIVRE, trace, 10.0)
    assert corridor == corridor_area_m2(trace, 10.0)
    assert strip.is_valid

    degenerate, zero = area_for_mode(CaptureMode.LIVRE, [ORIGIN])
    assert zero == 0
    assert not degenerate.is_valid


def test_points_on_one_parallel_have_zero_area():
    # 4 km east and back along the same latitude
    out = [offset(ORIGIN, x, 0) for x in range(0, 4001, 500)]
    trace = out + out[-2:0:-1]
    assert loop_area_m2(ClosedPolygon.from_trace(trace)) == 0


def test_livre_loop_keeps_the_enclosed_gap_as_a_hole():
    trace = [fix.point for fix in walk(ORIGIN, [(0, 0), (200, 0), (200, 200), (0, 200), (0, 0)])]
    strip, area = area_for_mode(CaptureMode.LIVRE, trace, 10.0)

    assert len(strip.holes) == 1
    hole = strip.holes[0]
    assert hole[0] == hole[-1]
    # Inner gap is about 180 m x 180 m
    assert loop_area_m2(ClosedPolygon.from_ring(hole)) == pytest.approx(180 * 180, rel=0.05)
    # Scored area equals the polygon with its hole removed
    assert loop_area_m2(strip) == pytest.approx(area, rel=0.01)
    assert area < 220 * 220 - 180 * 180 + 1000


def test_corridor_polygon_raises_no_deprecation_warning():
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        strip = corridor_polygon([ORIGIN, offset(ORIGIN, 100, 0)], 10.0)
    assert strip.is_valid
    assert strip.holes == ()
