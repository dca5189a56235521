import math

import pytest

from zonna import PathFilter, RawFix, filter_gps_points, haversine_m
from conftest import ORIGIN, offset


def test_same_fix_twice_is_accepted_once():
    path_filter = PathFilter()
    fix = RawFix(ORIGIN, 5.0)
    assert path_filter.accept(fix) is True
    assert path_filter.accept(fix) is False
    assert len(path_filter.points) == 1
    assert path_filter.distance_m == 0.0


def test_first_fix_bypasses_only_the_movement_gate():
    path_filter = PathFilter()
    assert path_filter.accept(RawFix(ORIGIN, 50.0)) is False
    assert path_filter.accept(RawFix(ORIGIN, 5.0)) is True


@pytest.mark.parametrize("accuracy", [None, math.nan, math.inf, 20.1])
def test_unknown_or_poor_accuracy_is_rejected(accuracy):
    path_filter = PathFilter()
    assert path_filter.accept(RawFix(ORIGIN, accuracy)) is False
    assert path_filter.points == []


def test_accuracy_at_threshold_is_accepted():
    assert PathFilter().accept(RawFix(ORIGIN, 20.0)) is True


def test_small_steps_are_dropped_and_distance_accumulates():
    path_filter = PathFilter(min_movement_m=3.0)
    path_filter.accept(RawFix(ORIGIN, 5.0))
    assert path_filter.accept(RawFix(offset(ORIGIN, 1, 0), 5.0)) is False
    assert path_filter.accept(RawFix(offset(ORIGIN, 10, 0), 5.0)) is True
    assert path_filter.accept(RawFix(offset(ORIGIN, 20, 0), 5.0)) is True

    assert len(path_filter.points) == 3
    assert path_filter.distance_m == pytest.approx(20.0, rel=0.01)


def test_movement_is_measured_from_last_accepted_fix():
    path_filter = PathFilter(min_movement_m=3.0)
    path_filter.accept(RawFix(ORIGIN, 5.0))
    # Three 2 m steps: the third one is 4 m from the last accepted point
    assert path_filter.accept(RawFix(offset(ORIGIN, 2, 0), 5.0)) is False
    assert path_filter.accept(RawFix(offset(ORIGIN, 4, 0), 5.0)) is True
    assert path_filter.distance_m == pytest.approx(haversine_m(ORIGIN, offset(ORIGIN, 4, 0)))


def test_points_property_is_a_copy():
    path_filter = PathFilter()
    path_filter.accept(RawFix(ORIGIN, 5.0))
    path_filter.points.clear()
    assert len(path_filter.points) == 1


def test_reset_clears_trace():
    path_filter = PathFilter()
    path_filter.accept(RawFix(ORIGIN, 5.0))
    path_filter.accept(RawFix(offset(ORIGIN, 10, 0), 5.0))
    path_filter.reset()
    assert path_filter.points == []
    assert path_filter.distance_m == 0.0
    assert path_filter.last_point is None


def test_filter_gps_points_keeps_arrival_order():
    fixes = [
        RawFix(ORIGIN, 5.0),
        RawFix(offset(ORIGIN, 10, 0), 40.0),
        RawFix(offset(ORIGIN, 20, 0), 5.0),
        RawFix(offset(ORIGIN, 21, 0), 5.0),
        RawFix(offset(ORIGIN, 30, 0), None),
        RawFix(offset(ORIGIN, 40, 0), 3.0),
    ]
    assert filter_gps_points(fixes) == [ORIGIN, offset(ORIGIN, 20, 0), offset(ORIGIN, 40, 0)]
