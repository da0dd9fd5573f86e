"""
Geo-math utilities.
"""

import math
import pytest

from backend.app.services.geo import (
    Coordinate, EARTH_RADIUS_METERS, distance_meters,
    estimate_travel_seconds, is_within_radius
)

DUBAI = Coordinate(25.276987, 55.296249)
MARINA = Coordinate(25.080328, 55.139309)
DOWNTOWN = Coordinate(25.197197, 55.274376)


def test_distance_is_zero_for_same_point():
    assert distance_meters(DUBAI, DUBAI) == 0


@pytest.mark.parametrize("a,b", [
    (DUBAI, MARINA),
    (MARINA, DOWNTOWN),
    (Coordinate(-33.8688, 151.2093), Coordinate(51.5074, -0.1278)),
])
def test_distance_is_symmetric(a, b):
    assert distance_meters(a, b) == pytest.approx(distance_meters(b, a))


def test_triangle_inequality():
    direct = distance_meters(DUBAI, MARINA)
    via = distance_meters(DUBAI, DOWNTOWN) + distance_meters(DOWNTOWN, MARINA)
    assert direct <= via + 1e-6


def test_known_distance():
    # One degree of latitude along a meridian
    d = distance_meters(Coordinate(0, 0), Coordinate(1, 0))
    assert d == pytest.approx(EARTH_RADIUS_METERS * math.pi / 180)


def test_antipodal_points_are_half_circumference():
    d = distance_meters(Coordinate(0, 0), Coordinate(0, 180))
    assert d == pytest.approx(math.pi * EARTH_RADIUS_METERS)
    assert not math.isnan(distance_meters(Coordinate(90, 0), Coordinate(-90, 0)))


def test_scenario_point_is_about_one_and_a_half_meters_from_fence_center():
    d = distance_meters(DUBAI, Coordinate(25.277000, 55.296250))
    assert 1.0 < d < 2.0


def test_estimate_travel_seconds_default_speed():
    # 40 km at 40 km/h
    assert estimate_travel_seconds(40000) == pytest.approx(3600)


def test_estimate_travel_seconds_custom_speed():
    assert estimate_travel_seconds(10000, avg_speed_kph=20) == pytest.approx(1800)


def test_radius_boundary_is_inclusive():
    point = Coordinate(25.2780, 55.2970)
    exact = distance_meters(point, DUBAI)
    
    assert is_within_radius(point, DUBAI, exact)
    assert not is_within_radius(point, DUBAI, exact - 0.001)
