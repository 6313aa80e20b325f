import math

import pytest

from routing.geo import EARTH_RADIUS_KM, haversine_km
from routing.route_service import RouteResult
from tracking.route_cache import RouteCache

ORIGIN = (12.97, 77.60)


def north_of(point, km):
    """Point exactly `km` due north of `point` along the meridian."""
    return (point[0] + math.degrees(km / EARTH_RADIUS_KM), point[1])


@pytest.fixture
def route():
    return RouteResult(polyline=[ORIGIN, (12.98, 77.61)], total_distance_m=1500.0, total_duration_s=240.0)


@pytest.fixture
def cache(clock):
    return RouteCache(clock=clock)


def test_haversine_matches_known_distance():
    # one degree of latitude is ~111.19 km on a 6371 km sphere
    assert haversine_km((0.0, 0.0), (1.0, 0.0)) == pytest.approx(111.195, abs=0.001)
    assert haversine_km(ORIGIN, ORIGIN) == 0.0
    assert haversine_km(ORIGIN, north_of(ORIGIN, 0.49)) == pytest.approx(0.49)


def test_fresh_entry_is_returned_verbatim(cache, route):
    cache.put("T", route, ORIGIN, 2)

    assert cache.get_if_valid("T", ORIGIN, 2) is route


@pytest.mark.parametrize("age_ms, hit", [(59_999, True), (60_000, False), (60_001, False)])
def test_age_boundary(cache, clock, route, age_ms, hit):
    cache.put("T", route, ORIGIN, 2)
    clock.advance(milliseconds=age_ms)

    assert (cache.get_if_valid("T", ORIGIN, 2) is route) is hit


@pytest.mark.parametrize("moved_km, hit", [(0.49, True), (0.51, False)])
def test_displacement_boundary(cache, route, moved_km, hit):
    cache.put("T", route, ORIGIN, 2)

    assert (cache.get_if_valid("T", north_of(ORIGIN, moved_km), 2) is route) is hit


@pytest.mark.parametrize("stop_count, hit", [(2, True), (1, False), (3, False)])
def test_stop_count_must_match(cache, route, stop_count, hit):
    cache.put("T", route, ORIGIN, 2)

    assert (cache.get_if_valid("T", ORIGIN, stop_count) is route) is hit


def test_invalidate_forces_a_miss(cache, route):
    cache.put("T", route, ORIGIN, 2)

    cache.invalidate("T")
    cache.invalidate("never-cached")

    assert cache.get_if_valid("T", ORIGIN, 2) is None
    assert cache.peek("T") is None


def test_put_overwrites(cache, clock, route):
    cache.put("T", route, ORIGIN, 2)
    clock.advance(seconds=30)
    newer = RouteResult(polyline=[ORIGIN], total_distance_m=10.0)
    cache.put("T", newer, ORIGIN, 1)

    entry = cache.peek("T")
    assert entry.result is newer
    assert entry.stop_count == 1
    assert entry.cached_at == clock.now


def test_sweep_evicts_after_two_minutes_even_if_never_read(cache, clock, route):
    cache.put("old", route, ORIGIN, 2)
    clock.advance(seconds=30)
    cache.put("young", route, ORIGIN, 2)

    clock.advance(seconds=91)
    removed = cache.sweep()

    assert removed == 1
    assert cache.peek("old") is None
    assert cache.peek("young") is not None
