import pytest
from shapely.geometry import Point, Polygon

from src.evroute.models.domain import GeoPoint
from src.evroute.services.corridor import (
    RouteIndex,
    build_corridor,
    build_radius_corridor,
    project_onto_route,
)
from src.evroute.services.geospatial import cumulative_lengths_km, haversine_km, route_length_km

EAST_WEST = (GeoPoint(lat=45.0, lng=2.0), GeoPoint(lat=45.0, lng=3.0))
ELBOW = (GeoPoint(lat=45.0, lng=2.0), GeoPoint(lat=45.0, lng=3.0), GeoPoint(lat=46.0, lng=3.0))
U_TURN = (
    GeoPoint(lat=45.0, lng=2.0),
    GeoPoint(lat=46.0, lng=2.0),
    GeoPoint(lat=46.0, lng=3.0),
    GeoPoint(lat=45.0, lng=3.0),
)


def _as_polygon(ring):
    return Polygon([(point.lng, point.lat) for point in ring])


def test_build_corridor_returns_closed_ring_covering_route():
    corridor = build_corridor(ELBOW, width_km=10.0)

    assert corridor is not None
    assert corridor.is_polygon
    ring = corridor.polygon
    assert ring[0] == ring[-1]
    assert len(ring) >= 4
    polygon = _as_polygon(ring)
    for point in ELBOW:
        assert polygon.contains(Point(point.lng, point.lat))


def test_build_corridor_caps_vertex_count_and_stays_closed():
    corridor = build_corridor(U_TURN, width_km=15.0, max_vertices=12)

    assert corridor is not None
    ring = corridor.polygon
    assert len(ring) == 13
    assert ring[0] == ring[-1]
    assert len(set(ring[:-1])) == 12


def test_build_corridor_returns_none_when_vertex_cap_collapses_ring():
    assert build_corridor(U_TURN, width_km=15.0, max_vertices=2) is None


def test_build_corridor_degenerate_inputs_return_none():
    assert build_corridor(EAST_WEST, width_km=0.0) is None
    assert build_corridor(EAST_WEST[:1], width_km=10.0) is None
    assert build_corridor((), width_km=10.0) is None


def test_corridor_renders_polygon_geofilter():
    corridor = build_corridor(EAST_WEST, width_km=5.0, max_vertices=8)

    geofilter = corridor.to_geofilter()

    assert list(geofilter) == ["geofilter.polygon"]
    pairs = geofilter["geofilter.polygon"].split("),(")
    assert len(pairs) == 9
    assert geofilter["geofilter.polygon"].startswith("(")


def test_radius_corridor_covers_route_plus_width():
    corridor = build_radius_corridor(EAST_WEST, width_km=20.0)

    assert corridor is not None
    assert not corridor.is_polygon
    assert corridor.center.lat == pytest.approx(45.0)
    assert corridor.center.lng == pytest.approx(2.5)
    assert corridor.radius_km == pytest.approx(route_length_km(EAST_WEST) / 2 + 20.0)
    lat, lng, metres = corridor.to_geofilter()["geofilter.distance"].split(",")
    assert int(metres) == round(corridor.radius_km * 1000)


def test_projection_of_point_on_segment_is_exact():
    cumulative = cumulative_lengths_km(ELBOW)
    midpoint = GeoPoint(lat=45.5, lng=3.0)

    projection = project_onto_route(ELBOW, midpoint)

    assert projection.perpendicular_distance_km == pytest.approx(0.0, abs=1e-6)
    assert projection.arc_length_km == pytest.approx(cumulative[1] + (cumulative[2] - cumulative[1]) / 2)


def test_projection_of_vertex_matches_cumulative_length():
    cumulative = cumulative_lengths_km(ELBOW)

    projection = project_onto_route(ELBOW, ELBOW[1])

    assert projection.perpendicular_distance_km == pytest.approx(0.0, abs=1e-6)
    assert projection.arc_length_km == pytest.approx(cumulative[1])


def test_projection_off_route_reports_perpendicular_distance():
    point = GeoPoint(lat=45.1, lng=2.5)

    projection = project_onto_route(EAST_WEST, point)

    assert projection.perpendicular_distance_km == pytest.approx(haversine_km(45.1, 2.5, 45.0, 2.5), rel=1e-6)
    assert projection.arc_length_km == pytest.approx(route_length_km(EAST_WEST) / 2, rel=1e-6)


def test_projection_clamps_to_route_ends():
    index = RouteIndex(EAST_WEST)

    before = index.project(GeoPoint(lat=45.0, lng=1.0))
    after = index.project(GeoPoint(lat=45.0, lng=4.5))

    assert before.arc_length_km == pytest.approx(0.0)
    assert before.perpendicular_distance_km == pytest.approx(haversine_km(45.0, 1.0, 45.0, 2.0))
    assert after.arc_length_km == pytest.approx(index.length_km)


def test_projection_uses_distance_along_route_not_from_start():
    end = U_TURN[-1]

    projection = project_onto_route(U_TURN, end)

    straight_line = haversine_km(U_TURN[0].lat, U_TURN[0].lng, end.lat, end.lng)
    assert projection.arc_length_km == pytest.approx(route_length_km(U_TURN))
    assert projection.arc_length_km > 2 * straight_line


def test_projection_requires_two_points():
    with pytest.raises(ValueError):
        RouteIndex(EAST_WEST[:1])
