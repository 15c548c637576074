"""Route corridors and projection of points onto a route."""

from __future__ import annotations

import bisect
import logging
from typing import Optional, Sequence

from shapely.geometry import LineString, Point, Polygon

from ..models.domain import Corridor, GeoPoint, RouteProjection
from .geospatial import (
    LocalPlane,
    cumulative_lengths_km,
    distance_km,
    point_at_arc_length,
    route_length_km,
)

logger = logging.getLogger(__name__)


def _downsample_ring(vertices: list[GeoPoint], max_vertices: int) -> list[GeoPoint]:
    """Evenly sample an open ring down to ``max_vertices`` vertices."""
    step = len(vertices) / max_vertices
    return [vertices[int(i * step)] for i in range(max_vertices)]


def build_corridor(
    route: Sequence[GeoPoint],
    width_km: float,
    max_vertices: Optional[int] = None,
) -> Optional[Corridor]:
    """Buffer the route by ``width_km`` and return the enclosing polygon.

    Returns ``None`` when the buffer is degenerate (fewer than three distinct
    vertices); callers treat that as an empty station search. ``max_vertices``
    caps the number of distinct ring vertices, the returned ring is always
    closed (first vertex repeated last).
    """
    if len(route) < 2 or width_km <= 0:
        logger.warning(f"Cannot build corridor: {len(route)} route points, width={width_km} km")
        return None

    plane = LocalPlane.around(route)
    line = LineString([plane.to_xy(point) for point in route])
    buffered = line.buffer(width_km)
    if buffered.is_empty or not isinstance(buffered, Polygon):
        logger.warning(f"Route buffer produced no usable polygon ({buffered.geom_type})")
        return None

    ring = [plane.to_point(x, y) for x, y in buffered.exterior.coords]
    # Shapely rings are closed; work on the open ring.
    vertices = ring[:-1] if len(ring) > 1 and ring[0] == ring[-1] else ring
    if len(set(vertices)) < 3:
        logger.warning(f"Route buffer ring is degenerate ({len(vertices)} vertices)")
        return None

    if max_vertices is not None and len(vertices) > max_vertices:
        vertices = _downsample_ring(vertices, max_vertices)
        if len(set(vertices)) < 3:
            logger.warning(f"Corridor ring collapsed when capped at {max_vertices} vertices")
            return None

    return Corridor(polygon=tuple(vertices) + (vertices[0],))


def build_radius_corridor(route: Sequence[GeoPoint], width_km: float) -> Optional[Corridor]:
    """Circle centred on the route midpoint that covers the route plus ``width_km``."""
    if len(route) < 2 or width_km <= 0:
        return None
    length = route_length_km(route)
    center = point_at_arc_length(route, length / 2.0)
    return Corridor(center=center, radius_km=length / 2.0 + width_km)


class RouteIndex:
    """Precomputed route geometry for repeated projections.

    Nearest points are found by shapely in a local kilometre plane; the
    position within the chosen segment is then mapped onto haversine arc
    length so results agree with :func:`route_length_km`.
    """

    def __init__(self, route: Sequence[GeoPoint]) -> None:
        if len(route) < 2:
            raise ValueError("A route needs at least two points to project onto.")
        self.route = tuple(route)
        self.plane = LocalPlane.around(self.route)
        self._xy = [self.plane.to_xy(point) for point in self.route]
        self._line = LineString(self._xy)
        self._arc = cumulative_lengths_km(self.route)
        self._plane_cum = [0.0]
        for (x1, y1), (x2, y2) in zip(self._xy, self._xy[1:]):
            self._plane_cum.append(self._plane_cum[-1] + ((x2 - x1) ** 2 + (y2 - y1) ** 2) ** 0.5)

    @property
    def length_km(self) -> float:
        return self._arc[-1]

    def project(self, point: GeoPoint) -> RouteProjection:
        along = self._line.project(Point(self.plane.to_xy(point)))
        segment = bisect.bisect_right(self._plane_cum, along) - 1
        segment = max(0, min(segment, len(self.route) - 2))

        plane_len = self._plane_cum[segment + 1] - self._plane_cum[segment]
        ratio = 0.0 if plane_len == 0 else (along - self._plane_cum[segment]) / plane_len
        ratio = max(0.0, min(1.0, ratio))

        a, b = self.route[segment], self.route[segment + 1]
        foot = GeoPoint(lat=a.lat + (b.lat - a.lat) * ratio, lng=a.lng + (b.lng - a.lng) * ratio)
        arc = self._arc[segment] + (self._arc[segment + 1] - self._arc[segment]) * ratio
        return RouteProjection(
            arc_length_km=min(max(arc, 0.0), self.length_km),
            perpendicular_distance_km=distance_km(point, foot),
        )


def project_onto_route(route: Sequence[GeoPoint], point: GeoPoint) -> RouteProjection:
    """Project a single point; use :class:`RouteIndex` directly for many points."""
    return RouteIndex(route).project(point)
