"""Geospatial helper functions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from ..models.domain import GeoPoint

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def cumulative_lengths_km(points: Sequence[GeoPoint]) -> list[float]:
    """Arc length from the first point to every vertex, in kilometres."""

    cumulative = [0.0] if points else []
    for prev, current in zip(points, points[1:]):
        cumulative.append(cumulative[-1] + distance_km(prev, current))
    return cumulative


def route_length_km(points: Sequence[GeoPoint]) -> float:
    if len(points) < 2:
        return 0.0
    return cumulative_lengths_km(points)[-1]


def point_at_arc_length(points: Sequence[GeoPoint], arc_km: float) -> GeoPoint:
    """Interpolate the point lying ``arc_km`` along the route (clamped to its ends)."""

    if not points:
        raise ValueError("Cannot interpolate along an empty route.")
    cumulative = cumulative_lengths_km(points)
    if arc_km <= 0.0:
        return points[0]
    if arc_km >= cumulative[-1]:
        return points[-1]
    for index in range(1, len(points)):
        if cumulative[index] >= arc_km:
            seg_len = cumulative[index] - cumulative[index - 1]
            ratio = 0.0 if seg_len == 0 else (arc_km - cumulative[index - 1]) / seg_len
            a, b = points[index - 1], points[index]
            return GeoPoint(lat=a.lat + (b.lat - a.lat) * ratio, lng=a.lng + (b.lng - a.lng) * ratio)
    return points[-1]


@dataclass(frozen=True, slots=True)
class LocalPlane:
    """Equirectangular projection to kilometres around a reference point.

    Straight lines in lat/lng stay straight in this plane, so ratios along a
    segment are preserved in both directions.
    """

    origin: GeoPoint

    @classmethod
    def around(cls, points: Sequence[GeoPoint]) -> "LocalPlane":
        lat = sum(point.lat for point in points) / len(points)
        lng = sum(point.lng for point in points) / len(points)
        return cls(GeoPoint(lat=lat, lng=lng))

    @property
    def _x_scale(self) -> float:
        # Keep a non-zero scale near the poles.
        return EARTH_RADIUS_KM * max(math.cos(math.radians(self.origin.lat)), 1e-6)

    def to_xy(self, point: GeoPoint) -> tuple[float, float]:
        x = math.radians(point.lng - self.origin.lng) * self._x_scale
        y = math.radians(point.lat - self.origin.lat) * EARTH_RADIUS_KM
        return (x, y)

    def to_point(self, x: float, y: float) -> GeoPoint:
        lat = self.origin.lat + math.degrees(y / EARTH_RADIUS_KM)
        lng = self.origin.lng + math.degrees(x / self._x_scale)
        return GeoPoint(lat=lat, lng=lng)
