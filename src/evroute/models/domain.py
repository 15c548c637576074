"""Domain models for routes, charging stations and stop plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS84 coordinate in decimal degrees."""

    lat: float
    lng: float

    def is_valid(self) -> bool:
        return -90.0 <= self.lat <= 90.0 and -180.0 <= self.lng <= 180.0


Route = tuple[GeoPoint, ...]


@dataclass(frozen=True, slots=True)
class Corridor:
    """Geographic filter around a route: a closed polygon ring or a circle."""

    polygon: Optional[tuple[GeoPoint, ...]] = None
    center: Optional[GeoPoint] = None
    radius_km: Optional[float] = None

    @property
    def is_polygon(self) -> bool:
        return self.polygon is not None

    def to_geofilter(self) -> dict[str, str]:
        """Render as Opendatasoft geofilter query parameters."""
        if self.polygon is not None:
            ring = ",".join(f"({point.lat:.6f},{point.lng:.6f})" for point in self.polygon)
            return {"geofilter.polygon": ring}
        if self.center is not None and self.radius_km is not None:
            metres = int(round(self.radius_km * 1000.0))
            return {"geofilter.distance": f"{self.center.lat:.6f},{self.center.lng:.6f},{metres}"}
        raise ValueError("Corridor has neither a polygon nor a center and radius.")


@dataclass(frozen=True, slots=True)
class RouteProjection:
    arc_length_km: float
    perpendicular_distance_km: float


@dataclass(slots=True)
class StationRecord:
    """Raw directory record with every field optional.

    Fallbacks are resolved once, by the normalizer.
    """

    record_id: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    power_kw_raw: object = None
    brand: Optional[str] = None
    site_operator: Optional[str] = None
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class StationCandidate:
    id: str
    location: GeoPoint
    power_kw: float
    operator_name: str


@dataclass(frozen=True, slots=True)
class ProjectedCandidate:
    candidate: StationCandidate
    projection: RouteProjection

    @property
    def id(self) -> str:
        return self.candidate.id

    @property
    def arc_length_km(self) -> float:
        return self.projection.arc_length_km

    @property
    def perpendicular_distance_km(self) -> float:
        return self.projection.perpendicular_distance_km

    def sort_key(self) -> tuple[float, float, str]:
        return (self.arc_length_km, self.perpendicular_distance_km, self.id)


@dataclass(frozen=True, slots=True)
class PlannedStop:
    candidate: ProjectedCandidate
    sequence_number: int


@dataclass(frozen=True, slots=True)
class LegGap:
    """A leg of the trip longer than the vehicle's range."""

    from_km: float
    to_km: float

    @property
    def gap_km(self) -> float:
        return self.to_km - self.from_km


@dataclass(slots=True)
class StopPlan:
    """Selected charging stops plus the feasibility verdict for the trip."""

    stops: list[PlannedStop]
    stops_required: int
    distance_km: float
    range_km: float
    safety_margin: float
    infeasible_legs: list[LegGap] = field(default_factory=list)

    @property
    def feasible(self) -> bool:
        return not self.infeasible_legs

    @property
    def status(self) -> str:
        return "complete" if self.feasible else "infeasible"
