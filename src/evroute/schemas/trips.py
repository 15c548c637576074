"""Trip planning request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class TripRequest(BaseModel):
    start_city: str = Field(..., description="Free-text departure place name.")
    end_city: str = Field(..., description="Free-text arrival place name.")
    average_speed_kmh: float = Field(default=110.0, gt=0, allow_inf_nan=False)
    range_km: float = Field(default=350.0, gt=0, allow_inf_nan=False, description="Usable vehicle range.")
    recharge_time_h: float = Field(default=0.5, ge=0, allow_inf_nan=False)
    safety_margin: Optional[float] = Field(
        default=None,
        gt=0,
        le=1,
        description="Fraction of range used as minimum spacing between stops (defaults to settings).",
    )
    corridor_width_km: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    min_power_kw: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    apply_station_filter: Optional[bool] = Field(
        default=None,
        description="Drop stations outside the corridor width or below min_power_kw (defaults to settings).",
    )

    @field_validator("start_city", "end_city")
    @classmethod
    def _strip_place(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Departure and arrival place names are required.")
        return value


class GeoPointModel(BaseModel):
    lat: float
    lng: float


class PlannedStopModel(BaseModel):
    sequence_number: int
    id: str
    lat: float
    lng: float
    power_kw: float
    operator_name: str
    arc_length_km: float
    distance_to_route_km: float


class LegGapModel(BaseModel):
    from_km: float
    to_km: float
    gap_km: float


class StopPlanModel(BaseModel):
    status: Literal["complete", "infeasible"]
    feasible: bool
    stops_required: int
    safety_margin: float
    stops: List[PlannedStopModel]
    infeasible_legs: List[LegGapModel]


class TripSummaryModel(BaseModel):
    distance_km: int
    travel_time_hours: float
    charging_stops: int
    plan_status: Literal["complete", "infeasible"]


class TripResponse(BaseModel):
    start_city: str
    end_city: str
    start: GeoPointModel
    end: GeoPointModel
    distance_km: float
    travel_time_hours: float
    travel_time_source: Literal["remote", "fallback"]
    route_coords: List[List[float]] = Field(..., description="Decoded route as [lat, lng] pairs.")
    plan: StopPlanModel
    summary: TripSummaryModel
    metadata: dict
