"""Trip planning orchestration service."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

import httpx

from ...config import settings
from ...models.domain import Corridor, GeoPoint, PlannedStop, Route, StationRecord, StopPlan
from ...schemas.trips import (
    GeoPointModel,
    LegGapModel,
    PlannedStopModel,
    StopPlanModel,
    TripRequest,
    TripResponse,
    TripSummaryModel,
)
from ..corridor import RouteIndex, build_corridor, build_radius_corridor
from ..geocoding import GeocodingClient
from ..http_client import UpstreamServiceError
from ..planning.planner import plan_stops
from ..polyline import MalformedPolylineError, decode_polyline
from ..routing.route_client import RouteClient
from ..stations.directory_client import StationDirectoryClient
from ..stations.normalizer import filter_candidates, normalize_records, project_candidates
from ..travel_time import estimate_travel_time

logger = logging.getLogger(__name__)


def load_route(encoded: str, precision: int) -> Route:
    """Decode a provider polyline and reject geometry that cannot be planned on.

    Out-of-range coordinates almost always mean the precision does not match
    the one the provider encoded with.
    """
    route = decode_polyline(encoded, precision=precision)
    if len(route) < 2:
        raise MalformedPolylineError(f"Route geometry has {len(route)} point(s); at least two are required.")
    invalid = sum(1 for point in route if not point.is_valid())
    if invalid:
        raise MalformedPolylineError(
            f"Decoded route has {invalid} out-of-range coordinate(s); "
            f"check that polyline precision {precision} matches the route provider."
        )
    return route


def build_search_corridor(route: Route, width_km: float) -> Optional[Corridor]:
    if settings.corridor_mode == "radius":
        return build_radius_corridor(route, width_km)
    return build_corridor(route, width_km, max_vertices=settings.corridor_max_vertices)


def plan_route_stops(
    route: Route,
    records: Sequence[StationRecord],
    *,
    distance_km: float,
    range_km: float,
    safety_margin: float,
    corridor_width_km: float,
    min_power_kw: float,
    apply_station_filter: bool,
    default_power_kw: float,
    route_index: RouteIndex | None = None,
) -> StopPlan:
    """Normalize, project, optionally filter and plan over already-fetched records."""
    index = route_index or RouteIndex(route)
    candidates = normalize_records(records, default_power_kw=default_power_kw)
    projected = project_candidates(index, candidates)
    if apply_station_filter:
        kept = filter_candidates(projected, corridor_width_km=corridor_width_km, min_power_kw=min_power_kw)
        logger.info(
            f"Station filter kept {len(kept)}/{len(projected)} candidates "
            f"(width={corridor_width_km} km, min_power={min_power_kw} kW)"
        )
        projected = kept
    return plan_stops(projected, distance_km=distance_km, range_km=range_km, safety_margin=safety_margin)


def _fetch_station_records(route: Route, width_km: float) -> list[StationRecord]:
    corridor = build_search_corridor(route, width_km)
    if corridor is None:
        logger.warning("Search corridor is degenerate; planning without candidate stations")
        return []
    try:
        return StationDirectoryClient().search(corridor)
    except (httpx.HTTPError, ConnectionError, UpstreamServiceError) as e:
        logger.warning(f"Station directory request failed: {e}. Planning without candidate stations.")
        return []


def _geocode_endpoints(start_city: str, end_city: str) -> tuple[GeoPoint, GeoPoint]:
    geocoder = GeocodingClient()
    with ThreadPoolExecutor(max_workers=2) as executor:
        start_future = executor.submit(geocoder.geocode, start_city)
        end_future = executor.submit(geocoder.geocode, end_city)
        return start_future.result(), end_future.result()


def _stop_to_model(stop: PlannedStop) -> PlannedStopModel:
    station = stop.candidate.candidate
    return PlannedStopModel(
        sequence_number=stop.sequence_number,
        id=station.id,
        lat=station.location.lat,
        lng=station.location.lng,
        power_kw=station.power_kw,
        operator_name=station.operator_name,
        arc_length_km=round(stop.candidate.arc_length_km, 3),
        distance_to_route_km=round(stop.candidate.perpendicular_distance_km, 3),
    )


def stop_plan_to_model(plan: StopPlan) -> StopPlanModel:
    return StopPlanModel(
        status=plan.status,
        feasible=plan.feasible,
        stops_required=plan.stops_required,
        safety_margin=plan.safety_margin,
        stops=[_stop_to_model(stop) for stop in plan.stops],
        infeasible_legs=[
            LegGapModel(from_km=round(leg.from_km, 3), to_km=round(leg.to_km, 3), gap_km=round(leg.gap_km, 3))
            for leg in plan.infeasible_legs
        ],
    )


def plan_trip(payload: TripRequest) -> TripResponse:
    start, end = _geocode_endpoints(payload.start_city, payload.end_city)

    route_response = RouteClient().route(start, end)
    route = load_route(route_response.polyline, precision=settings.route_polyline_precision)
    route_index = RouteIndex(route)
    distance_km = route_response.distance_km or route_index.length_km
    if distance_km <= 0:
        raise ValueError("Route distance is zero; departure and arrival resolve to the same point.")
    logger.info(
        f"Planning trip {payload.start_city!r} -> {payload.end_city!r}: "
        f"{len(route)} route points, {distance_km:.1f} km, range {payload.range_km} km"
    )

    travel = estimate_travel_time(
        distance_km=distance_km,
        speed_kmh=payload.average_speed_kmh,
        range_km=payload.range_km,
        recharge_time_h=payload.recharge_time_h,
    )

    width_km = payload.corridor_width_km or settings.corridor_width_km
    records = _fetch_station_records(route, width_km)
    apply_filter = (
        payload.apply_station_filter if payload.apply_station_filter is not None else settings.apply_station_filter
    )
    plan = plan_route_stops(
        route,
        records,
        distance_km=distance_km,
        range_km=payload.range_km,
        safety_margin=payload.safety_margin or settings.safety_margin,
        corridor_width_km=width_km,
        min_power_kw=payload.min_power_kw if payload.min_power_kw is not None else settings.min_power_kw,
        apply_station_filter=apply_filter,
        default_power_kw=settings.default_power_kw,
        route_index=route_index,
    )

    return TripResponse(
        start_city=payload.start_city,
        end_city=payload.end_city,
        start=GeoPointModel(lat=start.lat, lng=start.lng),
        end=GeoPointModel(lat=end.lat, lng=end.lng),
        distance_km=round(distance_km, 3),
        travel_time_hours=travel.hours,
        travel_time_source=travel.source,
        route_coords=[[point.lat, point.lng] for point in route],
        plan=stop_plan_to_model(plan),
        summary=TripSummaryModel(
            distance_km=round(distance_km),
            travel_time_hours=round(travel.hours, 1),
            charging_stops=len(plan.stops),
            plan_status=plan.status,
        ),
        metadata={
            "station_records": len(records),
            "corridor_width_km": width_km,
            "corridor_mode": settings.corridor_mode,
            "station_filter_applied": apply_filter,
            "route_length_km": round(route_index.length_km, 3),
            "polyline_precision": settings.route_polyline_precision,
        },
    )
