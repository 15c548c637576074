"""Greedy charging-stop selection along a route.

Candidates are scanned in arc-length order. A candidate becomes the next stop
when it lies at least ``range_km * safety_margin`` past the previous stop (or
the trip start) and fewer than ``stops_required`` stops have been chosen. The
margin below full range leaves slack for routing error and broken chargers,
which means the greedy pass can leave a leg longer than the range; such legs
are reported on the resulting plan instead of being hidden.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

from ...models.domain import LegGap, PlannedStop, ProjectedCandidate, StopPlan

DEFAULT_SAFETY_MARGIN = 0.8

logger = logging.getLogger(__name__)


def required_stop_count(distance_km: float, range_km: float) -> int:
    """Intermediate recharges needed if every leg were driven at exactly full range."""
    return max(0, math.ceil(distance_km / range_km) - 1)


def _validate_inputs(distance_km: float, range_km: float, safety_margin: float) -> None:
    for name, value in (("distance_km", distance_km), ("range_km", range_km), ("safety_margin", safety_margin)):
        if not math.isfinite(value):
            raise ValueError(f"{name} must be a finite number, got {value}")
    if distance_km <= 0:
        raise ValueError("distance_km must be > 0")
    if range_km <= 0:
        raise ValueError("range_km must be > 0")
    if not 0 < safety_margin <= 1:
        raise ValueError("safety_margin must be in (0, 1]")


def find_infeasible_legs(stops: list[PlannedStop], distance_km: float, range_km: float) -> list[LegGap]:
    """Return every leg (start, stops, destination) longer than ``range_km``."""
    waypoints = [0.0, *(stop.candidate.arc_length_km for stop in stops), distance_km]
    return [
        LegGap(from_km=start, to_km=end)
        for start, end in zip(waypoints, waypoints[1:])
        if end - start > range_km
    ]


def plan_stops(
    candidates: Iterable[ProjectedCandidate],
    *,
    distance_km: float,
    range_km: float,
    safety_margin: float = DEFAULT_SAFETY_MARGIN,
) -> StopPlan:
    _validate_inputs(distance_km, range_km, safety_margin)

    ordered = sorted(candidates, key=ProjectedCandidate.sort_key)
    stops_required = required_stop_count(distance_km, range_km)
    min_spacing_km = range_km * safety_margin

    stops: list[PlannedStop] = []
    last_stop_km = 0.0
    for candidate in ordered:
        if len(stops) >= stops_required:
            break
        if candidate.arc_length_km - last_stop_km >= min_spacing_km:
            stops.append(PlannedStop(candidate=candidate, sequence_number=len(stops) + 1))
            last_stop_km = candidate.arc_length_km

    infeasible_legs = find_infeasible_legs(stops, distance_km, range_km)
    plan = StopPlan(
        stops=stops,
        stops_required=stops_required,
        distance_km=distance_km,
        range_km=range_km,
        safety_margin=safety_margin,
        infeasible_legs=infeasible_legs,
    )
    if infeasible_legs:
        worst = max(infeasible_legs, key=lambda leg: leg.gap_km)
        logger.warning(
            f"Stop plan is infeasible: {len(infeasible_legs)} leg(s) exceed range {range_km:.0f} km "
            f"(worst {worst.from_km:.1f}-{worst.to_km:.1f} km), "
            f"{len(stops)}/{stops_required} stops selected from {len(ordered)} candidates"
        )
    return plan
