"""Normalization of charging-station directory records into planning candidates."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable, Optional, Sequence

from ...models.domain import (
    GeoPoint,
    ProjectedCandidate,
    StationCandidate,
    StationRecord,
)
from ..corridor import RouteIndex

DEFAULT_OPERATOR_NAME = "Public"
# Leading number of values such as "22 kW" or "7,4kW".
_NUMERIC_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")

logger = logging.getLogger(__name__)


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            match = _NUMERIC_PREFIX.match(text)
            if match is None:
                return None
            number = float(match.group())
    return number if math.isfinite(number) else None


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_station_record(raw: dict) -> StationRecord:
    """Read an Opendatasoft IRVE record (or a flat dict) into a StationRecord."""

    fields = raw.get("fields") if isinstance(raw.get("fields"), dict) else raw
    geo_point = fields.get("geo_point_borne")
    if isinstance(geo_point, (list, tuple)) and len(geo_point) == 2:
        lat, lng = _coerce_float(geo_point[0]), _coerce_float(geo_point[1])
    else:
        lat = _coerce_float(fields.get("lat", fields.get("latitude")))
        lng = _coerce_float(fields.get("lng", fields.get("longitude")))

    return StationRecord(
        record_id=_clean_text(raw.get("recordid") or fields.get("id")),
        lat=lat,
        lng=lng,
        power_kw_raw=fields.get("puiss_max", fields.get("power_kw")),
        brand=_clean_text(fields.get("n_enseigne")),
        site_operator=_clean_text(fields.get("n_amenageur")),
        raw=raw,
    )


def normalize_records(
    records: Iterable[StationRecord],
    *,
    default_power_kw: float = 3.0,
) -> list[StationCandidate]:
    """Convert directory records into candidates.

    Records without a usable coordinate pair are dropped. Missing, non-numeric,
    zero or negative power falls back to ``default_power_kw``. Operator name falls
    back from brand to site operator to ``"Public"``. Records without an id get
    ``station-<index>``; later duplicates of an id are dropped.
    """
    candidates: list[StationCandidate] = []
    seen_ids: set[str] = set()
    skipped = 0
    for index, record in enumerate(records):
        location = None if record.lat is None or record.lng is None else GeoPoint(lat=record.lat, lng=record.lng)
        if location is None or not location.is_valid():
            skipped += 1
            logger.debug(f"Skipping station record {index} without usable coordinates: {record.raw}")
            continue

        station_id = record.record_id or f"station-{index}"
        if station_id in seen_ids:
            continue
        seen_ids.add(station_id)

        power = _coerce_float(record.power_kw_raw)
        if power is None or power <= 0:
            power = default_power_kw

        candidates.append(
            StationCandidate(
                id=station_id,
                location=location,
                power_kw=power,
                operator_name=record.brand or record.site_operator or DEFAULT_OPERATOR_NAME,
            )
        )
    if skipped:
        logger.info(f"Dropped {skipped} station records without usable coordinates")
    return candidates


def project_candidates(
    route_index: RouteIndex,
    candidates: Iterable[StationCandidate],
) -> list[ProjectedCandidate]:
    """Attach route projections and return candidates in planning order."""
    projected = [
        ProjectedCandidate(candidate=candidate, projection=route_index.project(candidate.location))
        for candidate in candidates
    ]
    projected.sort(key=ProjectedCandidate.sort_key)
    return projected


def filter_candidates(
    candidates: Sequence[ProjectedCandidate],
    *,
    corridor_width_km: float,
    min_power_kw: float,
) -> list[ProjectedCandidate]:
    """Drop candidates too far from the route or below the power threshold."""
    return [
        item
        for item in candidates
        if item.perpendicular_distance_km <= corridor_width_km and item.candidate.power_kw >= min_power_kw
    ]
