"""HTTP client for the route provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ...config import settings
from ...models.domain import GeoPoint
from ..http_client import BaseHttpClient, UpstreamServiceError

logger = logging.getLogger(__name__)


class RouteProviderError(UpstreamServiceError):
    """Raised when the route provider answers without a usable route."""


@dataclass(slots=True)
class RouteResponse:
    polyline: str
    distance_km: Optional[float]


def _distance_km(data: dict) -> Optional[float]:
    for key, scale in (("total_distance", 0.001), ("distance_m", 0.001), ("distance", 0.001), ("distance_km", 1.0)):
        value = data.get(key)
        if value is None:
            continue
        try:
            distance = float(value) * scale
        except (TypeError, ValueError):
            continue
        if distance > 0:
            return distance
    return None


class RouteClient(BaseHttpClient):
    service_name = "Route provider"

    def __init__(
        self,
        base_url: str | None = None,
        *,
        api_key: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(base_url or settings.route_base_url, client=client)
        self.api_key = api_key if api_key is not None else settings.route_api_key

    def route(self, start: GeoPoint, end: GeoPoint) -> RouteResponse:
        """Fetch a driving route; the polyline is returned still encoded."""
        params = {
            "origin": f"{start.lat},{start.lng}",
            "destination": f"{end.lat},{end.lng}",
            "mode": "driving",
        }
        if self.api_key:
            params["key"] = self.api_key

        data = self.get_json(self.base_url, params=params)
        if not isinstance(data, dict):
            raise RouteProviderError("Route provider returned an unexpected payload.")
        polyline = data.get("polyline")
        if not polyline or not isinstance(polyline, str):
            message = data.get("message") or data.get("status") or "missing polyline"
            raise RouteProviderError(f"Route provider returned no route: {message}")

        distance = _distance_km(data)
        logger.info(
            f"Route fetched: {len(polyline)} polyline chars, "
            f"distance={'unknown' if distance is None else f'{distance:.1f} km'}"
        )
        return RouteResponse(polyline=polyline, distance_km=distance)
