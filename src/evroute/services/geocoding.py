"""Place-name geocoding through a Nominatim-compatible search API."""

from __future__ import annotations

import logging

import httpx

from ..config import settings
from ..models.domain import GeoPoint
from .http_client import BaseHttpClient

logger = logging.getLogger(__name__)


class GeocodingError(LookupError):
    """Raised when a place name cannot be resolved to coordinates."""


class GeocodingClient(BaseHttpClient):
    service_name = "Geocoder"

    def __init__(
        self,
        base_url: str | None = None,
        *,
        country_codes: str | None = None,
        query_suffix: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(base_url or settings.geocoder_base_url, client=client)
        self.country_codes = country_codes if country_codes is not None else settings.geocoder_country_codes
        self.query_suffix = query_suffix if query_suffix is not None else settings.geocoder_query_suffix

    def geocode(self, place: str) -> GeoPoint:
        """Resolve a free-text place name to its best match."""
        query = place.strip()
        if not query:
            raise ValueError("Place name must not be empty.")
        params = {
            "q": f"{query} {self.query_suffix}".strip(),
            "format": "json",
            "limit": 1,
        }
        if self.country_codes:
            params["countrycodes"] = self.country_codes

        data = self.get_json(f"{self.base_url.rstrip('/')}/search", params=params)
        if not isinstance(data, list) or not data:
            raise GeocodingError(f"Place not found: {query}")
        try:
            point = GeoPoint(lat=float(data[0]["lat"]), lng=float(data[0]["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingError(f"Geocoder returned no usable coordinates for '{query}'") from exc
        logger.info(f"Geocoded '{query}' to ({point.lat:.5f}, {point.lng:.5f})")
        return point
