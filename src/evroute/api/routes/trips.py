"""Trip planning endpoints."""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, HTTPException, status

from ...schemas.trips import TripRequest, TripResponse
from ...services.geocoding import GeocodingError
from ...services.http_client import UpstreamServiceError
from ...services.trips.service import plan_trip

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("/plan", response_model=TripResponse, status_code=status.HTTP_200_OK)
def plan(payload: TripRequest) -> TripResponse:
    """Geocode both ends, fetch the route and plan charging stops along it."""
    try:
        return plan_trip(payload)
    except GeocodingError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except (UpstreamServiceError, ConnectionError, httpx.HTTPError) as exc:
        logging.warning(f"Upstream provider failure while planning trip: {exc}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Upstream provider failed: {str(exc)}",
        ) from exc
    except Exception as exc:
        logging.exception(f"Error planning trip: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to plan trip: {str(exc)}",
        ) from exc
